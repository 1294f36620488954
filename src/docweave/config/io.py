import copy
import logging
import pathlib
from typing import Any, cast

import pydantic
import ruamel.yaml

from docweave import exceptions
from docweave.config import models

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = (".docweaverc.yaml", ".docweaverc.yml", "docweave.yaml")


def find_config_file(cwd: pathlib.Path) -> pathlib.Path | None:
    """Return the first config file present in cwd, or None."""
    for name in CONFIG_FILE_NAMES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: pathlib.Path) -> dict[str, Any]:
    """Load YAML config as plain dict with error handling."""
    if not path.exists():
        return {}

    try:
        yaml = ruamel.yaml.YAML(typ="safe")
        with path.open(encoding="utf-8") as f:
            data = yaml.load(f)
    except ruamel.yaml.YAMLError as e:
        raise exceptions.ConfigValidationError(f"Invalid YAML in {path}: {e}") from e
    except PermissionError:
        raise exceptions.ConfigValidationError(f"Permission denied reading {path}") from None
    except OSError as e:
        raise exceptions.ConfigValidationError(f"Error reading {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise exceptions.ConfigValidationError(f"Config file must be a mapping: {path}")
    return cast("dict[str, Any]", data)


def load_config_file(path: pathlib.Path) -> dict[str, Any]:
    """Load YAML config, returns empty dict if missing."""
    return _load_yaml(path)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into base, recursively for nested dicts."""
    result = copy.deepcopy(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            nested_override = cast("dict[str, Any]", val)
            result[key] = deep_merge(result[key], nested_override)
        else:
            result[key] = copy.deepcopy(val)
    return result


def _format_validation_error(e: pydantic.ValidationError) -> str:
    parts = list[str]()
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def build_config(
    raw: dict[str, Any] | None = None,
    overrides: dict[str, Any] | None = None,
) -> models.DocweaveConfig:
    """Validate file values merged with programmatic overrides.

    Every field has a default, so partial input is always valid.
    """
    data = deep_merge(raw or {}, overrides or {})
    try:
        return models.DocweaveConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise exceptions.ConfigValidationError(
            f"Invalid configuration: {_format_validation_error(e)}"
        ) from e


def load_config(
    cwd: pathlib.Path,
    overrides: dict[str, Any] | None = None,
) -> models.DocweaveConfig:
    """Load the project config file (if any) and apply overrides."""
    path = find_config_file(cwd)
    raw = dict[str, Any]()
    if path is not None:
        logger.debug(f"Loading config from {path}")
        raw = load_config_file(path)
    return build_config(raw, overrides)

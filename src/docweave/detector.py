"""Classify the source tree: framework version and an existing site project."""

from __future__ import annotations

import dataclasses
import json
import logging
import re
from typing import TYPE_CHECKING, Any, Protocol, cast

from packaging.version import InvalidVersion, Version

from docweave import exceptions

if TYPE_CHECKING:
    import pathlib

    from docweave.config.models import DocweaveConfig

logger = logging.getLogger(__name__)

_IVY_MIN_VERSION = Version("9.0.0")
_VERSION_RE = re.compile(r"\d+(?:\.\d+){0,2}")


@dataclasses.dataclass(frozen=True)
class SiteProject:
    """A site project declared in the workspace file."""

    name: str
    root: str
    source_root: str | None = None


@dataclasses.dataclass(frozen=True)
class DetectionResult:
    framework_version: Version | None = None
    site_project: SiteProject | None = None

    @property
    def enable_ivy(self) -> bool:
        """Modern compiler is on from 9.0.0, and assumed when no version is known."""
        if self.framework_version is None:
            return True
        return self.framework_version >= _IVY_MIN_VERSION


class Detector(Protocol):
    """Anything that can classify the source tree."""

    async def detect(self) -> DetectionResult: ...


def _read_json(path: pathlib.Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise exceptions.ConfigurationError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        return None
    return cast("dict[str, Any]", data)


def parse_version_spec(spec: str) -> Version | None:
    """Extract a version from a dependency range like '^9.1.0' or '~12.0'."""
    match = _VERSION_RE.search(spec)
    if match is None:
        return None
    try:
        return Version(match.group(0))
    except InvalidVersion:
        return None


class ProjectDetector:
    """Reads package.json and the workspace file under cwd."""

    _cwd: pathlib.Path
    _config: DocweaveConfig

    def __init__(self, cwd: pathlib.Path, config: DocweaveConfig) -> None:
        self._cwd = cwd
        self._config = config

    async def detect(self) -> DetectionResult:
        return DetectionResult(
            framework_version=self._detect_framework_version(),
            site_project=self._detect_site_project(),
        )

    def _detect_framework_version(self) -> Version | None:
        package = _read_json(self._cwd / "package.json")
        if package is None:
            return None
        name = self._config.framework.package
        for section in ("dependencies", "devDependencies", "peerDependencies"):
            deps = package.get(section)
            if isinstance(deps, dict) and name in deps:
                version = parse_version_spec(str(cast("dict[str, Any]", deps)[name]))
                logger.debug(f"Detected {name} {version}")
                return version
        return None

    def _detect_site_project(self) -> SiteProject | None:
        name = self._config.site_project_name
        if not name:
            return None
        workspace = _read_json(self._cwd / self._config.framework.workspace_file)
        if workspace is None:
            return None
        projects = workspace.get("projects")
        if not isinstance(projects, dict):
            return None
        project = cast("dict[str, Any]", projects).get(name)
        if not isinstance(project, dict):
            return None
        project_dict = cast("dict[str, Any]", project)
        source_root = project_dict.get("sourceRoot")
        return SiteProject(
            name=name,
            root=str(project_dict.get("root", "")),
            source_root=str(source_root) if source_root else None,
        )

"""Front matter and heading helpers shared by the docs and library stages."""

from __future__ import annotations

import re
from typing import Any, cast

import yaml

# libyaml's C loader when available; SafeLoader is API-compatible
FrontMatterLoader: type[yaml.SafeLoader] | type[yaml.CSafeLoader]
try:
    FrontMatterLoader = yaml.CSafeLoader
except AttributeError:
    FrontMatterLoader = yaml.SafeLoader

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_EMPTY_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n---[ \t]*(?:\r?\n|\Z)")
_ATX_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t#]*$", re.MULTILINE)
_SLUG_STRIP_RE = re.compile(r"[^\w\s-]", re.UNICODE)


class FrontMatterError(ValueError):
    """Front matter block is not valid YAML or not a mapping."""


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a leading ``---`` YAML block from the markdown body."""
    if match := _EMPTY_FRONT_MATTER_RE.match(text):
        return {}, text[match.end() :]
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text

    try:
        data = yaml.load(match.group(1), Loader=FrontMatterLoader)
    except yaml.YAMLError as e:
        raise FrontMatterError(f"invalid front matter: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontMatterError(f"front matter must be a mapping, got {type(data).__name__}")
    return cast("dict[str, Any]", data), text[match.end() :]


def slugify(text: str) -> str:
    """Anchor id for a heading, matching the markdown toc extension's default."""
    value = _SLUG_STRIP_RE.sub("", text).strip().lower()
    return re.sub(r"[-\s]+", "-", value)


def first_heading(body: str, level: int = 1) -> str | None:
    """Title of the first heading of the given level, if any."""
    for match in _ATX_HEADING_RE.finditer(body):
        if len(match.group(1)) == level:
            return match.group(2).strip()
    return None

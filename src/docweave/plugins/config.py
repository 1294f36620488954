"""Per-document configuration read from front matter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from docweave import exceptions
from docweave.plugins import register_plugin
from docweave.types import TocMode

if TYPE_CHECKING:
    from docweave.context import BuildContext
    from docweave.types import ComponentDescriptor, DocSourceFile, LibraryDescriptor

__all__ = ["ConfigPlugin"]

logger = logging.getLogger(__name__)


def _as_int(key: str, name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise exceptions.ItemCompileError(key, f"'{name}' must be a number, got {value!r}")
    try:
        return int(value)
    except ValueError:
        raise exceptions.ItemCompileError(key, f"'{name}' must be a number, got {value!r}") from None


def _as_bool(key: str, name: str, value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise exceptions.ItemCompileError(key, f"'{name}' must be true or false, got {value!r}")
    return value


@register_plugin("config")
class ConfigPlugin:
    """Applies ``title``, ``order``, ``hidden``, ``toc`` and ``category`` front matter."""

    def apply(self, context: BuildContext) -> None:
        context.hooks.doc_compile.tap("config", self._configure_doc)
        context.hooks.lib_component_compile.tap("config", self._configure_component)

    def _configure_doc(self, doc: DocSourceFile) -> None:
        meta = doc.meta
        if title := meta.get("title"):
            doc.title = str(title)
        if "order" in meta:
            doc.order = _as_int(doc.key, "order", meta["order"])
        doc.hidden = _as_bool(doc.key, "hidden", meta.get("hidden"))
        if "toc" in meta:
            try:
                doc.toc = TocMode(str(meta["toc"]))
            except ValueError:
                choices = ", ".join(mode.value for mode in TocMode)
                raise exceptions.ItemCompileError(
                    doc.key, f"'toc' must be one of {choices}, got {meta['toc']!r}", doc.path
                ) from None

    def _configure_component(self, lib: LibraryDescriptor, component: ComponentDescriptor) -> None:
        _ = lib
        meta = component.meta
        component.title = str(meta.get("title") or component.name)
        component.category = str(meta.get("category") or "")
        if "order" in meta:
            component.order = _as_int(component.key, "order", meta["order"])
        component.hidden = _as_bool(component.key, "hidden", meta.get("hidden"))

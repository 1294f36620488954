"""Component pages: overview HTML per locale and normalized examples."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from docweave import markup
from docweave.plugins import register_plugin
from docweave.plugins.markdown import render_markdown

if TYPE_CHECKING:
    from docweave.context import BuildContext
    from docweave.types import ComponentDescriptor, LibraryDescriptor

__all__ = ["ComponentsPlugin"]

logger = logging.getLogger(__name__)


@register_plugin("components")
class ComponentsPlugin:
    """Compiles each component's overview docs and fills in its display title."""

    def apply(self, context: BuildContext) -> None:
        context.hooks.lib_component_compile.tap("components", self._compile_component)
        context.hooks.lib_compile.tap("components", self._log_library)

    def _compile_component(self, lib: LibraryDescriptor, component: ComponentDescriptor) -> None:
        _ = lib
        for locale, source in component.docs.items():
            component.overviews[locale], _headings = render_markdown(source)
        if not component.title or component.title == component.name:
            default_doc = next(iter(component.docs.values()), "")
            title = component.meta.get("title") or markup.first_heading(default_doc)
            component.title = str(title or component.name)
        component.examples.sort(key=lambda example: (example.order, example.name))

    def _log_library(self, lib: LibraryDescriptor) -> None:
        logger.debug(f"Compiled library {lib.name}: {len(lib.components)} component(s)")

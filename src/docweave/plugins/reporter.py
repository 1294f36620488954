"""Console summaries of each build stage."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import rich.console
import rich.markup

from docweave.plugins import register_plugin

if TYPE_CHECKING:
    from docweave.context import BuildContext
    from docweave.types import DocSourceFile, LibraryDescriptor

__all__ = ["ReporterPlugin"]


@register_plugin("reporter")
class ReporterPlugin:
    """Prints stage progress to a rich console."""

    _console: rich.console.Console
    _context: BuildContext | None
    _started: float | None

    def __init__(self, *, console: rich.console.Console | None = None) -> None:
        self._console = console or rich.console.Console(stderr=True)
        self._context = None
        self._started = None

    def apply(self, context: BuildContext) -> None:
        self._context = context
        context.hooks.run.tap("reporter", self._on_run)
        context.hooks.docs_compile.tap("reporter", self._on_docs)
        context.hooks.lib_compile.tap("reporter", self._on_library)
        context.hooks.emit.tap("reporter", self._on_emit)

    def _on_run(self) -> None:
        self._started = time.perf_counter()
        title = self._context.config.title if self._context is not None else "site"
        self._console.print(f"Building [bold]{rich.markup.escape(title)}[/bold]...")

    def _on_docs(self, docs: tuple[DocSourceFile, ...]) -> None:
        self._console.print(f"  docs: {len(docs)} page(s)")

    def _on_library(self, lib: LibraryDescriptor) -> None:
        name = rich.markup.escape(lib.name)
        self._console.print(f"  {name}: {len(lib.components)} component(s)")

    async def _on_emit(self) -> None:
        if self._started is None:
            self._console.print("[green]Done[/green]")
            return
        duration = time.perf_counter() - self._started
        self._console.print(f"[green]Done[/green] ({duration:.1f}s)")

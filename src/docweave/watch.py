"""File watching for incremental rebuilds."""

from __future__ import annotations

import fnmatch
import logging
import pathlib
from typing import TYPE_CHECKING, Any

import watchfiles

from docweave import exceptions

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Sequence

    from watchfiles import Change

    from docweave.builders.base import StagedBuilder

__all__ = ["ChangesFactory", "StageWatcher", "create_watch_filter"]

logger = logging.getLogger(__name__)

_IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".docweave"})
_IGNORED_SUFFIXES = ("~", ".swp", ".swx", ".tmp")

type ChangesFactory = Callable[..., AsyncIterator[set[tuple[Change, str]]]]


def create_watch_filter(watch_globs: Sequence[str] | None = None) -> Callable[[Change, str], bool]:
    """Create filter for watch mode file events.

    Drops VCS and dependency folders, editor swap files and the temporary
    files of atomic writes; keeps only ``watch_globs`` matches when given.
    """

    def watch_filter(change: Change, path: str) -> bool:
        _ = change
        pure = pathlib.PurePath(path)
        if any(part in _IGNORED_DIRS for part in pure.parts):
            return False
        name = pure.name
        if name.endswith(_IGNORED_SUFFIXES) or name.startswith(".#"):
            return False
        if watch_globs:
            return any(
                fnmatch.fnmatch(name, glob) or fnmatch.fnmatch(path, glob) for glob in watch_globs
            )
        return True

    return watch_filter


class StageWatcher:
    """Watches one builder's inputs and feeds debounced change batches to ``rebuild``.

    A failing rebuild is logged and watching continues. The watcher runs
    until its task is cancelled.
    """

    _builder: StagedBuilder[Any]
    _paths: list[pathlib.Path]
    _debounce_ms: int
    _watch_filter: Callable[[Change, str], bool]
    _changes_factory: ChangesFactory
    _batches: int

    def __init__(
        self,
        builder: StagedBuilder[Any],
        paths: Sequence[pathlib.Path],
        *,
        debounce_ms: int = 300,
        watch_filter: Callable[[Change, str], bool] | None = None,
        changes_factory: ChangesFactory | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            builder: Builder whose ``rebuild`` receives the changed paths.
            paths: Directories to watch.
            debounce_ms: Debounce delay in milliseconds.
            watch_filter: Event filter, defaults to :func:`create_watch_filter`.
            changes_factory: Source of change batches, defaults to ``watchfiles.awatch``.
        """
        self._builder = builder
        self._paths = list(paths)
        self._debounce_ms = debounce_ms
        self._watch_filter = watch_filter or create_watch_filter()
        self._changes_factory = changes_factory or watchfiles.awatch
        self._batches = 0

    @property
    def paths(self) -> list[pathlib.Path]:
        return list(self._paths)

    @property
    def batches(self) -> int:
        """Number of change batches handled so far."""
        return self._batches

    async def run(self) -> None:
        existing = [p for p in self._paths if p.exists()]
        if not existing:
            logger.warning(f"Nothing to watch for {self._builder.stage}")
            return
        async for changes in self._changes_factory(
            *existing,
            watch_filter=self._watch_filter,
            debounce=self._debounce_ms,
        ):
            await self.handle(changes)

    async def handle(self, changes: set[tuple[Change, str]]) -> bool:
        """Rebuild the builder for one batch; returns whether anything was rebuilt."""
        self._batches += 1
        paths = sorted({pathlib.Path(path) for _change, path in changes})
        if not paths:
            return False
        logger.debug(f"{self._builder.stage}: {len(paths)} change(s)")
        try:
            return await self._builder.rebuild(paths)
        except exceptions.DocweaveError as e:
            logger.error(f"Rebuild of {self._builder.stage} failed: {e.format_user_message()}")
        except Exception:
            logger.exception(f"Unexpected error rebuilding {self._builder.stage}")
        return False

"""Shared contract of the three build stages."""

from __future__ import annotations

import abc
import logging
import pathlib
import types
from typing import TYPE_CHECKING, Self

import anyio
import anyio.to_thread

from docweave import exceptions
from docweave.hooks import AsyncSeriesHook

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from anyio.abc import TaskGroup

    from docweave.context import BuildContext
    from docweave.types import StageName

__all__ = ["BuilderHooks", "StagedBuilder"]

logger = logging.getLogger(__name__)


class BuilderHooks:
    """Stage-local hooks."""

    build_succeeded: AsyncSeriesHook

    def __init__(self, stage: str) -> None:
        self.build_succeeded = AsyncSeriesHook(f"{stage}.build_succeeded", ("builder",))


class StagedBuilder[T](abc.ABC):
    """One slice of the build: discover inputs, compile them, publish an artifact.

    The artifact is an immutable mapping from item key to compiled item. It is
    replaced wholesale after every build or rebuild, so readers never see a
    half-updated artifact. A per-builder lock serializes builds and rebuilds;
    different builders run independently.

    Both full builds and incremental rebuilds finish by firing
    ``hooks.build_succeeded`` with the builder as payload; the orchestrator
    taps ``emit`` there so every write goes through one path.
    """

    stage: StageName
    hooks: BuilderHooks
    _context: BuildContext
    _artifact: Mapping[str, T]
    _errors: Mapping[str, exceptions.ItemCompileError]
    _changed: frozenset[str]
    _removed: frozenset[str]
    _lock: anyio.Lock
    _built: bool
    _watching: bool
    _build_count: int

    def __init__(self, context: BuildContext) -> None:
        self._context = context
        self.hooks = BuilderHooks(self.stage)
        self._artifact = types.MappingProxyType({})
        self._errors = types.MappingProxyType({})
        self._changed = frozenset()
        self._removed = frozenset()
        self._lock = anyio.Lock()
        self._built = False
        self._watching = False
        self._build_count = 0

    @property
    def context(self) -> BuildContext:
        return self._context

    @property
    def artifact(self) -> Mapping[str, T]:
        """Current published artifact (read-only snapshot)."""
        return self._artifact

    @property
    def errors(self) -> Mapping[str, exceptions.ItemCompileError]:
        """Items that failed to compile in the current artifact, by key."""
        return self._errors

    @property
    def changed_keys(self) -> frozenset[str]:
        """Keys (re)compiled by the last build, to be written by emit()."""
        return self._changed

    @property
    def removed_keys(self) -> frozenset[str]:
        """Keys dropped by the last build, whose outputs emit() deletes."""
        return self._removed

    @property
    def built(self) -> bool:
        return self._built

    @property
    def build_count(self) -> int:
        """Number of successful builds and rebuilds so far."""
        return self._build_count

    @property
    def watching(self) -> bool:
        return self._watching

    # -------------------------------------------------------------------------
    # Stage-specific steps
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    async def discover(self) -> list[str]:
        """Enumerate the keys of every input item.

        Raises DiscoveryError when the input set cannot be enumerated at all.
        """

    @abc.abstractmethod
    async def compile_item(self, key: str) -> T:
        """Compile one item. Raise ItemCompileError to record a per-item failure."""

    @abc.abstractmethod
    def keys_for_paths(self, paths: Iterable[pathlib.Path]) -> set[str]:
        """Map changed file paths to the item keys they affect.

        Runs in a worker thread, so it may touch the file system.
        """

    @abc.abstractmethod
    async def emit(self) -> None:
        """Write the items changed by the last build to the output directory."""

    def watch_paths(self) -> list[pathlib.Path]:
        """Directories whose changes should trigger rebuilds."""
        return []

    async def item_exists(self, key: str) -> bool:
        """Whether an item still exists on disk (False means it was deleted)."""
        _ = key
        return True

    def after_compile(self, artifact: Mapping[str, T], changed: frozenset[str]) -> None:
        """Fire aggregate hooks once the new artifact is assembled."""
        _ = artifact, changed

    # -------------------------------------------------------------------------
    # Build / rebuild
    # -------------------------------------------------------------------------

    async def build(self) -> Self:
        """Discover and compile every item, publish the artifact, fire build_succeeded."""
        async with self._lock:
            keys = await self.discover()
            items = dict[str, T]()
            errors = dict[str, exceptions.ItemCompileError]()
            for key in keys:
                await self._compile_into(key, items, errors)

            removed = frozenset(self._artifact) - frozenset(items)
            self._publish(items, errors, changed=frozenset(items), removed=removed)
            logger.info(
                f"Built {self.stage}: {len(items)} item(s), {len(errors)} error(s)"
            )
            await self.hooks.build_succeeded.call(self)
        return self

    async def rebuild(self, paths: Iterable[pathlib.Path]) -> bool:
        """Recompile only the items affected by the changed paths.

        Untouched entries in the new artifact are the same objects as before.
        Returns False when no item was affected.
        """
        async with self._lock:
            if not self._built:
                logger.debug(f"Ignoring change in {self.stage}: not built yet")
                return False
            affected = await anyio.to_thread.run_sync(self.keys_for_paths, list(paths))
            if not affected:
                return False

            items = dict(self._artifact)
            errors = dict(self._errors)
            removed = set[str]()
            changed = set[str]()
            for key in sorted(affected):
                items.pop(key, None)
                errors.pop(key, None)
                if not await self.item_exists(key):
                    removed.add(key)
                    continue
                if await self._compile_into(key, items, errors):
                    changed.add(key)
                elif key in self._artifact:
                    removed.add(key)

            self._publish(items, errors, changed=frozenset(changed), removed=frozenset(removed))
            logger.info(f"Rebuilt {self.stage}: {', '.join(sorted(affected))}")
            await self.hooks.build_succeeded.call(self)
        return True

    async def _compile_into(
        self,
        key: str,
        items: dict[str, T],
        errors: dict[str, exceptions.ItemCompileError],
    ) -> bool:
        try:
            items[key] = await self.compile_item(key)
        except exceptions.ItemCompileError as e:
            logger.warning(f"Failed to compile {self.stage} item {e}")
            errors[key] = e
            return False
        return True

    def _publish(
        self,
        items: dict[str, T],
        errors: dict[str, exceptions.ItemCompileError],
        *,
        changed: frozenset[str],
        removed: frozenset[str],
    ) -> None:
        artifact: Mapping[str, T] = types.MappingProxyType(items)
        self.after_compile(artifact, changed)
        self._artifact = artifact
        self._errors = types.MappingProxyType(errors)
        self._changed = changed
        self._removed = removed
        self._built = True
        self._build_count += 1

    # -------------------------------------------------------------------------
    # Watch
    # -------------------------------------------------------------------------

    def watch(self, task_group: TaskGroup) -> None:
        """Start watching this stage's inputs in the given task group (non-blocking)."""
        from docweave.watch import StageWatcher

        if not self._built:
            raise RuntimeError(f"Cannot watch {self.stage} before its first successful build")
        if self._watching:
            return
        paths = self.watch_paths()
        self._watching = True
        if not paths:
            return
        watcher = StageWatcher(
            self, paths, debounce_ms=self._context.config.watch.debounce
        )
        task_group.start_soon(watcher.run, name=f"watch-{self.stage}")
        logger.debug(f"Watching {self.stage}: {', '.join(str(p) for p in paths)}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(items={len(self._artifact)}, errors={len(self._errors)})"

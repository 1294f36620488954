"""File-system primitives used by the builders.

Blocking work runs in a worker thread through anyio so stage tasks keep
the event loop free.
"""

from __future__ import annotations

import contextlib
import logging
import os
import pathlib
import shutil
import tempfile
import uuid

import anyio.to_thread

logger = logging.getLogger(__name__)

_TRASH_SUFFIX = ".docweave-old"


def write_text_atomic(path: pathlib.Path, content: str) -> None:
    """Write a file atomically using temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def remove(path: pathlib.Path) -> None:
    """Remove a file or directory tree; missing paths are ignored."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


def _prune_empty_parents(path: pathlib.Path, stop: pathlib.Path) -> None:
    current = path.parent
    while current != stop and stop in current.parents:
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent


def remove_output(path: pathlib.Path, root: pathlib.Path) -> None:
    """Remove an emitted file and any directories it leaves empty under root."""
    remove(path)
    _prune_empty_parents(path, root)


def reset_dir(path: pathlib.Path) -> None:
    """Replace a directory with an empty one.

    The old tree is renamed aside before the new directory is created, so
    `path` is never observed half-deleted. A crash after the rename leaves
    either no directory or an empty one, both valid starting points.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    trash: pathlib.Path | None = None
    if path.exists():
        trash = path.with_name(f"{path.name}{_TRASH_SUFFIX}-{uuid.uuid4().hex[:8]}")
        os.rename(path, trash)
    path.mkdir(parents=True, exist_ok=True)
    if trash is not None:
        shutil.rmtree(trash, ignore_errors=True)
    # Leftovers from an earlier interrupted reset
    for stale in path.parent.glob(f"{path.name}{_TRASH_SUFFIX}-*"):
        logger.debug(f"Removing stale output directory {stale}")
        shutil.rmtree(stale, ignore_errors=True)


async def awrite_text(path: pathlib.Path, content: str) -> None:
    await anyio.to_thread.run_sync(write_text_atomic, path, content)


async def aremove_output(path: pathlib.Path, root: pathlib.Path) -> None:
    await anyio.to_thread.run_sync(remove_output, path, root)


async def areset_dir(path: pathlib.Path) -> None:
    await anyio.to_thread.run_sync(reset_dir, path)


async def aensure_dir(path: pathlib.Path) -> None:
    await anyio.Path(path).mkdir(parents=True, exist_ok=True)


async def aread_text(path: pathlib.Path) -> str:
    return await anyio.Path(path).read_text(encoding="utf-8")

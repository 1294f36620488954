from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pytest
from watchfiles import Change

from docweave import exceptions
from docweave.types import StageName
from docweave.watch import StageWatcher, create_watch_filter

if TYPE_CHECKING:
    import pathlib
    from collections.abc import AsyncIterator, Iterable


class _FakeBuilder:
    """Records rebuild calls; optionally fails on the first one."""

    stage: StageName = StageName.DOCS
    calls: list[list[pathlib.Path]]
    failures: list[Exception]

    def __init__(self, failures: list[Exception] | None = None) -> None:
        self.calls = []
        self.failures = failures or []

    async def rebuild(self, paths: Iterable[pathlib.Path]) -> bool:
        self.calls.append(list(paths))
        if self.failures:
            raise self.failures.pop(0)
        return True


def _changes_from(batches: list[set[tuple[Change, str]]]) -> Any:
    seen_kwargs = dict[str, Any]()

    async def factory(*paths: pathlib.Path, **kwargs: Any) -> AsyncIterator[set[tuple[Change, str]]]:
        seen_kwargs["paths"] = paths
        seen_kwargs.update(kwargs)
        for batch in batches:
            yield batch

    factory.seen = seen_kwargs  # pyright: ignore[reportFunctionMemberAccess]
    return factory


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        pytest.param("/p/docs/guide/intro.md", True, id="markdown"),
        pytest.param("/p/docs/.git/HEAD", False, id="git"),
        pytest.param("/p/node_modules/x/index.md", False, id="node-modules"),
        pytest.param("/p/docs/intro.md~", False, id="backup"),
        pytest.param("/p/docs/.intro.md.swp", False, id="swap"),
        pytest.param("/p/docs/.intro.md.abc.tmp", False, id="atomic-temp"),
        pytest.param("/p/docs/.#intro.md", False, id="emacs-lock"),
    ],
)
def test_watch_filter(path: str, expected: bool) -> None:
    assert create_watch_filter()(Change.modified, path) is expected


def test_watch_filter_globs() -> None:
    watch_filter = create_watch_filter(["*.md"])

    assert watch_filter(Change.added, "/p/docs/a.md")
    assert not watch_filter(Change.added, "/p/docs/a.png")


async def test_watcher_feeds_batches_to_rebuild(tmp_path: pathlib.Path) -> None:
    """Each batch becomes one rebuild with the sorted, de-duplicated paths."""
    builder = _FakeBuilder()
    factory = _changes_from(
        [
            {(Change.modified, str(tmp_path / "b.md")), (Change.added, str(tmp_path / "a.md"))},
            {(Change.deleted, str(tmp_path / "c.md"))},
        ]
    )
    watcher = StageWatcher(
        builder,  # pyright: ignore[reportArgumentType]
        [tmp_path],
        debounce_ms=50,
        changes_factory=factory,
    )

    await watcher.run()

    assert builder.calls == [[tmp_path / "a.md", tmp_path / "b.md"], [tmp_path / "c.md"]]
    assert watcher.batches == 2
    assert factory.seen["debounce"] == 50
    assert factory.seen["paths"] == (tmp_path,)


async def test_watcher_continues_after_failed_rebuild(
    tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture
) -> None:
    """A failing rebuild is logged and later batches are still handled."""
    builder = _FakeBuilder(
        failures=[exceptions.DiscoveryError("docs folder vanished"), RuntimeError("boom")]
    )
    factory = _changes_from(
        [
            {(Change.modified, str(tmp_path / "a.md"))},
            {(Change.modified, str(tmp_path / "b.md"))},
            {(Change.modified, str(tmp_path / "c.md"))},
        ]
    )
    watcher = StageWatcher(builder, [tmp_path], changes_factory=factory)  # pyright: ignore[reportArgumentType]

    with caplog.at_level(logging.ERROR):
        await watcher.run()

    assert len(builder.calls) == 3
    assert "docs folder vanished" in caplog.text
    assert "Unexpected error rebuilding docs" in caplog.text


async def test_watcher_without_existing_paths_returns(
    tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture
) -> None:
    builder = _FakeBuilder()
    factory = _changes_from([{(Change.added, "x")}])
    watcher = StageWatcher(builder, [tmp_path / "missing"], changes_factory=factory)  # pyright: ignore[reportArgumentType]

    with caplog.at_level(logging.WARNING):
        await watcher.run()

    assert builder.calls == []
    assert "Nothing to watch" in caplog.text


async def test_handle_empty_batch(tmp_path: pathlib.Path) -> None:
    builder = _FakeBuilder()
    watcher = StageWatcher(builder, [tmp_path])  # pyright: ignore[reportArgumentType]

    assert await watcher.handle(set()) is False
    assert builder.calls == []

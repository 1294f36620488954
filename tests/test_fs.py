from __future__ import annotations

from typing import TYPE_CHECKING

from docweave import fs

if TYPE_CHECKING:
    import pathlib


def test_write_text_atomic_creates_parents(tmp_path: pathlib.Path) -> None:
    """Parents are created and no temp file is left behind."""
    target = tmp_path / "a" / "b" / "page.html"

    fs.write_text_atomic(target, "<p>hi</p>")

    assert target.read_text() == "<p>hi</p>"
    assert [p.name for p in target.parent.iterdir()] == ["page.html"]


def test_write_text_atomic_replaces_existing(tmp_path: pathlib.Path) -> None:
    target = tmp_path / "page.html"
    target.write_text("old")

    fs.write_text_atomic(target, "new")

    assert target.read_text() == "new"


def test_remove_output_prunes_empty_parents_up_to_root(tmp_path: pathlib.Path) -> None:
    """Empty directories left behind are removed, but never the root itself."""
    root = tmp_path / "content"
    target = root / "docs" / "en-us" / "guide" / "intro.html"
    target.parent.mkdir(parents=True)
    target.write_text("x")
    (root / "docs" / "en-us" / "index.html").write_text("y")

    fs.remove_output(target, root)

    assert not (root / "docs" / "en-us" / "guide").exists()
    assert (root / "docs" / "en-us" / "index.html").exists()
    assert root.is_dir()


def test_remove_output_directory(tmp_path: pathlib.Path) -> None:
    """Whole directories can be removed."""
    root = tmp_path / "assets"
    component_dir = root / "alib" / "button"
    component_dir.mkdir(parents=True)
    (component_dir / "en-us.html").write_text("x")

    fs.remove_output(component_dir, root)

    assert not (root / "alib").exists()
    assert root.is_dir()


def test_remove_missing_path_is_noop(tmp_path: pathlib.Path) -> None:
    fs.remove(tmp_path / "missing.html")


def test_reset_dir_empties_directory(tmp_path: pathlib.Path) -> None:
    """The directory exists and is empty afterwards; no renamed copy remains."""
    target = tmp_path / "content"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "stale.html").write_text("stale")

    fs.reset_dir(target)

    assert target.is_dir()
    assert list(target.iterdir()) == []
    assert [p.name for p in tmp_path.iterdir()] == ["content"]


def test_reset_dir_creates_missing_directory(tmp_path: pathlib.Path) -> None:
    target = tmp_path / "a" / "content"

    fs.reset_dir(target)

    assert target.is_dir()


def test_reset_dir_removes_stale_leftovers(tmp_path: pathlib.Path) -> None:
    """Renamed copies from an interrupted reset are cleaned up."""
    target = tmp_path / "content"
    stale = tmp_path / "content.docweave-old-deadbeef"
    stale.mkdir()
    (stale / "x.html").write_text("x")

    fs.reset_dir(target)

    assert not stale.exists()


async def test_async_wrappers_round_trip(tmp_path: pathlib.Path) -> None:
    """Async helpers write, read and remove through worker threads."""
    target = tmp_path / "out" / "page.html"

    await fs.awrite_text(target, "héllo")
    assert await fs.aread_text(target) == "héllo"

    await fs.aremove_output(target, tmp_path)
    assert not (tmp_path / "out").exists()

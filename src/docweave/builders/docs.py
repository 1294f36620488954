from __future__ import annotations

import logging
import pathlib
from typing import TYPE_CHECKING

import anyio
import anyio.to_thread

from docweave import exceptions, fs, markup
from docweave.builders.base import StagedBuilder
from docweave.types import DocSourceFile, StageName

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from docweave.context import BuildContext

__all__ = ["DocsBuilder"]

logger = logging.getLogger(__name__)

_DOC_SUFFIX = ".md"
_SKIP_DIRS = frozenset({"node_modules", ".git", "__pycache__"})


class DocsBuilder(StagedBuilder[DocSourceFile]):
    """Compiles the markdown pages under the docs root.

    Item keys are posix paths relative to the docs root, e.g.
    ``guide/intro.md`` or ``zh-cn/guide/intro.md`` for a non-default locale.
    """

    stage = StageName.DOCS

    _docs_root: pathlib.Path
    _locales: frozenset[str]

    def __init__(self, context: BuildContext) -> None:
        super().__init__(context)
        self._docs_root = context.paths.docs_path
        default = context.config.default_locale
        self._locales = frozenset(
            loc.key for loc in context.config.locales if loc.key != default
        )

    @property
    def docs_root(self) -> pathlib.Path:
        return self._docs_root

    @property
    def docs(self) -> tuple[DocSourceFile, ...]:
        """Compiled docs ordered by key."""
        return tuple(self.artifact[key] for key in sorted(self.artifact))

    def split_key(self, key: str) -> tuple[str, str]:
        """Split an item key into (locale, path relative to the locale root)."""
        first, sep, rest = key.partition("/")
        if sep and first in self._locales:
            return first, rest
        return self._context.config.default_locale, key

    def output_path(self, key: str) -> pathlib.Path:
        locale, rel_path = self.split_key(key)
        rel = pathlib.PurePosixPath(rel_path).with_suffix(".html")
        return self._context.paths.site_assets_content_path / "docs" / locale / rel

    def _scan(self, folder: pathlib.Path) -> list[str]:
        """Keys of the pages below a folder of the docs tree."""
        root = self._docs_root
        return sorted(
            path.relative_to(root).as_posix()
            for path in folder.rglob(f"*{_DOC_SUFFIX}")
            if path.is_file() and not _is_skipped(path.relative_to(root))
        )

    async def discover(self) -> list[str]:
        root = self._docs_root
        if not await anyio.Path(root).is_dir():
            raise exceptions.DiscoveryError(f"Docs folder {root} does not exist")
        try:
            return await anyio.to_thread.run_sync(self._scan, root)
        except OSError as e:
            raise exceptions.DiscoveryError(f"Failed to list docs in {root}: {e}") from e

    async def compile_item(self, key: str) -> DocSourceFile:
        path = self._docs_root / key
        try:
            content = await fs.aread_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise exceptions.ItemCompileError(key, f"cannot read file: {e}", path) from e
        try:
            meta, body = markup.split_front_matter(content)
        except markup.FrontMatterError as e:
            raise exceptions.ItemCompileError(key, str(e), path) from e

        locale, rel_path = self.split_key(key)
        doc = DocSourceFile(
            key=key,
            path=path,
            rel_path=rel_path,
            locale=locale,
            content=content,
            body=body,
            meta=meta,
        )
        try:
            self._context.hooks.doc_compile.call(doc)
        except exceptions.ItemCompileError:
            raise
        except Exception as e:
            raise exceptions.ItemCompileError(key, f"{type(e).__name__}: {e}", path) from e
        return doc

    async def item_exists(self, key: str) -> bool:
        return await anyio.Path(self._docs_root / key).is_file()

    def keys_for_paths(self, paths: Iterable[pathlib.Path]) -> set[str]:
        known = set(self.artifact) | set(self.errors)
        keys = set[str]()
        for path in paths:
            try:
                resolved = path.resolve()
                rel = resolved.relative_to(self._docs_root)
            except ValueError:
                continue
            if _is_skipped(rel):
                continue
            rel_posix = rel.as_posix()
            if rel.suffix == _DOC_SUFFIX:
                keys.add(rel_posix)
            else:
                # Folder event: known pages below it and any now on disk
                keys.update(k for k in known if k.startswith(f"{rel_posix}/"))
                if resolved.is_dir():
                    keys.update(self._scan(resolved))
        return keys

    def watch_paths(self) -> list[pathlib.Path]:
        return [self._docs_root]

    def after_compile(self, artifact: Mapping[str, DocSourceFile], changed: frozenset[str]) -> None:
        _ = changed
        docs = tuple(artifact[key] for key in sorted(artifact))
        self._context.hooks.docs_compile.call(docs)

    async def emit(self) -> None:
        assets_root = self._context.paths.site_assets_content_path
        artifact = self.artifact
        for key in sorted(self.removed_keys):
            await fs.aremove_output(self.output_path(key), assets_root)
        for key in sorted(self.changed_keys):
            doc = artifact.get(key)
            if doc is None:
                continue
            await fs.awrite_text(self.output_path(key), doc.html)
        logger.debug(
            f"Emitted docs: {len(self.changed_keys)} written, {len(self.removed_keys)} removed"
        )


def _is_skipped(rel: pathlib.PurePath) -> bool:
    return any(part in _SKIP_DIRS or part.startswith(".") for part in rel.parts[:-1])

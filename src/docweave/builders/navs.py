from __future__ import annotations

import collections
import json
import logging
import pathlib
from typing import TYPE_CHECKING, override

from docweave import exceptions, fs, markup
from docweave.builders.base import StagedBuilder
from docweave.types import DocSourceFile, NavigationItem, StageName

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from anyio.abc import TaskGroup

    from docweave.builders.docs import DocsBuilder
    from docweave.builders.libraries import LibrariesBuilder
    from docweave.config.models import ChannelConfig, LibraryConfig
    from docweave.context import BuildContext
    from docweave.types import LibraryDescriptor

__all__ = ["NAVIGATIONS_FILE", "NavsBuilder", "sort_items"]

logger = logging.getLogger(__name__)

NAVIGATIONS_FILE = "navigations.json"


def sort_items(items: list[NavigationItem]) -> list[NavigationItem]:
    """Order items by (order, title), recursively."""
    for item in items:
        if "items" in item:
            item["items"] = sort_items(item["items"])
    return sorted(items, key=lambda item: (item["order"], item["title"]))


def _folder_title(dir_path: str) -> str:
    name = pathlib.PurePosixPath(dir_path).name
    return name.replace("-", " ").replace("_", " ").capitalize()


def _doc_title(doc: DocSourceFile) -> str:
    if doc.title:
        return doc.title
    if heading := markup.first_heading(doc.body):
        return heading
    return pathlib.PurePosixPath(doc.rel_path).stem


class NavsBuilder(StagedBuilder[tuple[NavigationItem, ...]]):
    """Derives the per-locale navigation tree from the docs and libraries artifacts.

    Item keys are locale keys. The builder taps ``build_succeeded`` of both
    upstream builders at construction to capture their latest artifacts;
    once watching, every upstream success rebuilds the navigation.
    """

    stage = StageName.NAVIGATION

    _docs: tuple[DocSourceFile, ...] | None
    _libraries: Mapping[str, LibraryDescriptor] | None

    def __init__(
        self,
        context: BuildContext,
        docs_builder: DocsBuilder,
        libraries_builder: LibrariesBuilder,
    ) -> None:
        super().__init__(context)
        self._docs = None
        self._libraries = None
        docs_builder.hooks.build_succeeded.tap("navs", self._on_docs_built)
        libraries_builder.hooks.build_succeeded.tap("navs", self._on_libraries_built)

    @property
    def navigations(self) -> dict[str, list[NavigationItem]]:
        """Navigation trees by locale, default locale first."""
        return {
            locale: list(self.artifact[locale])
            for locale in self._context.config.locale_keys()
            if locale in self.artifact
        }

    async def _on_docs_built(self, builder: DocsBuilder) -> None:
        self._docs = builder.docs
        await self._refresh()

    async def _on_libraries_built(self, builder: LibrariesBuilder) -> None:
        self._libraries = builder.libraries
        await self._refresh()

    async def _refresh(self) -> None:
        if not self.watching:
            return
        try:
            await self.build()
        except exceptions.DocweaveError as e:
            logger.error(f"Navigation rebuild failed: {e}")

    # -------------------------------------------------------------------------
    # StagedBuilder steps
    # -------------------------------------------------------------------------

    async def discover(self) -> list[str]:
        missing = [
            name
            for name, value in ((StageName.DOCS, self._docs), (StageName.LIBRARIES, self._libraries))
            if value is None
        ]
        if missing:
            raise exceptions.DiscoveryError(
                f"Navigation needs a successful build of: {', '.join(missing)}"
            )
        return self._context.config.locale_keys()

    async def compile_item(self, key: str) -> tuple[NavigationItem, ...]:
        docs = [doc for doc in self._docs or () if doc.locale == key]
        if self._context.config.navs:
            items = [self._channel_item(channel, key, docs) for channel in self._context.config.navs]
        else:
            items = self._doc_tree(docs, "")
            items.extend(self._library_channel(lib, key) for lib in self._context.config.libs)
        return tuple(sort_items([item for item in items if item.get("items", True)]))

    def keys_for_paths(self, paths: Iterable[pathlib.Path]) -> set[str]:
        _ = paths
        return set()

    @override
    def watch(self, task_group: TaskGroup) -> None:
        """Rebuild on every upstream success from now on; no files to watch."""
        _ = task_group
        if not self.built:
            raise RuntimeError(f"Cannot watch {self.stage} before its first successful build")
        self._watching = True

    async def emit(self) -> None:
        if not self.changed_keys and not self.removed_keys:
            return
        content = json.dumps(self.navigations, indent=2, ensure_ascii=False) + "\n"
        await fs.awrite_text(self._context.paths.site_content_path / NAVIGATIONS_FILE, content)
        logger.debug(f"Emitted navigation for {len(self.artifact)} locale(s)")

    # -------------------------------------------------------------------------
    # Tree construction
    # -------------------------------------------------------------------------

    def _channel_item(
        self, channel: ChannelConfig, locale: str, docs: list[DocSourceFile]
    ) -> NavigationItem:
        title = channel.locales.get(locale, channel.title)
        if channel.lib is not None:
            lib = self._context.config.get_library(channel.lib)
            if lib is None:
                raise exceptions.ItemCompileError(
                    locale, f"channel '{channel.title}' references unknown library '{channel.lib}'"
                )
            item = self._library_channel(lib, locale)
            item["title"] = title
            return item
        path = channel.path.strip("/")
        return NavigationItem(
            id=markup.slugify(channel.title) or path,
            title=title,
            type="channel",
            path=path,
            order=0,
            items=self._doc_tree(docs, path),
        )

    def _doc_tree(self, docs: list[DocSourceFile], root: str) -> list[NavigationItem]:
        """Docs below ``root`` as nested category/doc items.

        A folder's ``index.md`` names and orders its category instead of
        appearing as a separate entry; hidden folders drop their subtree.
        """
        by_dir = collections.defaultdict[str, list[DocSourceFile]](list)
        for doc in docs:
            by_dir[doc.dir_path].append(doc)

        def build(dir_path: str) -> list[NavigationItem]:
            items = list[NavigationItem]()
            for doc in by_dir.get(dir_path, []):
                if doc.hidden or (doc.is_index and dir_path != root):
                    continue
                items.append(
                    NavigationItem(
                        id=doc.key,
                        title=_doc_title(doc),
                        type="doc",
                        path=doc.url_path,
                        order=doc.order,
                    )
                )
            prefix = f"{dir_path}/" if dir_path else ""
            children = sorted(
                {d[len(prefix) :].split("/")[0] for d in by_dir if d.startswith(prefix) and d != dir_path}
            )
            for child in children:
                child_path = f"{prefix}{child}"
                index = next((d for d in by_dir.get(child_path, []) if d.is_index), None)
                if index is not None and index.hidden:
                    continue
                child_items = build(child_path)
                if not child_items:
                    continue
                items.append(
                    NavigationItem(
                        id=child_path,
                        title=_doc_title(index) if index is not None else _folder_title(child_path),
                        type="category",
                        path=child_path,
                        order=index.order if index is not None else 0,
                        items=child_items,
                    )
                )
            return items

        if root and not any(d == root or d.startswith(f"{root}/") for d in by_dir):
            return []
        return build(root)

    def _library_channel(self, lib: LibraryConfig, locale: str) -> NavigationItem:
        _ = locale
        library = (self._libraries or {}).get(lib.name)
        components = list(library.components.values()) if library is not None else []

        items = list[NavigationItem]()
        by_category = collections.defaultdict[str, list[NavigationItem]](list)
        known = {category.id for category in lib.categories}
        for component in components:
            if component.hidden:
                continue
            item = NavigationItem(
                id=component.key,
                title=component.title or component.name,
                type="component",
                path=f"components/{lib.name}/{component.name}",
                order=component.order,
                lib=lib.name,
            )
            if subtitle := component.meta.get("subtitle"):
                item["subtitle"] = str(subtitle)
            if component.category in known:
                by_category[component.category].append(item)
            else:
                items.append(item)

        for category in lib.categories:
            if not by_category[category.id]:
                continue
            items.append(
                NavigationItem(
                    id=f"{lib.name}/{category.id}",
                    title=category.title,
                    type="category",
                    path=f"components/{lib.name}",
                    order=category.order,
                    lib=lib.name,
                    items=by_category[category.id],
                )
            )

        return NavigationItem(
            id=lib.name,
            title=lib.abbr_name or lib.name,
            type="library",
            path=f"components/{lib.name}",
            order=0,
            lib=lib.name,
            items=items,
        )

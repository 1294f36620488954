from __future__ import annotations

import dataclasses
import fnmatch
import json
import logging
import pathlib
import types
from typing import TYPE_CHECKING, Any, cast

import anyio
import anyio.to_thread
import yaml

from docweave import exceptions, fs, markup
from docweave.builders.base import StagedBuilder
from docweave.types import ComponentDescriptor, ExampleDescriptor, LibraryDescriptor, StageName

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from docweave.config.models import LibraryConfig
    from docweave.context import BuildContext

__all__ = ["LibrariesBuilder", "component_key"]

logger = logging.getLogger(__name__)

_API_SUFFIXES = (".yaml", ".yml", ".json")


def component_key(lib: str, component: str) -> str:
    return f"{lib}/{component}"


class LibrariesBuilder(StagedBuilder[ComponentDescriptor]):
    """Compiles the components of every configured library.

    Item keys are ``<library>/<component>``. The per-library grouping is
    published alongside as :attr:`libraries`; a library whose components did
    not change keeps the same descriptor object across rebuilds.
    """

    stage = StageName.LIBRARIES

    _roots: dict[str, pathlib.Path]
    _libraries: Mapping[str, LibraryDescriptor]
    _dirty_libs: frozenset[str]

    def __init__(self, context: BuildContext) -> None:
        super().__init__(context)
        self._roots = {lib.name: context.get_abs_path(lib.root_dir) for lib in context.config.libs}
        self._libraries = types.MappingProxyType({})
        self._dirty_libs = frozenset()

    @property
    def libraries(self) -> Mapping[str, LibraryDescriptor]:
        """Components grouped by library, in configuration order."""
        return self._libraries

    def _lib_config(self, name: str) -> LibraryConfig:
        lib = self._context.config.get_library(name)
        if lib is None:
            raise KeyError(name)
        return lib

    def _is_component_dir(self, lib: LibraryConfig, path: pathlib.Path) -> bool:
        name = path.name
        if name.startswith(".") or not path.is_dir():
            return False
        if not any(fnmatch.fnmatch(name, pattern) for pattern in lib.include):
            return False
        if any(fnmatch.fnmatch(name, pattern) for pattern in lib.exclude):
            return False
        return any((path / sub).is_dir() for sub in (lib.doc_dir, lib.examples_dir, lib.api_dir))

    def _scan(self) -> list[str]:
        keys = list[str]()
        for lib in self._context.config.libs:
            root = self._roots[lib.name]
            if not root.is_dir():
                raise exceptions.DiscoveryError(
                    f"Library '{lib.name}' root {root} does not exist"
                )
            try:
                children = sorted(root.iterdir())
            except OSError as e:
                raise exceptions.DiscoveryError(f"Failed to list {root}: {e}") from e
            keys.extend(
                component_key(lib.name, child.name)
                for child in children
                if self._is_component_dir(lib, child)
            )
        return keys

    async def discover(self) -> list[str]:
        return await anyio.to_thread.run_sync(self._scan)

    def _descriptor(
        self, lib: LibraryConfig, components: dict[str, ComponentDescriptor] | None = None
    ) -> LibraryDescriptor:
        return LibraryDescriptor(
            name=lib.name,
            abbr_name=lib.abbr_name or lib.name,
            root=self._roots[lib.name],
            components=components or {},
        )

    async def compile_item(self, key: str) -> ComponentDescriptor:
        lib_name, _, name = key.partition("/")
        lib = self._lib_config(lib_name)
        comp_dir = self._roots[lib_name] / name
        component = ComponentDescriptor(name=name, lib=lib_name, path=comp_dir)

        await anyio.to_thread.run_sync(self._read_docs, key, lib, component)
        component.examples = await anyio.to_thread.run_sync(self._read_examples, lib, comp_dir)
        component.api = await anyio.to_thread.run_sync(self._read_api, key, lib, comp_dir)

        try:
            self._context.hooks.lib_component_compile.call(self._descriptor(lib), component)
        except exceptions.ItemCompileError:
            raise
        except Exception as e:
            raise exceptions.ItemCompileError(key, f"{type(e).__name__}: {e}", comp_dir) from e
        return component

    def _read_docs(self, key: str, lib: LibraryConfig, component: ComponentDescriptor) -> None:
        """Load overview markdown per locale; front matter of the default locale wins."""
        doc_dir = component.path / lib.doc_dir
        config = self._context.config
        for locale in config.locale_keys():
            candidates = [doc_dir / f"{locale}.md"]
            if locale == config.default_locale:
                candidates.append(doc_dir / "index.md")
            path = next((p for p in candidates if p.is_file()), None)
            if path is None:
                continue
            try:
                meta, body = markup.split_front_matter(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, markup.FrontMatterError) as e:
                raise exceptions.ItemCompileError(key, f"{path.name}: {e}", path) from e
            component.docs[locale] = body
            if locale == config.default_locale or not component.meta:
                component.meta = meta

    def _read_examples(self, lib: LibraryConfig, comp_dir: pathlib.Path) -> list[ExampleDescriptor]:
        examples_dir = comp_dir / lib.examples_dir
        if not examples_dir.is_dir():
            return []
        examples = list[ExampleDescriptor]()
        for index, example_dir in enumerate(sorted(p for p in examples_dir.iterdir() if p.is_dir())):
            files = sorted(
                f.relative_to(example_dir).as_posix() for f in example_dir.rglob("*") if f.is_file()
            )
            examples.append(
                ExampleDescriptor(
                    name=example_dir.name,
                    title=example_dir.name.replace("-", " ").replace("_", " ").capitalize(),
                    order=index,
                    files=files,
                )
            )
        return examples

    def _read_api(self, key: str, lib: LibraryConfig, comp_dir: pathlib.Path) -> list[dict[str, Any]]:
        api_dir = comp_dir / lib.api_dir
        if not api_dir.is_dir():
            return []
        entries = list[dict[str, Any]]()
        for path in sorted(api_dir.iterdir()):
            if path.suffix not in _API_SUFFIXES or not path.is_file():
                continue
            try:
                with path.open(encoding="utf-8") as f:
                    data = yaml.load(f, Loader=markup.FrontMatterLoader)
            except (OSError, yaml.YAMLError) as e:
                raise exceptions.ItemCompileError(key, f"{path.name}: {e}", path) from e
            if isinstance(data, dict):
                entries.append(cast("dict[str, Any]", data))
            elif isinstance(data, list) and all(isinstance(item, dict) for item in data):
                entries.extend(cast("list[dict[str, Any]]", data))
            elif data is not None:
                raise exceptions.ItemCompileError(
                    key, f"{path.name}: API declarations must be a mapping or list of mappings", path
                )
        return entries

    async def item_exists(self, key: str) -> bool:
        lib_name, _, name = key.partition("/")
        lib = self._context.config.get_library(lib_name)
        if lib is None:
            return False
        return await anyio.to_thread.run_sync(
            self._is_component_dir, lib, self._roots[lib_name] / name
        )

    def keys_for_paths(self, paths: Iterable[pathlib.Path]) -> set[str]:
        keys = set[str]()
        for path in paths:
            resolved = path.resolve()
            for lib in self._context.config.libs:
                try:
                    rel = resolved.relative_to(self._roots[lib.name])
                except ValueError:
                    continue
                if not rel.parts:
                    continue
                name = rel.parts[0]
                if name.startswith("."):
                    continue
                if any(fnmatch.fnmatch(name, pattern) for pattern in lib.include) and not any(
                    fnmatch.fnmatch(name, pattern) for pattern in lib.exclude
                ):
                    keys.add(component_key(lib.name, name))
        return keys

    def watch_paths(self) -> list[pathlib.Path]:
        return [self._roots[lib.name] for lib in self._context.config.libs]

    def after_compile(
        self, artifact: Mapping[str, ComponentDescriptor], changed: frozenset[str]
    ) -> None:
        previous_keys = set(self.artifact)
        touched = {key.partition("/")[0] for key in changed}
        touched.update(key.partition("/")[0] for key in previous_keys - set(artifact))
        if not self.built:
            touched.update(lib.name for lib in self._context.config.libs)

        libraries = dict[str, LibraryDescriptor]()
        for lib in self._context.config.libs:
            previous = self._libraries.get(lib.name)
            if previous is not None and lib.name not in touched:
                libraries[lib.name] = previous
                continue
            components = {
                comp.name: comp for comp in artifact.values() if comp.lib == lib.name
            }
            libraries[lib.name] = self._descriptor(lib, components)

        self._libraries = types.MappingProxyType(libraries)
        self._dirty_libs = frozenset(touched)
        for name in touched:
            self._context.hooks.lib_compile.call(libraries[name])

    def _assets_dir(self, key: str) -> pathlib.Path:
        lib, _, name = key.partition("/")
        return self._context.paths.site_assets_content_path / lib / name

    def _manifest_dir(self, lib: str) -> pathlib.Path:
        return self._context.paths.site_content_path / "components" / lib

    async def emit(self) -> None:
        paths = self._context.paths
        for key in sorted(self.removed_keys):
            lib, _, name = key.partition("/")
            await fs.aremove_output(self._assets_dir(key), paths.site_assets_content_path)
            await fs.aremove_output(
                self._manifest_dir(lib) / f"{name}.json", paths.site_content_path
            )

        for key in sorted(self.changed_keys):
            component = self.artifact.get(key)
            if component is None:
                continue
            for locale, html in component.overviews.items():
                await fs.awrite_text(self._assets_dir(key) / f"{locale}.html", html)
            await fs.awrite_text(
                self._manifest_dir(component.lib) / f"{component.name}.json",
                _to_json(_component_document(component)),
            )

        for lib_name in sorted(self._dirty_libs):
            library = self._libraries.get(lib_name)
            if library is None:
                continue
            manifest = {
                "name": library.name,
                "abbrName": library.abbr_name,
                "components": [
                    _component_summary(comp)
                    for comp in sorted(library.components.values(), key=lambda c: (c.order, c.name))
                ],
            }
            await fs.awrite_text(self._manifest_dir(lib_name) / "index.json", _to_json(manifest))
        logger.debug(
            f"Emitted libraries: {len(self.changed_keys)} written, {len(self.removed_keys)} removed"
        )


def _component_summary(component: ComponentDescriptor) -> dict[str, Any]:
    return {
        "name": component.name,
        "title": component.title or component.name,
        "category": component.category,
        "order": component.order,
        "hidden": component.hidden,
    }


def _component_document(component: ComponentDescriptor) -> dict[str, Any]:
    return {
        **_component_summary(component),
        "lib": component.lib,
        "locales": sorted(component.overviews),
        "examples": [dataclasses.asdict(example) for example in component.examples],
        "api": component.api,
    }


def _to_json(data: object) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str) + "\n"

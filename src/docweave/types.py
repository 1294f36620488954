from __future__ import annotations

import dataclasses
import enum
import pathlib
from typing import Any, Literal, NotRequired, TypedDict


class RunState(enum.StrEnum):
    """Lifecycle state of a build run, in order."""

    IDLE = "idle"
    INITIALIZE = "initialize"
    VERIFY = "verify"
    DETECT = "detect"
    SCAFFOLD_SITE = "scaffold_site"
    CLEAN_OUTPUTS = "clean_outputs"
    BUILD_DOCS_AND_LIBRARIES = "build_docs_and_libraries"
    BUILD_NAVIGATION = "build_navigation"
    ATTACH_WATCHERS = "attach_watchers"
    GENERATE_SITE_CONFIG = "generate_site_config"
    DELEGATE_TO_SITE = "delegate_to_site"
    EMIT = "emit"
    DONE = "done"
    FAILED = "failed"


class StageName(enum.StrEnum):
    """The three build stages."""

    DOCS = "docs"
    LIBRARIES = "libraries"
    NAVIGATION = "navigation"


class TocMode(enum.StrEnum):
    """Where a page renders its table of contents."""

    CONTENT = "content"
    MENU = "menu"
    HIDDEN = "hidden"


@dataclasses.dataclass
class DocSourceFile:
    """A markdown page discovered under the docs root.

    Plugins may fill in ``meta``, ``title``, ``html`` and friends while the
    ``doc_compile`` hook runs. Once the docs artifact is published the
    instance is treated as read-only.
    """

    key: str
    path: pathlib.Path
    rel_path: str
    locale: str
    content: str
    body: str
    meta: dict[str, Any] = dataclasses.field(default_factory=dict)
    title: str = ""
    order: int = 0
    hidden: bool = False
    toc: TocMode = TocMode.CONTENT
    html: str = ""
    headings: list[Heading] = dataclasses.field(default_factory=list)

    @property
    def is_index(self) -> bool:
        return pathlib.PurePosixPath(self.rel_path).stem == "index"

    @property
    def dir_path(self) -> str:
        """Directory of the page relative to its locale root ('' for top level)."""
        parent = pathlib.PurePosixPath(self.rel_path).parent
        return "" if str(parent) == "." else str(parent)

    @property
    def url_path(self) -> str:
        """Route path of the page, without extension; index pages map to their folder."""
        pure = pathlib.PurePosixPath(self.rel_path).with_suffix("")
        if pure.name == "index":
            return self.dir_path
        return str(pure)


class Heading(TypedDict):
    """A heading extracted from a compiled page."""

    id: str
    name: str
    level: int


@dataclasses.dataclass
class ExampleDescriptor:
    """A runnable example shipped with a component."""

    name: str
    title: str
    order: int
    files: list[str]


@dataclasses.dataclass
class ComponentDescriptor:
    """A component of a library, filled in during ``lib_component_compile``."""

    name: str
    lib: str
    path: pathlib.Path
    meta: dict[str, Any] = dataclasses.field(default_factory=dict)
    title: str = ""
    category: str = ""
    order: int = 0
    hidden: bool = False
    # locale -> markdown source / compiled html of the overview page
    docs: dict[str, str] = dataclasses.field(default_factory=dict)
    overviews: dict[str, str] = dataclasses.field(default_factory=dict)
    examples: list[ExampleDescriptor] = dataclasses.field(default_factory=list)
    api: list[dict[str, Any]] = dataclasses.field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.lib}/{self.name}"


@dataclasses.dataclass
class LibraryDescriptor:
    """One library and its compiled components.

    ``components`` is replaced, never mutated, once the library is published.
    """

    name: str
    abbr_name: str
    root: pathlib.Path
    components: dict[str, ComponentDescriptor] = dataclasses.field(default_factory=dict)


NavigationItemType = Literal["channel", "category", "doc", "library", "component"]


class NavigationItem(TypedDict):
    """An entry of the navigation tree."""

    id: str
    title: str
    type: NavigationItemType
    path: str
    order: int
    items: NotRequired[list[NavigationItem]]
    lib: NotRequired[str]
    subtitle: NotRequired[str]

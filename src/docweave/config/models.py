import enum
from typing import Annotated, Any, Self

import pydantic
import pydantic.alias_generators

# Frozen models; YAML keys may be camelCase (docsPath) or snake_case (docs_path)
_MODEL_CONFIG = pydantic.ConfigDict(
    frozen=True,
    extra="forbid",
    populate_by_name=True,
    alias_generator=pydantic.alias_generators.to_camel,
)


class SiteMode(enum.StrEnum):
    """Layout mode of the generated site."""

    FULL = "full"
    LITE = "lite"


class SiteTheme(enum.StrEnum):
    """Visual theme of the generated site."""

    DEFAULT = "default"
    ANGULAR = "angular"


class LocaleConfig(pydantic.BaseModel):
    """A locale the docs are written in."""

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    key: str
    name: str = ""


class CategoryConfig(pydantic.BaseModel):
    """A component category inside a library."""

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    id: str
    title: str
    order: int = 0


class LibraryConfig(pydantic.BaseModel):
    """A component library to document."""

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    name: str
    root_dir: str
    abbr_name: str = ""
    include: tuple[str, ...] = ("*",)
    exclude: tuple[str, ...] = ()
    categories: tuple[CategoryConfig, ...] = ()
    doc_dir: str = "doc"
    examples_dir: str = "examples"
    api_dir: str = "api"

    @pydantic.field_validator("include", "exclude", mode="before")
    @classmethod
    def parse_globs(cls, v: Any) -> list[str] | Any:
        """Parse comma-separated string into list."""
        if isinstance(v, str):
            return [g.strip() for g in v.split(",") if g.strip()]
        return v


class ChannelConfig(pydantic.BaseModel):
    """A top-level navigation channel.

    A channel either points at a docs sub-folder (``path``) or at a library (``lib``).
    """

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    title: str
    path: str = ""
    lib: str | None = None
    locales: dict[str, str] = pydantic.Field(default_factory=dict)


class FrameworkConfig(pydantic.BaseModel):
    """Component framework detection settings."""

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    package: str = "@angular/core"
    workspace_file: str = "angular.json"


class SiteCommandConfig(pydantic.BaseModel):
    """Commands delegated to the downstream site layer."""

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    build_command: list[str] = pydantic.Field(default_factory=lambda: ["npm", "run", "build"])
    serve_command: list[str] = pydantic.Field(default_factory=lambda: ["npm", "run", "start"])


class WatchConfig(pydantic.BaseModel):
    """Watch mode configuration."""

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    debounce: Annotated[int, pydantic.Field(ge=0)] = 300


class DocweaveConfig(pydantic.BaseModel):
    """Complete docweave configuration schema.

    Frozen after validation: plugins can read it but never change it.
    """

    model_config = _MODEL_CONFIG  # pyright: ignore[reportUnannotatedClassAttribute]

    mode: SiteMode = SiteMode.FULL
    theme: SiteTheme = SiteTheme.DEFAULT
    title: str = "Docweave"
    heading: str = ""
    description: str = ""
    logo_url: str = ""
    repo_url: str = ""
    base_href: str = "/"
    heads: tuple[dict[str, str], ...] = ()
    docs_path: str = "docs"
    output: str = "dist/docweave-site"
    site_project_name: str = ""
    site_dir: str = ".docweave/site"
    locales: tuple[LocaleConfig, ...] = ()
    default_locale: str = "en-us"
    libs: tuple[LibraryConfig, ...] = ()
    navs: tuple[ChannelConfig, ...] = ()
    framework: FrameworkConfig = pydantic.Field(default_factory=FrameworkConfig)
    site: SiteCommandConfig = pydantic.Field(default_factory=SiteCommandConfig)
    watch: WatchConfig = pydantic.Field(default_factory=WatchConfig)

    @pydantic.field_validator("libs")
    @classmethod
    def validate_unique_libs(cls, v: tuple[LibraryConfig, ...]) -> tuple[LibraryConfig, ...]:
        """Library names key emitted paths, so they must be unique."""
        seen = set[str]()
        for lib in v:
            if lib.name in seen:
                raise ValueError(f"Duplicate library name '{lib.name}'")
            seen.add(lib.name)
        return v

    @classmethod
    def get_default(cls) -> Self:
        """Get default configuration."""
        return cls()

    def locale_keys(self) -> list[str]:
        """All locale keys, default locale first."""
        keys = [self.default_locale]
        keys.extend(loc.key for loc in self.locales if loc.key != self.default_locale)
        return keys

    def get_library(self, name: str) -> LibraryConfig | None:
        for lib in self.libs:
            if lib.name == name:
                return lib
        return None

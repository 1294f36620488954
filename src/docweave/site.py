"""The downstream site layer: scaffold, derived config and the build/serve commands."""

from __future__ import annotations

import json
import logging
import os
import pathlib
import subprocess
from typing import TYPE_CHECKING, Any, Protocol

import anyio
import jinja2
import pydantic
import pydantic.alias_generators

from docweave import exceptions, fs
from docweave.config.models import LocaleConfig, SiteMode, SiteTheme  # noqa: TC001 Pydantic needs at runtime

if TYPE_CHECKING:
    from docweave.context import BuildContext
    from docweave.detector import SiteProject

__all__ = ["SiteBuilder", "SiteConfig", "SiteLayer", "generate_site_config", "render_template"]

logger = logging.getLogger(__name__)

_SCAFFOLD_TEMPLATES = ("site/package.json.j2", "site/src/index.html.j2")


class SiteConfig(pydantic.BaseModel):
    """Configuration snapshot consumed by the site at its own build/start time.

    Serialized with camelCase keys; the site reads this shape directly.
    """

    model_config = pydantic.ConfigDict(  # pyright: ignore[reportUnannotatedClassAttribute]
        frozen=True,
        populate_by_name=True,
        alias_generator=pydantic.alias_generators.to_camel,
    )

    title: str
    heading: str
    description: str
    mode: SiteMode
    theme: SiteTheme
    base_href: str
    heads: tuple[dict[str, str], ...]
    locales: tuple[LocaleConfig, ...]
    default_locale: str
    logo_url: str
    repo_url: str

    @classmethod
    def from_context(cls, context: BuildContext) -> SiteConfig:
        config = context.config
        return cls(
            title=config.title,
            heading=config.heading,
            description=config.description,
            mode=config.mode,
            theme=config.theme,
            base_href=config.base_href,
            heads=config.heads,
            locales=config.locales,
            default_locale=config.default_locale,
            logo_url=config.logo_url,
            repo_url=config.repo_url,
        )

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True), indent=4, ensure_ascii=False)


def _environment() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.PackageLoader("docweave", "templates"),
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


def render_template(name: str, **values: Any) -> str:
    """Render a bundled template."""
    return _environment().get_template(name).render(**values)


async def generate_site_config(site_config: SiteConfig, path: pathlib.Path) -> None:
    """Write the derived site configuration file."""
    content = render_template("config.ts.j2", site_config=site_config.to_json())
    await fs.awrite_text(path, content)
    logger.debug(f"Generated site config {path}")


class SiteLayer(Protocol):
    """The downstream site collaborator driven by the orchestrator."""

    async def initialize(self, site_project: SiteProject | None) -> None: ...

    async def build(self) -> None: ...

    async def start(self) -> None: ...


class SiteBuilder:
    """Scaffolds the site project and runs its build/serve commands."""

    _context: BuildContext
    _site_project: SiteProject | None

    def __init__(self, context: BuildContext) -> None:
        self._context = context
        self._site_project = None

    @property
    def site_path(self) -> pathlib.Path:
        return self._context.paths.site_path

    async def initialize(self, site_project: SiteProject | None) -> None:
        """Reuse an existing site project, or render the bundled skeleton."""
        self._site_project = site_project
        paths = self._context.paths
        if site_project is not None:
            logger.info(f"Using site project '{site_project.name}' at {paths.site_path}")
        else:
            await self._scaffold()
        await fs.aensure_dir(paths.site_content_path)
        await fs.aensure_dir(paths.site_assets_content_path)

    async def _scaffold(self) -> None:
        config = self._context.config
        paths = self._context.paths
        output_path = os.path.relpath(paths.output_path, paths.site_path)
        values = {
            "name": "docweave-site",
            "title": config.title,
            "base_href": config.base_href,
            "default_locale": config.default_locale,
            "heads": [dict(head) for head in config.heads],
            "output_path": pathlib.PurePath(output_path).as_posix(),
        }
        for template in _SCAFFOLD_TEMPLATES:
            relative = pathlib.PurePosixPath(template).relative_to("site").with_suffix("")
            target = paths.site_path / relative
            await fs.awrite_text(target, render_template(template, **values))
        logger.debug(f"Scaffolded site at {paths.site_path}")

    async def build(self) -> None:
        """Run the one-shot site build command."""
        command = self._context.config.site.build_command
        logger.info(f"Building site: {' '.join(command)}")
        try:
            result = await anyio.run_process(
                command, cwd=self.site_path, check=True, stdout=None, stderr=None
            )
        except subprocess.CalledProcessError as e:
            raise exceptions.SiteBuildError(
                f"Site build failed with exit code {e.returncode}"
            ) from e
        except OSError as e:
            raise exceptions.SiteBuildError(f"Failed to start site build: {e}") from e
        logger.debug(f"Site build finished with exit code {result.returncode}")

    async def start(self) -> None:
        """Run the site dev server until it exits or the run is cancelled."""
        command = self._context.config.site.serve_command
        logger.info(f"Starting site: {' '.join(command)}")
        try:
            process = await anyio.open_process(
                command, cwd=self.site_path, stdin=None, stdout=None, stderr=None
            )
        except OSError as e:
            raise exceptions.SiteBuildError(f"Failed to start site server: {e}") from e
        try:
            returncode = await process.wait()
        finally:
            if process.returncode is None:
                process.terminate()
                with anyio.CancelScope(shield=True):
                    await process.wait()
        if returncode != 0:
            raise exceptions.SiteBuildError(f"Site server exited with code {returncode}")

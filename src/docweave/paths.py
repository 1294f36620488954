"""Resolved filesystem locations of a docweave project."""

from __future__ import annotations

import dataclasses
import pathlib


@dataclasses.dataclass(frozen=True)
class DocweavePaths:
    """Absolute paths derived from the working directory and configuration.

    The site root defaults to ``site_dir`` under cwd; when an existing site
    project is detected, :meth:`for_site_project` points it at that project.
    """

    cwd: pathlib.Path
    docs_path: pathlib.Path
    output_path: pathlib.Path
    site_path: pathlib.Path
    site_src_path: pathlib.Path

    @classmethod
    def create(
        cls, cwd: pathlib.Path, docs_path: str, output: str, site_dir: str
    ) -> DocweavePaths:
        abs_cwd = cwd.resolve()
        site_path = (abs_cwd / site_dir).resolve()
        return cls(
            cwd=abs_cwd,
            docs_path=(abs_cwd / docs_path).resolve(),
            output_path=(abs_cwd / output).resolve(),
            site_path=site_path,
            site_src_path=site_path / "src",
        )

    def for_site_project(self, root: str, source_root: str | None = None) -> DocweavePaths:
        """Return paths pointing at an existing site project inside the workspace."""
        site_path = (self.cwd / root).resolve()
        src = (self.cwd / source_root).resolve() if source_root else site_path / "src"
        return dataclasses.replace(self, site_path=site_path, site_src_path=src)

    @property
    def site_content_path(self) -> pathlib.Path:
        """Generated sources consumed by the site (config, navigation, component manifests)."""
        return self.site_src_path / "app" / "content"

    @property
    def site_assets_content_path(self) -> pathlib.Path:
        """Generated static assets (compiled pages, component overviews)."""
        return self.site_src_path / "assets" / "content"

    @property
    def site_config_path(self) -> pathlib.Path:
        return self.site_content_path / "config.ts"

    def resolve(self, path: str | pathlib.Path) -> pathlib.Path:
        """Resolve a path relative to cwd; absolute paths unchanged."""
        p = pathlib.Path(path)
        if p.is_absolute():
            return p.resolve()
        return (self.cwd / p).resolve()

"""Test helpers for building source trees and build contexts."""

from __future__ import annotations

import json
import textwrap
from typing import TYPE_CHECKING, Any

from docweave.config import build_config
from docweave.context import BuildContext
from docweave.detector import DetectionResult
from docweave.hooks import create_build_hooks
from docweave.paths import DocweavePaths

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Mapping

    from docweave.config.models import DocweaveConfig
    from docweave.detector import SiteProject


# A small project: docs in two locales and two component libraries
PROJECT_FILES: dict[str, str] = {
    "docs/index.md": """
        ---
        title: Home
        ---
        # Welcome

        Start with the [guide](guide/intro.md).
        """,
    "docs/guide/index.md": """
        ---
        title: Guide
        order: 1
        ---
        # Guide
        """,
    "docs/guide/intro.md": """
        ---
        title: Intro
        order: 2
        ---
        # Intro

        ## Installation

        Some text.
        """,
    "docs/guide/setup.md": """
        ---
        order: 1
        ---
        # Setup
        """,
    "docs/guide/secret.md": """
        ---
        title: Secret
        hidden: true
        ---
        # Secret
        """,
    "docs/zh-cn/index.md": """
        ---
        title: 首页
        ---
        # 欢迎
        """,
    "packages/alib/button/doc/index.md": """
        ---
        title: Button
        category: general
        order: 1
        subtitle: Clickable
        ---
        # Button

        A button.
        """,
    "packages/alib/button/doc/zh-cn.md": """
        # 按钮
        """,
    "packages/alib/button/examples/basic/basic.component.ts": "export class Basic {}\n",
    "packages/alib/button/api/button.yaml": """
        - name: Button
          properties:
            - name: type
              type: string
        """,
    "packages/alib/input/doc/index.md": """
        # Input
        """,
    "packages/alib/util/helpers.ts": "export const x = 1;\n",
    "packages/blib/card/doc/index.md": """
        ---
        title: Card
        ---
        # Card
        """,
}

PROJECT_CONFIG: dict[str, Any] = {
    "title": "Test Docs",
    "locales": [{"key": "en-us", "name": "English"}, {"key": "zh-cn", "name": "中文"}],
    "defaultLocale": "en-us",
    "libs": [
        {
            "name": "alib",
            "rootDir": "packages/alib",
            "abbrName": "A",
            "categories": [{"id": "general", "title": "General", "order": 1}],
        },
        {"name": "blib", "rootDir": "packages/blib"},
    ],
    "site": {"buildCommand": ["true"], "serveCommand": ["true"]},
}


def write_tree(root: pathlib.Path, files: Mapping[str, str]) -> None:
    """Write files (dedented, leading newline stripped) under root."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")


def write_project(root: pathlib.Path, files: Mapping[str, str] | None = None) -> None:
    write_tree(root, PROJECT_FILES if files is None else files)


def make_config(raw: Mapping[str, Any] | None = None) -> DocweaveConfig:
    return build_config(dict(PROJECT_CONFIG if raw is None else raw))


def make_context(
    root: pathlib.Path,
    raw: Mapping[str, Any] | None = None,
    *,
    watch: bool = False,
) -> BuildContext:
    """Build context over root with the site under the default site dir."""
    config = make_config(raw)
    paths = DocweavePaths.create(root, config.docs_path, config.output, config.site_dir)
    return BuildContext(config=config, paths=paths, hooks=create_build_hooks(), watch=watch)


def read_json(path: pathlib.Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


class FakeSiteLayer:
    """Site layer double that records calls instead of running commands."""

    calls: list[str]
    site_project: SiteProject | None
    build_error: Exception | None

    def __init__(self, calls: list[str] | None = None, build_error: Exception | None = None) -> None:
        self.calls = calls if calls is not None else []
        self.site_project = None
        self.build_error = build_error

    def __call__(self, context: BuildContext) -> FakeSiteLayer:
        _ = context
        return self

    async def initialize(self, site_project: SiteProject | None) -> None:
        self.site_project = site_project
        self.calls.append("site.initialize")

    async def build(self) -> None:
        self.calls.append("site.build")
        if self.build_error is not None:
            raise self.build_error

    async def start(self) -> None:
        self.calls.append("site.start")


class FakeDetector:
    """Detector double returning a fixed result."""

    result: DetectionResult

    def __init__(self, result: DetectionResult | None = None) -> None:
        self.result = result or DetectionResult()

    def __call__(self, cwd: pathlib.Path, config: DocweaveConfig) -> FakeDetector:
        _ = cwd, config
        return self

    async def detect(self) -> DetectionResult:
        return self.result

from __future__ import annotations

import pathlib
import sys
from typing import TYPE_CHECKING

import click.testing
import pytest

from docweave import plugins
from docweave.builders import DocsBuilder, LibrariesBuilder, NavsBuilder
from docweave.plugins.components import ComponentsPlugin
from docweave.plugins.config import ConfigPlugin
from docweave.plugins.markdown import MarkdownPlugin

# Add tests directory to sys.path so helpers.py can be imported
_tests_dir = pathlib.Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

import helpers  # noqa: E402

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from docweave.context import BuildContext


@pytest.fixture(autouse=True)
def isolated_plugin_registry(mocker: MockerFixture) -> None:
    """Registrations made by a test do not leak into other tests."""
    mocker.patch.dict(plugins._PLUGINS)  # pyright: ignore[reportPrivateUsage]
    mocker.patch.dict(plugins._PRESETS)  # pyright: ignore[reportPrivateUsage]


@pytest.fixture
def project_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Source tree with docs and two libraries."""
    helpers.write_project(tmp_path)
    return tmp_path


@pytest.fixture
def context(project_dir: pathlib.Path) -> BuildContext:
    """Build context over project_dir with the default plugins applied."""
    ctx = helpers.make_context(project_dir)
    for plugin in (ConfigPlugin(), MarkdownPlugin(), ComponentsPlugin()):
        plugin.apply(ctx)
    return ctx


@pytest.fixture
def docs_builder(context: BuildContext) -> DocsBuilder:
    return DocsBuilder(context)


@pytest.fixture
def libraries_builder(context: BuildContext) -> LibrariesBuilder:
    return LibrariesBuilder(context)


@pytest.fixture
def navs_builder(
    context: BuildContext, docs_builder: DocsBuilder, libraries_builder: LibrariesBuilder
) -> NavsBuilder:
    return NavsBuilder(context, docs_builder, libraries_builder)


@pytest.fixture
def runner() -> click.testing.CliRunner:
    """Create a CLI runner for testing."""
    return click.testing.CliRunner()

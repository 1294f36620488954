from __future__ import annotations

import contextlib
import logging
import pathlib
from typing import TYPE_CHECKING

import anyio
import click

from docweave import plugins
from docweave.cli.decorators import docweave_command
from docweave.orchestrator import Docweave, DocweaveOptions

if TYPE_CHECKING:
    from docweave.cli import CliContext
    from docweave.orchestrator import RunResult

logger = logging.getLogger(__name__)

_cwd_option = click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False, path_type=pathlib.Path),
    default=None,
    help="Project directory (default: current directory)",
)
_preset_option = click.option(
    "--preset",
    "presets",
    multiple=True,
    help="Preset to apply (repeatable, default: 'default')",
)
_plugin_option = click.option(
    "--plugin",
    "plugins_",
    multiple=True,
    help="Additional plugin to apply (repeatable)",
)
_skip_site_option = click.option(
    "--skip-site",
    is_flag=True,
    help="Generate site content only; do not run the site build or server",
)


def _make_options(
    cwd: pathlib.Path | None,
    presets: tuple[str, ...],
    plugin_names: tuple[str, ...],
    *,
    watch: bool,
    skip_site: bool,
    quiet: bool,
) -> DocweaveOptions:
    # Reporter is appended after the defaults are resolved
    selected_presets, selected = plugins.with_defaults(presets, plugin_names)
    selected_plugins = list(selected)
    if not quiet and "reporter" not in selected_plugins:
        selected_plugins.append("reporter")
    return DocweaveOptions(
        cwd=(cwd or pathlib.Path.cwd()).resolve(),
        watch=watch,
        skip_site=skip_site,
        presets=selected_presets,
        plugins=tuple(selected_plugins),
    )


def _run(options: DocweaveOptions) -> RunResult | None:
    docweave = Docweave(options)
    result: RunResult | None = None

    async def main() -> None:
        nonlocal result
        result = await docweave.run()

    with contextlib.suppress(KeyboardInterrupt):
        anyio.run(main)
    return result


def _finish(result: RunResult | None) -> None:
    if result is None:
        logger.info("Stopped")
        return
    if result.item_errors:
        logger.warning(f"{len(result.item_errors)} item(s) failed to compile")
    if not result.ok:
        raise SystemExit(result.exit_code)


@docweave_command()
@_cwd_option
@_preset_option
@_plugin_option
@_skip_site_option
@click.option("--watch", "-w", is_flag=True, help="Rebuild on changes and serve the site")
@click.pass_context
def build(
    ctx: click.Context,
    cwd: pathlib.Path | None,
    presets: tuple[str, ...],
    plugins_: tuple[str, ...],
    skip_site: bool,
    watch: bool,
) -> None:
    """Build the documentation site."""
    cli_ctx: CliContext = ctx.obj
    options = _make_options(
        cwd, presets, plugins_, watch=watch, skip_site=skip_site, quiet=cli_ctx["quiet"]
    )
    _finish(_run(options))


@docweave_command()
@_cwd_option
@_preset_option
@_plugin_option
@_skip_site_option
@click.pass_context
def serve(
    ctx: click.Context,
    cwd: pathlib.Path | None,
    presets: tuple[str, ...],
    plugins_: tuple[str, ...],
    skip_site: bool,
) -> None:
    """Build, watch for changes and serve the site (same as build --watch)."""
    cli_ctx: CliContext = ctx.obj
    options = _make_options(
        cwd, presets, plugins_, watch=True, skip_site=skip_site, quiet=cli_ctx["quiet"]
    )
    _finish(_run(options))

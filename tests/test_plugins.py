from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from docweave import exceptions, plugins
from docweave.plugins.config import ConfigPlugin
from docweave.plugins.markdown import MarkdownPlugin, render_markdown

import helpers

if TYPE_CHECKING:
    import pathlib

    from docweave.context import BuildContext


class _RecordingPlugin:
    name: str
    events: list[str]

    def __init__(self, name: str, events: list[str]) -> None:
        self.name = name
        self.events = events

    def apply(self, context: BuildContext) -> None:
        _ = context
        self.events.append(f"plugin:{self.name}")


# =============================================================================
# Resolution
# =============================================================================


def test_resolve_registered_plugin_by_name() -> None:
    """A registered name resolves to a fresh instance of its factory."""
    plugin = plugins.resolve_plugin("markdown")

    assert isinstance(plugin, MarkdownPlugin)


def test_resolve_plugin_instance_is_returned_as_is() -> None:
    """An object with apply() is used directly."""
    plugin = _RecordingPlugin("direct", [])

    assert plugins.resolve_plugin(plugin) is plugin


def test_resolve_plugin_class_is_instantiated() -> None:
    """A plugin class is a factory, even though it has an apply attribute."""
    plugin = plugins.resolve_plugin(ConfigPlugin)

    assert isinstance(plugin, ConfigPlugin)


def test_resolve_plugin_factory_function() -> None:
    """A zero-argument callable returning a plugin is a factory."""
    events = list[str]()

    plugin = plugins.resolve_plugin(lambda: _RecordingPlugin("factory", events))

    assert isinstance(plugin, _RecordingPlugin)


def test_resolve_unknown_plugin_suggests_close_match() -> None:
    """Unknown names fail with the canonical message and a suggestion."""
    with pytest.raises(exceptions.PluginNotFoundError) as exc_info:
        plugins.resolve_plugin("markdwn")

    assert str(exc_info.value) == "plugin markdwn is not found"
    assert "Did you mean: 'markdown'" in exc_info.value.format_user_message()
    assert isinstance(exc_info.value, exceptions.ConfigurationError)


def test_resolve_object_without_apply_is_invalid() -> None:
    """A factory producing something without apply() is rejected."""
    with pytest.raises(exceptions.InvalidPluginError, match="has no apply"):
        plugins.resolve_plugin(lambda: object())


def test_resolve_non_callable_is_invalid() -> None:
    """Values that are neither names, factories nor plugins are rejected."""
    with pytest.raises(exceptions.InvalidPluginError):
        plugins.resolve_plugin(42)  # pyright: ignore[reportArgumentType]


def test_resolve_unknown_preset() -> None:
    """Unknown preset names report the preset kind."""
    with pytest.raises(exceptions.PluginNotFoundError, match="preset nope is not found"):
        plugins.resolve_preset("nope")


def test_register_plugin_decorator_adds_to_registry() -> None:
    """Decorated factories become resolvable by name."""

    @plugins.register_plugin("recording")
    class Recording:
        def apply(self, context: BuildContext) -> None:
            _ = context

    assert "recording" in plugins.available_plugins()
    assert isinstance(plugins.resolve_plugin("recording"), Recording)


def test_register_plugin_twice_with_different_factory_fails() -> None:
    """A name maps to one factory."""
    with pytest.raises(ValueError, match="already registered"):
        plugins.register_plugin("markdown")(ConfigPlugin)


def test_builtin_plugins_and_presets_registered() -> None:
    """Built-in plugins and the default preset are available."""
    assert {"components", "config", "markdown", "reporter"} <= set(plugins.available_plugins())
    assert plugins.DEFAULT_PRESET in plugins.available_presets()


# =============================================================================
# PluginLoader
# =============================================================================


def test_loader_applies_presets_before_plugins_in_order(tmp_path: pathlib.Path) -> None:
    """Presets run first, then plugins, each in the given order."""
    events = list[str]()
    context = helpers.make_context(tmp_path, {})

    loader = plugins.PluginLoader(
        presets=[lambda ctx: events.append("preset:a"), lambda ctx: events.append("preset:b")],
        plugins=[_RecordingPlugin("x", events), _RecordingPlugin("y", events)],
    )
    loader.apply_all(context)

    assert events == ["preset:a", "preset:b", "plugin:x", "plugin:y"]
    assert loader.applied


def test_loader_applies_each_plugin_once(tmp_path: pathlib.Path) -> None:
    """A second apply_all is a no-op."""
    events = list[str]()
    context = helpers.make_context(tmp_path, {})
    loader = plugins.PluginLoader(plugins=[_RecordingPlugin("x", events)])

    loader.apply_all(context)
    loader.apply_all(context)

    assert events == ["plugin:x"]


def test_loader_resolves_everything_before_applying(tmp_path: pathlib.Path) -> None:
    """An unknown plugin fails before any preset or plugin has been applied."""
    events = list[str]()
    context = helpers.make_context(tmp_path, {})
    loader = plugins.PluginLoader(
        presets=[lambda ctx: events.append("preset")],
        plugins=[_RecordingPlugin("x", events), "does-not-exist"],
    )

    with pytest.raises(exceptions.PluginNotFoundError):
        loader.apply_all(context)
    assert events == []
    assert not loader.applied


@pytest.mark.parametrize(
    ("presets", "plugin_names", "expected"),
    [
        pytest.param((), (), (("default",), ()), id="nothing-given"),
        pytest.param(("custom",), (), (("custom",), plugins.DEFAULT_PLUGINS), id="presets-only"),
        pytest.param(("custom", "default"), (), (("custom", "default"), ()), id="default-preset-named"),
        pytest.param(("custom",), ("x",), (("custom",), ("x",)), id="explicit-plugins"),
        pytest.param((), ("x",), ((), ("x",)), id="plugins-only"),
    ],
)
def test_with_defaults(
    presets: tuple[str, ...],
    plugin_names: tuple[str, ...],
    expected: tuple[tuple[str, ...], tuple[str, ...]],
) -> None:
    """Built-in plugins are filled in whenever no plugins are named."""
    assert plugins.with_defaults(presets, plugin_names) == expected


def test_custom_preset_alone_keeps_default_plugins(tmp_path: pathlib.Path) -> None:
    events = list[str]()
    context = helpers.make_context(tmp_path, {})
    plugins.register_preset("custom")(lambda ctx: events.append("preset:custom"))

    plugins.PluginLoader(*plugins.with_defaults(["custom"], [])).apply_all(context)

    assert events == ["preset:custom"]
    assert [tap.name for tap in context.hooks.doc_compile.taps] == ["config", "markdown"]


def test_default_preset_taps_default_plugins(tmp_path: pathlib.Path) -> None:
    """The default preset installs config, markdown and components."""
    context = helpers.make_context(tmp_path, {})

    plugins.PluginLoader(presets=["default"]).apply_all(context)

    assert [tap.name for tap in context.hooks.doc_compile.taps] == ["config", "markdown"]
    assert [tap.name for tap in context.hooks.lib_component_compile.taps] == [
        "config",
        "components",
    ]


# =============================================================================
# Built-in plugins
# =============================================================================


def test_render_markdown_collects_headings_and_rewrites_links() -> None:
    """Markdown renders to HTML with heading ids; links to .md pages point at .html."""
    html, headings = render_markdown(
        "# Title\n\n## Usage\n\n#### Deep\n\nSee [intro](guide/intro.md#top) and [site](https://x.io/a.md)."
    )

    assert '<h2 id="usage">Usage</h2>' in html
    assert 'href="guide/intro.html#top"' in html
    assert 'href="https://x.io/a.md"' in html
    assert [(h["name"], h["level"]) for h in headings] == [("Title", 1), ("Usage", 2)]


async def test_config_plugin_rejects_invalid_order(tmp_path: pathlib.Path) -> None:
    """A non-numeric order is reported against the page."""
    from docweave.builders import DocsBuilder

    helpers.write_tree(tmp_path, {"docs/a.md": "---\norder: first\n---\n# A\n"})
    context = helpers.make_context(tmp_path, {})
    ConfigPlugin().apply(context)

    builder = await DocsBuilder(context).build()

    assert "a.md" in builder.errors
    assert "'order' must be a number" in str(builder.errors["a.md"])


async def test_config_plugin_rejects_unknown_toc_mode(tmp_path: pathlib.Path) -> None:
    """toc must be one of the known modes."""
    from docweave.builders import DocsBuilder

    helpers.write_tree(tmp_path, {"docs/a.md": "---\ntoc: sideways\n---\n# A\n"})
    context = helpers.make_context(tmp_path, {})
    ConfigPlugin().apply(context)

    builder = await DocsBuilder(context).build()

    assert "'toc' must be one of" in str(builder.errors["a.md"])


async def test_config_plugin_hidden_must_be_boolean(tmp_path: pathlib.Path) -> None:
    """A quoted "false" is rejected instead of hiding the page."""
    from docweave.builders import DocsBuilder

    helpers.write_tree(
        tmp_path,
        {
            "docs/quoted.md": '---\nhidden: "false"\n---\n# Quoted\n',
            "docs/shown.md": "---\nhidden: false\n---\n# Shown\n",
            "docs/empty.md": "---\nhidden:\n---\n# Empty\n",
            "docs/secret.md": "---\nhidden: true\n---\n# Secret\n",
        },
    )
    context = helpers.make_context(tmp_path, {})
    ConfigPlugin().apply(context)

    builder = await DocsBuilder(context).build()

    assert list(builder.errors) == ["quoted.md"]
    assert "'hidden' must be true or false" in str(builder.errors["quoted.md"])
    assert {key: doc.hidden for key, doc in builder.artifact.items()} == {
        "empty.md": False,
        "secret.md": True,
        "shown.md": False,
    }


async def test_reporter_prints_stage_summaries(tmp_path: pathlib.Path) -> None:
    """The reporter prints docs and library counts to its console."""
    import io

    import rich.console

    from docweave.plugins.reporter import ReporterPlugin
    from docweave.types import LibraryDescriptor

    stream = io.StringIO()
    context = helpers.make_context(tmp_path, {"title": "My Docs"})
    ReporterPlugin(console=rich.console.Console(file=stream, width=120)).apply(context)

    context.hooks.run.call()
    context.hooks.docs_compile.call(())
    context.hooks.lib_compile.call(LibraryDescriptor(name="alib", abbr_name="A", root=tmp_path))
    await context.hooks.emit.call()

    output = stream.getvalue()
    assert "Building My Docs" in output
    assert "docs: 0 page(s)" in output
    assert "alib: 0 component(s)" in output
    assert "Done" in output

"""Plugin and preset resolution.

Plugins and presets resolve through explicit registries filled by the
``register_plugin`` / ``register_preset`` decorators, never by importing a
module named in configuration. A plugin is any object with
``apply(context)``; a preset is a callable taking the context, typically
applying several plugins at once.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from docweave import exceptions

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from docweave.context import BuildContext

__all__ = [
    "DEFAULT_PLUGINS",
    "DEFAULT_PRESET",
    "Plugin",
    "PluginIdent",
    "PluginLoader",
    "Preset",
    "PresetIdent",
    "available_plugins",
    "available_presets",
    "register_plugin",
    "register_preset",
    "resolve_plugin",
    "resolve_preset",
    "with_defaults",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class Plugin(Protocol):
    """An extension that taps hooks on the build context."""

    def apply(self, context: BuildContext) -> None: ...


type PluginFactory = Callable[[], Plugin]
type Preset = Callable[[BuildContext], None]
type PluginIdent = str | Plugin | PluginFactory
type PresetIdent = str | Preset

DEFAULT_PLUGINS: tuple[str, ...] = ("config", "markdown", "components")
DEFAULT_PRESET = "default"

_PLUGINS: dict[str, PluginFactory] = {}
_PRESETS: dict[str, Preset] = {}


def register_plugin[F: Callable[[], Plugin]](name: str) -> Callable[[F], F]:
    """Register a plugin factory (usually the plugin class) under a name."""

    def decorator(factory: F) -> F:
        if name in _PLUGINS and _PLUGINS[name] is not factory:
            raise ValueError(f"Plugin '{name}' is already registered")
        _PLUGINS[name] = factory
        return factory

    return decorator


def register_preset[F: Callable[[BuildContext], None]](name: str) -> Callable[[F], F]:
    """Register a preset callable under a name."""

    def decorator(preset: F) -> F:
        if name in _PRESETS and _PRESETS[name] is not preset:
            raise ValueError(f"Preset '{name}' is already registered")
        _PRESETS[name] = preset
        return preset

    return decorator


def available_plugins() -> list[str]:
    return sorted(_PLUGINS)


def available_presets() -> list[str]:
    return sorted(_PRESETS)


def _describe(ident: object) -> str:
    return getattr(ident, "__name__", None) or type(ident).__name__


def resolve_plugin(ident: PluginIdent) -> Plugin:
    """Turn a registered name, a factory or an instance into a plugin instance."""
    if isinstance(ident, str):
        factory = _PLUGINS.get(ident)
        if factory is None:
            raise exceptions.PluginNotFoundError(ident, available_plugins(), kind="plugin")
        plugin: object = factory()
    elif isinstance(ident, type) or not isinstance(ident, Plugin):
        if not callable(ident):
            raise exceptions.InvalidPluginError(
                f"plugin {_describe(ident)} is neither a name, a factory nor an object with apply()"
            )
        plugin = ident()
    else:
        plugin = ident

    if not isinstance(plugin, Plugin):
        raise exceptions.InvalidPluginError(f"plugin {_describe(ident)} has no apply(context) method")
    return plugin


def resolve_preset(ident: PresetIdent) -> Preset:
    """Turn a registered name or a callable into a preset."""
    if isinstance(ident, str):
        preset = _PRESETS.get(ident)
        if preset is None:
            raise exceptions.PluginNotFoundError(ident, available_presets(), kind="preset")
        return preset
    if not callable(ident):
        raise exceptions.InvalidPluginError(f"preset {_describe(ident)} is not callable")
    return ident


def with_defaults(
    presets: Sequence[PresetIdent], plugins: Sequence[PluginIdent]
) -> tuple[tuple[PresetIdent, ...], tuple[PluginIdent, ...]]:
    """Fill in the built-in plugins when the caller names no plugins.

    With nothing given at all, the default preset stands in. With presets
    only, :data:`DEFAULT_PLUGINS` are added unless one of the presets is
    the default preset, which already applies them.
    """
    if plugins:
        return tuple(presets), tuple(plugins)
    if not presets:
        return (DEFAULT_PRESET,), ()
    if DEFAULT_PRESET in presets:
        return tuple(presets), ()
    return tuple(presets), DEFAULT_PLUGINS


class PluginLoader:
    """Applies presets, then plugins, each exactly once per run."""

    _presets: tuple[PresetIdent, ...]
    _plugins: tuple[PluginIdent, ...]
    _applied: list[Plugin]
    _done: bool

    def __init__(
        self,
        presets: Sequence[PresetIdent] = (),
        plugins: Sequence[PluginIdent] = (),
    ) -> None:
        self._presets = tuple(presets)
        self._plugins = tuple(plugins)
        self._applied = list[Plugin]()
        self._done = False

    @property
    def applied(self) -> bool:
        return self._done

    @property
    def plugins(self) -> list[Plugin]:
        """Plugin instances applied directly (not through a preset)."""
        return list(self._applied)

    def apply_all(self, context: BuildContext) -> None:
        """Resolve every identifier, then apply presets and plugins in order.

        Resolution happens up front, so an unknown name fails before any
        plugin has tapped a hook. A second call is a no-op.
        """
        if self._done:
            return
        presets = [resolve_preset(ident) for ident in self._presets]
        plugins = [resolve_plugin(ident) for ident in self._plugins]
        self._done = True

        for preset in presets:
            logger.debug(f"Applying preset {_describe(preset)}")
            preset(context)
        for plugin in plugins:
            logger.debug(f"Applying plugin {_describe(plugin)}")
            plugin.apply(context)
            self._applied.append(plugin)


@register_preset(DEFAULT_PRESET)
def default_preset(context: BuildContext) -> None:
    """Front matter, markdown rendering and component pages."""
    for name in DEFAULT_PLUGINS:
        resolve_plugin(name).apply(context)


# Built-in plugins register themselves on import
from docweave.plugins import components, config, markdown, reporter  # noqa: E402, F401


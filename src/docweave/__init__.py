from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0-dev"

# Public API - what embedding code needs to run a build or write a plugin.
# Builders, hooks and the site layer are reachable via their full paths.

if TYPE_CHECKING:
    from docweave.context import BuildContext as BuildContext
    from docweave.orchestrator import Docweave as Docweave
    from docweave.orchestrator import DocweaveOptions as DocweaveOptions
    from docweave.orchestrator import RunResult as RunResult
    from docweave.plugins import register_plugin as register_plugin
    from docweave.plugins import register_preset as register_preset

# Lazy import mapping for runtime
_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BuildContext": ("docweave.context", "BuildContext"),
    "Docweave": ("docweave.orchestrator", "Docweave"),
    "DocweaveOptions": ("docweave.orchestrator", "DocweaveOptions"),
    "RunResult": ("docweave.orchestrator", "RunResult"),
    "register_plugin": ("docweave.plugins", "register_plugin"),
    "register_preset": ("docweave.plugins", "register_preset"),
}


def __getattr__(name: str) -> object:
    """Lazily import public API members on first access."""
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        import importlib

        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        # Cache in module globals for subsequent access
        globals()[name] = value
        return value
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


def __dir__() -> list[str]:
    """List available attributes including lazy imports."""
    return list(globals().keys()) + list(_LAZY_IMPORTS.keys())

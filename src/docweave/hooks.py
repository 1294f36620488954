"""Named extension points that plugins tap.

Two closed hook variants exist:

- ``SyncHook``: every callback runs in registration order, synchronously.
  Return values are ignored, so no callback can short-circuit the others.
- ``AsyncSeriesHook``: callbacks run strictly one after another, each awaited
  before the next starts.

Registration is append-only and checked at tap time: a callback whose
positional parameter count does not match the hook's declared arguments is
rejected immediately rather than failing later at invocation.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, NamedTuple

from docweave import exceptions

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

__all__ = [
    "AsyncSeriesHook",
    "BuildHooks",
    "Hook",
    "HookRegistry",
    "SyncHook",
    "Tap",
    "create_build_hooks",
]

logger = logging.getLogger(__name__)


class Tap(NamedTuple):
    """A registered callback and the name it was registered under."""

    name: str
    callback: Callable[..., Any]


def _accepts_arity(callback: Callable[..., Any], arity: int) -> bool:
    """Check whether callback can be called with exactly `arity` positional args."""
    try:
        sig = inspect.signature(callback)
    except (TypeError, ValueError):
        # Builtins without signature metadata: trust the caller
        return True

    required = 0
    total = 0
    for param in sig.parameters.values():
        match param.kind:
            case inspect.Parameter.VAR_POSITIONAL:
                return arity >= required
            case inspect.Parameter.POSITIONAL_ONLY | inspect.Parameter.POSITIONAL_OR_KEYWORD:
                total += 1
                if param.default is inspect.Parameter.empty:
                    required += 1
            case inspect.Parameter.KEYWORD_ONLY if param.default is inspect.Parameter.empty:
                return False
            case _:
                pass
    return required <= arity <= total


class Hook:
    """Base class for hooks: a name, declared argument names and an ordered tap list."""

    _name: str
    _args: tuple[str, ...]
    _taps: list[Tap]

    def __init__(self, name: str, args: tuple[str, ...] = ()) -> None:
        self._name = name
        self._args = tuple(args)
        self._taps = list[Tap]()

    @property
    def name(self) -> str:
        return self._name

    @property
    def args(self) -> tuple[str, ...]:
        return self._args

    @property
    def taps(self) -> tuple[Tap, ...]:
        """Registered taps in registration order (a copy)."""
        return tuple(self._taps)

    def tap(self, name: str, callback: Callable[..., Any]) -> None:
        """Register a callback. Taps cannot be removed within a run."""
        self._validate(name, callback)
        self._taps.append(Tap(name, callback))
        logger.debug(f"Tapped hook '{self._name}' with '{name}'")

    def _validate(self, name: str, callback: Callable[..., Any]) -> None:
        if not callable(callback):
            raise exceptions.HookError(f"Tap '{name}' on hook '{self._name}' is not callable")
        if not _accepts_arity(callback, len(self._args)):
            raise exceptions.HookArityError(
                f"Tap '{name}' on hook '{self._name}' must accept {len(self._args)} "
                + f"positional argument(s) ({', '.join(self._args) or 'none'})"
            )

    def _check_call_args(self, args: tuple[object, ...]) -> None:
        if len(args) != len(self._args):
            raise TypeError(
                f"Hook '{self._name}' expects {len(self._args)} argument(s), got {len(args)}"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r}, args={self._args!r}, taps={len(self._taps)})"


class SyncHook(Hook):
    """Synchronous fan-out hook for lifecycle signals."""

    def _validate(self, name: str, callback: Callable[..., Any]) -> None:
        if inspect.iscoroutinefunction(callback):
            raise exceptions.HookError(
                f"Tap '{name}' on sync hook '{self._name}' must not be a coroutine function"
            )
        super()._validate(name, callback)

    def call(self, *args: object) -> None:
        """Run every callback in registration order."""
        self._check_call_args(args)
        for tap in tuple(self._taps):
            tap.callback(*args)


class AsyncSeriesHook(Hook):
    """Asynchronous hook whose callbacks run one after another."""

    async def call(self, *args: object) -> None:
        """Await every callback in registration order; never two at once."""
        self._check_call_args(args)
        for tap in tuple(self._taps):
            result: object = tap.callback(*args)
            if inspect.isawaitable(result):
                await result


class HookRegistry:
    """Fixed set of named hooks, declared once at construction."""

    _hooks: dict[str, Hook]

    def __init__(self, hooks: Mapping[str, Hook]) -> None:
        for key, hook in hooks.items():
            if key != hook.name:
                raise ValueError(f"Hook registered as '{key}' is named '{hook.name}'")
        self._hooks = dict(hooks)

    def __getitem__(self, name: str) -> Hook:
        try:
            return self._hooks[name]
        except KeyError:
            raise exceptions.UnknownHookError(name, list(self._hooks)) from None

    def __contains__(self, name: object) -> bool:
        return name in self._hooks

    def __iter__(self) -> Iterator[str]:
        return iter(self._hooks)

    def __len__(self) -> int:
        return len(self._hooks)

    def names(self) -> list[str]:
        return list(self._hooks)

    def tap(self, hook_name: str, name: str, callback: Callable[..., Any]) -> None:
        """Tap a hook by name."""
        self[hook_name].tap(name, callback)


class BuildHooks(HookRegistry):
    """The build lifecycle hooks every run declares.

    Hook names are snake_case: ``doc_compile`` for ``docCompile``,
    ``lib_component_compile`` for ``libComponentCompile`` and so on.
    """

    @property
    def run(self) -> SyncHook:
        """Fired once the site scaffold is ready, before any stage builds."""
        return self._get_sync("run")

    @property
    def doc_compile(self) -> SyncHook:
        """Fired for each compiled document; payload: the DocSourceFile."""
        return self._get_sync("doc_compile")

    @property
    def docs_compile(self) -> SyncHook:
        """Fired once per docs (re)build; payload: tuple of DocSourceFile."""
        return self._get_sync("docs_compile")

    @property
    def lib_compile(self) -> SyncHook:
        """Fired per library after its components compiled; payload: LibraryDescriptor."""
        return self._get_sync("lib_compile")

    @property
    def lib_component_compile(self) -> SyncHook:
        """Fired per component; payload: LibraryDescriptor, ComponentDescriptor.

        The library descriptor is built from the current configuration and has
        no components yet; they are grouped into it before ``lib_compile``.
        """
        return self._get_sync("lib_component_compile")

    @property
    def emit(self) -> AsyncSeriesHook:
        """Fired last in a one-shot run, before the process completes."""
        hook = self["emit"]
        assert isinstance(hook, AsyncSeriesHook)
        return hook

    def _get_sync(self, name: str) -> SyncHook:
        hook = self[name]
        assert isinstance(hook, SyncHook)
        return hook


def create_build_hooks() -> BuildHooks:
    """Declare the build lifecycle hooks."""
    hooks: list[Hook] = [
        SyncHook("run"),
        SyncHook("doc_compile", ("doc",)),
        SyncHook("docs_compile", ("docs",)),
        SyncHook("lib_compile", ("lib",)),
        SyncHook("lib_component_compile", ("lib", "component")),
        AsyncSeriesHook("emit"),
    ]
    return BuildHooks({hook.name: hook for hook in hooks})

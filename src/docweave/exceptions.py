from __future__ import annotations

import pathlib
from difflib import get_close_matches
from typing import override

# Fuzzy matching constants
_FUZZY_CUTOFF = 0.6
_FUZZY_MIN_LENGTH = 3


def _fuzzy_suggest(query: str, candidates: list[str]) -> str | None:
    """Return best fuzzy match if found, else None."""
    if not candidates or len(query) < _FUZZY_MIN_LENGTH:
        return None
    matches = get_close_matches(query, candidates, n=1, cutoff=_FUZZY_CUTOFF)
    return matches[0] if matches else None


class DocweaveError(Exception):
    """Base exception for docweave errors."""

    def format_user_message(self) -> str:
        """Format a user-friendly error message."""
        return str(self)

    def get_suggestion(self) -> str | None:
        """Return actionable suggestion for resolving the error."""
        return None


class ConfigurationError(DocweaveError):
    """Raised when the build cannot proceed because of user configuration.

    Reported as a short message, without a traceback.
    """

    pass


class ConfigValidationError(ConfigurationError):
    """Raised when the configuration file or overrides fail validation."""

    pass


class DocsPathNotFoundError(ConfigurationError):
    """Raised when the configured docs folder does not exist."""

    _path: str

    def __init__(self, path: str) -> None:
        self._path = path
        super().__init__(f"docs folder({path}) has not exists")

    @override
    def get_suggestion(self) -> str:
        return "Create the folder or set 'docsPath' in .docweaverc.yaml"

    @override
    def __reduce__(self) -> tuple[type, tuple[str]]:
        return (self.__class__, (self._path,))


class PluginNotFoundError(ConfigurationError):
    """Raised when a plugin or preset identifier cannot be resolved."""

    _kind: str
    _ident: str
    _available: list[str]

    def __init__(self, ident: str, available: list[str] | None = None, kind: str = "plugin") -> None:
        self._kind = kind
        self._ident = ident
        self._available = available or []
        super().__init__(f"{kind} {ident} is not found")

    @override
    def format_user_message(self) -> str:
        msg = str(self)
        if match := _fuzzy_suggest(self._ident, self._available):
            msg += f"\n  Did you mean: '{match}'?"
        return msg

    @override
    def get_suggestion(self) -> str | None:
        if not self._available:
            return None
        return f"Available {self._kind}s: {', '.join(sorted(self._available))}"

    @override
    def __reduce__(self) -> tuple[type, tuple[str, list[str], str]]:
        return (self.__class__, (self._ident, self._available, self._kind))


class InvalidPluginError(ConfigurationError):
    """Raised when a resolved plugin does not expose apply(context)."""

    pass


class SiteProjectNotFoundError(ConfigurationError):
    """Raised when the configured site project is missing from the workspace."""

    _name: str

    def __init__(self, name: str) -> None:
        self._name = name
        super().__init__(f"site project name({name}) is not exists")

    @override
    def get_suggestion(self) -> str:
        return "Check 'siteProjectName' against the projects in angular.json"

    @override
    def __reduce__(self) -> tuple[type, tuple[str]]:
        return (self.__class__, (self._name,))


class HookError(ConfigurationError):
    """Base class for hook wiring errors."""

    pass


class HookArityError(HookError):
    """Raised when a callback's parameter count does not match the hook."""

    pass


class UnknownHookError(HookError):
    """Raised when a hook name is not declared in the registry."""

    _name: str
    _available: list[str]

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self._name = name
        self._available = available or []
        super().__init__(f"Unknown hook: {name}")

    @override
    def format_user_message(self) -> str:
        msg = str(self)
        if match := _fuzzy_suggest(self._name, self._available):
            msg += f"\n  Did you mean: '{match}'?"
        return msg

    @override
    def __reduce__(self) -> tuple[type, tuple[str, list[str]]]:
        return (self.__class__, (self._name, self._available))


class DiscoveryError(DocweaveError):
    """Raised when a stage cannot enumerate its inputs at all."""

    pass


class ItemCompileError(DocweaveError):
    """Raised when a single document or component fails to compile.

    Recorded against the item; sibling items in the same stage proceed.
    """

    key: str
    path: pathlib.Path | None

    def __init__(self, key: str, message: str, path: pathlib.Path | None = None) -> None:
        self.key = key
        self.path = path
        super().__init__(f"{key}: {message}")

    @override
    def __reduce__(self) -> tuple[type, tuple[str, str, pathlib.Path | None]]:
        message = str(self).removeprefix(f"{self.key}: ")
        return (self.__class__, (self.key, message, self.path))


class SiteBuildError(DocweaveError):
    """Raised when the downstream site command fails."""

    @override
    def get_suggestion(self) -> str:
        return "Run with --skip-site to produce content only, or check the site command output"

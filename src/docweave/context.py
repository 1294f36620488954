from __future__ import annotations

import logging
import pathlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docweave.builders.docs import DocsBuilder
    from docweave.builders.libraries import LibrariesBuilder
    from docweave.builders.navs import NavsBuilder
    from docweave.config.models import DocweaveConfig
    from docweave.detector import DetectionResult
    from docweave.hooks import BuildHooks
    from docweave.paths import DocweavePaths


class BuildContext:
    """State shared by the orchestrator, the builders and plugins for one run.

    Plugins may read ``config`` and ``paths`` and tap ``hooks``; everything
    else is written only by the orchestrator. ``paths`` is final once the site
    scaffold step ran, which happens before the ``run`` hook fires.
    """

    _config: DocweaveConfig
    _paths: DocweavePaths
    _hooks: BuildHooks
    _watch: bool
    _logger: logging.Logger
    _detection: DetectionResult | None
    enable_ivy: bool
    docs_builder: DocsBuilder | None
    libraries_builder: LibrariesBuilder | None
    navs_builder: NavsBuilder | None

    def __init__(
        self,
        *,
        config: DocweaveConfig,
        paths: DocweavePaths,
        hooks: BuildHooks,
        watch: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._paths = paths
        self._hooks = hooks
        self._watch = watch
        self._logger = logger or logging.getLogger("docweave")
        self._detection = None
        self.enable_ivy = True
        self.docs_builder = None
        self.libraries_builder = None
        self.navs_builder = None

    @property
    def config(self) -> DocweaveConfig:
        return self._config

    @property
    def paths(self) -> DocweavePaths:
        return self._paths

    @property
    def hooks(self) -> BuildHooks:
        return self._hooks

    @property
    def watch(self) -> bool:
        return self._watch

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def detection(self) -> DetectionResult | None:
        return self._detection

    def get_abs_path(self, path: str | pathlib.Path) -> pathlib.Path:
        """Resolve a path relative to the working directory."""
        return self._paths.resolve(path)

    def _set_detection(self, detection: DetectionResult, paths: DocweavePaths) -> None:
        """Record detection results and the final site paths (orchestrator only)."""
        self._detection = detection
        self._paths = paths

"""The build orchestrator: one run from configuration to emitted site content.

A run walks a fixed sequence of states::

    INITIALIZE -> VERIFY -> DETECT -> SCAFFOLD_SITE -> CLEAN_OUTPUTS
      -> BUILD_DOCS_AND_LIBRARIES -> BUILD_NAVIGATION
      -> [ATTACH_WATCHERS] -> GENERATE_SITE_CONFIG -> DELEGATE_TO_SITE
      -> [EMIT] -> DONE

Any error moves the run to FAILED. ``run()`` never exits the process; it
returns a :class:`RunResult` and leaves the exit code to the caller.
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
from typing import TYPE_CHECKING, Any

import anyio
import networkx as nx

from docweave import exceptions, fs
from docweave.builders import DocsBuilder, LibrariesBuilder, NavsBuilder
from docweave.config import load_config
from docweave.context import BuildContext
from docweave.detector import ProjectDetector
from docweave.hooks import create_build_hooks
from docweave.paths import DocweavePaths
from docweave.plugins import PluginLoader, with_defaults
from docweave.site import SiteBuilder, SiteConfig, generate_site_config
from docweave.types import RunState, StageName

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping, Sequence

    from docweave.builders.base import StagedBuilder
    from docweave.config.models import DocweaveConfig
    from docweave.detector import DetectionResult, Detector
    from docweave.plugins import PluginIdent, PresetIdent
    from docweave.site import SiteLayer

__all__ = [
    "Docweave",
    "DocweaveOptions",
    "RunResult",
    "build_stage_graph",
]

_logger = logging.getLogger(__name__)

type DetectorFactory = Callable[[pathlib.Path, DocweaveConfig], Detector]
type SiteLayerFactory = Callable[[BuildContext], SiteLayer]

_STAGE_STATES: dict[StageName, RunState] = {
    StageName.DOCS: RunState.BUILD_DOCS_AND_LIBRARIES,
    StageName.LIBRARIES: RunState.BUILD_DOCS_AND_LIBRARIES,
    StageName.NAVIGATION: RunState.BUILD_NAVIGATION,
}


@dataclasses.dataclass(frozen=True)
class DocweaveOptions:
    """Inputs of one run.

    With neither presets nor plugins given, the ``default`` preset is used.
    Presets without plugins still get the built-in plugin set.
    """

    cwd: pathlib.Path = dataclasses.field(default_factory=pathlib.Path.cwd)
    watch: bool = False
    skip_site: bool = False
    presets: Sequence[PresetIdent] = ()
    plugins: Sequence[PluginIdent] = ()
    config: Mapping[str, Any] | None = None


@dataclasses.dataclass(frozen=True)
class RunResult:
    """Outcome of a run."""

    state: RunState
    states: tuple[RunState, ...] = ()
    error: Exception | None = None
    failed_state: RunState | None = None
    item_errors: tuple[exceptions.ItemCompileError, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state == RunState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def build_stage_graph() -> nx.DiGraph[str]:
    """Stage dependencies: navigation is derived from docs and libraries."""
    g: nx.DiGraph[str] = nx.DiGraph()
    g.add_nodes_from(StageName)
    g.add_edge(StageName.DOCS, StageName.NAVIGATION)
    g.add_edge(StageName.LIBRARIES, StageName.NAVIGATION)
    return g


def _leaf_exceptions(error: BaseException) -> Iterator[BaseException]:
    if isinstance(error, BaseExceptionGroup):
        for inner in error.exceptions:
            yield from _leaf_exceptions(inner)
    else:
        yield error


def _primary_error(group: BaseExceptionGroup[BaseException]) -> BaseException:
    """The error to report for a task group failure: a docweave error if any."""
    leaves = list(_leaf_exceptions(group))
    for leaf in leaves:
        if isinstance(leaf, exceptions.DocweaveError):
            return leaf
    return leaves[0] if leaves else group


class Docweave:
    """Drives a build run through its states."""

    _options: DocweaveOptions
    _logger: logging.Logger
    _detector_factory: DetectorFactory
    _site_factory: SiteLayerFactory
    _state: RunState
    _states: list[RunState]
    _context: BuildContext | None
    _site: SiteLayer | None
    _loader: PluginLoader
    _builders: dict[StageName, StagedBuilder[Any]]

    def __init__(
        self,
        options: DocweaveOptions,
        *,
        logger: logging.Logger | None = None,
        detector: DetectorFactory | None = None,
        site_builder: SiteLayerFactory | None = None,
    ) -> None:
        """Create an orchestrator.

        Args:
            options: What to build and how.
            logger: Logger for run-level messages, defaults to this module's.
            detector: Factory for the project detector, given (cwd, config).
            site_builder: Factory for the site layer, given the build context.
        """
        self._options = options
        self._logger = logger or _logger
        self._detector_factory = detector or ProjectDetector
        self._site_factory = site_builder or SiteBuilder
        self._state = RunState.IDLE
        self._states = list[RunState]()
        self._context = None
        self._site = None
        self._loader = PluginLoader(*with_defaults(options.presets, options.plugins))
        self._builders = {}

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def states(self) -> tuple[RunState, ...]:
        """Every state entered so far, in order."""
        return tuple(self._states)

    @property
    def context(self) -> BuildContext:
        if self._context is None:
            raise RuntimeError("Build context is created when the run starts")
        return self._context

    @property
    def builders(self) -> Mapping[StageName, StagedBuilder[Any]]:
        return dict(self._builders)

    def get_abs_path(self, path: str | pathlib.Path) -> pathlib.Path:
        """Resolve a path relative to the working directory."""
        p = pathlib.Path(path)
        if p.is_absolute():
            return p
        return (self._options.cwd / p).resolve()

    def _enter(self, state: RunState) -> None:
        self._state = state
        self._states.append(state)
        self._logger.debug(f"Entering {state}")

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(self) -> RunResult:
        """Run the build. In watch mode this only returns once the site layer exits."""
        if self._state != RunState.IDLE:
            raise RuntimeError("A Docweave instance runs once; create a new one per run")
        try:
            await self._run()
        except BaseExceptionGroup as group:
            error = _primary_error(group)
            if not isinstance(error, Exception):
                raise
            return self._fail(error)
        except Exception as e:
            return self._fail(e)
        self._enter(RunState.DONE)
        return RunResult(state=RunState.DONE, states=self.states, item_errors=self._item_errors())

    def _fail(self, error: Exception) -> RunResult:
        failed_state = self._state
        match error:
            case exceptions.ConfigurationError():
                self._logger.error(error.format_user_message())
            case exceptions.DocweaveError():
                self._logger.error(f"{failed_state} failed: {error.format_user_message()}")
                if suggestion := error.get_suggestion():
                    self._logger.error(f"  Hint: {suggestion}")
            case _:
                self._logger.error(f"Unexpected error during {failed_state}", exc_info=error)
        self._enter(RunState.FAILED)
        return RunResult(
            state=RunState.FAILED,
            states=self.states,
            error=error,
            failed_state=failed_state,
            item_errors=self._item_errors(),
        )

    def _item_errors(self) -> tuple[exceptions.ItemCompileError, ...]:
        return tuple(
            error for builder in self._builders.values() for error in builder.errors.values()
        )

    async def _run(self) -> None:
        self._enter(RunState.INITIALIZE)
        context = self._initialize()

        self._enter(RunState.VERIFY)
        self._verify(context)

        self._enter(RunState.DETECT)
        detection = await self._detect(context)

        self._enter(RunState.SCAFFOLD_SITE)
        self._site = self._site_factory(context)
        await self._site.initialize(detection.site_project)
        context.hooks.run.call()

        self._enter(RunState.CLEAN_OUTPUTS)
        await fs.areset_dir(context.paths.site_assets_content_path)
        await fs.areset_dir(context.paths.site_content_path)

        self._create_builders(context)
        await self._build_stages()

        if context.watch:
            async with anyio.create_task_group() as tg:
                self._enter(RunState.ATTACH_WATCHERS)
                for builder in self._builders.values():
                    builder.watch(tg)
                await self._generate_site_config(context)
                await self._delegate_to_site()
                tg.cancel_scope.cancel()
        else:
            await self._generate_site_config(context)
            await self._delegate_to_site()
            self._enter(RunState.EMIT)
            await context.hooks.emit.call()

    def _initialize(self) -> BuildContext:
        """Load configuration, create the context and apply presets and plugins."""
        options = self._options
        config = load_config(options.cwd, dict(options.config) if options.config else None)
        paths = DocweavePaths.create(options.cwd, config.docs_path, config.output, config.site_dir)
        context = BuildContext(
            config=config,
            paths=paths,
            hooks=create_build_hooks(),
            watch=options.watch,
            logger=self._logger,
        )
        self._context = context
        self._loader.apply_all(context)
        return context

    def _verify(self, context: BuildContext) -> None:
        config = context.config
        if not context.paths.docs_path.is_dir():
            raise exceptions.DocsPathNotFoundError(config.docs_path)
        lib_names = [lib.name for lib in config.libs]
        for channel in config.navs:
            if channel.lib is not None and channel.lib not in lib_names:
                raise exceptions.ConfigValidationError(
                    f"Navigation channel '{channel.title}' references unknown library '{channel.lib}'"
                )

    async def _detect(self, context: BuildContext) -> DetectionResult:
        config = context.config
        detector = self._detector_factory(context.paths.cwd, config)
        detection = await detector.detect()
        if config.site_project_name and detection.site_project is None:
            raise exceptions.SiteProjectNotFoundError(config.site_project_name)

        paths = context.paths
        if detection.site_project is not None:
            project = detection.site_project
            paths = paths.for_site_project(project.root, project.source_root)
        context._set_detection(detection, paths)  # pyright: ignore[reportPrivateUsage]
        context.enable_ivy = detection.enable_ivy
        self._logger.debug(
            f"Framework version: {detection.framework_version or 'unknown'}, "
            + f"ivy: {detection.enable_ivy}"
        )
        return detection

    def _create_builders(self, context: BuildContext) -> None:
        """Construct all stages up front so navigation can tap its upstreams."""
        docs = DocsBuilder(context)
        libraries = LibrariesBuilder(context)
        for builder in (docs, libraries):
            builder.hooks.build_succeeded.tap("emit", _emit_builder)
        navs = NavsBuilder(context, docs, libraries)
        navs.hooks.build_succeeded.tap("emit", _emit_builder)

        context.docs_builder = docs
        context.libraries_builder = libraries
        context.navs_builder = navs
        self._builders = {
            StageName.DOCS: docs,
            StageName.LIBRARIES: libraries,
            StageName.NAVIGATION: navs,
        }

    async def _build_stages(self) -> None:
        """Build stage generations in dependency order; each generation concurrently."""
        for generation in nx.topological_generations(build_stage_graph()):
            stages = sorted(StageName(name) for name in generation)
            self._enter(_STAGE_STATES[stages[0]])
            async with anyio.create_task_group() as tg:
                for stage in stages:
                    tg.start_soon(self._builders[stage].build, name=f"build-{stage}")

    async def _generate_site_config(self, context: BuildContext) -> None:
        self._enter(RunState.GENERATE_SITE_CONFIG)
        await generate_site_config(SiteConfig.from_context(context), context.paths.site_config_path)

    async def _delegate_to_site(self) -> None:
        self._enter(RunState.DELEGATE_TO_SITE)
        site = self._site
        assert site is not None
        if self._options.skip_site:
            if self.context.watch:
                self._logger.info("Watching for changes (site skipped)")
                await anyio.sleep_forever()
            return
        if self.context.watch:
            await site.start()
        else:
            await site.build()


async def _emit_builder(builder: StagedBuilder[Any]) -> None:
    await builder.emit()

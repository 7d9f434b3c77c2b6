"""Upgrade pipeline: move a config v2 project to the config v3 layout.

Steps run strictly in order and each one gates the next:

    state-copy -> reorganize -> config-rewrite -> metadata-resync

Completed steps are recorded in a checkpoint so an interrupted upgrade resumes
at the first unfinished step with the same target source.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from .api_client import APIError, MetadataClient
from .checkpoint import Checkpoint, CheckpointStore
from .config import Config
from .constants import UPGRADE_STEPS, ProjectSchemaVersion, UpgradeStep
from .errors import AmbiguousTargetError, PreconditionError, UpgradeError
from .filesystem import FileSystem, LocalFileSystem
from .metadata import MetadataResync
from .project import ConfigRewriter, ProjectConfig, get_project_paths
from .reorganize import DirectoryReorganizer, ReorganizeResult
from .statestore import (
    CatalogMigrationsStore,
    CatalogSettingsStore,
    CatalogStateClient,
    StateTransplanter,
    TableMigrationsStore,
    TableSettingsStore,
    TransplantResult,
)
from .upgrade_status import (
    UPGRADE_STATUS_CANCELLED,
    UPGRADE_STATUS_STATE_MOVED,
    UPGRADE_STATUS_UP_TO_DATE,
    UPGRADE_STATUS_UPGRADED,
    describe_step,
)
from .utils import NullReporter, ProgressReporter, Prompter
from .version_gate import GateDecision, check_update_required, evaluate_upgrade

logger = logging.getLogger(__name__)

TARGET_VERSION = ProjectSchemaVersion.V3


@dataclass
class UpgradeOptions:
    """Inputs of upgrade_project.

    Directory overrides default to the locations named in config.yaml.
    """

    project_dir: Path
    migrations_dir: Path | None = None
    seeds_dir: Path | None = None
    metadata_dir: Path | None = None
    force: bool = False
    target_source: str | None = None
    move_state_only: bool = False


@dataclass
class UpgradeResult:
    """Outcome of upgrade_project."""

    status: str
    target_source: str | None = None
    resumed: bool = False
    transplant: TransplantResult | None = None
    reorganize: ReorganizeResult | None = None
    metadata_files: list[str] = field(default_factory=list)
    completed_steps: list[UpgradeStep] = field(default_factory=list)
    skipped_steps: list[UpgradeStep] = field(default_factory=list)


@dataclass
class StatusReport:
    """Where a project stands relative to the v3 layout."""

    version: ProjectSchemaVersion
    sources: list[str]
    has_metadata_v3: bool
    reason: str | None
    checkpoint: Checkpoint | None


@dataclass
class _Paths:
    config_file: Path
    migrations_dir: Path
    seeds_dir: Path
    metadata_dir: Path


class ProjectUpgrader:
    """Runs the config v3 upgrade for one project."""

    def __init__(
        self,
        config: Config,
        project_config: ProjectConfig,
        client: MetadataClient,
        fs: FileSystem | None = None,
        prompter: Prompter | None = None,
        reporter: ProgressReporter | None = None,
        checkpoints: CheckpointStore | None = None,
        rewriter: ConfigRewriter | None = None,
        console: Console | None = None,
    ):
        """
        Initialize upgrader.

        Args:
            config: Tool configuration
            project_config: Loaded config.yaml of the project
            client: Backend API client
            fs: Filesystem to reorganize (defaults to the local disk)
            prompter: Asks for confirmation and target source; None means
                non-interactive
            reporter: Receives step-boundary progress notifications
            checkpoints: Checkpoint store (defaults to in-memory)
            rewriter: Persists the version bump
            console: Rich console for warnings
        """
        self.config = config
        self.project_config = project_config
        self.client = client
        self.fs = fs or LocalFileSystem()
        self.prompter = prompter
        self.reporter = reporter or NullReporter()
        self.checkpoints = checkpoints or CheckpointStore()
        self.rewriter = rewriter or ConfigRewriter()
        self.console = console or Console()
        self.catalog = CatalogStateClient(client)

    def build_transplanter(self, source: str) -> StateTransplanter:
        """Wire table-backed source stores to catalog-backed destination stores."""
        return StateTransplanter(
            source_migrations=TableMigrationsStore(
                self.client, self.config.state_schema, self.config.migrations_table
            ),
            dest_migrations=CatalogMigrationsStore(self.catalog),
            source_settings=TableSettingsStore(
                self.client, source, self.config.state_schema, self.config.settings_table
            ),
            dest_settings=CatalogSettingsStore(self.catalog),
            catalog=self.catalog,
        )

    def _resolve_paths(self, options: UpgradeOptions) -> _Paths:
        defaults = get_project_paths(options.project_dir, self.project_config)
        return _Paths(
            config_file=defaults.config_file,
            migrations_dir=options.migrations_dir or defaults.migrations_dir,
            seeds_dir=options.seeds_dir or defaults.seeds_dir,
            metadata_dir=options.metadata_dir or defaults.metadata_dir,
        )

    def _server_capabilities(self) -> tuple[bool, list[str]]:
        try:
            return self.client.has_metadata_v3(), self.client.get_sources()
        except APIError as e:
            raise PreconditionError(f"querying server: {e}") from e

    def _check_consistency(self) -> None:
        try:
            consistent = self.client.get_inconsistent_metadata()
        except APIError as e:
            raise PreconditionError(f"determining server metadata inconsistency: {e}") from e
        if not consistent:
            raise PreconditionError("cannot continue: metadata is inconsistent on the server")

    def _warn(self) -> None:
        for message in (
            "The upgrade makes changes to your project directory; "
            "create a backup of the project directory before continuing",
            "Config v3 is expected to be used with servers >= v2.0.0",
            "During the upgrade the server is the source of truth, make sure it is up to date",
            "The upgrade replaces project metadata with the metadata on the server",
        ):
            self.console.print(f"[yellow]Warning:[/yellow] {message}")

    def _select_target(self, options: UpgradeOptions, decision: GateDecision) -> str:
        if options.target_source:
            if options.target_source not in decision.candidates:
                raise PreconditionError(
                    f"database '{options.target_source}' is not connected to the server "
                    f"(connected: {', '.join(decision.candidates)})"
                )
            return options.target_source

        if not decision.needs_disambiguation and decision.target_source:
            return decision.target_source

        if self.prompter is None:
            raise AmbiguousTargetError(
                "cannot tell which database the current migrations and seeds belong to; "
                "pass the database name explicitly"
            )
        choice = self.prompter.select_one(
            "What database do the current migrations and seeds belong to?", decision.candidates
        )
        if not choice:
            raise AmbiguousTargetError("no database selected for the current migrations and seeds")
        return choice

    def upgrade_project(self, options: UpgradeOptions) -> UpgradeResult:
        """
        Upgrade the project to the config v3 layout.

        Args:
            options: Project directories and flags

        Returns:
            UpgradeResult describing what happened

        Raises:
            UpgradeError: Any step failure, tagged with the step name
        """
        current_version = self.project_config.version
        checkpoint = self.checkpoints.current()
        resumed = checkpoint is not None

        if checkpoint is not None:
            if options.target_source and options.target_source != checkpoint.target_source:
                raise PreconditionError(
                    f"an interrupted upgrade targeting '{checkpoint.target_source}' exists; "
                    "restart it to choose a different database"
                )
            has_metadata_v3, _ = self._server_capabilities()
            if not has_metadata_v3:
                raise PreconditionError("server no longer supports metadata version 3")
            # Layout changes still ahead: same pre-checks as a fresh run
            if not checkpoint.is_done(UpgradeStep.CONFIG_REWRITE):
                if current_version < ProjectSchemaVersion.V2 and not options.move_state_only:
                    raise PreconditionError(
                        "project should be using config v2 to be able to update to v3"
                    )
                self._check_consistency()
            self.console.print(
                f"Resuming upgrade for database [cyan]{checkpoint.target_source}[/cyan] "
                f"({len(checkpoint.completed_steps)} step(s) already done)"
            )
        else:
            if current_version < ProjectSchemaVersion.V2 and not options.move_state_only:
                raise PreconditionError(
                    "project should be using config v2 to be able to update to v3"
                )

            has_metadata_v3, sources = self._server_capabilities()
            # State can be moved regardless of the local layout
            gate_version = ProjectSchemaVersion.V2 if options.move_state_only else current_version
            decision = evaluate_upgrade(gate_version, sources, has_metadata_v3, TARGET_VERSION)
            if not decision.upgrade_required:
                logger.info("Project already at config v%d", int(current_version))
                return UpgradeResult(status=UPGRADE_STATUS_UP_TO_DATE)

            self._check_consistency()
            self._warn()

            if not options.force and self.prompter is not None:
                if not self.prompter.confirm("continue?"):
                    self.console.print("Upgrade cancelled.")
                    return UpgradeResult(status=UPGRADE_STATUS_CANCELLED)

            target = self._select_target(options, decision)
            checkpoint = self.checkpoints.start(target, current_version)

        result = UpgradeResult(
            status=UPGRADE_STATUS_UPGRADED,
            target_source=checkpoint.target_source,
            resumed=resumed,
        )
        paths = self._resolve_paths(options)

        for step in UPGRADE_STEPS:
            if checkpoint.is_done(step):
                result.skipped_steps.append(step)
            else:
                self.reporter.step(describe_step(step.value))
                logger.debug("start: %s", step.value)
                try:
                    self._run_step(step, checkpoint.target_source, paths, result)
                except UpgradeError as e:
                    raise e.with_step(step.value)
                self.checkpoints.mark_done(checkpoint, step)
                result.completed_steps.append(step)
                logger.debug("completed: %s", step.value)

            if step is UpgradeStep.STATE_COPY and options.move_state_only:
                logger.debug("move state only is set, returning after the state copy")
                if current_version >= TARGET_VERSION:
                    self.checkpoints.complete(checkpoint)
                result.status = UPGRADE_STATUS_STATE_MOVED
                return result

        self.checkpoints.complete(checkpoint)
        logger.info("Upgrade completed for database '%s'", checkpoint.target_source)
        return result

    def _run_step(self, step: UpgradeStep, target: str, paths: _Paths, result: UpgradeResult) -> None:
        if step is UpgradeStep.STATE_COPY:
            result.transplant = self.build_transplanter(target).copy_state(target, target)
        elif step is UpgradeStep.REORGANIZE:
            reorganizer = DirectoryReorganizer(self.fs, self.config.legacy_metadata_files)
            result.reorganize = reorganizer.reorganize(
                paths.migrations_dir, paths.seeds_dir, target, paths.metadata_dir
            )
        elif step is UpgradeStep.CONFIG_REWRITE:
            self.project_config = self.rewriter.commit_version(
                self.project_config, paths.config_file, TARGET_VERSION
            )
        elif step is UpgradeStep.METADATA_RESYNC:
            result.metadata_files = MetadataResync(self.client, self.fs).resync(paths.metadata_dir)

    def discard_checkpoint(self) -> None:
        """Forget an interrupted upgrade so the next run starts from scratch."""
        if self.checkpoints.current() is not None:
            logger.info("Discarding interrupted upgrade checkpoint")
        self.checkpoints.discard()

    def resync_only(self, metadata_dir: Path) -> list[str]:
        """
        Re-run only the metadata resync step.

        Used to recover from a ResyncError after the version bump was committed.
        """
        self.reporter.step(describe_step(UpgradeStep.METADATA_RESYNC.value))
        try:
            files = MetadataResync(self.client, self.fs).resync(metadata_dir)
        except UpgradeError as e:
            raise e.with_step(UpgradeStep.METADATA_RESYNC.value)

        checkpoint = self.checkpoints.current()
        if checkpoint is not None and checkpoint.is_done(UpgradeStep.CONFIG_REWRITE):
            self.checkpoints.mark_done(checkpoint, UpgradeStep.METADATA_RESYNC)
            self.checkpoints.complete(checkpoint)
        return files

    def status(self) -> StatusReport:
        """Report whether the project needs the v3 upgrade."""
        has_metadata_v3, sources = self._server_capabilities()
        return StatusReport(
            version=self.project_config.version,
            sources=sources,
            has_metadata_v3=has_metadata_v3,
            reason=check_update_required(self.project_config.version, sources, has_metadata_v3),
            checkpoint=self.checkpoints.current(),
        )

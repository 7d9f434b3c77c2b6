"""CLI interface for Project-Upgrader."""

import logging
import sys
from pathlib import Path

# Runtime version check - must be before other imports
if sys.version_info < (3, 11):
    print("Error: Project-Upgrader requires Python 3.11 or higher", file=sys.stderr)
    version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print(f"Current version: {version}", file=sys.stderr)
    sys.exit(1)

import click
from rich.console import Console

from . import __version__
from .api_client import MetadataClient
from .checkpoint import CheckpointStore
from .config import load_config
from .constants import EXIT_CODE_FAILURE, LOG_DATE_FORMAT, LOG_FORMAT
from .display import display_error, display_status, display_upgrade_result
from .error_guidance import exit_code_for
from .errors import UpgradeError
from .project import get_project_paths, load_project_config
from .upgrade import ProjectUpgrader, UpgradeOptions
from .utils import ConsolePrompter, ProgressReporter, expand_path, progress_spinner

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def _build_upgrader(ctx: click.Context, reporter: ProgressReporter | None = None) -> ProjectUpgrader:
    """Create an upgrader wired to the project and server from the context."""
    config = ctx.obj["config"]
    project_config = ctx.obj["project_config"]
    project_dir: Path = ctx.obj["project_dir"]

    client = MetadataClient(
        ctx.obj["endpoint"] or project_config.endpoint,
        admin_secret=ctx.obj["admin_secret"] or project_config.admin_secret,
        timeout=config.request_timeout,
    )
    return ProjectUpgrader(
        config=config,
        project_config=project_config,
        client=client,
        prompter=ConsolePrompter(),
        reporter=reporter,
        checkpoints=CheckpointStore(project_dir / config.checkpoint_file),
        console=console,
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Custom config file path",
)
@click.option(
    "--project",
    "project_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Project directory containing config.yaml",
)
@click.option("--endpoint", default=None, help="Server endpoint (overrides config.yaml)")
@click.option(
    "--admin-secret",
    envvar="PROJECT_UPGRADER_ADMIN_SECRET",
    default=None,
    help="Admin secret (overrides config.yaml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    project_dir: Path,
    endpoint: str | None,
    admin_secret: str | None,
    verbose: bool,
) -> None:
    """Project-Upgrader: move projects to the multi-database (config v3) layout."""
    ctx.ensure_object(dict)
    _configure_logging(verbose)

    try:
        ctx.obj["config"] = load_config(config)
    except (FileNotFoundError, ValueError, OSError, PermissionError) as e:
        console.print(f"[red]Error:[/red] Configuration: {e}")
        sys.exit(EXIT_CODE_FAILURE)

    project_dir = expand_path(str(project_dir))
    try:
        ctx.obj["project_config"] = load_project_config(project_dir)
    except (FileNotFoundError, ValueError, OSError) as e:
        console.print(f"[red]Error:[/red] Project: {e}")
        sys.exit(EXIT_CODE_FAILURE)

    ctx.obj["project_dir"] = project_dir
    ctx.obj["endpoint"] = endpoint
    ctx.obj["admin_secret"] = admin_secret


@cli.command("update-project-v3")
@click.option(
    "--database-name",
    default=None,
    help="Database the current migrations and seeds belong to",
)
@click.option("--force", "-f", is_flag=True, help="Do not ask for confirmation")
@click.option(
    "--move-state-only",
    is_flag=True,
    help="Only copy migration state to catalog state, leave the project directory as is",
)
@click.option("--restart", is_flag=True, help="Discard an interrupted upgrade and start over")
@click.pass_context
def update_project_v3(
    ctx: click.Context,
    database_name: str | None,
    force: bool,
    move_state_only: bool,
    restart: bool,
) -> None:
    """
    Upgrade a config v2 project to config v3.

    Copies migration state from the migrations table into catalog state, moves
    migrations and seeds into a directory named after the database, bumps the
    config version and replaces local metadata with the server's metadata.

    An interrupted upgrade resumes from the first unfinished step.

    Examples:

        \b
        # Upgrade, asking which database the migrations belong to if unclear
        project-upgrader update-project-v3

        \b
        # Non-interactive upgrade for a named database
        project-upgrader update-project-v3 --database-name default --force

        \b
        # Only copy the migration state
        project-upgrader update-project-v3 --move-state-only
    """
    project_dir: Path = ctx.obj["project_dir"]

    with progress_spinner(console) as reporter:
        upgrader = _build_upgrader(ctx, reporter)
        if restart:
            upgrader.discard_checkpoint()
        options = UpgradeOptions(
            project_dir=project_dir,
            force=force,
            target_source=database_name,
            move_state_only=move_state_only,
        )
        try:
            result = upgrader.upgrade_project(options)
        except UpgradeError as e:
            reporter.stop()
            display_error(e, console)
            sys.exit(exit_code_for(e))
        finally:
            upgrader.checkpoints.close()

    display_upgrade_result(result, console)


@cli.command()
@click.pass_context
def resync(ctx: click.Context) -> None:
    """
    Replace local metadata with the metadata on the server.

    Re-runs only the last upgrade step, e.g. after it failed once the config
    version was already bumped.
    """
    project_dir: Path = ctx.obj["project_dir"]
    paths = get_project_paths(project_dir, ctx.obj["project_config"])

    with progress_spinner(console) as reporter:
        upgrader = _build_upgrader(ctx, reporter)
        try:
            files = upgrader.resync_only(paths.metadata_dir)
        except UpgradeError as e:
            reporter.stop()
            display_error(e, console)
            sys.exit(exit_code_for(e))
        finally:
            upgrader.checkpoints.close()

    console.print(f"[green]✓[/green] Wrote {len(files)} metadata file(s) to {paths.metadata_dir}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show whether the project needs the config v3 upgrade."""
    upgrader = _build_upgrader(ctx)
    try:
        report = upgrader.status()
    except UpgradeError as e:
        display_error(e, console)
        sys.exit(exit_code_for(e))
    finally:
        upgrader.checkpoints.close()

    display_status(report, console)


if __name__ == "__main__":
    cli()

"""Display functions for Project-Upgrader CLI output."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .constants import UPGRADE_STEPS
from .error_guidance import GuidanceProvider
from .errors import UpgradeError
from .upgrade import StatusReport, UpgradeResult
from .upgrade_status import describe_step


def display_upgrade_result(result: UpgradeResult, console: Console) -> None:
    """
    Display the outcome of an upgrade as a step table.

    Args:
        result: Upgrade result
        console: Rich console instance for output
    """
    if result.target_source is None:
        console.print(f"Nothing to do: project is {result.status}.")
        return

    table = Table(title=f"Upgrade Results ({result.target_source})")
    table.add_column("Step", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    for step in UPGRADE_STEPS:
        if step in result.completed_steps:
            status = "[green]✓ Done[/green]"
        elif step in result.skipped_steps:
            status = "[dim]✓ Done earlier[/dim]"
        else:
            status = "[yellow]- Not run[/yellow]"
        table.add_row(describe_step(step.value), status, _step_details(step.value, result))

    console.print(table)
    console.print(f"Status: [bold]{result.status}[/bold]")


def _step_details(step: str, result: UpgradeResult) -> str:
    if step == "state-copy" and result.transplant:
        return (
            f"{result.transplant.migrations_copied} migration record(s), "
            f"{result.transplant.settings_copied} setting(s)"
        )
    if step == "reorganize" and result.reorganize:
        return (
            f"{len(result.reorganize.migrations)} migration(s), "
            f"{len(result.reorganize.seeds)} seed file(s)"
        )
    if step == "metadata-resync" and result.metadata_files:
        return f"{len(result.metadata_files)} file(s)"
    return ""


def display_status(report: StatusReport, console: Console) -> None:
    """Display the status command output."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Label", style="dim")
    table.add_column("Value")

    table.add_row("Config version:", str(int(report.version)))
    table.add_row("Connected databases:", ", ".join(report.sources) or "none")
    table.add_row(
        "Metadata v3 server:",
        "[green]✓[/green]" if report.has_metadata_v3 else "[red]✗[/red]",
    )
    if report.checkpoint is not None:
        done = ", ".join(step.value for step in report.checkpoint.completed_steps) or "none"
        table.add_row(
            "Interrupted upgrade:",
            f"{report.checkpoint.target_source} (done: {done})",
        )
    console.print(table)

    if report.reason:
        console.print(f"[yellow]![/yellow] Upgrade required: {report.reason}")
        console.print("[dim]Run 'project-upgrader update-project-v3' to upgrade[/dim]")
    else:
        console.print("[green]✓[/green] No upgrade required")


def display_error(error: UpgradeError, console: Console) -> None:
    """Print an upgrade error with actionable guidance when available."""
    console.print(f"[red]Error:[/red] {error}")

    guidance = GuidanceProvider.for_error(error)
    if guidance is None:
        return

    lines = [f"[bold]{guidance.title}[/bold]"]
    lines.extend(f"Check: {check}" for check in guidance.checks)
    lines.extend(f"Fix: {fix}" for fix in guidance.fixes)
    if guidance.examples:
        lines.extend(f"  $ {example}" for example in guidance.examples)
    console.print(Panel("\n".join(lines), title="Suggestion", border_style="cyan"))

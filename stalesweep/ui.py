"""
Stalesweep User Interface Components

File Purpose: Rich-based output for candidate lists, progress, warnings and summaries
Primary Functions/Classes: UIManager
Inputs and Outputs (I/O): Confirmation prompts, visual output via Rich console
"""

from typing import List, Optional

from rich.panel import Panel
from rich.prompt import Confirm
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from .models import DeviceRecord, RunState, RunSummary, console, format_timestamp
from .progress import ProgressSnapshot, format_elapsed


class UIManager:
    """Manages all user interface operations."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def show_header(self, cutoff_days: int, dry_run: bool) -> None:
        title = "Stale Device Cleanup"
        if dry_run:
            title += " [yellow](dry run)[/]"
        console.print(Rule(title, style="bright_cyan"))
        console.print(f"Inactivity window: [bold]{cutoff_days}[/] days")
        console.print()

    def show_candidates(self, records: List[DeviceRecord], limit: Optional[int] = None):
        """Display candidate devices in a table."""
        if not records:
            console.print("[green]No stale devices found.[/]")
            return

        shown = records if limit is None else records[:limit]
        table = Table(title=f"Stale devices ({len(records)})")
        table.add_column("#", width=4, justify="right")
        table.add_column("Display name", style="cyan")
        table.add_column("Device id", style="dim")
        table.add_column("OS")
        table.add_column("Last sign-in", justify="right")

        for i, record in enumerate(shown, 1):
            last = record.approximate_last_sign_in
            table.add_row(
                str(i),
                record.display_name or "-",
                record.id,
                record.operating_system or "-",
                format_timestamp(last) if last else "[yellow]never[/]",
            )
        console.print(table)
        if len(shown) < len(records):
            console.print(f"[dim]... and {len(records) - len(shown)} more[/]")

    def show_threshold_warning(self, count: int, threshold: int) -> None:
        console.print(
            Panel(
                f"Found [bold red]{count}[/] stale devices, which meets or exceeds the "
                f"safety threshold of [bold]{threshold}[/].\n\n"
                "No devices were deleted. Re-run with a higher --threshold or "
                "--disable-threshold if this is expected.",
                title="THRESHOLD EXCEEDED",
                border_style="bright_red",
            )
        )

    def show_progress(self, snapshot: ProgressSnapshot) -> None:
        """Print one progress line for a snapshot."""
        if self.quiet:
            return
        line = Text()
        line.append(f"[{snapshot.status}] ", style="bold")
        if snapshot.percent is not None:
            line.append(f"{snapshot.percent:6.2f}% ", style="cyan")
        line.append(f"elapsed {snapshot.elapsed}", style="dim")
        if snapshot.eta_seconds is not None and not snapshot.completed:
            line.append(f"  eta {format_elapsed(snapshot.eta_seconds)}", style="dim")
        if snapshot.current_operation:
            line.append(f"  {snapshot.current_operation}")
        if snapshot.completed:
            line.append("  done", style="green")
        console.print(line)

    def confirm_delete(self, record: DeviceRecord) -> bool:
        """Ask before deleting a single device."""
        return Confirm.ask(
            f"[bold white]Delete device {record.label} ({record.id})?[/]",
            default=False,
        )

    def show_summary(self, summary: RunSummary) -> None:
        """Display the final summary for a run."""
        table = Table(show_header=False, title="Summary")
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        succeeded_label = "Would delete" if summary.dry_run else "Deleted"
        table.add_row(succeeded_label, f"[green]{summary.succeeded}[/]")
        table.add_row("Failed", f"[red]{summary.failed}[/]")
        table.add_row("Skipped (already gone)", f"[yellow]{summary.skipped}[/]")
        table.add_row("Considered", str(summary.considered_total))
        table.add_row("Elapsed", format_elapsed(summary.elapsed))
        if summary.cutoff:
            table.add_row("Cutoff", summary.cutoff)
        console.print()
        console.print(table)

        if summary.failures:
            console.print("[red]Failures:[/]")
            for device_id, message in summary.failures:
                console.print(f"  [dim]{device_id}[/]: {message}")

        if summary.state is RunState.ABORTED_THRESHOLD:
            console.print("[yellow]Run stopped by the safety threshold[/]")
        elif summary.state is RunState.INTERRUPTED:
            console.print("[yellow]Run interrupted before all devices were processed[/]")

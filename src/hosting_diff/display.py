"""Rich display for hosting diff results."""

from rich.console import Console
from rich.table import Table

from .core import ChangeType, ReconcileResult
from .formatting import attribute_changes, display_path, humanize_size

STATUS_LABELS = {
    ChangeType.ADDED: "[green]+ New[/green]",
    ChangeType.REMOVED: "[red]- Removed[/red]",
    ChangeType.MODIFIED: "[yellow]~ Modified[/yellow]",
    ChangeType.UNCHANGED: "[dim]= Unchanged[/dim]",
}


def display_result(result: ReconcileResult, console: Console, title: str = "Hosting") -> None:
    """Display a reconcile result as a table plus a failure list.

    Args:
        result: Reconcile result to show
        console: Rich console for output
        title: Table title
    """
    if not result.entries and not result.failures:
        console.print("[green]✓[/green] Deployed hosting files are identical to the local version")
        return

    if result.entries:
        table = Table(title=f"{title} ({len(result.changes)} changes)")
        table.add_column("Status")
        table.add_column("Path", style="cyan")
        table.add_column("Size", justify="right")
        table.add_column("Details", style="dim")

        for entry in result.entries:
            size = entry.local_size if entry.local_size is not None else entry.remote_size
            details = ""
            if entry.category == ChangeType.MODIFIED:
                changes = attribute_changes(entry)
                if entry.content_changed:
                    changes.insert(0, "content changed")
                details = "; ".join(changes)
            table.add_row(
                STATUS_LABELS[entry.category],
                display_path(entry.path),
                humanize_size(size or 0),
                details,
            )
        console.print(table)

    if result.failures:
        console.print(f"\n[bold]Could not evaluate {len(result.failures)} files:[/bold]")
        for failure in result.failures:
            console.print(f"  [red]![/red] {display_path(failure.path)}: {failure.reason}")

    hashed = result.cache_misses
    console.print(
        f"\n[dim]{result.cache_hits} fingerprints from cache, {hashed} files hashed[/dim]"
    )

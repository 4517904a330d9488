"""Rich output formatting for the changelog CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from changelog_engine.models.change_log import DatabaseChangeLog
    from changelog_engine.models.change_set import ChangeSet


def _flag(value: bool | None) -> str:
    if value is None:
        return "[dim]-[/dim]"
    return "[green]yes[/green]" if value else "no"


def _text(value: Any) -> str:
    if value is None:
        return "-"
    text = str(value)
    return text or "-"


def change_set_summary(change_set: ChangeSet) -> dict[str, Any]:
    """Return the JSON-ready summary of one change set."""
    return {
        "id": change_set.id,
        "author": change_set.author,
        "filePath": change_set.file_path,
        "contextFilter": str(change_set.context_filter) if change_set.context_filter else None,
        "labels": str(change_set.labels) if change_set.labels else None,
        "dbms": sorted(change_set.dbms) if change_set.dbms else None,
        "runAlways": change_set.run_always,
        "runOnChange": change_set.run_on_change,
        "runInTransaction": change_set.run_in_transaction,
        "failOnError": change_set.fail_on_error,
        "ignore": change_set.ignore,
        "changes": [type(change).change_name for change in change_set.changes],
        "rollback": [type(change).change_name for change in change_set.rollback.changes],
    }


def change_log_summary(change_log: DatabaseChangeLog) -> dict[str, Any]:
    """Return the JSON-ready summary of a compiled change log."""
    return {
        "physicalFilePath": change_log.physical_file_path,
        "logicalFilePath": change_log.logical_file_path,
        "preconditions": len(change_log.preconditions.nested_preconditions),
        "changeSets": [change_set_summary(cs) for cs in change_log.change_sets],
        "changeVisitors": [
            {"change": v.change, "dbms": sorted(v.dbms), "remove": v.remove} for v in change_log.change_visitors
        ],
    }


# ---------------------------------------------------------------------------
# Change log
# ---------------------------------------------------------------------------


def display_change_log(console: Console, change_log: DatabaseChangeLog) -> None:
    """Render a compiled change log as a header panel and a change-set table.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    change_log:
        The compiled document.
    """
    header_lines = [
        f"[bold]File:[/bold]          {change_log.physical_file_path}",
        f"[bold]Logical path:[/bold]  {_text(change_log.logical_file_path)}",
        f"[bold]Change sets:[/bold]   {len(change_log.change_sets)}",
        f"[bold]Preconditions:[/bold] {len(change_log.preconditions.nested_preconditions)}",
    ]
    console.print(Panel("\n".join(header_lines), title="Change Log", border_style="blue"))

    if not change_log.change_sets:
        console.print("[dim]No change sets in this change log.[/dim]")
        return

    table = Table(show_lines=False, pad_edge=True, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Id", style="bold")
    table.add_column("Author")
    table.add_column("File")
    table.add_column("Context")
    table.add_column("Labels")
    table.add_column("Changes")
    table.add_column("Run Always", justify="center")
    table.add_column("Ignore", justify="center")

    for index, change_set in enumerate(change_log.change_sets, start=1):
        changes = ", ".join(type(change).change_name for change in change_set.changes)
        table.add_row(
            str(index),
            _text(change_set.id),
            _text(change_set.author),
            _text(change_set.file_path),
            _text(change_set.context_filter),
            _text(change_set.labels),
            changes or "-",
            _flag(change_set.run_always),
            _flag(change_set.ignore),
        )

    console.print(table)

    if change_log.change_visitors:
        console.print(f"[yellow]{len(change_log.change_visitors)} removeChangeSetProperty directive(s) apply.[/yellow]")


# ---------------------------------------------------------------------------
# Element catalogue
# ---------------------------------------------------------------------------


def display_elements(console: Console, title: str, entries: list[tuple[str, type]]) -> None:
    """Render a table of registered DSL element names and their record types."""
    if not entries:
        console.print(f"[dim]No {title.lower()} registered.[/dim]")
        return

    table = Table(title=f"{title} ({len(entries)})", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Element", style="bold cyan")
    table.add_column("Record Type")

    for name, record_type in entries:
        table.add_row(name, record_type.__name__)

    console.print(table)

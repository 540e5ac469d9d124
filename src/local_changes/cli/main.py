from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from local_changes.config import ENV_DB_PATH
from local_changes.errors import TrackingError
from local_changes.logs import configure_logging
from local_changes.tracker import LocalChangesTracker

app = typer.Typer(help="Local change tracking for mirrored SQLite tables")
console = Console()

DB_PATH_ARGUMENT = typer.Argument(..., envvar=ENV_DB_PATH, help="Path to SQLite database")


@app.callback()
def setup(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON"),
):
    """Configure logging before running a command."""
    configure_logging(level=log_level, json_format=json_logs)


@app.command()
def install(
    db_path: str = DB_PATH_ARGUMENT,
    tables: list[str] = typer.Option(..., "--table", "-t", help="Mirrored tables to track"),
    activity_column: str = typer.Option(
        "lastActivityTime", "--activity-column", help="Column refreshed by the sync process"
    ),
    no_activity: bool = typer.Option(
        False, "--no-activity", help="Rely on the explicit origin marker only"
    ),
):
    """Install (or reinstall) change tracking on mirrored tables."""
    with LocalChangesTracker(db_path) as tracker:
        for table in tables:
            try:
                definition = tracker.install_tracking(
                    table, activity_column=None if no_activity else activity_column
                )
            except TrackingError as e:
                console.print(f"[red]Failed to install tracking on {table}: {escape(str(e))}[/red]")
                raise typer.Exit(code=1)
            console.print(
                f"[green]Tracking installed on {table}[/green] "
                f"({len(definition.tracked_columns)} tracked columns)"
            )


@app.command()
def uninstall(
    db_path: str = DB_PATH_ARGUMENT,
    tables: list[str] = typer.Option(..., "--table", "-t", help="Tables to stop tracking"),
):
    """Remove change tracking rules. Pending log entries are kept."""
    with LocalChangesTracker(db_path) as tracker:
        for table in tables:
            tracker.uninstall_tracking(table)
            console.print(f"Tracking removed from {table}")


@app.command()
def status(db_path: str = DB_PATH_ARGUMENT):
    """Show tracked tables and their pending change counts."""
    with LocalChangesTracker(db_path) as tracker:
        tracked = tracker.get_tracked_tables()
        if not tracked:
            console.print("[yellow]No tracked tables.[/yellow]")
            return

        log = tracker.change_log
        table = Table(title="Pending Local Changes")
        table.add_column("Table", style="cyan")
        table.add_column("Inserts", style="green")
        table.add_column("Updates", style="yellow")
        table.add_column("Deletes", style="red")

        for name in tracked:
            counts = log.count_pending(name)
            table.add_row(name, str(counts.inserts), str(counts.updates), str(counts.deletes))

        console.print(table)


@app.command()
def pending(
    db_path: str = DB_PATH_ARGUMENT,
    table_name: str = typer.Argument(..., help="Tracked table"),
):
    """List the pending log entries of one table."""
    with LocalChangesTracker(db_path) as tracker:
        log = tracker.change_log
        table = Table(title=f"Pending changes: {table_name}")
        table.add_column("Change", style="cyan")
        table.add_column("uid", style="magenta")
        table.add_column("Detail", style="dim")

        for entry in log.get_inserts(table_name):
            table.add_row("insert", entry.uid, "")
        for entry in log.get_updates(table_name):
            table.add_row("update", entry.uid, entry.field_name)
        for entry in log.get_deletes(table_name):
            table.add_row("delete", entry.uid, f"remote id {entry.id}")

        console.print(table)


@app.command()
def check(
    db_path: str = DB_PATH_ARGUMENT,
    table_name: Optional[str] = typer.Option(None, "--table", "-t", help="Limit to one table"),
):
    """Verify change log invariants."""
    with LocalChangesTracker(db_path) as tracker:
        try:
            tracker.check_log(table_name)
        except TrackingError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(code=1)
    console.print("[green]Change log is consistent.[/green]")


def main():
    app()


if __name__ == "__main__":
    main()

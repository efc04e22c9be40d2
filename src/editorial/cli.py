"""CLI interface for the editorial workflow engine."""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="editorial",
    help="Editorial workflow engine for an academic journal",
)
console = Console()


def _run_async(coro):
    """Run async coroutine in sync context."""
    return asyncio.run(coro)


async def _with_session(operation):
    """Run ``operation(session)`` and dispose of the engine afterwards."""
    from editorial.database.connection import close_db, get_session_factory

    try:
        async with get_session_factory()() as session:
            return await operation(session)
    finally:
        await close_db()


def _print_result(result, title: str):
    if result.success:
        console.print(Panel.fit(f"[green]{result.message}[/green]", title=title))
    else:
        console.print(f"[red]Error ({result.error_type}): {result.message}[/red]")
        raise typer.Exit(1)


@app.command(name="init-db")
def init_db():
    """
    Create all database tables.

    For development databases only; it never alters existing tables.
    """
    from editorial.config import get_settings
    from editorial.database.connection import close_db
    from editorial.database.connection import init_db as create_tables

    async def _init():
        try:
            await create_tables()
        finally:
            await close_db()

    url = get_settings().database_url
    console.print(f"[dim]Database: {url.split('@')[1] if '@' in url else url}[/dim]")
    _run_async(_init())
    console.print("[bold green]Database tables created[/bold green]")


@app.command(name="sweep-overdue")
def sweep_overdue(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log each workflow event"),
):
    """
    Mark pending reviews older than the review window as overdue.

    Each overdue review counts as a late review for its reviewer, who gets
    a reminder notification.
    """
    from editorial.config import get_settings
    from editorial.logging import setup_logging
    from editorial.workflow.review import ReviewManagementService

    if verbose:
        setup_logging(level="INFO", format_style=get_settings().log_format)

    result = _run_async(_with_session(lambda db: ReviewManagementService(db).check_overdue_reviews()))
    _print_result(result, "Overdue Reviews")


@app.command(name="expire-assignments")
def expire_assignments(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log each workflow event"),
):
    """Expire editor assignments that were not answered before their deadline."""
    from editorial.config import get_settings
    from editorial.logging import setup_logging
    from editorial.workflow.editors import EditorAssignmentService

    if verbose:
        setup_logging(level="INFO", format_style=get_settings().log_format)

    result = _run_async(_with_session(lambda db: EditorAssignmentService(db).expire_assignments()))
    _print_result(result, "Editor Assignments")


@app.command(name="assign-editor")
def assign_editor(
    article_id: str = typer.Argument(..., help="Article to assign"),
    editor_id: str = typer.Argument(..., help="Editor to handle the article"),
    assigned_by: str = typer.Option("system", "--by", help="Who makes the assignment"),
    deadline_days: Optional[int] = typer.Option(None, "--deadline-days", "-d", help="Days the editor has to respond"),
):
    """
    Assign a handling editor to an article by hand.

    A submitted article moves on to technical check.
    """
    from editorial.workflow.editors import EditorAssignmentService

    result = _run_async(
        _with_session(
            lambda db: EditorAssignmentService(db).assign_editor(article_id, editor_id, assigned_by, deadline_days)
        )
    )
    _print_result(result, "Editor Assignment")


@app.command()
def transitions():
    """Show the workflow status transition table."""
    from editorial.workflow.status import ESTIMATED_COMPLETION, WORKFLOW_TRANSITIONS

    table = Table(title="Workflow Transitions")
    table.add_column("Status", style="cyan")
    table.add_column("Allowed next statuses", style="magenta")
    table.add_column("Estimated completion", style="dim")

    for status, targets in WORKFLOW_TRANSITIONS.items():
        allowed = ", ".join(sorted(t.value for t in targets)) or "[dim](terminal)[/dim]"
        table.add_row(status.value, allowed, ESTIMATED_COMPLETION[status])

    console.print(table)


@app.command()
def status(
    submission_id: Optional[str] = typer.Argument(None, help="Submission to look up"),
    article_id: Optional[str] = typer.Option(None, "--article", "-a", help="Look up by article id instead"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output file for the status (JSON)"),
):
    """Show the workflow status and history of a submission."""
    from editorial.workflow.submission import ArticleSubmissionService

    if not submission_id and not article_id:
        console.print("[red]Provide a submission id or --article[/red]")
        raise typer.Exit(1)

    async def _status(db):
        service = ArticleSubmissionService(db)
        lookup_id = submission_id or await service.find_submission_id(article_id)
        return await service.get_workflow_status(lookup_id)

    result = _run_async(_with_session(_status))
    if not result.success:
        console.print(f"[red]Error ({result.error_type}): {result.message}[/red]")
        raise typer.Exit(1)

    data = result.data
    console.print(
        Panel.fit(
            f"[bold blue]Status:[/bold blue] {data['workflow_status']}\n"
            f"[bold blue]Estimated completion:[/bold blue] {data['estimated_completion']}\n"
            f"[bold blue]Next steps:[/bold blue] {', '.join(data['next_steps'])}",
            title=f"Submission {data['submission_id']}",
        )
    )

    history_table = Table(title="Status History")
    history_table.add_column("#", style="dim", width=3)
    history_table.add_column("Status", style="cyan")
    history_table.add_column("When")
    history_table.add_column("By")
    history_table.add_column("Notes", max_width=50)

    for i, entry in enumerate(data["status_history"], 1):
        actor = "system" if entry.get("system_generated") else entry.get("user_id", "?")
        history_table.add_row(str(i), entry["status"], entry["timestamp"], actor, entry.get("notes") or "")

    console.print(history_table)

    if output:
        with open(output, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        console.print(f"\n[dim]Status saved to {output}[/dim]")


@app.command()
def version():
    """Show version information."""
    from editorial import __version__

    console.print(f"Editorial v{__version__}")


if __name__ == "__main__":
    app()

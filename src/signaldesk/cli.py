"""CLI entry point for Signal Desk."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """Signal Desk: capture, review and publish through webhook workflows."""


# ---------------------------------------------------------------------------
# serve: HTTP API
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", "-h", default=None, help="Bind address (default from settings)")
@click.option("--port", "-p", type=int, default=None, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from signaldesk.config import get_settings
    from signaldesk.log import configure_logging

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(
        "signaldesk.api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# webhooks: job URL registry
# ---------------------------------------------------------------------------


@main.group()
def webhooks() -> None:
    """Manage the webhook URL registered for each job."""


@webhooks.command("list")
def webhooks_list() -> None:
    """Show every configured webhook."""
    from signaldesk.config import get_settings
    from signaldesk.lifecycle.states import WebhookJob
    from signaldesk.storage.database import get_session
    from signaldesk.webhooks.registry import WebhookRegistry

    settings = get_settings()
    with get_session(settings.db_path) as session:
        configs = {c.name: c for c in WebhookRegistry(session).list()}

    table = Table(title="Webhooks")
    table.add_column("Job")
    table.add_column("URL")
    table.add_column("Updated")
    for job in WebhookJob:
        config = configs.get(job.value)
        if config:
            table.add_row(job.value, config.url, config.updated_at.strftime("%Y-%m-%d %H:%M"))
        else:
            table.add_row(job.value, "[dim]not configured[/dim]", "")
    console.print(table)


@webhooks.command("set")
@click.argument("name")
@click.argument("url")
def webhooks_set(name: str, url: str) -> None:
    """Register URL as the webhook for job NAME."""
    from signaldesk.config import get_settings
    from signaldesk.errors import SignalDeskError
    from signaldesk.storage.database import get_session
    from signaldesk.webhooks.registry import WebhookRegistry

    settings = get_settings()
    with get_session(settings.db_path) as session:
        try:
            config = WebhookRegistry(session).upsert(name, url)
        except SignalDeskError as e:
            _fail(e.message)
    console.print(f"[green]Saved[/green] {config.name} -> {config.url}")


@webhooks.command("remove")
@click.argument("name")
def webhooks_remove(name: str) -> None:
    """Remove the webhook for job NAME."""
    from signaldesk.config import get_settings
    from signaldesk.errors import SignalDeskError
    from signaldesk.storage.database import get_session
    from signaldesk.webhooks.registry import WebhookRegistry

    settings = get_settings()
    with get_session(settings.db_path) as session:
        try:
            WebhookRegistry(session).remove(name)
        except SignalDeskError as e:
            _fail(e.message)
    console.print(f"[green]Removed[/green] {name}")


# ---------------------------------------------------------------------------
# signals / insights: store listings
# ---------------------------------------------------------------------------


@main.command()
@click.option("--status", "-s", default=None, help="Only signals in this status")
@click.option("--limit", "-n", default=50, help="Max signals to show")
def signals(status: str | None, limit: int) -> None:
    """List signals, newest first."""
    from signaldesk.config import get_settings
    from signaldesk.errors import SignalDeskError
    from signaldesk.lifecycle.signals import SignalService
    from signaldesk.storage.database import get_session

    settings = get_settings()
    with get_session(settings.db_path) as session:
        try:
            rows, total = SignalService(session).list(status=status, limit=limit)
        except SignalDeskError as e:
            _fail(e.message)

    if not rows:
        console.print("[yellow]No signals found.[/yellow]")
        return

    table = Table(title=f"Signals ({len(rows)} of {total})")
    table.add_column("ID", width=12)
    table.add_column("Status", width=10)
    table.add_column("Title", width=50)
    table.add_column("Source", width=10)
    table.add_column("Created", width=16)
    for s in rows:
        table.add_row(
            s.id[:12],
            s.status,
            s.title[:50],
            s.source or "",
            s.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@main.command()
@click.option("--status", "-s", default=None, help="Only insights in this status")
def insights(status: str | None) -> None:
    """List insights, newest first."""
    from signaldesk.config import get_settings
    from signaldesk.errors import SignalDeskError
    from signaldesk.lifecycle.insights import InsightService
    from signaldesk.storage.database import get_session

    settings = get_settings()
    with get_session(settings.db_path) as session:
        try:
            rows = InsightService(session).list(status=status)
        except SignalDeskError as e:
            _fail(e.message)

    if not rows:
        console.print("[yellow]No insights found.[/yellow]")
        return

    table = Table(title="Insights")
    table.add_column("ID", width=12)
    table.add_column("Status", width=10)
    table.add_column("Core insight", width=60)
    table.add_column("Published", width=40)
    for i in rows:
        table.add_row(i.id[:12], i.status, i.core_insight[:60], i.published_url or "")
    console.print(table)


# ---------------------------------------------------------------------------
# cluster / sweep: batch maintenance
# ---------------------------------------------------------------------------


@main.command()
def cluster() -> None:
    """Send every reviewed signal to the cluster workflow."""
    from signaldesk.config import get_settings
    from signaldesk.errors import SignalDeskError
    from signaldesk.lifecycle.signals import SignalService
    from signaldesk.storage.database import get_session
    from signaldesk.webhooks.dispatcher import WebhookDispatcher
    from signaldesk.webhooks.registry import WebhookRegistry

    settings = get_settings()
    with get_session(settings.db_path) as session:
        dispatcher = WebhookDispatcher.from_settings(WebhookRegistry(session), settings)
        try:
            with console.status("[bold green]Dispatching cluster job..."):
                outcome = SignalService(session, dispatcher).cluster()
        except SignalDeskError as e:
            _fail(e.message)
        finally:
            dispatcher.close()

    if outcome.count == 0:
        console.print("[yellow]No reviewed signals to cluster.[/yellow]")
    else:
        console.print(f"[green]Clustering triggered for {outcome.count} signals[/green]")


@main.command()
def sweep() -> None:
    """Revert stuck in-flight insights and archive expired placeholders."""
    from signaldesk.config import get_settings
    from signaldesk.lifecycle.sweeper import sweep_stale
    from signaldesk.storage.database import get_session

    settings = get_settings()
    with get_session(settings.db_path) as session:
        report = sweep_stale(
            session,
            stale_after=settings.stale_after,
            placeholder_window=settings.dedup_window,
        )

    console.print(f"  Insights reverted to draft: {report.insights_reverted}")
    console.print(f"  Placeholders archived:      {report.placeholders_archived}")


def _fail(message: str) -> None:
    """Print an error and exit non-zero."""
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise SystemExit(1)

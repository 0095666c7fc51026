"""
LifeContext - CLI Entry Point.

Usage:
    lifecontext summary      Onboarding funnel report
    lifecontext status       Completion flag, variant and in-flight draft
    lifecontext reset        Clear onboarding state on this device
    lifecontext serve        Run the web API
    lifecontext --help       Show help
"""

import typer
from rich.console import Console
from rich.table import Table

from onboarding.analytics import ONBOARDING_ANALYTICS_KEY, AnalyticsAggregator
from onboarding.state import StepId
from onboarding.storage import (
    ONBOARDING_COMPLETE_KEY,
    ONBOARDING_VARIANT_KEY,
    DraftStore,
    VariantAssigner,
    get_data_reclamation_enabled,
    get_onboarding_complete,
)

app = typer.Typer(
    name="lifecontext",
    help="LifeContext - onboarding engine tools.",
    add_completion=False,
)
console = Console()


def _store():
    from lifecontext.logging_config import configure_logging
    from lifecontext.storage import get_store

    configure_logging()
    return get_store()


@app.command()
def summary() -> None:
    """Show onboarding completion rate, dwell times and drop-off."""
    report = AnalyticsAggregator(_store()).summarize()

    totals = Table(title="Onboarding sessions")
    totals.add_column("Total", justify="right")
    totals.add_column("Completed", justify="right")
    totals.add_column("Skipped", justify="right")
    totals.add_column("Completion rate", justify="right")
    totals.add_row(
        str(report.total_sessions),
        str(report.completed_sessions),
        str(report.skipped_sessions),
        f"{report.completion_rate:.1%}",
    )
    console.print(totals)

    if report.total_sessions == 0:
        console.print("[dim]No onboarding sessions recorded yet.[/dim]")
        return

    steps = Table(title="Per-step funnel")
    steps.add_column("Step")
    steps.add_column("Avg dwell (ms)", justify="right")
    steps.add_column("Drop-offs", justify="right")
    for step_id in StepId:
        avg = report.avg_step_duration_ms.get(step_id)
        drops = report.drop_off_counts.get(step_id, 0)
        if avg is None and drops == 0:
            continue
        steps.add_row(step_id.value, "-" if avg is None else str(avg), str(drops))
    console.print(steps)


@app.command()
def status() -> None:
    """Show onboarding state stored for this device."""
    store = _store()

    variant = VariantAssigner(store).get()
    draft = DraftStore(store).load()

    console.print(f"Onboarding complete: {'yes' if get_onboarding_complete(store) else 'no'}")
    console.print(f"Variant: {variant.value if variant else '[dim]unassigned[/dim]'}")
    console.print(f"Data reclamation: {'on' if get_data_reclamation_enabled(store) else 'off'}")

    if draft is None:
        console.print("Draft: [dim]none[/dim]")
        return

    console.print(
        f"Draft: session {draft.session_id}, {draft.intent.value}/{draft.mode.value}, "
        f"step index {draft.current_step_index}, updated {draft.updated_at}"
    )


@app.command()
def reset(
    all_data: bool = typer.Option(False, "--all", help="Also clear the analytics log and the A/B variant"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
) -> None:
    """Clear the in-flight draft and completion flag so onboarding shows again."""
    if not yes:
        what = "draft, completion flag, analytics log and variant" if all_data else "draft and completion flag"
        typer.confirm(f"Clear onboarding {what}?", abort=True)

    store = _store()
    DraftStore(store).clear()
    store.delete(ONBOARDING_COMPLETE_KEY)

    if all_data:
        store.delete(ONBOARDING_ANALYTICS_KEY)
        store.delete(ONBOARDING_VARIANT_KEY)

    console.print("[green]Onboarding state cleared.[/green]")


@app.command()
def health() -> None:
    """Check configuration."""
    from lifecontext.config import get_settings

    console.print("\n[bold]LifeContext Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.lifecontext_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Storage: {settings.storage_backend}")

        if settings.storage_backend == "supabase":
            if settings.supabase_url and settings.supabase_service_role_key:
                console.print("✅ Supabase credentials configured")
            else:
                console.print("❌ Supabase URL or service role key missing")
                raise typer.Exit(1)
        elif settings.storage_backend == "file":
            console.print(f"   Store file: {settings.storage_path}")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from lifecontext import __version__

    console.print(f"LifeContext version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the web API server."""
    import uvicorn

    console.print("\n[bold green]LifeContext API[/bold green]")
    console.print(f"Starting server on http://localhost:{port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "lifecontext.web.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()

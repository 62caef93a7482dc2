"""
Thittam - CLI Entry Point.

Usage:
    thittam steps --role organizer     Show the step sequence for a role
    thittam progress <user_id>         Show a user's saved onboarding progress
    thittam reset <user_id>            Clear a user's saved onboarding progress
    thittam health                     Check configuration
    thittam serve                      Start the API server
"""

import logging
import sys

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="thittam",
    help="Thittam - account onboarding service.",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Setup logging with visible output."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    setup_logging(verbose)


@app.command()
def steps(
    role: str = typer.Option(None, "--role", "-r", help="attendee or organizer (omit for no role yet)"),
    variant: str = typer.Option(None, "--variant", help="Organizer flow: organization_setup or about"),
) -> None:
    """Show the onboarding steps for a role."""
    from onboarding.state import Role
    from onboarding.steps import STEP_LABELS, FlowVariant, steps_for
    from onboarding.wizard import get_flow_variant

    try:
        selected = Role(role) if role else None
        flow = FlowVariant(variant) if variant else get_flow_variant()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Onboarding steps ({selected.value if selected else 'no role'})")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Label")
    for index, step in enumerate(steps_for(selected, flow)):
        table.add_row(str(index), step.value, STEP_LABELS[step])
    console.print(table)


@app.command()
def progress(user_id: str = typer.Argument(..., help="User UUID")) -> None:
    """Show a user's saved onboarding progress."""
    from onboarding.wizard import get_persistence

    saved = get_persistence(user_id).load()
    if saved.is_empty:
        console.print(f"[dim]No saved onboarding progress for {user_id}[/dim]")
        return

    answers = saved.answers
    answered = [
        key for key, value in answers.to_dict().items()
        if value is not None and key != "role"
    ]
    console.print(
        Panel.fit(
            f"Role: [bold]{answers.role.value if answers.role else '-'}[/bold]\n"
            f"Step index: {saved.step_index}\n"
            f"Saved at: {saved.saved_at.isoformat()}\n"
            f"Answered: {', '.join(answered) or '-'}",
            title=f"Onboarding progress: {user_id}",
            border_style="green",
        )
    )


@app.command()
def reset(
    user_id: str = typer.Argument(..., help="User UUID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear a user's saved onboarding progress."""
    from onboarding.wizard import get_persistence

    if not yes and not typer.confirm(f"Clear onboarding progress for {user_id}?"):
        raise typer.Exit(0)

    get_persistence(user_id).clear()
    console.print(f"[green]OK[/green] Cleared onboarding progress for {user_id}")


@app.command()
def health() -> None:
    """Check configuration."""
    from thittam.config import get_settings

    console.print("\n[bold]Thittam Health Check[/bold]\n")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)

    console.print("[green]OK[/green] Configuration loaded")
    console.print(f"   Environment: {settings.app_env}")
    console.print(f"   Onboarding store: {settings.onboarding_store}")
    console.print(f"   Progress TTL: {settings.onboarding_progress_ttl_hours}h")

    if settings.onboarding_store == "supabase":
        if settings.supabase_url.startswith("https://"):
            console.print("[green]OK[/green] Supabase URL configured")
        else:
            console.print("[red]FAIL[/red] Supabase URL missing or invalid")
            raise typer.Exit(1)

    console.print("\n[green]All checks passed![/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from thittam import __version__

    console.print(f"Thittam version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]Thittam API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "thittam.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


if __name__ == "__main__":
    app()

"""Command-line interface for the snack bot."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from snack_bot.config import settings

app = typer.Typer(
    name="snack-bot",
    help="Snack bot - submits the daily snack order form through your browser",
    add_completion=False,
)
console = Console()

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_BUSY = 2
EXIT_ABANDONED = 3


@app.command()
def run() -> None:
    """Run the form submission once."""
    from snack_bot.core.errors import AutomationError, RunAbandonedError, RunInProgressError
    from snack_bot.core.orchestrator import run_once
    from snack_bot.utils.logging import configure_logging
    
    configure_logging()
    try:
        result = asyncio.run(run_once())
    except RunAbandonedError as e:
        console.print(f"⚠️  {e}")
        raise typer.Exit(code=EXIT_ABANDONED)
    except RunInProgressError as e:
        console.print(f"⏳ {e}")
        raise typer.Exit(code=EXIT_BUSY)
    except AutomationError as e:
        console.print(f"❌ {type(e).__name__}: {e}")
        raise typer.Exit(code=EXIT_FATAL)
    
    console.print(f"🎉 Form submitted ({result.checkbox.value if result.checkbox else 'no checkbox'})")


@app.command()
def serve(
    host: str = typer.Option(settings.host, help="Host to bind to"),
    port: int = typer.Option(settings.port, help="Port to bind to"),
    reload: bool = typer.Option(settings.reload, help="Enable auto-reload"),
) -> None:
    """Start the HTTP trigger."""
    import uvicorn
    
    console.print(f"🚀 Starting snack bot on {host}:{port}")
    uvicorn.run(
        "snack_bot.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def schedule(
    cron: str = typer.Option(settings.schedule_cron, help="Cron expression (M H * * D)"),
) -> None:
    """Run the form submission on a weekly schedule."""
    from snack_bot.core.orchestrator import run_once
    from snack_bot.core.scheduler import create_schedule_runner
    from snack_bot.utils.logging import configure_logging
    
    configure_logging()
    try:
        runner = create_schedule_runner(cron, run_once, run_timeout=settings.run_timeout)
    except ValueError as e:
        console.print(f"❌ Invalid schedule: {e}")
        raise typer.Exit(code=EXIT_FATAL)
    
    console.print(f"⏰ Scheduled at {cron}")
    asyncio.run(runner.run_forever())


@app.command()
def resolve() -> None:
    """Show which browser and profile would be used."""
    from snack_bot.browser.locator import create_browser_locator
    from snack_bot.core.orchestrator import _locator_environ
    
    locator = create_browser_locator(environ=_locator_environ(settings))
    candidates = locator.resolve_browser_candidates()
    environment = locator.resolve()
    
    table = Table(title="Browser Candidates")
    table.add_column("Path", style="cyan")
    table.add_column("Vendor", style="green")
    for candidate in candidates:
        table.add_row(candidate.path, candidate.vendor.value if candidate.vendor else "-")
    console.print(table)
    
    if environment.browser_path:
        console.print(f"✅ Browser: {environment.browser_type.value} ({environment.browser_path})")
    else:
        console.print("❌ No supported browser found")
    
    if environment.user_data_dir:
        console.print(f"✅ Profile: {environment.user_data_dir}")
    elif settings.allow_bundled_fallback:
        console.print("⚠️  No profile found, bundled Chromium will be used")
    else:
        console.print("❌ No profile found")


@app.command()
def config() -> None:
    """Show current configuration."""
    table = Table(title="Snack Bot Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    
    table.add_row("Form URL", settings.form_url)
    table.add_row("Checkbox Label", settings.target_checkbox_label)
    table.add_row("Identity Domain", settings.identity_domain)
    table.add_row("Browser Path", str(settings.browser_path))
    table.add_row("User Data Dir", str(settings.user_data_dir))
    table.add_row("Browser Headless", str(settings.browser_headless))
    table.add_row("Bundled Fallback", str(settings.allow_bundled_fallback))
    table.add_row("Poll Ceiling (s)", str(settings.poll_ceiling))
    table.add_row("Schedule", settings.schedule_cron)
    table.add_row("Log Level", settings.log_level)
    
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from snack_bot import __version__
    console.print(f"Snack Bot v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()

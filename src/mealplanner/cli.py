"""Meal planner command line interface."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlmodel import Session

app = typer.Typer(
    name="mealplanner",
    help="WHOOP-driven weekly meal planning",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs")):
    """WHOOP-driven weekly meal planning."""
    from mealplanner.config.log import configure_logging

    configure_logging("DEBUG" if verbose else None)


def _session() -> Session:
    from mealplanner.db import get_engine, init_db

    asyncio.run(init_db())
    return Session(get_engine())


def _user(user_id: str | None) -> str:
    from mealplanner.config.settings import settings

    return user_id or settings.planner.default_user_id


@app.command()
def analyze(
    user_id: str = typer.Option(None, help="WHOOP user id"),
    days: int = typer.Option(7, help="Number of most recent days to analyze"),
):
    """Analyze stored WHOOP data."""
    from mealplanner.analysis.whoop import describe_analysis
    from mealplanner.planner import MealPlanner

    console.print(Panel("WHOOP Analysis", style="blue"))

    with _session() as session:
        analysis = MealPlanner().analysis_for(session, _user(user_id), days)

    table = Table(title=f"{analysis.data_points} days ({analysis.date_range.start} - {analysis.date_range.end})")
    table.add_column("Metric", style="cyan")
    table.add_column("Average", style="white")
    table.add_column("Trend", style="green")

    trends = analysis.trends.model_dump()
    for metric, value in analysis.averages.model_dump().items():
        table.add_row(metric, f"{value:.1f}", trends.get(metric, ""))
    console.print(table)

    state = analysis.physiological_state
    console.print(
        f"\n[cyan]State:[/cyan] fatigue {state.fatigue_level}, recovery {state.recovery_status}, "
        f"metabolic demand {state.metabolic_demand}, sleep {state.sleep_quality}"
    )
    console.print(f"\n{describe_analysis(analysis)}")


@app.command()
def plan(
    user_id: str = typer.Option(None, help="WHOOP user id"),
    days: int = typer.Option(7, help="Days of WHOOP data to analyze"),
    regenerate: bool = typer.Option(False, help="Draw a new plan instead of the current version"),
    timestamp: int = typer.Option(None, help="Seed for a reproducible draw"),
    meal_type: list[str] = typer.Option(None, help="Restrict to meal types"),
    tag: list[str] = typer.Option(None, help="Require at least one of these tags"),
    exclude_tag: list[str] = typer.Option(None, help="Exclude meals with these tags"),
):
    """Generate a weekly meal plan from the library."""
    from mealplanner.errors import MealPlannerError
    from mealplanner.planner import MealPlanner
    from mealplanner.selection.service import SLOT_TYPES, SelectionOptions

    console.print(Panel("Weekly Meal Plan", style="blue"))

    options = SelectionOptions(
        regenerate=regenerate,
        timestamp=timestamp,
        meal_types=meal_type or None,
        tags=tag or None,
        exclude_tags=exclude_tag or None,
    )

    with _session() as session:
        try:
            generated = MealPlanner().generate(session, _user(user_id), options, days=days)
        except MealPlannerError as e:
            console.print(f"[red]✗ {e.message}[/red]")
            raise typer.Exit(code=1) from e

    result = generated.result
    table = Table(title="Plan")
    table.add_column("Day", style="cyan")
    planned = {s.meal_type for s in result.meals.slots}
    slot_types = [t for t in SLOT_TYPES if t in planned]
    for slot_type in slot_types:
        table.add_column(slot_type, style="white")

    for day, slots in result.meals.by_day().items():
        cells = []
        for slot_type in slot_types:
            slot = slots.get(slot_type)
            if slot is None:
                cells.append("-")
            else:
                cells.append(slot.meal.name + (" (repeat)" if slot.reused else ""))
        table.add_row(day, *cells)

    console.print(table)
    console.print(f"\n[bold]{result.selection_summary}[/bold]")
    console.print(f"\n{result.whoop_insights}")
    if not result.image_class_validation.valid:
        console.print(
            f"[yellow]{result.image_class_validation.class_b} planned meals are missing images[/yellow]"
        )


@app.command("library-stats")
def library_stats():
    """Show meal library statistics."""
    from mealplanner.planner import MealPlanner

    console.print(Panel("Meal Library", style="blue"))

    with _session() as session:
        stats = MealPlanner().library_status(session)

    table = Table(title="Meals by type")
    table.add_column("Type", style="cyan")
    table.add_column("Count", style="green")
    for meal_type, count in stats.meals_by_type.items():
        table.add_row(meal_type, str(count))
    console.print(table)

    console.print(f"Total: {stats.total_meals}, with images: {stats.meals_with_images}")
    if stats.ready_for_generation:
        console.print("[green]✓ Ready for plan generation[/green]")
    else:
        console.print("[yellow]✗ Not enough meals with images for plan generation[/yellow]")


@app.command("import-meals")
def import_meals(path: Path = typer.Argument(..., help="CSV or JSON file of meals")):
    """Import meals into the library from a CSV or JSON file."""
    from mealplanner.db import upsert_meals
    from mealplanner.errors import LibraryParseError
    from mealplanner.library.parsers import parse_meals_csv, parse_meals_json

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            report = parse_meals_json(text)
        else:
            report = parse_meals_csv(text)
    except LibraryParseError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(code=1) from e

    with _session() as session:
        stored = upsert_meals(session, report.meals)

    console.print(f"[green]✓ Imported {stored} of {report.total} meals[/green]")
    for failure in report.failed:
        console.print(f"[red]  Row {failure.index} ({failure.meal_id}): {failure.error}[/red]")


@app.command()
def sync(
    user_id: str = typer.Option(None, help="WHOOP user id to store records under"),
    days: int = typer.Option(7, help="Number of days to pull"),
):
    """Pull recent WHOOP data into the database."""
    from mealplanner.adapters.whoop import sync_whoop_data
    from mealplanner.db import init_db

    console.print(Panel("Syncing WHOOP", style="blue"))

    async def do_sync() -> int:
        await init_db()
        return await sync_whoop_data(_user(user_id), days)

    try:
        stored = asyncio.run(do_sync())
    except Exception as e:
        console.print(f"[red]✗ WHOOP: {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]✓ Stored {stored} daily records[/green]")


@app.command("whoop-auth")
def whoop_auth():
    """Run the WHOOP OAuth flow and save tokens locally."""
    from mealplanner.adapters.whoop import WHOOP_AVAILABLE, WhoopClient, _token_file
    from mealplanner.config.settings import settings

    if not WHOOP_AVAILABLE:
        console.print("[red]whoopy library not installed. Run: pip install '.[whoop]'[/red]")
        raise typer.Exit(code=1)

    client_id = settings.whoop.client_id
    client_secret = settings.whoop.client_secret.get_secret_value()
    if not client_id or not client_secret:
        console.print("[red]Set WHOOP_CLIENT_ID and WHOOP_CLIENT_SECRET in .env[/red]")
        raise typer.Exit(code=1)

    console.print("A browser window will open. Log in to WHOOP and authorize the app.")
    client = WhoopClient.auth_flow(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=settings.whoop.redirect_uri,
    )
    token_file = _token_file()
    token_file.parent.mkdir(parents=True, exist_ok=True)
    client.save_token(str(token_file))
    console.print(f"[green]✓ Tokens saved to {token_file}[/green]")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
):
    """Run the HTTP API."""
    from mealplanner.api import run_server

    run_server(host=host, port=port)


@app.command()
def scheduler():
    """Run the background scheduler (daily sync, cache eviction)."""
    from mealplanner.scheduler import run_scheduler

    try:
        asyncio.run(run_scheduler())
    except KeyboardInterrupt:
        console.print("Scheduler stopped")


@app.command()
def version():
    """Show meal planner version."""
    from mealplanner import __version__

    console.print(f"mealplanner v{__version__}")


if __name__ == "__main__":
    app()

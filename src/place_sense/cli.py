"""CLI for PlaceSense.

Commands:
    compose <snapshot.json>                 - Compose markers from a JSON snapshot
    suggest <award_id>                      - Suggest a place id for an award record
    review <award_id>                       - Interactively confirm/reject suggestions
    validate <award_id> <place_id> <status> - Record a decision directly
    backfill [--no-seed]                    - Fold award rows into curated locations
    setup                                   - Create database tables
    stats                                   - Show database statistics
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from place_sense.clients.places import PlacesClient, PlacesClientError
from place_sense.db import async_session_factory, init_db
from place_sense.models.enums import ValidationStatus
from place_sense.resolution.candidate_scorer import SuggestionResult
from place_sense.resolution.composition import MarkerCompositionPipeline, MarkerDescriptor
from place_sense.resolution.validation import ValidationWorkflow
from place_sense.schemas import ComposeRequest
from place_sense.services.location_store import AwardRestaurantNotFoundError, LocationStore
from place_sense.services.place_suggestion import PlaceSuggestionService

app = typer.Typer(
    name="place-sense",
    help="PlaceSense — location identity resolution and marker composition",
    no_args_is_help=True,
)
console = Console()

DECISIONS = {
    "c": ValidationStatus.CONFIRMED,
    "r": ValidationStatus.REJECTED,
    "u": ValidationStatus.UNSURE,
}


def run_async(coro):
    """Run an async coroutine in sync context."""
    return asyncio.run(coro)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _marker_table(markers: list[MarkerDescriptor]) -> Table:
    table = Table(title=f"Markers ({len(markers)})")
    table.add_column("Marker", style="cyan")
    table.add_column("Category")
    table.add_column("Source", style="dim")
    table.add_column("Name")
    table.add_column("Position", justify="right")
    table.add_column("Rating", justify="right")
    table.add_column("Award")

    for m in markers:
        position = f"{m.position.lat:.5f}, {m.position.lng:.5f}" if m.position else "-"
        rating = f"{m.display_rating:.1f}" if m.display_rating is not None else "-"
        award = m.award_tier.label if m.award_tier.is_awarded else ""
        if m.green_star:
            award = f"{award} +green".strip()
        table.add_row(
            m.marker_id,
            m.category.value if m.category else "search",
            m.source.value,
            m.name,
            position,
            rating,
            award,
        )
    return table


def _print_suggestion(result: SuggestionResult) -> None:
    if result.has_place_id:
        console.print(
            f"[green]Already linked[/green] → {result.existing_place_id}"
        )
        return
    if not result.has_results:
        console.print("[yellow]No candidates found.[/yellow]")
        return

    place = result.suggested_place
    if place is not None:
        distance = f"{place.distance_meters:.0f} m" if place.distance_meters is not None else "?"
        console.print(Panel(
            f"[bold]Place:[/bold] {place.name}\n"
            f"[bold]Id:[/bold] {place.id}\n"
            f"[bold]Address:[/bold] {place.formatted_address or '-'}\n"
            f"[bold]Distance:[/bold] {distance}\n"
            f"[bold]Confidence:[/bold] {result.confidence_score}"
            + ("\n[bold green]Auto-applied[/bold green]" if result.auto_applied else ""),
            title=f"Suggestion for award {result.award_record_id}",
        ))

    table = Table(title="Candidates")
    table.add_column("Place Id", style="cyan")
    table.add_column("Name")
    table.add_column("Confidence", justify="right")
    table.add_column("Distance", justify="right")
    table.add_column("Signals", style="dim")
    for match in result.candidates:
        table.add_row(
            match.candidate.id,
            match.candidate.display_name,
            str(match.confidence),
            f"{match.distance_meters:.0f} m" if match.distance_meters is not None else "-",
            ", ".join(f"{k}={v:.2f}" for k, v in match.signal_scores.items()),
        )
    console.print(table)


@app.command()
def compose(
    snapshot: Annotated[Path, typer.Argument(help="JSON file with lv/award/want-to-go records")],
    search: Annotated[
        bool, typer.Option("--search", help="Show search results instead of composing")
    ] = False,
    no_lv: Annotated[bool, typer.Option("--no-lv", help="Turn the LV filter off")] = False,
    no_award: Annotated[
        bool, typer.Option("--no-award", help="Turn the award filter off")
    ] = False,
):
    """Compose markers from a snapshot file and print them.

    The file has the same shape as the POST /markers/compose body.
    """
    if not snapshot.is_file():
        console.print(f"[red]Error:[/red] File not found: {snapshot}")
        raise typer.Exit(1)

    try:
        request = ComposeRequest.model_validate(json.loads(snapshot.read_text()))
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error:[/red] Invalid snapshot: {escape(str(e))}")
        raise typer.Exit(1) from None

    filters = request.filters.model_copy(update={
        "lv_markers": request.filters.lv_markers and not no_lv,
        "award_markers": request.filters.award_markers and not no_award,
        "show_search_results": request.filters.show_search_results or search,
    })

    markers = MarkerCompositionPipeline().compose(
        request.lv_records,
        request.award_records,
        request.want_to_go_records,
        request.user_context(),
        filters.to_filters(),
        search_results=request.search_results,
    )
    if not markers:
        console.print("[yellow]No markers.[/yellow]")
        return
    console.print(_marker_table(markers))


@app.command()
def suggest(
    award_id: Annotated[int, typer.Argument(help="Award record id")],
):
    """Suggest a place id for an award record (may auto-apply at high confidence)."""
    async def _suggest():
        await init_db()
        async with async_session_factory() as session, PlacesClient() as places:
            service = PlaceSuggestionService(LocationStore(session), places)
            result = await service.suggest_place(award_id)
            if result.auto_applied:
                await session.commit()
            return result

    try:
        result = run_async(_suggest())
    except AwardRestaurantNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    except PlacesClientError as e:
        console.print(f"[red]Place search failed:[/red] {e}")
        raise typer.Exit(1) from None

    _print_suggestion(result)


@app.command()
def review(
    award_id: Annotated[int, typer.Argument(help="Award record id")],
    user_id: Annotated[
        str | None, typer.Option("--user", "-u", help="Reviewer id to record")
    ] = None,
):
    """Review suggestions interactively: [c]onfirm, [r]eject, [u]nsure, [s]kip."""
    async def _review():
        await init_db()
        async with async_session_factory() as session, PlacesClient() as places:
            service = PlaceSuggestionService(LocationStore(session), places)
            result = await service.suggest_place(award_id)
            if result.auto_applied:
                await session.commit()
            _print_suggestion(result)

            workflow = ValidationWorkflow()
            submit = service.submitter(user_id=user_id)

            while (prompt := workflow.offer(result)) is not None:
                console.print(
                    f"\n[bold]{prompt.place.name}[/bold] ({prompt.place.id}) "
                    f"confidence={prompt.confidence}"
                )
                choice = typer.prompt("[c]onfirm / [r]eject / [u]nsure / [s]kip", default="s")
                status = DECISIONS.get(choice.strip().lower()[:1])
                if status is None:
                    console.print("[yellow]Skipped.[/yellow]")
                    return

                outcome = await workflow.decide(status, submit)
                if not outcome.succeeded:
                    await session.rollback()
                    console.print(f"[red]Submit failed:[/red] {outcome.error}")
                    return
                await session.commit()

                if outcome.auto_updated:
                    console.print("[green]Already applied; acknowledged.[/green]")
                elif outcome.unlinked:
                    console.print("[yellow]Auto-applied link cleared.[/yellow]")
                else:
                    console.print(f"[green]Recorded {status.value}.[/green]")
                if status == ValidationStatus.CONFIRMED:
                    return

            if result.has_results and not result.has_place_id:
                console.print("[dim]Nothing left above the review threshold.[/dim]")

    try:
        run_async(_review())
    except AwardRestaurantNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    except PlacesClientError as e:
        console.print(f"[red]Place search failed:[/red] {e}")
        raise typer.Exit(1) from None


@app.command()
def validate(
    award_id: Annotated[int, typer.Argument(help="Award record id")],
    place_id: Annotated[str, typer.Argument(help="Candidate place id")],
    status: Annotated[
        ValidationStatus, typer.Argument(help="confirmed, rejected or unsure")
    ],
    user_id: Annotated[
        str | None, typer.Option("--user", "-u", help="Reviewer id to record")
    ] = None,
):
    """Record a decision about a candidate place id."""
    if status == ValidationStatus.PENDING:
        console.print("[red]Error:[/red] status must be confirmed, rejected or unsure")
        raise typer.Exit(1)

    async def _validate():
        await init_db()
        async with async_session_factory() as session, PlacesClient() as places:
            service = PlaceSuggestionService(LocationStore(session), places)
            result = await service.validate_place(award_id, place_id, status, user_id=user_id)
            await session.commit()
            return result

    try:
        result = run_async(_validate())
    except (AwardRestaurantNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if result.auto_updated:
        console.print("[green]Already auto-applied; acknowledged.[/green]")
    elif result.unlinked:
        console.print("[yellow]Auto-applied link cleared.[/yellow]")
    else:
        console.print(f"[green]Recorded {status.value}.[/green]")


@app.command()
def backfill(
    seed: Annotated[
        bool,
        typer.Option("--seed/--no-seed", help="Create locations for unmatched award rows"),
    ] = True,
):
    """Fold award-dataset rows into the curated locations table."""
    async def _backfill():
        await init_db()
        async with async_session_factory() as session:
            report = await LocationStore(session).backfill_award_locations(seed=seed)
            await session.commit()
            return report

    report = run_async(_backfill())

    console.print(Panel(
        f"[bold]Refreshed:[/bold] {report.refreshed}\n"
        f"[bold]Linked by name:[/bold] {report.linked}\n"
        f"[bold]Seeded:[/bold] {report.seeded}",
        title="Award Backfill",
    ))


@app.command("setup")
def setup():
    """Create the database tables if they don't exist."""
    async def _init():
        await init_db()

    try:
        run_async(_init())
    except Exception as e:
        console.print(f"[red]Error initializing schema:[/red] {e}")
        raise typer.Exit(1) from None

    console.print("[green]Database schema initialized.[/green]")
    console.print("\nYou can now run:")
    console.print("  [cyan]place-sense suggest <award_id>[/cyan]  - Suggest a place id")
    console.print("  [cyan]place-sense stats[/cyan]               - View statistics")
    console.print("  [cyan]place-sense --help[/cyan]              - See all commands")


@app.command()
def stats():
    """Show database statistics."""
    async def _stats():
        await init_db()
        async with async_session_factory() as session:
            return await LocationStore(session).stats()

    result = run_async(_stats())
    unlinked = result.award_restaurants - result.linked_award_restaurants

    console.print(Panel(
        f"[bold]Locations:[/bold] {result.locations}\n"
        f"[bold]Award restaurants:[/bold] {result.award_restaurants}\n"
        f"[bold]Linked:[/bold] {result.linked_award_restaurants}\n"
        f"[bold]Unlinked:[/bold] {unlinked}",
        title="PlaceSense Statistics",
    ))

    if result.validations:
        table = Table(title="Validations by Status")
        table.add_column("Status")
        table.add_column("Count", justify="right")
        for status_value, count in sorted(result.validations.items()):
            table.add_row(status_value, str(count))
        console.print(table)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""OpsConsole CLI.

Commands:
- init: Initialize catalog database schema
- detect-changes: Run one order change detection pass
- compare-order: Compare one order across Shopify and ShipStation
- suggest-picks: Suggest pick numbers for catalog variants
- duplicates: List duplicate SKUs and pick numbers
- web serve: Run the FastAPI app
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from opsconsole.catalog.pick_allocator import normalize_pick_number, rebuild, suggest_next
from opsconsole.catalog.repository import CatalogRepository
from opsconsole.catalog.validation import (
    find_duplicate_pick_numbers,
    find_duplicate_skus,
    validate_pick_number_uniqueness,
)
from opsconsole.config import get_config
from opsconsole.core.errors import VariantNotFoundError
from opsconsole.core.logging import configure_logging
from opsconsole.db.connection import close_db, get_session, init_db
from opsconsole.integration.shipstation_client import ShipStationClient
from opsconsole.integration.shopify_client import ShopifyClient
from opsconsole.models import AddedItem, PickNumberUpdate, QuantityChangedItem, RemovedItem
from opsconsole.orders.comparator import compare_orders
from opsconsole.orders.factory import build_change_detection_job, close_change_detection_job

app = typer.Typer(
    name="opsconsole",
    help="OpsConsole - order reconciliation and warehouse pick numbers",
    no_args_is_help=True,
)
web_cli = typer.Typer(help="Web UI / API")
app.add_typer(web_cli, name="web")

console = Console()


@app.callback()
def main():
    configure_logging()


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize catalog database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        if drop:
            console.print("[yellow]Dropping existing tables...[/yellow]")
        await init_db(drop=drop)
        await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="detect-changes")
def detect_changes(
    hours: int | None = typer.Option(None, "--hours", help="Scan window in hours"),
    auto_tag: bool | None = typer.Option(
        None, "--auto-tag/--no-auto-tag", help="Override automatic tagging"
    ),
):
    """Run one order change detection pass and print its statistics."""
    config = get_config()
    if hours is not None:
        config.change_detector.hours_to_scan = hours
    if auto_tag is not None:
        config.change_detector.auto_tag = auto_tag

    try:
        job = build_change_detection_job(config)
    except KeyError as e:
        console.print(f"[red]✗[/red] Missing platform credentials: {e}")
        raise typer.Exit(1)

    async def _run():
        try:
            return await job.run()
        finally:
            await close_change_detection_job(job)

    stats = asyncio.run(_run())

    table = Table(title="Order Change Detection")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Orders scanned", str(stats.orders_scanned))
    table.add_row("Orders skipped (cached)", str(stats.orders_skipped))
    table.add_row("Orders with changes", str(stats.changes_detected))
    table.add_row("New changes", str(stats.new_changes))
    table.add_row("Orders tagged", str(stats.orders_tagged))
    table.add_row("Errors", str(len(stats.errors)))
    table.add_row("Duration", f"{stats.duration_seconds:.1f}s")
    console.print(table)

    for error in stats.errors[:10]:
        label = f"#{error.order_number}" if error.order_number else "run"
        console.print(f"  [yellow]⚠[/yellow] {label}: {error.error}", style="dim")


@app.command(name="compare-order")
def compare_order_cmd(
    order_number: str = typer.Argument(..., help="Order number, with or without '#'"),
):
    """Compare one order's items between Shopify and ShipStation."""
    config = get_config()
    order_number = order_number.lstrip("#")

    async def _compare():
        async with ShopifyClient(config.shopify) as shopify, ShipStationClient(
            config.shipstation
        ) as shipstation:
            fulfillment_order = await shipstation.get_order_by_number(order_number)
            if fulfillment_order is None:
                return None, "ShipStation"
            commerce_order = await shopify.get_order_by_number(order_number)
            if commerce_order is None:
                return None, "Shopify"
            return compare_orders(commerce_order, fulfillment_order), None

    try:
        comparison, missing_in = asyncio.run(_compare())
    except KeyError as e:
        console.print(f"[red]✗[/red] Missing platform credentials: {e}")
        raise typer.Exit(1)

    if comparison is None:
        console.print(f"[red]✗[/red] Order {order_number} not found in {missing_in}")
        raise typer.Exit(1)

    if not comparison.has_changes:
        console.print(
            f"[bold green]✓[/bold green] Order #{order_number} matches "
            f"({comparison.commerce_item_count} products)"
        )
        return

    table = Table(title=f"Order #{order_number} changes")
    table.add_column("Change", style="cyan")
    table.add_column("SKU")
    table.add_column("Name")
    table.add_column("Shopify", justify="right")
    table.add_column("ShipStation", justify="right")

    for change in comparison.changes:
        if isinstance(change, QuantityChangedItem):
            table.add_row(
                change.type,
                change.sku,
                change.name or "",
                str(change.shopify_quantity),
                str(change.fulfillment_quantity),
            )
        elif isinstance(change, RemovedItem):
            table.add_row(change.type, change.sku, change.name or "", str(change.quantity), "0")
        elif isinstance(change, AddedItem):
            table.add_row(change.type, change.sku, change.name or "", "0", str(change.quantity))

    console.print(table)


@app.command(name="suggest-picks")
def suggest_picks(
    variant_ids: list[str] = typer.Argument(..., help="Variant IDs"),
    save: bool = typer.Option(False, "--save", help="Validate and save the suggestions"),
):
    """Suggest pick numbers for variants, optionally saving them."""

    async def _suggest():
        try:
            return await _suggest_in_session()
        finally:
            await close_db()

    async def _suggest_in_session():
        async with get_session() as session:
            repo = CatalogRepository(session)
            state = rebuild(await repo.list_active_variants())
            current = {
                vid: normalize_pick_number(state.variants[vid].pick_number)
                for vid in variant_ids
                if vid in state.variants
            }

            suggestions: dict[str, int] = {}
            for variant_id in variant_ids:
                try:
                    suggestions[variant_id] = suggest_next(state, variant_id)
                except VariantNotFoundError as e:
                    console.print(f"[yellow]⚠[/yellow] {e}")

            conflicts = []
            if save and suggestions:
                updates = [
                    PickNumberUpdate(id=k, pick_number=str(v))
                    for k, v in suggestions.items()
                ]
                existing = await repo.find_existing_pick_numbers(
                    [u.pick_number for u in updates], exclude_ids=suggestions.keys()
                )
                conflicts = validate_pick_number_uniqueness(updates, existing)
                if not conflicts:
                    await repo.apply_pick_numbers(
                        {k: str(v) for k, v in suggestions.items()}
                    )

            return state, current, suggestions, conflicts

    state, current, suggestions, conflicts = asyncio.run(_suggest())

    table = Table(title="Pick number suggestions")
    table.add_column("Variant", style="cyan")
    table.add_column("SKU")
    table.add_column("Current", justify="right")
    table.add_column("Suggested", justify="right", style="green")

    for variant_id, number in suggestions.items():
        table.add_row(
            variant_id,
            state.variants[variant_id].sku or "",
            current.get(variant_id) or "-",
            str(number),
        )
    console.print(table)

    if conflicts:
        for conflict in conflicts:
            console.print(f"[red]✗[/red] {conflict.message}")
        raise typer.Exit(1)
    if save and suggestions:
        console.print(f"[bold green]✓[/bold green] Saved {len(suggestions)} pick numbers")


@app.command()
def duplicates():
    """List SKUs and pick numbers shared by more than one active variant."""

    async def _load():
        try:
            async with get_session() as session:
                return await CatalogRepository(session).list_active_variants()
        finally:
            await close_db()

    variants = asyncio.run(_load())

    for title, groups in (
        ("Duplicate SKUs", find_duplicate_skus(variants)),
        ("Duplicate pick numbers", find_duplicate_pick_numbers(variants)),
    ):
        if not groups:
            console.print(f"[bold green]✓[/bold green] No {title.lower()}")
            continue

        table = Table(title=title)
        table.add_column("Value", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Variants")
        for group in groups:
            table.add_row(group.value, str(group.count), ", ".join(group.variant_ids))
        console.print(table)


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI app."""
    import uvicorn

    typer.echo(f"Starting OpsConsole on http://{host}:{port}")
    uvicorn.run("opsconsole.web.app:app", host=host, port=port, reload=reload, workers=1)


if __name__ == "__main__":
    app()

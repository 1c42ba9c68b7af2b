#!/usr/bin/env python3
"""
Limen Lakay - Admin Command Line

Runs the API server and the day-to-day admin chores that don't need a browser.

Usage:
    python main.py --serve                       # Start the API on port 5000
    python main.py --stats                       # Row counts from Supabase
    python main.py --price wax_cost=12 hours_to_create=2
"""
import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import config
from lakay.pricing import (
    SUPPLY_FIELDS,
    PriceInputs,
    format_currency,
    price_breakdown,
    subscription_summary,
)

console = Console()

URGENCY_STYLES = {
    "expired": "bold red",
    "urgent": "red",
    "soon": "yellow",
    "safe": "green",
    "invalid": "dim",
}


class CustomHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Custom formatter that preserves formatting and adds width."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=40, width=100)


def parse_args(argv=None):
    """Parse command line arguments."""

    epilog = """
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
EXAMPLES
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  Server:
    python main.py --serve                  API on http://localhost:5000
    python main.py --serve --port 8080      Custom port

  Database:
    python main.py --stats                  Row counts and order statuses
    python main.py --subscriptions          Subscriptions by urgency
    python main.py --mark-overdue           Flag sent invoices past their due date

  Vessel images:
    python main.py --export-vessels backup.json
    python main.py --import-vessels backup.json
    python main.py --recover-vessels        Rebuild images from backups
    python main.py --clear-backups          Delete every image backup key

  Pricing:
    python main.py --price wax_cost=12 vessel_cost=30 number_of_items=6

━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
NOTES
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  • Requires .env file with SUPABASE_URL and SUPABASE_KEY for database commands
  • Vessel data lives in data/vessel-storage.json
"""

    parser = argparse.ArgumentParser(
        prog="python main.py",
        description="""
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
                          LIMEN LAKAY ADMIN
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
Handmade candle shop backend: storefront API, invoices, subscriptions,
workshops and vessel image storage.
""",
        epilog=epilog,
        formatter_class=CustomHelpFormatter,
    )

    server_group = parser.add_argument_group("Server", "Run the JSON API")
    server_group.add_argument("--serve", action="store_true", help="Start the API server")
    server_group.add_argument(
        "--port", type=int, default=5000, metavar="PORT", help="Port for --serve (default: 5000)"
    )
    server_group.add_argument("--debug", action="store_true", help="Flask debug mode")

    db_group = parser.add_argument_group("Database", "Supabase-backed admin views")
    db_group.add_argument("--stats", action="store_true", help="Show database statistics")
    db_group.add_argument(
        "--subscriptions", action="store_true", help="List subscriptions with urgency"
    )
    db_group.add_argument(
        "--mark-overdue", action="store_true", help="Mark past-due sent invoices as overdue"
    )

    vessel_group = parser.add_argument_group("Vessel Images", "Local vessel style storage")
    vessel_group.add_argument(
        "--export-vessels", metavar="FILE", help="Write vessels and images to a JSON file"
    )
    vessel_group.add_argument(
        "--import-vessels", metavar="FILE", help="Replace vessels and images from a JSON file"
    )
    vessel_group.add_argument(
        "--recover-vessels", action="store_true", help="Recover images from backup keys"
    )
    vessel_group.add_argument(
        "--clear-backups", action="store_true", help="Delete all image backup keys"
    )

    price_group = parser.add_argument_group("Pricing", "Quick retail price calculator")
    price_group.add_argument(
        "--price",
        nargs="*",
        metavar="FIELD=VALUE",
        help=f"Calculate a price. Fields: {', '.join(SUPPLY_FIELDS)}, number_of_items, "
        "hours_to_create, hourly_rate, markup_percentage, listing_fees, "
        "transaction_fee_percentage",
    )

    return parser.parse_args(argv)


# =============================================================================
# Commands
# =============================================================================


def get_store():
    from lakay.db import SupabaseStore

    return SupabaseStore(config.supabase)


def get_vessel_store():
    from lakay.vessels import FileStorage, VesselStore

    config.ensure_dirs()
    storage = FileStorage(config.vessels.path, config.vessels.quota_bytes)
    return VesselStore(storage, config.vessels)


def show_stats(store) -> int:
    stats = store.get_stats()

    table = Table(title="Database Statistics")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name, count in stats["counts"].items():
        table.add_row(name, str(count))
    console.print(table)

    if stats["orders_by_status"]:
        orders = Table(title="Custom Orders by Status")
        orders.add_column("Status", style="cyan")
        orders.add_column("Orders", justify="right")
        for status, count in sorted(stats["orders_by_status"].items()):
            orders.add_row(status, str(count))
        console.print(orders)
    return 0


def show_subscriptions(store) -> int:
    from lakay import subscriptions

    rows = subscriptions.annotate(subscriptions.list_subscriptions(store))
    if not rows:
        console.print("[yellow]No subscriptions found[/yellow]")
        return 0

    table = Table(title="Subscriptions")
    table.add_column("Service", style="cyan")
    table.add_column("Category")
    table.add_column("Amount", justify="right")
    table.add_column("Expires")
    table.add_column("Days left", justify="right")
    for sub in rows:
        style = URGENCY_STYLES.get(sub["urgency"], "")
        table.add_row(
            sub.get("platform_service", ""),
            sub.get("category") or "",
            format_currency(sub.get("amount")),
            str(sub.get("expiration_date", "")),
            f"[{style}]{'?' if sub['days_left'] is None else sub['days_left']}[/{style}]",
        )
    console.print(table)

    totals = subscription_summary(rows)
    console.print(
        f"[dim]Monthly:[/dim] {format_currency(totals['monthly_total'])}  "
        f"[dim]Yearly:[/dim] {format_currency(totals['yearly_total'])}  "
        f"[dim]Renewing in 30 days:[/dim] {totals['upcoming_renewals']}  "
        f"[dim]Expired:[/dim] {totals['expired']}"
    )
    return 0


def mark_overdue(store) -> int:
    from lakay.invoices import mark_overdue as flag_overdue

    numbers = flag_overdue(store)
    if numbers:
        listed = ", ".join(str(n) for n in numbers)
        console.print(f"[yellow]Marked {len(numbers)} invoice(s) overdue:[/yellow] {listed}")
    else:
        console.print("[green]✓ No overdue invoices[/green]")
    return 0


def export_vessels(vessel_store, path: Path) -> int:
    data = vessel_store.export_data()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    console.print(
        f"[green]✓ Exported {len(data['vessels'])} vessels and "
        f"{len(data['images'])} images to {path}[/green]"
    )
    return 0


def import_vessels(vessel_store, path: Path) -> int:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {path}: {e}[/red]")
        return 1
    if not vessel_store.import_data(data):
        console.print("[red]Import failed: file is not a vessel export[/red]")
        return 1
    console.print(f"[green]✓ Imported vessel data from {path}[/green]")
    return 0


def recover_vessels(vessel_store) -> int:
    images = vessel_store.recover_vessel_images()
    if not images:
        console.print("[yellow]No vessel images could be recovered[/yellow]")
        return 1
    console.print(f"[green]✓ Recovered {len(images)} vessel images[/green]")
    return 0


def clear_backups(vessel_store) -> int:
    removed = vessel_store.clear_backups()
    console.print(f"[green]✓ Removed {removed} backup keys[/green]")
    return 0


def parse_price_fields(pairs: list[str]) -> dict:
    """Turn ``field=value`` pairs into calculator form data."""
    known = set(PriceInputs.__dataclass_fields__)
    data = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip().replace("-", "_")
        if not sep or key not in known:
            raise ValueError(f"Unknown price field: {pair}")
        data[key] = value
    return data


def show_price(pairs: list[str]) -> int:
    try:
        data = parse_price_fields(pairs)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 2
    data.setdefault("hourly_rate", config.shop.hourly_rate)
    data.setdefault("markup_percentage", config.shop.markup_percentage)
    data.setdefault("transaction_fee_percentage", config.shop.transaction_fee_percentage)

    result = price_breakdown(data)
    lines = [
        f"Materials:        {format_currency(result.total_material_cost)}",
        f"Labor:            {format_currency(result.labor_cost)}",
        f"Cost per item:    {format_currency(result.cost_per_item)}",
        f"Base price:       {format_currency(result.base_price)}",
        f"Transaction fee:  {format_currency(result.transaction_fee)}",
        f"Profit per item:  {format_currency(result.profit_per_item)}",
        f"Margin:           {result.profit_margin_percentage:.1f}%",
        "",
        f"[bold green]Retail price:     {format_currency(result.retail_price)}[/bold green]",
    ]
    console.print(Panel("\n".join(lines), title="Price Calculator", expand=False))
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.serve:
        from app import app

        console.print(f"[bold cyan]Limen Lakay API[/bold cyan] on http://localhost:{args.port}")
        app.run(debug=args.debug, port=args.port)
        return 0

    if args.price is not None:
        return show_price(args.price)

    if args.export_vessels:
        return export_vessels(get_vessel_store(), Path(args.export_vessels))

    if args.import_vessels:
        return import_vessels(get_vessel_store(), Path(args.import_vessels))

    if args.recover_vessels:
        return recover_vessels(get_vessel_store())

    if args.clear_backups:
        return clear_backups(get_vessel_store())

    if args.stats or args.subscriptions or args.mark_overdue:
        try:
            store = get_store()
            if args.stats:
                return show_stats(store)
            if args.subscriptions:
                return show_subscriptions(store)
            return mark_overdue(store)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            return 1
        except Exception as e:
            console.print(f"\n[bold red]Unexpected error: {e}[/bold red]")
            return 1

    console.print("[yellow]Nothing to do. Run with --help to see the commands.[/yellow]")
    return 0


if __name__ == "__main__":
    sys.exit(main())

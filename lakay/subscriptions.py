"""
Business subscription tracker (software, hosting, marketplace plans).
"""

import csv
import io
from datetime import date
from typing import Any, Iterable, Optional

from rich.console import Console

from lakay.errors import ValidationError
from lakay.models import Subscription, is_blank, require_fields
from lakay.pricing import (
    days_until,
    default_renewal_date,
    parse_date,
    subscription_summary,
    to_number,
    urgency,
)

console = Console()

INVALID_URGENCY = "invalid"

CSV_HEADER = [
    "Platform/Service", "Category", "Date Paid", "Amount", "Length",
    "Expiration Date", "Renewal Date", "Renewal Method", "Notes",
]


def list_subscriptions(store) -> list[dict]:
    """All subscriptions, soonest expiration first."""
    return store.list_rows("subscriptions", order_by="expiration_date")


def filter_subscriptions(
    subscriptions: Iterable[dict], search: str = "", category: Optional[str] = None
) -> list[dict]:
    term = (search or "").lower()
    result = []
    for sub in subscriptions:
        matches_search = (
            term in (sub.get("platform_service") or "").lower()
            or term in (sub.get("category") or "").lower()
        )
        matches_category = not category or category == "all" or sub.get("category") == category
        if matches_search and matches_category:
            result.append(sub)
    return result


def annotate(subscriptions: Iterable[dict], today: Optional[date] = None) -> list[dict]:
    """
    Add ``days_left`` and ``urgency`` to each row for display.

    Rows whose expiration date is missing or unreadable get ``days_left``
    None and urgency "invalid" instead of failing the whole list.
    """
    rows = []
    for sub in subscriptions:
        try:
            days_left = days_until(sub.get("expiration_date"), today)
        except (TypeError, ValueError):
            console.print(
                f"[yellow]Warning: Bad expiration date for {sub.get('platform_service') or sub.get('id')}: "
                f"{sub.get('expiration_date')!r}[/yellow]"
            )
            rows.append({**sub, "days_left": None, "urgency": INVALID_URGENCY})
            continue
        rows.append({**sub, "days_left": days_left, "urgency": urgency(days_left)})
    return rows


def save_subscription(store, data: dict, subscription_id: Optional[Any] = None) -> dict:
    """
    Create or update a subscription. A blank renewal date defaults to the
    day after expiration.
    """
    require_fields(data, ["platform_service", "amount", "expiration_date"])
    try:
        parse_date(data["expiration_date"])
    except ValueError as e:
        raise ValidationError("Invalid expiration date", ["expiration_date"]) from e
    sub = Subscription.model_validate(data)
    payload = sub.model_dump(exclude={"id"})
    if is_blank(payload.get("renewal_date")):
        payload["renewal_date"] = default_renewal_date(sub.expiration_date)
    if is_blank(payload.get("notes")):
        payload["notes"] = None

    if subscription_id is not None:
        row = store.update_row("subscriptions", subscription_id, payload)
        console.print(f"[green]✓ Subscription updated: {sub.platform_service}[/green]")
    else:
        row = store.insert_row("subscriptions", payload)
        console.print(f"[green]✓ Subscription added: {sub.platform_service}[/green]")
    return row


def delete_subscription(store, subscription_id: Any) -> bool:
    return store.delete_row("subscriptions", subscription_id)


def summary(store, today: Optional[date] = None) -> dict:
    return subscription_summary(list_subscriptions(store), today)


def export_csv(subscriptions: Iterable[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for sub in subscriptions:
        writer.writerow([
            sub.get("platform_service", ""),
            sub.get("category", ""),
            sub.get("date_paid") or "",
            f"${to_number(sub.get('amount')):.2f}",
            sub.get("length_of_subscription", ""),
            sub.get("expiration_date", ""),
            sub.get("renewal_date") or "",
            sub.get("renewal_method", ""),
            sub.get("notes") or "",
        ])
    return buffer.getvalue()

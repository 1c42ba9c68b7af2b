"""
Invoices for workshops, bulk orders and custom commissions.

Totals are always recomputed from the line items on save, so stored
subtotal/tax/discount/total never drift from the items.
"""

import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional

from rich.console import Console

from config.settings import ShopConfig
from lakay.models import Invoice, InvoiceStatus, is_blank, require_fields
from lakay.pricing import invoice_totals, line_amount, parse_date, to_number

console = Console()

DEFAULT_NOTES = (
    "Please send payment via Zelle to the following email address:\n"
    "LIMENLAKAYLLC@GMAIL.COM"
)
DEFAULT_TERMS = (
    "Payment Due: Payment is required within 7 days of the invoice date unless otherwise agreed.\n\n"
    "Late Fees: Unpaid balances incur a 2% late fee per week after the due date.\n\n"
    "Payment Methods: We accept bank transfer, debit/credit card, or approved digital payment platforms.\n\n"
    "Delivery Schedule: Work or deliverables will be provided according to the agreed project timeline."
)
DUE_IN_DAYS = 7

HEADER_FIELDS = (
    "customer_name", "customer_email", "customer_address", "customer_phone",
    "date", "due_date", "tax_rate", "discount_percentage", "status", "notes", "terms",
    "payment_method",
)
OPTIONAL_FIELDS = ("customer_address", "customer_phone", "notes", "terms", "payment_method")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_invoice_number(clock: Callable[[], int] = _now_ms) -> str:
    return f"INV-{clock()}"


def new_invoice(
    today: Optional[date] = None,
    shop: Optional[ShopConfig] = None,
    clock: Callable[[], int] = _now_ms,
) -> dict:
    """A blank draft invoice, due in 7 days, with the default tax rate and terms."""
    today = today or date.today()
    shop = shop or ShopConfig()
    return {
        "invoice_number": new_invoice_number(clock),
        "customer_name": "",
        "customer_email": "",
        "date": today.isoformat(),
        "due_date": (today + timedelta(days=DUE_IN_DAYS)).isoformat(),
        "subtotal": 0,
        "tax_rate": shop.default_tax_rate,
        "tax_amount": 0,
        "discount_percentage": 0,
        "discount_amount": 0,
        "total": 0,
        "status": InvoiceStatus.DRAFT.value,
        "notes": DEFAULT_NOTES,
        "terms": DEFAULT_TERMS,
        "payment_method": None,
        "items": [{"description": "", "quantity": 1, "rate": 0, "amount": 0}],
    }


def list_invoices(store, search: Optional[str] = None) -> list[dict]:
    """Invoices newest first, optionally filtered by number, name or email."""
    invoices = store.list_rows("invoices", order_by="created_at", descending=True)
    if not search:
        return invoices
    term = search.lower()
    return [
        inv for inv in invoices
        if any(term in str(inv.get(k) or "").lower()
               for k in ("invoice_number", "customer_name", "customer_email"))
    ]


def get_invoice(store, invoice_id: Any) -> dict:
    """An invoice with its line items under ``items``."""
    row = store.get_row("invoices", invoice_id, columns="*, invoice_items(*)")
    row = dict(row)
    row["items"] = row.pop("invoice_items", None) or []
    return row


def _item_rows(invoice_id: Any, items: list[dict]) -> list[dict]:
    return [
        {
            "invoice_id": invoice_id,
            "description": item.get("description", ""),
            "quantity": to_number(item.get("quantity")),
            "rate": to_number(item.get("rate")),
            "amount": line_amount(item),
        }
        for item in items
    ]


def save_invoice(
    store,
    data: dict,
    invoice_id: Optional[Any] = None,
    clock: Callable[[], int] = _now_ms,
) -> dict:
    """
    Create (no ``invoice_id``) or update an invoice and replace its items.

    Raises:
        ValidationError: customer name or email missing
    """
    require_fields(data, ["customer_name", "customer_email"])
    invoice = Invoice.model_validate(data)
    items = [item.model_dump() for item in invoice.items]
    totals = invoice_totals(items, invoice.tax_rate, invoice.discount_percentage)

    header = {key: getattr(invoice, key) for key in HEADER_FIELDS}
    for key in OPTIONAL_FIELDS:
        if is_blank(header.get(key)):
            header[key] = None
    header.update(totals.to_dict())

    if invoice_id is None:
        header["invoice_number"] = invoice.invoice_number or new_invoice_number(clock)
        row = store.insert_row("invoices", header)
        invoice_id = row.get("id")
        console.print(f"[green]✓ Invoice {header['invoice_number']} created[/green]")
    else:
        header["updated_at"] = _now_iso()
        row = store.update_row("invoices", invoice_id, header)
        store.delete_where("invoice_items", invoice_id=invoice_id)
        console.print(f"[green]✓ Invoice {row.get('invoice_number', invoice_id)} updated[/green]")

    store.insert_rows("invoice_items", _item_rows(invoice_id, items))
    return {**row, "items": _item_rows(invoice_id, items)}


def mark_sent(store, invoice_id: Any) -> dict:
    return store.update_row("invoices", invoice_id, {"status": InvoiceStatus.SENT.value})


def mark_paid(store, invoice_id: Any, payment_method: str = "Manual") -> dict:
    row = store.update_row(
        "invoices", invoice_id,
        {"status": InvoiceStatus.PAID.value, "payment_method": payment_method},
    )
    console.print(f"[green]✓ Invoice {row.get('invoice_number', invoice_id)} marked paid[/green]")
    return row


def duplicate_invoice(
    store,
    invoice_id: Any,
    today: Optional[date] = None,
    clock: Callable[[], int] = _now_ms,
) -> dict:
    """Copy an invoice and its items as a new draft dated today, due in 7 days."""
    source = get_invoice(store, invoice_id)
    today = today or date.today()

    copy = {key: source.get(key) for key in HEADER_FIELDS if key != "payment_method"}
    copy.update({
        "invoice_number": new_invoice_number(clock),
        "date": today.isoformat(),
        "due_date": (today + timedelta(days=DUE_IN_DAYS)).isoformat(),
        "status": InvoiceStatus.DRAFT.value,
        "subtotal": source.get("subtotal", 0),
        "tax_amount": source.get("tax_amount", 0),
        "discount_amount": source.get("discount_amount", 0),
        "total": source.get("total", 0),
    })
    row = store.insert_row("invoices", copy)
    store.insert_rows("invoice_items", _item_rows(row.get("id"), source["items"]))
    console.print(f"[green]✓ Invoice duplicated as {copy['invoice_number']}[/green]")
    return row


def delete_invoice(store, invoice_id: Any) -> bool:
    store.delete_where("invoice_items", invoice_id=invoice_id)
    return store.delete_row("invoices", invoice_id)


def mark_overdue(store, today: Optional[date] = None) -> list[str]:
    """Flag sent invoices whose due date has passed. Returns their numbers."""
    today = today or date.today()
    flagged = []
    for inv in store.list_rows("invoices", filters={"status": InvoiceStatus.SENT.value}):
        try:
            due = parse_date(inv.get("due_date"))
        except ValueError:
            console.print(f"[yellow]Warning: Bad due date on invoice {inv['id']}: {inv.get('due_date')!r}[/yellow]")
            continue
        if due is not None and due < today:
            store.update_row("invoices", inv["id"], {"status": InvoiceStatus.OVERDUE.value})
            flagged.append(inv.get("invoice_number") or inv["id"])
    if flagged:
        console.print(f"[yellow]{len(flagged)} invoice(s) now overdue[/yellow]")
    return flagged

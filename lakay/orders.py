"""
Custom candle orders.

Creation writes the order row first and its items second; if the items
cannot be written the order row is deleted again so no order exists without
items. Customer emails are best effort and never fail the order.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from rich.console import Console

from config.settings import ShopConfig
from lakay.errors import StoreError, ValidationError
from lakay.models import CustomOrder, OrderStatus, PaymentStatus, require_fields
from lakay.notifications import EmailResult, EmailSender, order_items_html, render_order_email
from lakay.pricing import item_quantity, order_totals, to_number

console = Console()

ORDER_COLUMNS = "*, custom_order_items(*, vessel:candle_vessels(*), scent:candle_scents(*))"
UPDATABLE_FIELDS = ("status", "payment_status", "tracking_number", "admin_notes")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_order_number(clock: Callable[[], int] = _now_ms) -> str:
    return f"ORD-{clock()}"


def list_orders(store, status: Optional[str] = None) -> list[dict]:
    """Orders with their items, newest first."""
    filters = {"status": status} if status else None
    return store.list_rows(
        "custom_orders", filters=filters, order_by="created_at", descending=True,
        columns=ORDER_COLUMNS,
    )


async def create_order(
    store,
    data: dict,
    sender: Optional[EmailSender] = None,
    shop: Optional[ShopConfig] = None,
    clock: Callable[[], int] = _now_ms,
) -> dict:
    """
    Create a custom order and email the customer a confirmation.

    Returns:
        {"id", "order_number", "total"}

    Raises:
        ValidationError: customer name/email missing or no items
        StoreError: the order or its items could not be written
    """
    require_fields(data, ["customer_name", "customer_email", "items"])
    shop = shop or ShopConfig()
    order = CustomOrder.model_validate(data)
    items = data["items"]

    totals = order_totals(items, shop.custom_order_shipping)
    order_number = new_order_number(clock)

    row = store.insert_row("custom_orders", {
        "order_number": order_number,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "shipping_address": order.shipping_address,
        "shipping_city": order.shipping_city,
        "shipping_state": order.shipping_state,
        "shipping_zip": order.shipping_zip,
        "subtotal": totals.subtotal,
        "shipping_cost": totals.shipping_cost,
        "total": totals.total,
        "notes": order.notes,
        "status": OrderStatus.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
    })
    order_id = row.get("id")

    item_rows = []
    for item in items:
        quantity = item_quantity(item)
        unit_price = to_number(item.get("unit_price"))
        item_rows.append({
            "order_id": order_id,
            "vessel_id": item.get("vessel_id"),
            "scent_id": item.get("scent_id"),
            "quantity": quantity,
            "unit_price": unit_price,
            "subtotal": unit_price * quantity,
        })

    try:
        store.insert_rows("custom_order_items", item_rows)
    except StoreError:
        console.print(f"[red]Order items failed, rolling back {order_number}[/red]")
        store.delete_row("custom_orders", order_id)
        raise

    console.print(f"[green]✓ Order {order_number} created ({len(item_rows)} items)[/green]")

    email = render_order_email(
        "confirmation",
        order_number,
        customer_name=order.customer_name,
        order_details=order_items_html(items),
        total=totals.total,
        shipping_address=order.full_address,
    )
    await _send_quietly(sender, order.customer_email, email)

    return {"id": order_id, "order_number": order_number, "total": totals.total}


async def update_order(
    store,
    order_id: Any,
    changes: dict,
    sender: Optional[EmailSender] = None,
) -> dict:
    """
    Update status, payment status, tracking number or admin notes.

    Shipping stamps ``shipped_at`` and emails the customer when a tracking
    number is on file; completion stamps ``completed_at``.
    """
    if not order_id:
        raise ValidationError("Order ID is required", ["order_id"])

    update: dict[str, Any] = {}
    for key in UPDATABLE_FIELDS:
        value = changes.get(key)
        if key == "admin_notes":
            if key in changes:
                update[key] = value
        elif value:
            update[key] = value

    status = update.get("status")
    if status is not None and status not in {s.value for s in OrderStatus}:
        raise ValidationError(f"Invalid status: {status}", ["status"])
    payment = update.get("payment_status")
    if payment is not None and payment not in {s.value for s in PaymentStatus}:
        raise ValidationError(f"Invalid payment status: {payment}", ["payment_status"])

    if status == OrderStatus.SHIPPED.value:
        update["shipped_at"] = _now_iso()
    elif status == OrderStatus.COMPLETED.value:
        update["completed_at"] = _now_iso()

    row = store.update_row("custom_orders", order_id, update)
    console.print(f"[green]✓ Order {row.get('order_number', order_id)} updated[/green]")

    if status == OrderStatus.SHIPPED.value and row.get("tracking_number") and row.get("customer_email"):
        address = (
            f"{row.get('shipping_address')}, {row.get('shipping_city')}, "
            f"{row.get('shipping_state')} {row.get('shipping_zip')}"
        )
        email = render_order_email(
            "shipped",
            row.get("order_number", ""),
            customer_name=row.get("customer_name"),
            tracking_number=row.get("tracking_number"),
            shipping_address=address,
        )
        await _send_quietly(sender, row["customer_email"], email)

    return row


async def send_order_email(sender: EmailSender, data: dict) -> EmailResult:
    """
    Render and send an order email from a request body
    (to, type, orderNumber, customerName, orderDetails, trackingNumber,
    total, shippingAddress, statusDetails).
    """
    require_fields(data, ["to", "type", "orderNumber"])
    email = render_order_email(
        data["type"],
        data["orderNumber"],
        customer_name=data.get("customerName"),
        order_details=data.get("orderDetails") or "",
        tracking_number=data.get("trackingNumber"),
        total=data.get("total"),
        shipping_address=data.get("shippingAddress"),
        status_details=data.get("statusDetails"),
    )
    return await sender.send(data["to"], email.subject, email.html)


async def _send_quietly(sender: Optional[EmailSender], to: str, email) -> None:
    if sender is None:
        return
    try:
        result = await sender.send(to, email.subject, email.html, email.text)
    except Exception as e:
        console.print(f"[yellow]Warning: Failed to send '{email.subject}': {e}[/yellow]")
        return
    if not result.success:
        console.print(f"[yellow]Warning: '{email.subject}' not sent: {result.error}[/yellow]")

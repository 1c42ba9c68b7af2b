"""
Render-and-send helpers for emails that are not tied to a single service.
"""

from datetime import datetime, timezone
from typing import Optional

from rich.console import Console

from config.settings import ShopConfig
from lakay.models import require_fields
from lakay.pricing import cart_value

from .sender import EmailResult, EmailSender
from .templates import parse_cart_items, render_business_notification, render_cart_reminder

console = Console()


async def send_cart_reminder(sender: EmailSender, data: dict, site_url: Optional[str] = None) -> dict:
    """
    Send a cart abandonment reminder.

    Args:
        data: cartId, customerEmail, customerName, cartItems, cartValue, reminderType

    Raises:
        ValidationError: cart id, email or reminder type missing
        ValueError: unknown reminder type
        pydantic.ValidationError: a cart line that is not an object
    """
    require_fields(data, ["cartId", "customerEmail", "reminderType"])
    items = parse_cart_items(data.get("cartItems") or [])
    value = data.get("cartValue")
    email = render_cart_reminder(
        data["reminderType"],
        data["cartId"],
        items,
        cart_value(items) if value is None else value,
        customer_name=data.get("customerName"),
        site_url=site_url,
    )
    result = await sender.send(data["customerEmail"], email.subject, email.html, email.text)
    console.print(
        f"[dim]Cart reminder ({data['reminderType']}) for cart {data['cartId']}: "
        f"{'sent' if result.success else result.error}[/dim]"
    )
    return {
        **result.to_dict(),
        "cartId": data["cartId"],
        "reminderType": data["reminderType"],
        "sentAt": datetime.now(timezone.utc).isoformat(),
    }


async def notify_business(
    sender: EmailSender, notification_type: str, data: dict, shop: Optional[ShopConfig] = None
) -> EmailResult:
    """Email the business inbox; replies go to the customer when their email is known."""
    shop = shop or ShopConfig()
    email = render_business_notification(notification_type, data)
    reply_to = data.get("email") or data.get("customer_email") or data.get("sender_email")
    return await sender.send(shop.business_email, email.subject, email.html, reply_to=reply_to)

"""
Outbound email: rendering and delivery.
"""

from .outbox import notify_business, send_cart_reminder
from .sender import EmailResult, EmailSender
from .templates import (
    COMEBACK_CODE,
    DEFAULT_WORKSHOP_TEMPLATE,
    RenderedEmail,
    fill_workshop_template,
    order_items_html,
    parse_cart_items,
    render_business_notification,
    render_cart_reminder,
    render_order_email,
    render_workshop_confirmation,
    render_workshop_reminder,
)

__all__ = [
    "EmailResult",
    "EmailSender",
    "notify_business",
    "send_cart_reminder",
    "RenderedEmail",
    "COMEBACK_CODE",
    "DEFAULT_WORKSHOP_TEMPLATE",
    "fill_workshop_template",
    "order_items_html",
    "parse_cart_items",
    "render_business_notification",
    "render_cart_reminder",
    "render_order_email",
    "render_workshop_confirmation",
    "render_workshop_reminder",
]

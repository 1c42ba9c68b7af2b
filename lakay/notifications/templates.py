"""
Email templates: order updates, cart abandonment reminders, workshop
confirmations and internal notifications to the business inbox.

Every renderer returns a RenderedEmail. HTML bodies are Jinja templates
with autoescaping, so customer-supplied values are escaped unless they are
markup built here (see order_items_html).
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from jinja2 import Environment
from markupsafe import Markup

from config.settings import ShopConfig
from lakay.models import CartItem
from lakay.pricing import format_currency, item_quantity, to_number

SHOP = ShopConfig()

env = Environment(autoescape=True)
env.globals["shop"] = SHOP

PAGE_TEMPLATE = env.from_string("""<!DOCTYPE html>
<html>
<head>
<style>
  body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
  .container { max-width: 600px; margin: 0 auto; padding: 20px; }
  .header { padding: 30px; text-align: center; border-radius: 10px 10px 0 0; color: white; }
  .content { background: #fff; padding: 30px; border: 1px solid #e5e7eb; }
  .box { padding: 20px; border-radius: 8px; margin: 20px 0; background: #f8f9fa; }
  .footer { background: #f9fafb; padding: 20px; text-align: center; color: #6b7280; font-size: 0.9em; }
  .button { display: inline-block; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px; }
</style>
</head>
<body>
<div class="container">
  <div class="header" style="background: {{ header_color }};">
    <h1>{{ title }}</h1>
    <p>{{ subtitle }}</p>
  </div>
  <div class="content">
{{ body }}
  </div>
  <div class="footer">
    <p>Email us at <a href="mailto:{{ shop.business_email }}">{{ shop.business_email }}</a></p>
    <p>or call {{ shop.business_phone }}</p>
    <p>{{ shop.business_name }} LLC | Premium Handcrafted Candles</p>
  </div>
</div>
</body>
</html>""")


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: Optional[str] = None


def _page(header_color: str, title: str, subtitle: str, body: str) -> str:
    return PAGE_TEMPLATE.render(
        header_color=header_color, title=title, subtitle=subtitle, body=Markup(body)
    )


# =============================================================================
# ORDER EMAILS
# =============================================================================

ORDER_EMAIL_TYPES = ("confirmation", "shipped", "status_update")

ITEM_ROW = Markup('<div class="item">{}x {} - {}</div>')

ORDER_TEMPLATES = {
    "confirmation": env.from_string("""<p>Hi {{ customer_name or 'Valued Customer' }},</p>
    <p>Thank you for your order! Each piece is handcrafted, so we'll let you know as soon as it ships.</p>
    <div class="box">
      <h3>Order Details</h3>
      {{ order_details }}
      <p><strong>Total: {{ total }}</strong></p>
    </div>
    <p><strong>Shipping to:</strong> {{ shipping_address or 'Address on file' }}</p>
    <p>Custom orders take 5-7 business days to make.</p>"""),
    "shipped": env.from_string("""<p>Hi {{ customer_name or 'Valued Customer' }},</p>
    <p>Great news! Your Limen Lakay order is on its way.</p>
    <div class="box">
      <p><strong>Tracking Number:</strong> {{ tracking_number or 'Will be provided soon' }}</p>
      <p><strong>Shipping to:</strong> {{ shipping_address or 'Address on file' }}</p>
    </div>
    <p>You can track your package in the Track Order tab of our chat widget.</p>"""),
    "status_update": env.from_string("""<p>Hi {{ customer_name or 'Valued Customer' }},</p>
    <p>We wanted to update you on the status of your Limen Lakay order.</p>
    <div class="box">
      <p><strong>Current Status:</strong> {{ status.status or 'In Progress' }}</p>
      {% if status.message %}<p>{{ status.message }}</p>{% endif %}
    </div>
    {% if status.notes %}<p><strong>Additional Information:</strong></p><p>{{ status.notes }}</p>{% endif %}
    <a href="mailto:{{ shop.business_email }}" class="button" style="background: #3b82f6;">Contact Us</a>"""),
}

ORDER_HEADERS = {
    "confirmation": ("#b45309", "Thank You for Your Order!", "Order Confirmation - {}"),
    "shipped": ("#059669", "Your Order Has Shipped!", "Your Order Has Shipped! - {}"),
    "status_update": ("#2563eb", "Order Status Update", "Order Update - {}"),
}


def order_items_html(items: Iterable[Any]) -> Markup:
    rows = []
    for item in items:
        get = item.get if isinstance(item, dict) else lambda k, d=None: getattr(item, k, d)
        rows.append(ITEM_ROW.format(
            item_quantity(item),
            get("vessel_name") or "Custom Candle",
            format_currency(get("unit_price")),
        ))
    return Markup("").join(rows)


def render_order_email(
    email_type: str,
    order_number: str,
    customer_name: Optional[str] = None,
    order_details: Any = "",
    tracking_number: Optional[str] = None,
    total: Any = None,
    shipping_address: Optional[str] = None,
    status_details: Optional[dict] = None,
) -> RenderedEmail:
    """
    Render a transactional order email.

    Args:
        email_type: confirmation, shipped or status_update
        order_details: Item rows from order_items_html; plain strings are escaped

    Raises:
        ValueError: for an unknown email type
    """
    if email_type not in ORDER_TEMPLATES:
        raise ValueError("Invalid email type")

    body = ORDER_TEMPLATES[email_type].render(
        customer_name=customer_name,
        order_details=order_details,
        tracking_number=tracking_number,
        total=format_currency(total),
        shipping_address=shipping_address,
        status=status_details or {},
    )
    color, title, subject = ORDER_HEADERS[email_type]
    return RenderedEmail(
        subject=subject.format(order_number),
        html=_page(color, title, f"Order {order_number}", body),
    )


# =============================================================================
# CART ABANDONMENT
# =============================================================================

REMINDER_TYPES = ("first", "second", "final")
COMEBACK_CODE = "COMEBACK10"

REMINDERS = {
    "first": {
        "subject": "You left something beautiful behind... ✨",
        "intro": "We noticed you left some beautiful handcrafted candles in your cart.",
        "heading": "Your Cart ({value}):",
        "offer": "",
        "cta": "Complete Your Order",
    },
    "second": {
        "subject": "Your candles are still waiting for you 🕯️",
        "intro": "Just a friendly reminder that your handcrafted candles are still in your cart. Each one is poured by hand in small batches.",
        "heading": "Still In Your Cart ({value}):",
        "offer": "",
        "cta": "Return to Your Cart",
    },
    "final": {
        "subject": "Last chance: your cart expires soon ⏰",
        "intro": "This is your final reminder - the items in your cart will be released in 24 hours to ensure availability for other customers.",
        "heading": "Your Cart Will Expire ({value}):",
        "offer": f"Special offer just for you: use code {COMEBACK_CODE} for 10% off your order!",
        "cta": "Secure Your Candles Now",
    },
}

CART_TEMPLATE = env.from_string("""<p>Hi {{ name }},</p>
    <p>{{ intro }}</p>
    <div class="box">
      <h3>{{ heading }}</h3>
      <p>{% for line in lines %}{{ line }}{% if not loop.last %}<br>{% endif %}{% endfor %}</p>
    </div>
    {% if offer %}<div class="box" style="background: #fff3cd;"><p>{{ offer }}</p></div>{% endif %}
    <a href="{{ link }}" class="button" style="background: #c0392b;">{{ cta }}</a>""")


def parse_cart_items(items: Iterable[Any]) -> list[CartItem]:
    """Validate raw cart lines from the storefront."""
    return [item if isinstance(item, CartItem) else CartItem.model_validate(item) for item in items]


def render_cart_reminder(
    reminder_type: str,
    cart_id: str,
    cart_items: Iterable[Any],
    cart_value: Any,
    customer_name: Optional[str] = None,
    site_url: Optional[str] = None,
) -> RenderedEmail:
    """Render one of the three cart abandonment reminders."""
    if reminder_type not in REMINDERS:
        raise ValueError("Invalid reminder type")

    copy = REMINDERS[reminder_type]
    name = customer_name or "Valued Customer"
    heading = copy["heading"].format(value=format_currency(cart_value))
    offer = copy["offer"]
    link = f"{(site_url or SHOP.site_url).rstrip('/')}/cart/recover/{cart_id}"
    lines = [
        f"• {item.product_name} (Qty: {item.quantity}) - ${item.price:.2f}"
        for item in parse_cart_items(cart_items)
    ]

    body = CART_TEMPLATE.render(
        name=name, intro=copy["intro"], heading=heading, lines=lines,
        offer=offer, link=link, cta=copy["cta"],
    )
    items_text = "\n".join(lines)
    text = f"""Hi {name},

{copy['intro']}

{heading}
{items_text}
{offer + chr(10) if offer else ''}
{copy['cta']}: {link}

Best regards,
The Limen Lakay Team"""

    return RenderedEmail(
        subject=copy["subject"],
        html=_page("#b45309", SHOP.business_name, "Handcrafted Candles", body),
        text=text,
    )


# =============================================================================
# WORKSHOPS
# =============================================================================

DEFAULT_WORKSHOP_TEMPLATE = {
    "subject": "Your Concrete Creations Workshop Access",
    "body": """Hi {name},

Thank you for subscribing to our workshop! We're excited to have you.

Your Session: {date} at {time}
Join via: {link}

Please save this link for your selected date/time. We'll send a reminder before the workshop with preparation details.

See you soon!

Best,
Limen Lakay LLC""",
}

TEMPLATE_VARIABLE = re.compile(r"\{(name|date|time|link)\}")


def fill_workshop_template(template: str, name: str, date: str, time: str, link: str) -> str:
    """Replace {name}, {date}, {time} and {link}; other braces are left alone."""
    values = {"name": name, "date": date, "time": time, "link": link}
    return TEMPLATE_VARIABLE.sub(lambda m: str(values[m.group(1)]), template)


def text_to_html(text: str) -> str:
    return str(Markup("<br>").join(text.split("\n")))


def render_workshop_confirmation(
    template: Optional[dict], name: str, date: str, time: str, link: str
) -> RenderedEmail:
    template = template or {}
    subject = template.get("subject") or DEFAULT_WORKSHOP_TEMPLATE["subject"]
    body = template.get("body") or DEFAULT_WORKSHOP_TEMPLATE["body"]
    subject = fill_workshop_template(subject, name, date, time, link)
    body = fill_workshop_template(body, name, date, time, link)
    return RenderedEmail(subject=subject, html=text_to_html(body), text=body)


def render_workshop_reminder(name: str, date: str, time: str, link: str) -> RenderedEmail:
    body = f"""Hi {name},

This is a friendly reminder about your upcoming Concrete Creations Workshop!

Session: {date} at {time}
Join via: {link}

What to bring:
- Wear comfortable clothes you don't mind getting dusty (aprons provided)
- Bring your creativity and enthusiasm!

We can't wait to create with you!

Best,
Limen Lakay LLC"""
    return RenderedEmail(
        subject=f"Reminder: Workshop Tomorrow - {date}",
        html=text_to_html(body),
        text=body,
    )


# =============================================================================
# BUSINESS INBOX NOTIFICATIONS
# =============================================================================

NOTIFICATION_TYPES = ("inquiry", "feedback", "chat", "order_tracking")

NOTIFICATION_TEMPLATES = {
    "inquiry": env.from_string("""<h2>New Custom Order Inquiry</h2>
<p><strong>From:</strong> {{ d.name }}</p>
<p><strong>Email:</strong> {{ d.email }}</p>
<p><strong>Phone:</strong> {{ d.phone or 'Not provided' }}</p>
<p><strong>Order Type:</strong> {{ d.order_type or 'Not specified' }}</p>
<p><strong>Vessel Preference:</strong> {{ d.vessel_preference or 'Not specified' }}</p>
<p><strong>Scent Preference:</strong> {{ d.scent_preference or 'Not specified' }}</p>
<p><strong>Quantity:</strong> {{ d.quantity or 'Not specified' }}</p>
<p><strong>Message:</strong></p>
<p>{{ d.message or 'No message provided' }}</p>
<hr>
<p><em>Respond within 24 hours to maintain excellent customer service!</em></p>"""),
    "feedback": env.from_string("""<h2>New Customer Feedback</h2>
<p><strong>Rating:</strong> {{ '⭐' * rating }} ({{ rating }}/5)</p>
<p><strong>From:</strong> {{ d.customer_name or 'Anonymous' }}</p>
<p><strong>Email:</strong> {{ d.customer_email or 'Not provided' }}</p>
<p><strong>Comment:</strong></p>
<p>{{ d.comment }}</p>
<hr>
<p><em>Consider featuring this review on your website if it's positive!</em></p>"""),
    "chat": env.from_string("""<h2>New Chat Message</h2>
<p><strong>From:</strong> {{ d.sender_name or 'Customer' }}</p>
<p><strong>Email:</strong> {{ d.sender_email or 'Not provided' }}</p>
<p><strong>Session ID:</strong> {{ d.session_id }}</p>
<p><strong>Message:</strong></p>
<p>{{ d.message_text }}</p>
<hr>
<p><em>Please respond to the customer within 24 hours through the chat system.</em></p>"""),
    "order_tracking": env.from_string("""<h2>Order Tracking Request</h2>
<p><strong>Tracking Number:</strong> {{ d.tracking_number }}</p>
<p><strong>Customer:</strong> {{ d.customer_name }}</p>
<p><strong>Email:</strong> {{ d.customer_email }}</p>
<p><strong>Current Status:</strong> {{ d.order_status }}</p>
<hr>
<p><em>Customer is checking their order status. Ensure tracking information is up to date.</em></p>"""),
}

GENERIC_NOTIFICATION = env.from_string("<p>New notification from {{ shop.business_name }} website</p>")


def render_business_notification(notification_type: str, data: dict) -> RenderedEmail:
    """Render a notification for the business inbox about a customer interaction."""
    d = data or {}
    rating = int(to_number(d.get("rating")))

    if notification_type == "inquiry":
        subject = f"New Custom Order Inquiry from {d.get('name', 'Customer')}"
    elif notification_type == "feedback":
        subject = f"New Customer Feedback ({rating} stars)"
    elif notification_type == "chat":
        subject = "New Chat Message from Customer"
    elif notification_type == "order_tracking":
        subject = f"Order Tracking Request - {d.get('tracking_number', '')}"
    else:
        subject = f"New notification from {SHOP.business_name}"

    template = NOTIFICATION_TEMPLATES.get(notification_type, GENERIC_NOTIFICATION)
    return RenderedEmail(subject=subject, html=template.render(d=d, rating=rating))

"""
Tests for email delivery and the templates that are not covered by the
order and workshop tests.
"""

import asyncio

import httpx
import pytest
from pydantic import ValidationError as PydanticValidationError

from config.settings import EmailConfig, ShopConfig, SupabaseConfig
from lakay.errors import ValidationError
from lakay.notifications import (
    COMEBACK_CODE,
    EmailSender,
    notify_business,
    order_items_html,
    parse_cart_items,
    render_business_notification,
    render_cart_reminder,
    render_order_email,
    send_cart_reminder,
)

CART = {
    "cartId": "cart-42",
    "customerEmail": "marie@example.com",
    "customerName": "Marie",
    "cartItems": [
        {"productName": "Lavender Pillar", "quantity": 2, "price": 28},
        {"productName": "Sea Salt Jar", "price": 35},
    ],
    "cartValue": 91,
    "reminderType": "first",
}


class TestEmailSender:
    def test_posts_to_edge_function(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"id": "1"})

        sender = EmailSender(
            SupabaseConfig(url="https://db.test/", key="secret"),
            EmailConfig(),
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(sender.send("a@b.test", "Hi", "<p>Hi</p>", reply_to="c@d.test"))

        assert result.success
        request = requests[0]
        assert str(request.url) == "https://db.test/functions/v1/send-email"
        assert request.headers["Authorization"] == "Bearer secret"
        assert b'"replyTo"' in request.content

    def test_error_message_from_function(self):
        sender = EmailSender(
            SupabaseConfig(url="https://db.test", key="secret"),
            transport=httpx.MockTransport(lambda r: httpx.Response(422, json={"error": "bad address"})),
        )
        result = asyncio.run(sender.send("nope", "Hi", "<p>Hi</p>"))
        assert not result.success
        assert result.error == "bad address"
        assert result.to_dict()["preview"] == {"to": "nope", "subject": "Hi"}

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        sender = EmailSender(
            SupabaseConfig(url="https://db.test", key="secret"),
            transport=httpx.MockTransport(handler),
        )
        result = asyncio.run(sender.send("a@b.test", "Hi", "<p>Hi</p>"))
        assert result.error == "Email service temporarily unavailable"


class TestOrderTemplates:
    def test_escapes_customer_values(self):
        email = render_order_email("confirmation", "ORD-1", customer_name="<script>x</script>")
        assert "<script>" not in email.html
        assert "&lt;script&gt;" in email.html

    def test_shipped_without_tracking(self):
        email = render_order_email("shipped", "ORD-1")
        assert "Will be provided soon" in email.html

    def test_order_details_from_request_are_escaped(self):
        email = render_order_email(
            "confirmation", "ORD-1", order_details="<img src=x onerror=alert(1)>"
        )
        assert "<img" not in email.html
        assert "&lt;img src=x onerror=alert(1)&gt;" in email.html

    def test_item_rows_are_markup(self):
        rows = order_items_html([{"vessel_name": "<b>Bowl</b>", "unit_price": 45, "quantity": 2}])
        email = render_order_email("confirmation", "ORD-1", order_details=rows, total=90)
        assert '<div class="item">2x &lt;b&gt;Bowl&lt;/b&gt; - $45.00</div>' in email.html
        assert "Total: $90.00" in email.html

    def test_status_notes_escaped(self):
        email = render_order_email(
            "status_update", "ORD-1", status_details={"status": "curing", "notes": "a & b"}
        )
        assert "curing" in email.html
        assert "a &amp; b" in email.html
        assert email.subject == "Order Update - ORD-1"


class TestCartReminders:
    @pytest.mark.parametrize("reminder_type", ["first", "second", "final"])
    def test_recovery_link(self, reminder_type):
        email = render_cart_reminder(
            reminder_type, "cart-42", CART["cartItems"], 91, site_url="https://shop.test/"
        )
        assert "https://shop.test/cart/recover/cart-42" in email.html
        assert "https://shop.test/cart/recover/cart-42" in email.text
        assert "Lavender Pillar (Qty: 2) - $28.00" in email.text
        assert "$91.00" in email.html

    def test_only_final_has_discount(self):
        for reminder_type in ("first", "second"):
            assert COMEBACK_CODE not in render_cart_reminder(reminder_type, "c", [], 0).text
        assert COMEBACK_CODE in render_cart_reminder("final", "c", [], 0).text

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Invalid reminder type"):
            render_cart_reminder("fourth", "c", [], 0)

    def test_send(self, email_sender, sent_emails):
        result = asyncio.run(send_cart_reminder(email_sender, CART, "https://shop.test"))
        assert result["success"] is True
        assert result["cartId"] == "cart-42"
        assert result["reminderType"] == "first"
        assert result["sentAt"]
        assert sent_emails[0]["subject"] == "You left something beautiful behind... ✨"
        assert "Hi Marie" in sent_emails[0]["text"]

    def test_cart_lines_validated(self):
        items = parse_cart_items([{"product_name": "Jar", "quantity": "", "price": "$12"}, {}])
        assert [(i.product_name, i.quantity, i.price) for i in items] == [("Jar", 1, 12), ("Item", 1, 0)]

    def test_cart_line_must_be_object(self, email_sender):
        with pytest.raises(PydanticValidationError):
            asyncio.run(send_cart_reminder(email_sender, {**CART, "cartItems": ["Jar"]}))

    def test_value_from_items_when_missing(self, email_sender, sent_emails):
        data = {k: v for k, v in CART.items() if k != "cartValue"}
        asyncio.run(send_cart_reminder(email_sender, data))
        assert "$91.00" in sent_emails[0]["html"]

    def test_send_requires_cart_fields(self, email_sender):
        with pytest.raises(ValidationError) as exc:
            asyncio.run(send_cart_reminder(email_sender, {"cartId": "c"}))
        assert exc.value.fields == ["customerEmail", "reminderType"]


class TestBusinessNotifications:
    def test_feedback_stars(self):
        email = render_business_notification("feedback", {"rating": 4, "comment": "Lovely"})
        assert email.subject == "New Customer Feedback (4 stars)"
        assert "⭐⭐⭐⭐ (4/5)" in email.html

    def test_unknown_type_is_generic(self):
        email = render_business_notification("other", {})
        assert email.subject == "New notification from Limen Lakay"

    def test_notify_sets_reply_to(self, email_sender, sent_emails):
        asyncio.run(notify_business(
            email_sender, "inquiry", {"name": "Ana", "email": "ana@example.com"},
            ShopConfig(business_email="inbox@shop.test"),
        ))
        assert sent_emails[0]["to"] == "inbox@shop.test"
        assert sent_emails[0]["replyTo"] == "ana@example.com"
        assert sent_emails[0]["subject"] == "New Custom Order Inquiry from Ana"

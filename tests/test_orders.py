"""
Tests for custom orders, their emails and the order tracking lookups.
"""

import asyncio

import pytest

from config.settings import ShopConfig
from lakay import orders
from lakay.errors import StoreError, ValidationError
from lakay.tracking import create_tracking, track_order, update_status

ORDER = {
    "customer_name": "Marie Joseph",
    "customer_email": "marie@example.com",
    "shipping_address": "12 Ocean Ave",
    "shipping_city": "Palm Beach",
    "shipping_state": "FL",
    "shipping_zip": "33480",
    "items": [
        {"vessel_id": "v1", "scent_id": "s1", "unit_price": 45, "quantity": 2, "vessel_name": "Pillar"},
        {"vessel_id": "v2", "scent_id": "s2", "unit_price": 30},
    ],
}


def create(store, sender=None, data=None, clock=None):
    return asyncio.run(
        orders.create_order(
            store, data or ORDER, sender, ShopConfig(), clock=clock or (lambda: 1700000000000)
        )
    )


class TestCreateOrder:
    def test_totals_and_number(self, store, fake_client):
        result = create(store)
        assert result["order_number"] == "ORD-1700000000000"
        assert result["total"] == 130

        row = fake_client.tables["custom_orders"][0]
        assert row["subtotal"] == 120
        assert row["shipping_cost"] == 10
        assert row["status"] == "pending"
        assert row["payment_status"] == "pending"

    def test_items_link_to_order(self, store, fake_client):
        result = create(store)
        items = fake_client.tables["custom_order_items"]
        assert [i["order_id"] for i in items] == [result["id"], result["id"]]
        assert [i["subtotal"] for i in items] == [90, 30]
        assert items[1]["quantity"] == 1

    def test_missing_fields(self, store):
        with pytest.raises(ValidationError) as exc:
            create(store, data={"customer_name": "A", "items": []})
        assert set(exc.value.fields) == {"customer_email", "items"}

    def test_failed_items_roll_back_order(self, store, fake_client):
        fake_client.failures[("custom_order_items", "insert")] = "constraint violation"
        with pytest.raises(StoreError):
            create(store)
        assert fake_client.tables["custom_orders"] == []

    def test_confirmation_email(self, store, email_sender, sent_emails):
        create(store, sender=email_sender)
        assert len(sent_emails) == 1
        email = sent_emails[0]
        assert email["to"] == "marie@example.com"
        assert email["subject"] == "Order Confirmation - ORD-1700000000000"
        assert "Pillar" in email["html"]

    def test_email_failure_keeps_order(self, store, offline_sender, fake_client):
        result = create(store, sender=offline_sender)
        assert result["id"] == fake_client.tables["custom_orders"][0]["id"]


class TestUpdateOrder:
    def test_shipping_stamps_and_emails(self, store, email_sender, sent_emails):
        result = create(store)
        row = asyncio.run(
            orders.update_order(
                store, result["id"], {"status": "shipped", "tracking_number": "1Z999"}, email_sender
            )
        )
        assert row["status"] == "shipped"
        assert row["shipped_at"]
        assert sent_emails[0]["subject"] == "Your Order Has Shipped! - ORD-1700000000000"
        assert "1Z999" in sent_emails[0]["html"]

    def test_completed_stamp(self, store):
        result = create(store)
        row = asyncio.run(orders.update_order(store, result["id"], {"status": "completed"}))
        assert row["completed_at"]

    def test_rejects_unknown_status(self, store):
        result = create(store)
        with pytest.raises(ValidationError):
            asyncio.run(orders.update_order(store, result["id"], {"status": "lost"}))

    def test_requires_id(self, store):
        with pytest.raises(ValidationError):
            asyncio.run(orders.update_order(store, None, {"status": "shipped"}))

    def test_admin_notes_can_be_cleared(self, store):
        result = create(store)
        asyncio.run(orders.update_order(store, result["id"], {"admin_notes": "call first"}))
        row = asyncio.run(orders.update_order(store, result["id"], {"admin_notes": ""}))
        assert row["admin_notes"] == ""

    def test_list_by_status(self, store):
        first = create(store)
        create(store, clock=lambda: 1700000000001)
        asyncio.run(orders.update_order(store, first["id"], {"status": "processing"}))
        assert [o["id"] for o in orders.list_orders(store, "processing")] == [first["id"]]
        assert len(orders.list_orders(store)) == 2


class TestSendOrderEmail:
    def test_status_update(self, email_sender, sent_emails):
        result = asyncio.run(orders.send_order_email(email_sender, {
            "to": "marie@example.com",
            "type": "status_update",
            "orderNumber": "ORD-1",
            "statusDetails": {"status": "processing", "message": "Your candles are curing."},
        }))
        assert result.success
        assert sent_emails[0]["subject"] == "Order Update - ORD-1"
        assert "curing" in sent_emails[0]["html"]

    def test_unknown_type(self, email_sender):
        with pytest.raises(ValueError, match="Invalid email type"):
            asyncio.run(orders.send_order_email(
                email_sender, {"to": "a@b.c", "type": "refund", "orderNumber": "ORD-1"}
            ))

    def test_not_configured_reports_preview(self, offline_sender):
        result = asyncio.run(orders.send_order_email(
            offline_sender, {"to": "a@b.c", "type": "confirmation", "orderNumber": "ORD-1"}
        ))
        assert not result.success
        assert result.error == "Email service not configured"
        assert result.preview["subject"] == "Order Confirmation - ORD-1"


class TestInternalTracking:
    def test_create_and_update(self, store, fake_client):
        create_tracking(store, {
            "tracking_number": "ll-123",
            "customer_email": "marie@example.com",
            "customer_name": "Marie",
        })
        update_status(store, "LL-123", "in_transit", "Left the studio", updated_by="admin")

        tracking = fake_client.tables["order_tracking"][0]
        assert tracking["tracking_number"] == "LL-123"
        assert tracking["order_status"] == "in_transit"
        history = fake_client.tables["order_status_history"]
        assert history[0]["status"] == "in_transit"
        assert history[0]["status_message"] == "Left the studio"

    def test_lookup_uppercases(self, store, fake_client):
        fake_client.tables["order_tracking_with_status"] = [
            {"tracking_number": "LL-9", "current_status": "delivered"}
        ]
        assert track_order(store, "ll-9")["current_status"] == "delivered"

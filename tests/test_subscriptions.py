"""
Tests for the business subscription tracker.
"""

import csv
import io
from datetime import date

import pytest

from lakay import subscriptions
from lakay.errors import ValidationError

TODAY = date(2026, 3, 1)

ROWS = [
    {"id": "1", "platform_service": "Shopify", "category": "E-commerce", "amount": 39,
     "length_of_subscription": "1 month", "expiration_date": "2026-03-05"},
    {"id": "2", "platform_service": "Canva", "category": "Design", "amount": 120,
     "length_of_subscription": "1 year", "expiration_date": "2026-02-01"},
    {"id": "3", "platform_service": "Etsy Plus", "category": "E-commerce", "amount": 10,
     "length_of_subscription": "1 month", "expiration_date": "2026-06-01"},
]


class TestSaveSubscription:
    def test_renewal_defaults_to_day_after_expiration(self, store):
        row = subscriptions.save_subscription(store, {
            "platform_service": "Canva",
            "amount": "$120.00",
            "expiration_date": "2026-12-31",
            "renewal_date": "",
            "notes": "",
        })
        assert row["amount"] == 120.0
        assert row["renewal_date"] == "2027-01-01"
        assert row["notes"] is None

    def test_keeps_given_renewal_date(self, store):
        row = subscriptions.save_subscription(store, {
            "platform_service": "Canva",
            "amount": 12,
            "expiration_date": "2026-12-31",
            "renewal_date": "2026-12-15",
        })
        assert row["renewal_date"] == "2026-12-15"

    def test_required_fields(self, store):
        with pytest.raises(ValidationError) as exc:
            subscriptions.save_subscription(store, {"platform_service": "Canva"})
        assert exc.value.fields == ["amount", "expiration_date"]

    def test_unreadable_expiration_date(self, store):
        with pytest.raises(ValidationError) as exc:
            subscriptions.save_subscription(
                store, {"platform_service": "Canva", "amount": 12, "expiration_date": "next spring"}
            )
        assert exc.value.fields == ["expiration_date"]

    def test_update(self, store):
        row = subscriptions.save_subscription(
            store, {"platform_service": "Canva", "amount": 12, "expiration_date": "2026-12-31"}
        )
        updated = subscriptions.save_subscription(
            store,
            {"platform_service": "Canva Pro", "amount": 15, "expiration_date": "2027-12-31"},
            row["id"],
        )
        assert updated["platform_service"] == "Canva Pro"
        assert len(subscriptions.list_subscriptions(store)) == 1


class TestViews:
    def test_filter_by_search_and_category(self):
        assert [s["id"] for s in subscriptions.filter_subscriptions(ROWS, "shop")] == ["1"]
        assert [s["id"] for s in subscriptions.filter_subscriptions(ROWS, "", "E-commerce")] == ["1", "3"]
        assert len(subscriptions.filter_subscriptions(ROWS, "", "all")) == 3

    def test_annotate(self):
        rows = subscriptions.annotate(ROWS, TODAY)
        assert [(r["days_left"], r["urgency"]) for r in rows] == [
            (4, "urgent"),
            (-28, "expired"),
            (92, "safe"),
        ]

    def test_annotate_flags_bad_dates(self):
        rows = subscriptions.annotate(ROWS[:1] + [
            {"id": "4", "platform_service": "Legacy", "expiration_date": "31/12/2026"},
            {"id": "5", "platform_service": "Blank", "expiration_date": None},
        ], TODAY)
        assert [(r["days_left"], r["urgency"]) for r in rows] == [
            (4, "urgent"),
            (None, subscriptions.INVALID_URGENCY),
            (None, subscriptions.INVALID_URGENCY),
        ]

    def test_summary_skips_bad_dates(self, store, fake_client):
        fake_client.tables["subscriptions"] = [dict(r) for r in ROWS] + [{
            "id": "4", "platform_service": "Legacy", "amount": 5,
            "length_of_subscription": "1 month", "expiration_date": "soon",
        }]
        result = subscriptions.summary(store, TODAY)
        assert result["count"] == 4
        assert result["monthly_total"] == 54
        assert result["expired"] == 1
        assert result["upcoming_renewals"] == 1

    def test_summary_from_store(self, store, fake_client):
        fake_client.tables["subscriptions"] = [dict(r) for r in ROWS]
        result = subscriptions.summary(store, TODAY)
        assert result["monthly_total"] == 49
        assert result["expired"] == 1
        assert result["upcoming_renewals"] == 1

    def test_list_soonest_first(self, store, fake_client):
        fake_client.tables["subscriptions"] = [dict(r) for r in ROWS]
        assert [s["id"] for s in subscriptions.list_subscriptions(store)] == ["2", "1", "3"]

    def test_export_csv(self):
        text = subscriptions.export_csv(ROWS[:1])
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0] == subscriptions.CSV_HEADER
        assert rows[1][0] == "Shopify"
        assert rows[1][3] == "$39.00"
        assert text.splitlines()[1].startswith('"Shopify","E-commerce"')

"""
Tests for money and date arithmetic: invoice totals, order totals,
the admin price calculator and subscription urgency.
"""

from datetime import date

import pytest

from lakay.pricing import (
    PriceInputs,
    cart_value,
    days_until,
    default_renewal_date,
    format_currency,
    invoice_totals,
    order_totals,
    price_breakdown,
    subscription_summary,
    to_number,
    urgency,
)


class TestNumbers:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("12.50", 12.5),
            ("$1,200", 1200.0),
            ("", 0.0),
            (None, 0.0),
            ("abc", 0.0),
            (float("nan"), 0.0),
            (3, 3.0),
        ],
    )
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    def test_format_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-3) == "-$3.00"
        assert format_currency(None) == "$0.00"


class TestInvoiceTotals:
    def test_discount_before_tax(self):
        items = [{"quantity": 2, "rate": 50}, {"quantity": 1, "rate": 20}]
        totals = invoice_totals(items, tax_rate=7, discount_percentage=10)
        assert totals.subtotal == pytest.approx(120)
        assert totals.discount_amount == pytest.approx(12)
        assert totals.tax_amount == pytest.approx(7.56)
        assert totals.total == pytest.approx(115.56)

    def test_blank_lines_count_as_zero(self):
        totals = invoice_totals([{"description": "", "quantity": "", "rate": ""}], tax_rate=7)
        assert totals.total == 0

    def test_no_items(self):
        assert invoice_totals([]).to_dict() == {
            "subtotal": 0,
            "discount_amount": 0,
            "tax_amount": 0,
            "total": 0,
        }


class TestOrderTotals:
    def test_flat_shipping_added(self):
        items = [{"unit_price": 45, "quantity": 2}, {"unit_price": 30}]
        totals = order_totals(items, shipping_cost=10)
        assert totals.subtotal == 120
        assert totals.shipping_cost == 10
        assert totals.total == 130

    def test_zero_quantity_counts_as_one(self):
        assert order_totals([{"unit_price": 20, "quantity": 0}]).subtotal == 20

    def test_cart_value(self):
        assert cart_value([{"price": 25, "quantity": 2}, {"price": "5.5"}]) == 55.5


class TestPriceCalculator:
    def test_breakdown(self):
        result = price_breakdown({
            "wax_cost": 10,
            "wick_cost": 2,
            "fragrance_cost": 8,
            "number_of_items": 5,
            "hours_to_create": 2,
            "hourly_rate": 25,
            "markup_percentage": 100,
            "listing_fees": 5,
            "transaction_fee_percentage": 3,
        })
        assert result.total_material_cost == pytest.approx(20)
        assert result.labor_cost == pytest.approx(50)
        assert result.cost_per_item == pytest.approx(14)
        assert result.base_price == pytest.approx(15)
        assert result.retail_price == pytest.approx(30.9)
        assert result.transaction_fee == pytest.approx(0.927)
        assert result.profit_per_item == pytest.approx(14.973)
        assert result.profit_margin_percentage == pytest.approx(14.973 / 30.9 * 100)

    def test_zero_items_does_not_divide(self):
        result = price_breakdown(PriceInputs(wax_cost=10, number_of_items=0))
        assert result.cost_per_item == 0
        assert result.retail_price == 0
        assert result.profit_margin_percentage == 0

    def test_form_strings_and_unknown_keys(self):
        inputs = PriceInputs.from_dict({"wax_cost": "4.5", "colour": "red", "hours_to_create": ""})
        assert inputs.wax_cost == 4.5
        assert inputs.hours_to_create == 0
        assert inputs.hourly_rate == 25


class TestSubscriptionDates:
    today = date(2026, 3, 1)

    @pytest.mark.parametrize(
        "expiration,expected",
        [
            ("2026-02-28", "expired"),
            ("2026-03-01", "urgent"),
            ("2026-03-08", "urgent"),
            ("2026-03-09", "soon"),
            ("2026-03-31", "soon"),
            ("2026-04-01", "safe"),
        ],
    )
    def test_urgency(self, expiration, expected):
        assert urgency(days_until(expiration, self.today)) == expected

    def test_renewal_defaults_to_next_day(self):
        assert default_renewal_date("2026-12-31") == "2027-01-01"

    def test_summary(self):
        subs = [
            {"amount": 10, "length_of_subscription": "1 month", "expiration_date": "2026-03-10"},
            {"amount": 120, "length_of_subscription": "1 year", "expiration_date": "2026-01-01"},
            {"amount": 5, "length_of_subscription": "3 months", "expiration_date": "2026-09-01"},
        ]
        result = subscription_summary(subs, self.today)
        assert result["count"] == 3
        assert result["monthly_total"] == 15
        assert result["yearly_total"] == 10 * 12 + 120 + 5 * 12
        assert result["upcoming_renewals"] == 1
        assert result["expired"] == 1

"""
Pricing arithmetic for invoices, custom orders, the admin price calculator
and subscription cost tracking.

Every input is coerced with ``to_number`` so blanks and NaN count as 0.
Nothing here rounds; ``format_currency`` rounds at display time.
"""

import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional, Union


def to_number(value: Any) -> float:
    """Coerce a form value to a float, treating blanks and NaN as 0."""
    if value is None or isinstance(value, bool):
        return float(value or 0)
    try:
        number = float(str(value).strip().replace("$", "").replace(",", ""))
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def format_currency(amount: Any) -> str:
    """Format as US dollars, e.g. 1234.5 -> '$1,234.50'."""
    amount = to_number(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _get(item: Any, key: str, default: Any = 0) -> Any:
    if isinstance(item, dict):
        return item.get(key, default)
    return getattr(item, key, default)


# =============================================================================
# INVOICES
# =============================================================================


@dataclass
class InvoiceTotals:
    subtotal: float
    discount_amount: float
    tax_amount: float
    total: float

    def to_dict(self) -> dict:
        return asdict(self)


def line_amount(item: Any) -> float:
    return to_number(_get(item, "quantity")) * to_number(_get(item, "rate"))


def invoice_totals(
    items: Iterable[Any], tax_rate: Any = 0, discount_percentage: Any = 0
) -> InvoiceTotals:
    """
    Compute invoice totals.

    The discount comes off the subtotal first; tax is charged on what is left.
    """
    subtotal = sum(line_amount(item) for item in items)
    discount_amount = subtotal * to_number(discount_percentage) / 100
    after_discount = subtotal - discount_amount
    tax_amount = after_discount * to_number(tax_rate) / 100
    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total=after_discount + tax_amount,
    )


# =============================================================================
# CUSTOM ORDERS
# =============================================================================


@dataclass
class OrderTotals:
    subtotal: float
    shipping_cost: float
    total: float


def item_quantity(item: Any) -> int:
    quantity = int(to_number(_get(item, "quantity", 1)))
    return quantity if quantity > 0 else 1


def order_totals(items: Iterable[Any], shipping_cost: Any = 0) -> OrderTotals:
    """Sum unit_price x quantity over the items and add flat shipping."""
    subtotal = sum(to_number(_get(item, "unit_price")) * item_quantity(item) for item in items)
    shipping = to_number(shipping_cost)
    return OrderTotals(subtotal=subtotal, shipping_cost=shipping, total=subtotal + shipping)


def cart_value(items: Iterable[Any]) -> float:
    return sum(to_number(_get(item, "price")) * item_quantity(item) for item in items)


# =============================================================================
# ADMIN PRICE CALCULATOR
# =============================================================================

SUPPLY_FIELDS = [
    "wax_cost",
    "wick_cost",
    "fragrance_cost",
    "vessel_cost",
    "label_cost",
    "packaging_cost",
    "other_supplies_cost",
]


@dataclass
class PriceInputs:
    """Inputs of the admin price calculator (all per batch)."""

    wax_cost: float = 0
    wick_cost: float = 0
    fragrance_cost: float = 0
    vessel_cost: float = 0
    label_cost: float = 0
    packaging_cost: float = 0
    other_supplies_cost: float = 0
    number_of_items: float = 1
    hours_to_create: float = 1
    hourly_rate: float = 25
    markup_percentage: float = 100
    listing_fees: float = 0
    shipping_cost: float = 0
    transaction_fee_percentage: float = 3

    @classmethod
    def from_dict(cls, data: dict) -> "PriceInputs":
        """Build from form data, ignoring unknown keys and coercing blanks to 0."""
        defaults = asdict(cls())
        values = {
            key: to_number(data[key]) if key in data else default
            for key, default in defaults.items()
        }
        return cls(**values)


@dataclass
class PriceBreakdown:
    total_material_cost: float
    labor_cost: float
    cost_per_item: float
    base_price: float
    retail_price: float
    transaction_fee: float
    profit_per_item: float
    profit_margin_percentage: float

    def to_dict(self) -> dict:
        return asdict(self)


def price_breakdown(inputs: Union[PriceInputs, dict]) -> PriceBreakdown:
    """
    Work out a retail price from supply costs, labour, markup and fees.

    Listing fees are spread per item; the transaction fee is added on top of
    the marked-up price so the seller still nets the markup.
    """
    if isinstance(inputs, dict):
        inputs = PriceInputs.from_dict(inputs)

    total_material_cost = sum(getattr(inputs, name) for name in SUPPLY_FIELDS)
    labor_cost = inputs.hours_to_create * inputs.hourly_rate
    items = inputs.number_of_items

    if items > 0:
        cost_per_item = (total_material_cost + labor_cost) / items
        listing_per_item = inputs.listing_fees / items
    else:
        cost_per_item = 0.0
        listing_per_item = 0.0

    base_price = cost_per_item + listing_per_item
    price_before_fees = base_price * (1 + inputs.markup_percentage / 100)
    retail_price = price_before_fees * (1 + inputs.transaction_fee_percentage / 100)

    transaction_fee = retail_price * inputs.transaction_fee_percentage / 100
    profit_per_item = retail_price - cost_per_item - listing_per_item - transaction_fee
    margin = (profit_per_item / retail_price) * 100 if retail_price > 0 else 0.0

    return PriceBreakdown(
        total_material_cost=total_material_cost,
        labor_cost=labor_cost,
        cost_per_item=cost_per_item,
        base_price=base_price,
        retail_price=retail_price,
        transaction_fee=transaction_fee,
        profit_per_item=profit_per_item,
        profit_margin_percentage=margin,
    )


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def days_until(expiration: Union[str, date], today: Optional[date] = None) -> int:
    """Whole days until the expiration date (negative once expired)."""
    today = today or date.today()
    return (parse_date(expiration) - today).days


def urgency(days_left: int) -> str:
    """Bucket a days-left count: expired, urgent (a week), soon (a month) or safe."""
    if days_left < 0:
        return "expired"
    if days_left <= 7:
        return "urgent"
    if days_left <= 30:
        return "soon"
    return "safe"


def default_renewal_date(expiration: Union[str, date]) -> str:
    """Renewal defaults to the day after expiration."""
    return (parse_date(expiration) + timedelta(days=1)).isoformat()


def is_monthly(length: str) -> bool:
    return "month" in (length or "").lower()


def is_yearly(length: str) -> bool:
    return "year" in (length or "").lower()


def subscription_summary(subscriptions: Iterable[Any], today: Optional[date] = None) -> dict:
    """
    Dashboard numbers for the subscriptions page.

    Yearly total counts yearly plans at face value and estimates everything
    else as twelve payments. Rows without a readable expiration date still
    count toward the totals but not toward renewals.
    """
    subscriptions = list(subscriptions)
    monthly_total = 0.0
    yearly_total = 0.0
    upcoming = 0
    expired = 0

    for sub in subscriptions:
        amount = to_number(_get(sub, "amount"))
        length = _get(sub, "length_of_subscription", "") or ""
        if is_monthly(length):
            monthly_total += amount
        yearly_total += amount if is_yearly(length) else amount * 12

        expiration = _get(sub, "expiration_date", None)
        if not expiration:
            continue
        try:
            days_left = days_until(expiration, today)
        except ValueError:
            continue
        if days_left < 0:
            expired += 1
        elif days_left <= 30:
            upcoming += 1

    return {
        "count": len(subscriptions),
        "monthly_total": monthly_total,
        "yearly_total": yearly_total,
        "upcoming_renewals": upcoming,
        "expired": expired,
    }

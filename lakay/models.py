"""
Record models for the shop tables.

Rows come back from Supabase as plain dicts; these models clean them on the
way in and give the services typed access. The database column constraints
are the real source of truth, so the only application-level rule is that
required fields are present (see ``require_fields``).
"""

import math
import re
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError
from .pricing import to_number


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


def is_blank(value: Any) -> bool:
    """True for None, empty strings/collections and NaN."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    return False


def require_fields(data: dict, fields: Iterable[str]) -> None:
    """
    Raise ValidationError if any of ``fields`` is blank in ``data``.

    Numbers count as present even when zero, except where the caller lists
    them as required and they are missing entirely.
    """
    missing = [name for name in fields if is_blank(data.get(name))]
    if missing:
        raise ValidationError("Missing required fields", missing)


class ShopModel(BaseModel):
    """Base model: keeps unknown columns so rows round-trip untouched."""

    model_config = ConfigDict(extra="allow", use_enum_values=True)


def optional_number(value: Any) -> Optional[float]:
    return None if is_blank(value) else to_number(value)


class Product(ShopModel):
    """Storefront product."""

    id: Optional[str] = None
    name: str
    price: float
    original_price: Optional[float] = None
    description: Optional[str] = None
    category: Optional[str] = None
    fragrance: Optional[str] = None
    size: Optional[str] = None
    image_url: Optional[str] = None
    is_available: bool = True
    stock_quantity: int = 0
    on_sale: bool = False
    is_new: bool = False
    rating: float = 0
    review_count: int = 0
    sku: Optional[str] = None

    @field_validator("price", "rating", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("stock_quantity", "review_count", mode="before")
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        return int(to_number(v))

    @field_validator("original_price", mode="before")
    @classmethod
    def blank_price(cls, v: Any) -> Optional[float]:
        return optional_number(v)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        """Collapse whitespace in product names."""
        return re.sub(r"\s+", " ", v or "").strip()

    @field_validator("sku")
    @classmethod
    def clean_sku(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return v.strip().upper()


class CustomOrderItem(ShopModel):
    vessel_id: Optional[str] = None
    scent_id: Optional[str] = None
    vessel_name: Optional[str] = None
    quantity: int = 1
    unit_price: float = 0

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> Any:
        return 1 if is_blank(v) else int(to_number(v))

    @field_validator("unit_price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> float:
        return to_number(v)


class CustomOrder(ShopModel):
    """A custom candle order built in the storefront wizard."""

    id: Optional[str] = None
    order_number: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_zip: Optional[str] = None
    subtotal: float = 0
    shipping_cost: float = 0
    total: float = 0
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    tracking_number: Optional[str] = None
    admin_notes: Optional[str] = None
    notes: Optional[str] = None
    items: list[CustomOrderItem] = Field(default_factory=list)

    @field_validator("subtotal", "shipping_cost", "total", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> float:
        return to_number(v)

    @property
    def full_address(self) -> str:
        return (
            f"{self.shipping_address}, {self.shipping_city}, "
            f"{self.shipping_state} {self.shipping_zip}"
        )


class CandleScent(ShopModel):
    """A scent offered in the custom-order builder."""

    id: Optional[str] = None
    name: str
    name_english: str
    notes: str
    description: str
    is_available: bool = True
    display_order: int = 0

    @field_validator("display_order", mode="before")
    @classmethod
    def coerce_order(cls, v: Any) -> int:
        return int(to_number(v))


class CandleVessel(ShopModel):
    """A physical vessel in stock for custom orders."""

    id: Optional[str] = None
    name: str
    color: str
    size: str
    price: float
    image_url: str
    stock_quantity: int = 0
    is_available: bool = True
    description: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("stock_quantity", mode="before")
    @classmethod
    def coerce_stock(cls, v: Any) -> int:
        return int(to_number(v))


class InvoiceItem(ShopModel):
    description: str = ""
    quantity: float = 1
    rate: float = 0
    amount: float = 0

    @field_validator("quantity", "rate", "amount", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v: Any) -> str:
        return v or ""


class Invoice(ShopModel):
    id: Optional[str] = None
    invoice_number: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_address: Optional[str] = None
    customer_phone: Optional[str] = None
    date: Optional[str] = None
    due_date: Optional[str] = None
    subtotal: float = 0
    tax_rate: float = 0
    tax_amount: float = 0
    discount_percentage: float = 0
    discount_amount: float = 0
    total: float = 0
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: Optional[str] = None
    terms: Optional[str] = None
    payment_method: Optional[str] = None
    items: list[InvoiceItem] = Field(default_factory=list)

    @field_validator(
        "subtotal", "tax_rate", "tax_amount", "discount_percentage", "discount_amount", "total",
        mode="before",
    )
    @classmethod
    def coerce_number(cls, v: Any) -> float:
        return to_number(v)


class Subscription(ShopModel):
    """A recurring business cost (software, hosting, marketplace fees)."""

    id: Optional[str] = None
    platform_service: str
    category: str = ""
    date_paid: Optional[str] = None
    amount: float
    length_of_subscription: str = "1 year"
    expiration_date: str
    renewal_date: Optional[str] = None
    renewal_method: str = "Auto-renew"
    notes: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return to_number(v)


class WorkshopSession(ShopModel):
    id: Optional[str] = None
    session_date: str
    session_time: str
    meeting_link: str
    max_participants: int = 12
    current_participants: int = 0
    status: str = "open"

    @field_validator("max_participants", "current_participants", mode="before")
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        return int(to_number(v))

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants


class WorkshopBooking(ShopModel):
    id: Optional[str] = None
    name: str
    email: str
    phone: str
    workshop_date: str
    package_type: str
    package_price: Optional[float] = None
    status: str = "confirmed"

    @field_validator("package_price", mode="before")
    @classmethod
    def blank_price(cls, v: Any) -> Optional[float]:
        return optional_number(v)


class BrandVoice(ShopModel):
    """Tone and style rules applied to generated marketing copy."""

    primary_voice: str = "warm"
    formality_level: int = 5
    preferred_phrases: list[str] = Field(default_factory=list)
    banned_phrases: list[str] = Field(default_factory=list)
    metaphor_style: str = ""
    emoji_usage: str = "moderate"
    allowed_emojis: list[str] = Field(default_factory=list)
    core_values: list[str] = Field(default_factory=list)
    luxury_warmth_balance: int = 5
    never_claim: list[str] = Field(default_factory=list)
    instagram_line_break_style: str = "natural"
    linkedin_business_focus: bool = False
    email_cta_softness: int = 5

    @field_validator(
        "preferred_phrases", "banned_phrases", "allowed_emojis", "core_values", "never_claim",
        mode="before",
    )
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []


class StoryAngle(ShopModel):
    name: str
    description: str = ""
    focus_areas: list[str] = Field(default_factory=list)
    tone_guidance: str = ""


class MediaAsset(ShopModel):
    id: Optional[str] = None
    file_url: str = ""
    file_type: str = "image"
    content_type: str = ""
    product_type: str = ""
    mood: list[str] = Field(default_factory=list)
    color_palette: list[str] = Field(default_factory=list)
    materials_used: list[str] = Field(default_factory=list)
    scent_profile: list[str] = Field(default_factory=list)
    scent_name: Optional[str] = None
    caption_notes: Optional[str] = None
    story_context: Optional[str] = None

    @field_validator("mood", "color_palette", "materials_used", "scent_profile", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []


class Recipe(ShopModel):
    name: str
    ingredients: dict[str, float] = Field(default_factory=dict)
    profile: Optional[str] = None
    purpose: Optional[str] = None
    audience: Optional[str] = None


class ScheduledPost(ShopModel):
    id: Optional[str] = None
    scheduled_date: str
    scheduled_time: Optional[str] = None
    platform: str
    caption: str
    status: str = "scheduled"
    media_asset_id: Optional[str] = None
    product_name: Optional[str] = None
    hashtags: list[str] = Field(default_factory=list)


class VesselStyle(ShopModel):
    """A vessel style shown in the custom-order builder (stored client-side)."""

    id: str
    name: str
    description: str = ""
    image: Optional[str] = None
    is_visible: bool = Field(default=True, alias="isVisible")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ChatMessage(ShopModel):
    session_id: str
    sender_type: str = "customer"
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    message_text: str

    @field_validator("sender_type")
    @classmethod
    def check_sender(cls, v: str) -> str:
        if v not in ("customer", "support"):
            raise ValueError("sender_type must be 'customer' or 'support'")
        return v


class CustomerFeedback(ShopModel):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    comment: str
    order_reference: Optional[str] = None


class CartItem(ShopModel):
    """One line of an abandoned cart, as the storefront sends it."""

    product_id: Optional[str] = Field(default=None, alias="productId")
    product_name: str = Field(default="Item", alias="productName")
    quantity: int = 1
    price: float = 0

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("product_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Optional[str]:
        return None if is_blank(v) else str(v)

    @field_validator("product_name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> str:
        return "Item" if is_blank(v) else str(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> int:
        quantity = int(to_number(v))
        return quantity if quantity > 0 else 1

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> float:
        return to_number(v)

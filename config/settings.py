"""
Configuration settings for the Limen Lakay shop backend.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from project root
load_dotenv(Path(__file__).parent.parent / ".env")


@dataclass
class SupabaseConfig:
    """Configuration for the hosted database."""

    url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    key: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_KEY"))

    # Storage bucket for product photos and media library uploads
    bucket_name: str = "media"

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


@dataclass
class ShopConfig:
    """Business details and pricing defaults."""

    business_name: str = "Limen Lakay"
    business_email: str = "info@limenlakay.com"
    business_phone: str = "(561) 593-0238"
    site_url: str = field(
        default_factory=lambda: os.getenv("SITE_URL", "https://www.limenlakay.com")
    )

    # Custom orders ship at a flat rate
    custom_order_shipping: float = 10.0

    # Invoices
    default_tax_rate: float = 7.0

    # Workshops
    workshop_capacity: int = 12

    # Price calculator defaults
    hourly_rate: float = 25.0
    markup_percentage: float = 100.0
    transaction_fee_percentage: float = 3.0


@dataclass
class EmailConfig:
    """Configuration for outbound email (Supabase edge function)."""

    function_path: str = "/functions/v1/send-email"
    timeout_seconds: float = 15.0


@dataclass
class AIConfig:
    """Configuration for the chat assistant."""

    api_key_env: str = "OPENAI_API_KEY"
    chat_model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 1024

    @property
    def api_key(self) -> Optional[str]:
        return os.getenv(self.api_key_env)


@dataclass
class CarrierConfig:
    """Configuration for the UPS tracking and rating APIs."""

    client_id: Optional[str] = field(default_factory=lambda: os.getenv("UPS_CLIENT_ID"))
    client_secret: Optional[str] = field(
        default_factory=lambda: os.getenv("UPS_CLIENT_SECRET")
    )
    token_url: str = "https://onlinetools.ups.com/security/v1/oauth/token"
    tracking_url: str = "https://onlinetools.ups.com/api/track/v1/details"
    rating_url: str = "https://onlinetools.ups.com/api/rating/v1/Rate"
    account_number: Optional[str] = field(default_factory=lambda: os.getenv("UPS_ACCOUNT_NUMBER"))
    transaction_source: str = "limenlakay"
    timeout_seconds: float = 20.0

    # Ship-from address and the flat rate quoted when UPS is unavailable
    origin_city: str = "Palm Beach"
    origin_state: str = "FL"
    origin_zip: str = "33401"
    fallback_rate: float = 8.99

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class VesselStorageConfig:
    """Configuration for the vessel image key/value store."""

    path: Path = field(
        default_factory=lambda: Path(__file__).parent.parent / "data" / "vessel-storage.json"
    )

    # Browser local storage gives roughly 5MB per origin
    quota_bytes: int = 5 * 1024 * 1024
    compress_threshold_bytes: int = 4 * 1024 * 1024

    # Re-compression settings
    max_image_side: int = 600
    jpeg_quality: int = 60

    # Recovery / cleanup
    backups_to_keep: int = 5
    emergency_keys_to_try: int = 3

    def ensure_dirs(self) -> None:
        """Create the storage directory if it doesn't exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)


@dataclass
class AppConfig:
    """Main configuration combining all settings."""

    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    shop: ShopConfig = field(default_factory=ShopConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    carrier: CarrierConfig = field(default_factory=CarrierConfig)
    vessels: VesselStorageConfig = field(default_factory=VesselStorageConfig)

    def ensure_dirs(self) -> None:
        """Ensure all necessary directories exist."""
        self.vessels.ensure_dirs()


# Default configuration instance
config = AppConfig()

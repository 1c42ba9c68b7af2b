"""
QR labels for vessels and finished candles.
"""

import base64
import io
from typing import Optional

import qrcode

from config.settings import ShopConfig


def label_url(sku: str, site_url: Optional[str] = None) -> str:
    return f"{(site_url or ShopConfig().site_url).rstrip('/')}/vessel/{sku}"


def qr_data_url(value: str, box_size: int = 5, border: int = 1) -> str:
    """Encode ``value`` as a black-on-white QR code PNG data URL."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(value)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"


def generate_label(sku: str, name: Optional[str] = None, url: Optional[str] = None) -> dict:
    """Label payload: QR code pointing at the product page, with the SKU as barcode."""
    if not sku:
        raise ValueError("SKU is required")
    return {
        "success": True,
        "qrCode": qr_data_url(url or label_url(sku)),
        "barcode": sku,
        "productName": name,
    }

"""
Image re-compression for vessel photos held as data URLs.
"""

import base64
import io
import re
from typing import Optional

from PIL import Image, UnidentifiedImageError
from rich.console import Console

console = Console()

DATA_URL_PATTERN = re.compile(r"^data:image/[\w.+-]+;base64,(?P<payload>.+)$", re.DOTALL)

# Upload defaults (a freshly uploaded photo)
UPLOAD_MAX_SIDE = 800
UPLOAD_QUALITY = 80


def is_image_data_url(value: str) -> bool:
    return isinstance(value, str) and value.startswith("data:image/")


def encode_jpeg(image: Image.Image, max_side: int, quality: int) -> str:
    """Shrink so the longer side is at most max_side and encode as a JPEG data URL."""
    image = image.copy()
    image.thumbnail((max_side, max_side))
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def image_bytes_to_data_url(
    data: bytes, max_side: int = UPLOAD_MAX_SIDE, quality: int = UPLOAD_QUALITY
) -> str:
    """Turn an uploaded image file into a compressed JPEG data URL."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        return encode_jpeg(image, max_side, quality)


def recompress_data_url(value: str, max_side: int, quality: int) -> Optional[str]:
    """
    Re-encode a data URL image more aggressively.

    Returns None when the value is not a decodable image.
    """
    match = DATA_URL_PATTERN.match(value)
    if not match:
        return None
    raw = base64.b64decode(match.group("payload"), validate=False)
    with Image.open(io.BytesIO(raw)) as image:
        image.load()
        return encode_jpeg(image, max_side, quality)


def compress_images(
    images: dict[str, str], max_side: int = 600, quality: int = 60
) -> dict[str, str]:
    """
    Re-compress every data URL image in the map.

    Values that are not images, fail to decode, or come out larger than they
    went in are kept as they were, so the result is never bigger than the input.
    """
    compressed: dict[str, str] = {}
    for key, value in images.items():
        if not is_image_data_url(value):
            compressed[key] = value
            continue
        try:
            smaller = recompress_data_url(value, max_side, quality)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            console.print(f"[yellow]Warning: Failed to compress image {key}: {e}[/yellow]")
            smaller = None
        if smaller is not None and len(smaller) < len(value):
            compressed[key] = smaller
        else:
            compressed[key] = value
    return compressed

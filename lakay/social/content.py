"""
Brand voice, story angles, media library and content calendar storage.
"""

import calendar
import random
import string
import time
from datetime import date, datetime, timezone
from pathlib import PurePosixPath
from typing import Optional

from rich.console import Console

from lakay.errors import NotFoundError
from lakay.models import BrandVoice, ScheduledPost, require_fields

console = Console()

BRAND_VOICE_TABLE = "brand_voice_memory"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_brand_voice(store) -> BrandVoice:
    """
    The active brand voice.

    Raises:
        NotFoundError: when no voice is marked active
    """
    row = store.find_row(BRAND_VOICE_TABLE, is_active=True)
    if row is None:
        raise NotFoundError("No active brand voice")
    return BrandVoice.model_validate(row)


def save_brand_voice(store, voice_id: str, changes: dict) -> dict:
    data = {k: v for k, v in changes.items() if k != "id"}
    data["updated_at"] = _now_iso()
    row = store.update_row(BRAND_VOICE_TABLE, voice_id, data)
    console.print("[green]✓ Brand voice updated[/green]")
    return row


def get_story_angles(store) -> list[dict]:
    return store.list_rows("story_angles", filters={"is_active": True})


# =============================================================================
# Media library
# =============================================================================


def list_media_assets(store) -> list[dict]:
    return store.list_rows(
        "media_assets", filters={"is_active": True}, order_by="created_at", descending=True
    )


def _media_file_name(filename: str) -> str:
    suffix = PurePosixPath(filename).suffix.lstrip(".") or "bin"
    token = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{int(time.time() * 1000)}-{token}.{suffix}"


def upload_media_asset(
    store, filename: str, data: bytes, mime_type: str, metadata: Optional[dict] = None
) -> dict:
    """
    Upload a photo or video to the media bucket and register it.

    Empty tag lists are stored as NULL.
    """
    path = f"media-assets/{_media_file_name(filename)}"
    url = store.upload_media(path, data, mime_type)

    row = {
        "file_url": url,
        "file_type": "video" if mime_type.startswith("video/") else "image",
        "file_size": len(data),
        "mime_type": mime_type,
    }
    for key, value in (metadata or {}).items():
        if isinstance(value, list) and not value:
            value = None
        row[key] = value
    return store.insert_row("media_assets", row)


def update_media_asset(store, asset_id: str, changes: dict) -> dict:
    return store.update_row("media_assets", asset_id, changes)


# =============================================================================
# Content calendar
# =============================================================================


def schedule_post(store, data: dict) -> dict:
    """Save a generated caption to the calendar (status ``scheduled`` or ``draft``)."""
    require_fields(data, ["scheduled_date", "platform", "caption"])
    post = ScheduledPost.model_validate(data)
    row = store.insert_row("scheduled_posts", post.model_dump(exclude_none=True))
    label = "saved as draft" if post.status == "draft" else "scheduled"
    console.print(f"[green]✓ Post {label} for {post.scheduled_date}[/green]")
    return row


def posts_for_month(store, year: int, month: int) -> list[dict]:
    first = date(year, month, 1).isoformat()
    last = date(year, month, calendar.monthrange(year, month)[1]).isoformat()
    posts = store.list_rows("scheduled_posts", order_by="scheduled_date")
    return [p for p in posts if first <= str(p.get("scheduled_date", ""))[:10] <= last]


def update_post(store, post_id: str, changes: dict) -> dict:
    return store.update_row("scheduled_posts", post_id, changes)


def delete_post(store, post_id: str) -> bool:
    return store.delete_row("scheduled_posts", post_id)

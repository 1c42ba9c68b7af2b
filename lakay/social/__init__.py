"""
Social media content: caption generation and the content calendar.
"""

from .content import (
    get_brand_voice,
    get_story_angles,
    list_media_assets,
    posts_for_month,
    save_brand_voice,
    schedule_post,
    upload_media_asset,
)
from .generator import ContentRequest, generate_content, generate_hashtags

__all__ = [
    "ContentRequest",
    "generate_content",
    "generate_hashtags",
    "get_brand_voice",
    "save_brand_voice",
    "get_story_angles",
    "list_media_assets",
    "upload_media_asset",
    "schedule_post",
    "posts_for_month",
]

"""
Social media caption and hashtag generator.

Builds a caption from (in order) the media asset metadata, the recipe, a
platform price call-to-action and an optional story angle, then runs it
through the brand voice filter and platform formatting. Purely rule-based;
the few coin flips come from an injectable ``random.Random`` so output is
reproducible in tests.
"""

import random
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from lakay.models import BrandVoice, MediaAsset, Recipe, StoryAngle

PLATFORMS = ("instagram", "facebook", "linkedin", "tiktok", "email")
TONES = ("casual", "luxury", "professional", "playful")

EMOJI_PATTERN = re.compile("[\U0001F300-\U0001F9FF]")
MAX_HASHTAGS = 30
REDACTED = "[REDACTED]"

CONTENT_TYPE_PHRASES = {
    "process": "behind-the-scenes creation moment",
    "finished_piece": "the finished piece in all its glory",
    "studio": "from our Palm Beach studio",
    "pour": "the meditative pour",
    "vessel_shaping": "hands shaping the vessel",
    "packaging": "ready to find its home",
    "lighting": "the first light",
    "lifestyle": "in its natural habitat",
}

MOOD_PHRASES = {
    "warm": "warm and inviting",
    "earthy": "grounded and natural",
    "minimal": "clean and intentional",
    "luxury": "refined and elegant",
    "ritual": "meditative and sacred",
    "calm": "peaceful and serene",
}

ANGLE_OPENERS = {
    "craftsmanship_process": ["Each piece", "Every step", "Hours of", "My hands", "The process"],
    "slow_made_philosophy": ["Slow-poured", "Intentionally crafted", "Time honored", "Mindfully made"],
    "mood_and_ritual": ["Light this", "Create a moment", "The ritual of", "Transform your space"],
    "materials_and_texture": ["Feel the", "Natural texture", "Raw materials", "Tactile experience"],
    "gifting_and_intention": ["A thoughtful gift", "Share the light", "Meaningful gesture", "Someone special"],
    "limited_small_batch": ["Limited edition", "Small batch", "Only a few", "Uniquely crafted"],
    "studio_life_bts": ["In the studio", "Sunday morning", "The making of", "Real work"],
}

SCENT_HASHTAGS = {
    "Floral": ["#FloralCandle", "#FloralScent", "#BotanicalCandle"],
    "Citrus": ["#CitrusCandle", "#FreshScent", "#Energizing"],
    "Fruity": ["#FruityCandle", "#SweetScent", "#SummerVibes"],
    "Gourmand": ["#GourmandCandle", "#FoodieCandle", "#CozyVibes"],
    "Herbal": ["#HerbalCandle", "#Aromatherapy", "#NaturalScent"],
    "Spicy": ["#SpicyCandle", "#WarmScent", "#CozyHome"],
    "Clean/Spa": ["#SpaCandle", "#CleanScent", "#Relaxing"],
    "Earthy": ["#EarthyCandle", "#WoodlandScent", "#Nature"],
}

MOOD_HASHTAGS = {
    "warm": ["#CozyVibes", "#Warmth", "#Hygge"],
    "minimal": ["#MinimalDesign", "#LessIsMore", "#ModernHome"],
    "luxury": ["#LuxuryCandles", "#PremiumHome", "#ElevatedLiving"],
    "ritual": ["#DailyRitual", "#Mindfulness", "#SlowLiving"],
    "calm": ["#CalmSpace", "#Serenity", "#PeacefulHome"],
}

BASE_HASHTAGS = ["#LimenLakay", "#HandmadeCandles", "#CandleLover", "#HomeFragrance"]
GENERAL_HASHTAGS = [
    "#SmallBusiness", "#SupportLocal", "#PalmBeachFL", "#CandleAddict", "#HomeDecor", "#CandleCommunity",
]
LINKEDIN_HASHTAGS = "#SmallBusinessOwner #Entrepreneurship #MadeInUSA"
CRAFT_LINE = "Handcrafted in Palm Beach, FL 🌴"


def _coerce(model, value):
    if value is None or isinstance(value, model):
        return value
    return model.model_validate(value)


def _price(value: Any) -> str:
    return f"{float(value):g}"


def apply_brand_voice(content: str, voice: BrandVoice, rng: random.Random) -> str:
    """Redact banned phrases, maybe weave in a preferred phrase, enforce the emoji policy."""
    filtered = content

    for phrase in voice.banned_phrases:
        if phrase:
            filtered = re.sub(re.escape(phrase), REDACTED, filtered, flags=re.IGNORECASE)

    if voice.preferred_phrases and rng.random() > 0.5:
        phrase = rng.choice(voice.preferred_phrases)
        if phrase.lower() not in filtered.lower():
            filtered = filtered.replace(". ", f". {phrase} - ", 1)

    if voice.emoji_usage == "none":
        filtered = EMOJI_PATTERN.sub("", filtered)
    elif voice.emoji_usage == "minimal":
        allowed = set(voice.allowed_emojis)
        if sum(1 for ch in filtered if ch in allowed) > 2:
            kept = 0

            def keep_two(match: re.Match) -> str:
                nonlocal kept
                if match.group(0) in allowed and kept < 2:
                    kept += 1
                    return match.group(0)
                return ""

            filtered = EMOJI_PATTERN.sub(keep_two, filtered)

    return filtered


def media_context(media: MediaAsset) -> str:
    parts = [CONTENT_TYPE_PHRASES.get(media.content_type, "this moment")]

    moods = [MOOD_PHRASES[m] for m in media.mood if m in MOOD_PHRASES]
    if moods:
        parts.append(", ".join(moods))

    if media.materials_used:
        parts.append("crafted from " + ", ".join(m.replace("_", " ", 1) for m in media.materials_used))

    if media.scent_name:
        parts.append(f"{media.scent_name} scent profile")
    elif media.scent_profile:
        parts.append(" & ".join(media.scent_profile) + " notes")

    if media.story_context:
        parts.append(media.story_context)

    return " • ".join(parts)


def apply_story_angle(content: str, angle: StoryAngle, rng: random.Random) -> str:
    openers = ANGLE_OPENERS.get(re.sub(r"\s+", "_", angle.name.lower()), [])
    if openers and rng.random() > 0.5:
        opener = rng.choice(openers)
        if not content.startswith(opener):
            return f"{opener}... {content}"
    return content


def format_for_platform(content: str, platform: str, voice: BrandVoice) -> str:
    if platform == "instagram":
        if voice.instagram_line_break_style == "spaced":
            return content.replace(". ", ".\n\n")
        if voice.instagram_line_break_style == "compact":
            return content.replace("\n\n", "\n")
        return content
    if platform == "tiktok":
        return ". ".join(content.split(". ")[:2]) + "."
    if platform == "linkedin" and voice.linkedin_business_focus:
        return f"{content}\n\n{LINKEDIN_HASHTAGS}"
    return content


def _price_cta(platform: str, tone: str, price: str, voice: BrandVoice) -> str:
    if platform == "email":
        if voice.email_cta_softness > 7:
            return f"\n\n${price} • Available now at limenlakay.com"
        if voice.email_cta_softness > 4:
            return f"\n\n${price} • Shop the collection: limenlakay.com"
        return f"\n\n${price} • Order yours today: limenlakay.com"
    if platform in ("instagram", "facebook"):
        if tone == "luxury":
            return f"\n\nAvailable for ${price}. Link in bio."
        return f"\n\n${price} 🛒 Shop now — link in bio!"
    if platform == "linkedin":
        return f"\n\n${price} • Learn more at limenlakay.com"
    if platform == "tiktok":
        return f" ${price} #LimenLakay"
    return ""


@dataclass
class ContentRequest:
    platform: str
    tone: str
    product_name: str
    price: float
    brand_voice: BrandVoice
    story_angle: Optional[StoryAngle] = None
    media_asset: Optional[MediaAsset] = None
    recipe: Optional[Recipe] = None
    wax_type: str = "soy"

    @classmethod
    def from_dict(cls, data: dict) -> "ContentRequest":
        return cls(
            platform=data.get("platform", "instagram"),
            tone=data.get("tone", "casual"),
            product_name=data.get("productName") or data.get("product_name") or "",
            price=float(data.get("price") or 0),
            brand_voice=_coerce(BrandVoice, data.get("brandVoice") or data.get("brand_voice") or {}),
            story_angle=_coerce(StoryAngle, data.get("storyAngle") or data.get("story_angle")),
            media_asset=_coerce(MediaAsset, data.get("mediaAsset") or data.get("media_asset")),
            recipe=_coerce(Recipe, data.get("recipe")),
            wax_type=data.get("waxType") or data.get("wax_type") or "soy",
        )


def generate_content(request: Union[ContentRequest, dict], rng: Optional[random.Random] = None) -> str:
    """
    Generate a caption for one platform.

    Args:
        request: ContentRequest or its dict form (camelCase keys accepted)
        rng: Random source for the optional flourishes

    Returns:
        The caption, stripped
    """
    if isinstance(request, dict):
        request = ContentRequest.from_dict(request)
    if request.platform not in PLATFORMS:
        raise ValueError(f"Unknown platform: {request.platform}")
    rng = rng or random.Random()
    voice = request.brand_voice

    media = request.media_asset
    if media is not None:
        context = media_context(media)
        narrative = f"{media.caption_notes} " if media.caption_notes else ""
        if media.content_type == "process":
            narrative += f"Captured in process: {context}. "
        elif media.content_type == "finished_piece":
            narrative += f"{request.product_name} — {context}. "
        else:
            narrative += f"{context}. "
    else:
        narrative = f"Introducing {request.product_name}. "

    recipe = request.recipe
    if recipe is not None:
        ingredients = ", ".join(list(recipe.ingredients)[:3])
        if request.tone == "luxury":
            narrative += f"An exquisite composition of {ingredients}. "
        elif request.tone == "playful":
            narrative += f"Packed with {ingredients}! "
        else:
            narrative += f"Crafted with {ingredients}. "
        if recipe.profile:
            narrative += f"{recipe.profile} notes. "
        if recipe.purpose:
            narrative += f"{recipe.purpose}. "

    narrative += _price_cta(request.platform, request.tone, _price(request.price), voice)

    if request.story_angle is not None:
        narrative = apply_story_angle(narrative, request.story_angle, rng)

    narrative = apply_brand_voice(narrative, voice, rng)
    narrative = format_for_platform(narrative, request.platform, voice)

    if "craftsmanship" in voice.core_values and rng.random() > 0.6:
        narrative += f"\n\n{CRAFT_LINE}"

    return narrative.strip()


def generate_hashtags(
    recipe: Optional[Union[Recipe, dict]] = None,
    media_asset: Optional[Union[MediaAsset, dict]] = None,
    wax_type: str = "soy",
) -> list[str]:
    """Hashtags for a post: deduplicated, first occurrence kept, at most 30."""
    recipe = _coerce(Recipe, recipe)
    media_asset = _coerce(MediaAsset, media_asset)
    tags = list(BASE_HASHTAGS)

    if recipe is not None and recipe.profile:
        tags += SCENT_HASHTAGS.get(recipe.profile, [])

    if media_asset is not None:
        if media_asset.content_type == "process":
            tags += ["#BehindTheScenes", "#MakingOf", "#Handcrafted", "#ArtisanProcess"]
        elif media_asset.content_type == "finished_piece":
            tags += ["#FinishedProduct", "#ConcreteCandle", "#CandleArt"]
        for mood in media_asset.mood:
            tags += MOOD_HASHTAGS.get(mood, [])

    if wax_type == "soy":
        tags += ["#SoyCandles", "#EcoFriendly", "#Natural"]
    else:
        tags += ["#CoconutWax", "#CleanBurning", "#Sustainable"]

    tags += GENERAL_HASHTAGS
    return list(dict.fromkeys(tags))[:MAX_HASHTAGS]

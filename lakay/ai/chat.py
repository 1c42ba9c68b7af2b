"""
Chat widget back end.

Answers customer questions with the OpenAI model when a key is configured,
and with keyword-matched canned answers otherwise (or when the model call
fails). Also stores live-chat messages and customer feedback.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from config.settings import AIConfig
from lakay.errors import ValidationError
from lakay.models import ChatMessage, CustomerFeedback, require_fields

from .openai_client import AIError, OpenAIClient, OpenAIConfig

console = Console()

BUSINESS_CONTEXT = """You are a helpful customer service representative for Limen Lakay, a premium handcrafted concrete candle vessel company based in Palm Beach, Florida.

COMPANY INFORMATION:
- Business Name: Limen Lakay (means "Light at Home" in Haitian Creole)
- Founded: 2024
- Specialty: Handcrafted concrete candle vessels - each one uniquely crafted
- Contact: info@limenlakay.com | +1 (561) 593-0238
- Response Time: Within 24 hours
- Website: limenlakay.com

PRODUCTS & SERVICES:
1. Finished Candles:
   - Bèl Flè Candle (Beautiful Flower) - Gold Cobalt Blue/Metallic Gold Rounded Vessel - $39.99
   - Chimen Lakay Candle (Path Home) - Turquoise Cylindrical Vessel - $35.99
   - Premium soy wax candles in handmade concrete vessels
2. Empty Concrete Vessels:
   - Shapes: Rounded, Cylindrical, Shallow, Scalloped
   - Colors: Gold, Blue, Turquoise, Off-White, Cream, Metallic finishes
   - Sizes: Small (8oz), Medium (12oz), Large (16oz)
   - Price Range: $16.99 - $49.99
3. Custom Candle Orders:
   - Choose your vessel (shape, color, size) and one of 20+ premium fragrances
   - Timeline: 5-7 business days
4. Bulk Orders & Wholesale:
   - Wedding favors, corporate gifts, special events
   - Custom branding available, volume discounts for 10+ units
5. Candle Making Workshops:
   - Learn to create your own concrete vessel candles
   - Group and private sessions available

ORDERING INFORMATION:
- Standard Collections: Ships in 2-3 business days
- Custom Orders: 5-7 business days production time
- Local Delivery: Available in Palm Beach County area
- Shipping: Nationwide shipping available
- Returns: 30-day satisfaction guarantee on finished candles

CARE INSTRUCTIONS:
- Trim wick to 1/4" before each use
- Burn for 2-3 hours minimum for even wax pool
- Concrete vessels are reusable - clean and repurpose after the candle is finished

ORDER TRACKING:
Customers can use their tracking number in the Track Order tab of this chat widget.

TONE & STYLE:
- Friendly, warm, and professional
- Use occasional Haitian Creole terms with English translations
- Emphasize the unique, handcrafted nature of products

If you don't know something specific, direct customers to contact info@limenlakay.com or call (561) 593-0238."""

UNAVAILABLE_MESSAGE = (
    "Thank you for your message! Our team will respond within 24 hours. "
    "Contact us at info@limenlakay.com or (561) 593-0238."
)

GREETING_PATTERN = re.compile(
    r"^(hi|hello|hey|good morning|good afternoon|good evening|greetings)[\s!.]*$", re.I
)
THANKS_PATTERN = re.compile(r"^(thanks|thank you|ok|okay|got it|great)[\s!.]*$", re.I)

# (keywords, answer) checked in order after the greeting/thanks/candle rules
KEYWORD_RESPONSES: list[tuple[tuple[str, ...], str]] = [
    (
        ("candle", "product", "sell", "offer"),
        "We specialize in handcrafted concrete candle vessels:\n\n"
        "**Finished Candles**: $35.99-$39.99\nReady to enjoy with premium soy wax\n\n"
        "**Empty Vessels**: $16.99-$49.99\nFor decor, plants, or DIY candles\n\n"
        "**Custom Orders**: Choose your vessel + fragrance\n\nWhat interests you?",
    ),
    (
        ("price", "cost", "how much", "$"),
        "Our pricing:\n\n• Finished candles: $35.99-$39.99\n• Empty vessels: $16.99-$49.99\n"
        "• Custom candles: Starting at $35\n\n*Bulk orders (10+): Volume discounts available*\n\n"
        "Need a specific quote? Email info@limenlakay.com",
    ),
    (
        ("ship", "deliver", "how long", "when"),
        "**Delivery Timeline:**\n\n• In-stock items: 2-3 business days\n"
        "• Custom orders: 5-7 business days\n• Local delivery: Available in Palm Beach County\n\n"
        "Need rush shipping? Call us at (561) 593-0238",
    ),
    (
        ("scent", "fragrance", "smell", "aroma"),
        "We offer 20+ premium fragrances:\n\n**Popular Collections:**\n"
        "• Holiday: Bèl Flè, Krismay Lakay\n• Fresh: Sea Salt & Sage, Lavender\n"
        "• Gourmet: Vanilla, Cinnamon\n• Floral: Roses, Mimosa\n\n"
        "Browse all scents on our Custom Order page or ask for recommendations!",
    ),
    (
        ("workshop", "class", "learn", "make"),
        "**Candle Making Workshops** 🎨\n\nLearn to craft your own concrete vessel candles!\n\n"
        "• Hands-on instruction\n• All materials included\n• Group & private sessions\n"
        "• Perfect for events, team building\n\n"
        "Book at limenlakay.com/workshop-subscription or call (561) 593-0238",
    ),
    (
        ("custom", "personalize", "design"),
        "**Custom Candle Orders:**\n\n1. Choose your concrete vessel (shape, color, size)\n"
        "2. Select from 20+ premium fragrances\n3. Ready in 5-7 business days\n\n"
        "Start your custom order at limenlakay.com/custom-order or contact us for guidance!",
    ),
    (
        ("bulk", "wholesale", "wedding", "event", "corporate"),
        "**Bulk & Wholesale Orders:**\n\n• Volume discounts for 10+ units\n"
        "• Custom branding available\n• Perfect for weddings, corporate gifts, events\n\n"
        "Email info@limenlakay.com with your requirements for a personalized quote.",
    ),
    (
        ("contact", "email", "phone", "call"),
        "**Contact Us:**\n\n📧 info@limenlakay.com\n📱 (561) 593-0238\n🌐 limenlakay.com\n\n"
        "*We respond within 24 hours*\n\nPrefer to chat? Just ask your question here!",
    ),
    (
        ("vessel", "empty", "container", "pot"),
        "**Empty Concrete Vessels:** $16.99-$49.99\n\n"
        "• Multiple shapes: Rounded, Cylindrical, Shallow, Scalloped\n"
        "• Colors: Gold, Blue, Turquoise, Cream, Metallic\n• Sizes: Small (8oz) to Large (16oz)\n\n"
        "Use as planters, decor, or make your own candles!\n\nView all at limenlakay.com/custom-order",
    ),
]

GREETING_RESPONSE = (
    "Hello! Thanks for reaching out to Limen Lakay. 🕯️\n\nI'm here to help with:\n"
    "• Product information\n• Custom orders & pricing\n• Shipping & delivery\n• Workshops\n\n"
    "What can I assist you with today?"
)
THANKS_RESPONSE = (
    "You're welcome! Is there anything else you'd like to know about our handcrafted "
    "concrete candle vessels?"
)
CANDLE_LIST_RESPONSE = (
    "We currently have 2 signature finished candles:\n\n**Bèl Flè Candle** - $39.99\n"
    "Gold & blue metallic rounded vessel\n\n**Chimen Lakay Candle** - $35.99\n"
    "Turquoise cylindrical vessel\n\nPlus custom candles where you choose the vessel & fragrance!\n\n"
    "Interested in any of these?"
)
DEFAULT_RESPONSE = (
    "Thanks for contacting Limen Lakay! 🕯️\n\nI can help you with:\n• Products & pricing\n"
    "• Custom orders\n• Shipping info\n• Workshops & bulk orders\n\n**Quick contact:**\n"
    "📧 info@limenlakay.com | 📱 (561) 593-0238\n\nWhat would you like to know?"
)


def fallback_response(message: str) -> str:
    """Pick a canned answer by keyword. The first matching rule wins."""
    text = message.strip()
    lower = text.lower()

    if GREETING_PATTERN.match(text):
        return GREETING_RESPONSE
    if THANKS_PATTERN.match(text):
        return THANKS_RESPONSE
    if "candle" in lower and any(w in lower for w in ("how many", "which", "what")):
        return CANDLE_LIST_RESPONSE

    for keywords, answer in KEYWORD_RESPONSES:
        if any(k in lower for k in keywords):
            return answer
    return DEFAULT_RESPONSE


@dataclass
class ChatReply:
    message: str
    history: list[dict] = field(default_factory=list)
    used_ai: bool = False

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": self.message,
            "conversationHistory": self.history,
        }


class ChatAssistant:
    """Answers chat widget messages."""

    def __init__(self, ai_config: Optional[AIConfig] = None, client: Optional[OpenAIClient] = None):
        self.config = ai_config or AIConfig()
        self._client = client
        if self._client is None and self.config.api_key:
            self._client = OpenAIClient(
                OpenAIConfig(
                    api_key=self.config.api_key,
                    chat_model=self.config.chat_model,
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                )
            )

    @property
    def ai_enabled(self) -> bool:
        return self._client is not None

    async def reply(self, message: str, history: Optional[list[dict]] = None) -> ChatReply:
        """
        Answer one customer message.

        Raises:
            ValidationError: if the message is empty
        """
        require_fields({"message": message}, ["message"])
        history = list(history or [])

        answer = None
        used_ai = False
        if self._client is not None:
            try:
                answer = await self._client.generate(
                    message, system=BUSINESS_CONTEXT, history=history
                )
                used_ai = True
            except AIError as e:
                console.print(f"[yellow]Warning: AI reply failed, using canned answer: {e}[/yellow]")

        if answer is None:
            answer = fallback_response(message)

        history += [
            {"role": "user", "content": message},
            {"role": "assistant", "content": answer},
        ]
        return ChatReply(message=answer, history=history, used_ai=used_ai)


# =============================================================================
# Live chat messages and feedback
# =============================================================================


def send_chat_message(
    store,
    session_id: str,
    message: str,
    sender_type: str = "customer",
    sender_name: Optional[str] = None,
    sender_email: Optional[str] = None,
) -> dict:
    try:
        record = ChatMessage(
            session_id=session_id,
            sender_type=sender_type,
            sender_name=sender_name,
            sender_email=sender_email,
            message_text=message,
        )
    except PydanticValidationError as e:
        raise ValidationError("Invalid chat message", [str(err["loc"][0]) for err in e.errors()])
    return store.insert_row("chat_messages", record.model_dump(exclude_none=True))


def get_chat_messages(store, session_id: str) -> list[dict]:
    """Messages of one chat session, oldest first."""
    return store.list_rows(
        "chat_messages", filters={"session_id": session_id}, order_by="created_at"
    )


def submit_feedback(store, data: dict) -> dict:
    require_fields(data, ["rating", "comment"])
    try:
        feedback = CustomerFeedback(**data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid feedback", [str(err["loc"][0]) for err in e.errors()])
    row = store.insert_row("customer_feedback", feedback.model_dump(exclude_none=True))
    console.print(f"[green]✓ Feedback received ({feedback.rating} stars)[/green]")
    return row


def get_approved_feedback(store) -> list[dict]:
    return store.list_rows(
        "customer_feedback", filters={"is_approved": True}, order_by="created_at", descending=True
    )

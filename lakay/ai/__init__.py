"""
AI Service Module for Limen Lakay

Powers the chat widget using OpenAI when OPENAI_API_KEY is set, with
keyword-matched canned answers as the fallback.

OpenAI Setup:
- Get API key from https://platform.openai.com
- Add to .env: OPENAI_API_KEY=sk-...
"""

from .chat import (
    BUSINESS_CONTEXT,
    ChatAssistant,
    ChatReply,
    fallback_response,
    get_approved_feedback,
    get_chat_messages,
    send_chat_message,
    submit_feedback,
)
from .openai_client import AIError, OpenAIClient, OpenAIConfig

__all__ = [
    # Client
    "OpenAIClient",
    "OpenAIConfig",
    "AIError",
    # Chat
    "BUSINESS_CONTEXT",
    "ChatAssistant",
    "ChatReply",
    "fallback_response",
    # Persistence
    "send_chat_message",
    "get_chat_messages",
    "submit_feedback",
    "get_approved_feedback",
]

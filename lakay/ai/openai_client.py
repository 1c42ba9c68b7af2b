"""
OpenAI API Client

Async wrapper around the OpenAI chat completions API, used by the chat widget.

Usage:
    from lakay.ai import OpenAIClient

    client = OpenAIClient()
    reply = await client.generate("Do you ship to Miami?", system=BUSINESS_CONTEXT)
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI
from rich.console import Console

console = Console()


class AIError(Exception):
    """The model call failed or returned nothing usable."""


@dataclass
class OpenAIConfig:
    """Configuration for OpenAI client."""

    api_key: Optional[str] = None
    chat_model: str = "gpt-4o-mini"
    timeout_seconds: float = 60.0
    temperature: float = 0.7
    max_tokens: int = 1024


class OpenAIClient:
    """
    Async client for the OpenAI API.

    Unlike a best-effort helper, ``generate`` raises AIError on failure so the
    caller can switch to canned answers.
    """

    def __init__(self, config: Optional[OpenAIConfig] = None, client=None):
        self.config = config or OpenAIConfig()
        if client is not None:
            self._client = client
            return
        api_key = self.config.api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError(
                "OpenAI API key not found. Set OPENAI_API_KEY environment variable."
            )
        self._client = AsyncOpenAI(api_key=api_key, timeout=self.config.timeout_seconds)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        history: Optional[list[dict]] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate a reply to ``prompt``.

        Args:
            prompt: The latest user message
            system: Optional system prompt
            history: Earlier turns as {"role": "user"|"assistant", "content": ...}
            model: Model to use (defaults to chat_model)
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate

        Returns:
            Generated text

        Raises:
            AIError: if the API call fails or the reply is empty
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        for turn in history or []:
            role = turn.get("role")
            content = turn.get("content")
            if role in ("user", "assistant") and content:
                messages.append({"role": role, "content": str(content)})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self._client.chat.completions.create(
                model=model or self.config.chat_model,
                messages=messages,
                temperature=self.config.temperature if temperature is None else temperature,
                max_tokens=max_tokens or self.config.max_tokens,
            )
        except Exception as e:
            console.print(f"[red]Error generating response: {e}[/red]")
            raise AIError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIError("Empty response from model")
        return content


async def test_client():
    """Smoke-test the OpenAI client against the live API."""
    console.print("\n[bold cyan]Testing OpenAI Client[/bold cyan]\n")

    from dotenv import load_dotenv

    load_dotenv()

    try:
        async with OpenAIClient() as client:
            response = await client.generate(
                "Name one use for an empty concrete candle vessel. Be brief.",
                temperature=0.5,
            )
            console.print(f"Response: {response[:500]}")
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
    except AIError as e:
        console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    asyncio.run(test_client())

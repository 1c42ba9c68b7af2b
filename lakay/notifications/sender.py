"""
Outbound email through the Supabase ``send-email`` edge function.

Sending never raises: callers get an EmailResult and decide whether a
failed email matters (it never fails an order or booking).
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx
from rich.console import Console

from config.settings import EmailConfig, SupabaseConfig

console = Console()


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None
    preview: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {"success": self.success}
        if self.error:
            data["error"] = self.error
        if self.preview:
            data["preview"] = self.preview
        return data


class EmailSender:
    """Posts rendered emails to the edge function."""

    def __init__(
        self,
        supabase_config: Optional[SupabaseConfig] = None,
        email_config: Optional[EmailConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.supabase = supabase_config or SupabaseConfig()
        self.config = email_config or EmailConfig()
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.supabase.is_configured

    @property
    def endpoint(self) -> str:
        return f"{(self.supabase.url or '').rstrip('/')}{self.config.function_path}"

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> EmailResult:
        """
        Send one email.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body
            text: Optional plain-text body
            reply_to: Optional Reply-To address

        Returns:
            EmailResult (with a preview of what would have been sent on failure)
        """
        preview = {"to": to, "subject": subject}

        if not self.is_configured:
            console.print("[yellow]Warning: Email service not configured, logging instead[/yellow]")
            console.print(f"[dim]EMAIL to={to} subject={subject!r}[/dim]")
            return EmailResult(
                success=False,
                error="Email service not configured",
                preview={**preview, "html": html},
            )

        payload = {"to": to, "subject": subject, "html": html}
        if text:
            payload["text"] = text
        if reply_to:
            payload["replyTo"] = reply_to

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.supabase.key}",
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.timeout_seconds
            ) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            console.print(f"[red]Email sending error: {e}[/red]")
            return EmailResult(
                success=False, error="Email service temporarily unavailable", preview=preview
            )

        if response.status_code >= 400:
            try:
                error = response.json().get("error") or "Failed to send email"
            except ValueError:
                error = "Failed to send email"
            console.print(f"[red]Email sending failed ({response.status_code}): {error}[/red]")
            return EmailResult(success=False, error=error, preview=preview)

        console.print(f"[green]✓ Email sent to {to}: {subject}[/green]")
        return EmailResult(success=True)

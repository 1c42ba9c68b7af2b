"""
Concrete Creations workshops: sessions, bookings and their emails.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from rich.console import Console

from config.settings import ShopConfig
from lakay.errors import ValidationError
from lakay.models import WorkshopBooking, WorkshopSession, require_fields
from lakay.notifications import (
    EmailResult,
    EmailSender,
    render_workshop_confirmation,
    render_workshop_reminder,
)

console = Console()

TEMPLATE_NAME = "workshop_confirmation"
NO_TIME = "TBD"
NO_LINK = "Link will be sent closer to the date"
SESSION_FIELDS = ("session_date", "session_time", "meeting_link", "status")


# =============================================================================
# Sessions
# =============================================================================


def list_sessions(store) -> list[dict]:
    return store.list_rows("workshop_sessions", order_by="session_date")


def create_session(store, data: dict, shop: Optional[ShopConfig] = None) -> dict:
    require_fields(data, ["session_date", "session_time", "meeting_link"])
    shop = shop or ShopConfig()
    session = WorkshopSession(
        session_date=data["session_date"],
        session_time=data["session_time"],
        meeting_link=data["meeting_link"],
        max_participants=data.get("max_participants") or shop.workshop_capacity,
        current_participants=0,
        status="open",
    )
    row = store.insert_row("workshop_sessions", session.model_dump(exclude_none=True))
    console.print(f"[green]✓ Workshop session created: {session.session_date} {session.session_time}[/green]")
    return row


def update_session(store, session_id: Any, data: dict) -> dict:
    """Update only the fields that were given a value."""
    if not session_id:
        raise ValidationError("Session ID is required", ["id"])
    changes = {key: data[key] for key in SESSION_FIELDS if data.get(key)}
    return store.update_row("workshop_sessions", session_id, changes)


def session_for_date(store, workshop_date: str) -> Optional[dict]:
    return store.find_row("workshop_sessions", session_date=workshop_date)


# =============================================================================
# Bookings
# =============================================================================


def _normalise_booking(data: dict) -> dict:
    """Accept the storefront's camelCase form keys as well as column names."""
    aliases = {
        "workshopDate": "workshop_date",
        "packageType": "package_type",
        "packagePrice": "package_price",
    }
    normalised = {}
    for key, value in data.items():
        normalised[aliases.get(key, key)] = value
    return normalised


async def create_booking(store, data: dict, sender: Optional[EmailSender] = None) -> dict:
    """
    Book a workshop seat.

    The booking is confirmed straight away. The matching session's participant
    count goes up by one and the session is closed as ``full`` at capacity.
    A confirmation email is sent; a failed email does not fail the booking.
    """
    data = _normalise_booking(data)
    require_fields(data, ["name", "email", "phone", "workshop_date", "package_type"])
    booking = WorkshopBooking(
        name=data["name"],
        email=data["email"],
        phone=data["phone"],
        workshop_date=data["workshop_date"],
        package_type=data["package_type"],
        package_price=data.get("package_price"),
        status="confirmed",
    )
    row = store.insert_row("workshop_bookings", {
        **booking.model_dump(exclude_none=True),
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    console.print(f"[green]✓ Workshop booked: {booking.name} on {booking.workshop_date}[/green]")

    session = session_for_date(store, booking.workshop_date)
    if session is not None:
        session = _take_seat(store, session)

    if sender is not None:
        result = await send_confirmation(
            store,
            sender,
            to=booking.email,
            name=booking.name,
            date=booking.workshop_date,
            time=(session or {}).get("session_time"),
            link=(session or {}).get("meeting_link"),
        )
        if not result.success:
            console.print(f"[yellow]Warning: Confirmation email not sent: {result.error}[/yellow]")

    return row


def _take_seat(store, session: dict) -> dict:
    current = int(session.get("current_participants") or 0) + 1
    capacity = int(session.get("max_participants") or ShopConfig().workshop_capacity)
    changes: dict[str, Any] = {"current_participants": current}
    if current >= capacity:
        changes["status"] = "full"
        console.print(f"[yellow]Session {session.get('session_date')} is now full[/yellow]")
    return store.update_row("workshop_sessions", session["id"], changes)


def bookings_for_email(store, email: str) -> list[dict]:
    if not email:
        raise ValidationError("Email parameter is required", ["email"])
    return store.list_rows(
        "workshop_bookings", filters={"email": email}, order_by="created_at", descending=True
    )


# =============================================================================
# Emails
# =============================================================================


def get_email_template(store) -> Optional[dict]:
    return store.find_row("email_templates", template_name=TEMPLATE_NAME, is_active=True)


def save_email_template(store, subject: str, body: str) -> dict:
    if not subject or not body:
        missing = [name for name, value in (("subject", subject), ("body", body)) if not value]
        raise ValidationError("Subject and body are required", missing)
    return store.upsert_row(
        "email_templates",
        {"template_name": TEMPLATE_NAME, "subject": subject, "body": body, "is_active": True},
        on_conflict="template_name",
    )


async def send_confirmation(
    store,
    sender: EmailSender,
    to: str,
    name: str,
    date: Optional[str],
    time: Optional[str],
    link: Optional[str],
) -> EmailResult:
    """Send the booking confirmation using the stored template (or the default)."""
    template = get_email_template(store)
    email = render_workshop_confirmation(
        template, name, date or NO_TIME, time or NO_TIME, link or NO_LINK
    )
    return await sender.send(to, email.subject, email.html, email.text)


async def send_reminder(
    sender: EmailSender, to: str, name: str, date: str, time: Optional[str], link: Optional[str]
) -> EmailResult:
    email = render_workshop_reminder(name, date, time or NO_TIME, link or NO_LINK)
    return await sender.send(to, email.subject, email.html, email.text)

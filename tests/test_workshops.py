"""
Tests for workshop sessions, bookings and workshop emails.
"""

import asyncio

import pytest

from config.settings import ShopConfig
from lakay import workshops
from lakay.errors import ValidationError
from lakay.notifications import fill_workshop_template, render_workshop_confirmation

BOOKING = {
    "name": "Nadine",
    "email": "nadine@example.com",
    "phone": "555-0100",
    "workshopDate": "2026-06-14",
    "packageType": "duo",
    "packagePrice": 90,
}


def book(store, sender=None, data=None):
    return asyncio.run(workshops.create_booking(store, data or BOOKING, sender))


class TestSessions:
    def test_create_defaults(self, store):
        session = workshops.create_session(store, {
            "session_date": "2026-06-14",
            "session_time": "2:00 PM",
            "meeting_link": "https://meet.test/abc",
        }, ShopConfig())
        assert session["max_participants"] == 12
        assert session["current_participants"] == 0
        assert session["status"] == "open"

    def test_update_only_given_fields(self, store):
        session = workshops.create_session(store, {
            "session_date": "2026-06-14",
            "session_time": "2:00 PM",
            "meeting_link": "https://meet.test/abc",
        })
        updated = workshops.update_session(store, session["id"], {"session_time": "3:00 PM", "meeting_link": ""})
        assert updated["session_time"] == "3:00 PM"
        assert updated["meeting_link"] == "https://meet.test/abc"

    def test_update_requires_id(self, store):
        with pytest.raises(ValidationError):
            workshops.update_session(store, None, {"status": "closed"})


class TestBookings:
    def test_camel_case_form(self, store, fake_client):
        row = book(store)
        assert row["workshop_date"] == "2026-06-14"
        assert row["package_type"] == "duo"
        assert row["status"] == "confirmed"

    def test_missing_fields(self, store):
        with pytest.raises(ValidationError) as exc:
            book(store, data={"name": "Nadine"})
        assert exc.value.fields == ["email", "phone", "workshop_date", "package_type"]

    def test_takes_a_seat_and_fills_session(self, store, fake_client):
        fake_client.tables["workshop_sessions"] = [{
            "id": "s1",
            "session_date": "2026-06-14",
            "session_time": "2:00 PM",
            "meeting_link": "https://meet.test/abc",
            "max_participants": 2,
            "current_participants": 1,
            "status": "open",
        }]
        book(store)
        session = fake_client.tables["workshop_sessions"][0]
        assert session["current_participants"] == 2
        assert session["status"] == "full"

    def test_confirmation_uses_session_details(self, store, fake_client, email_sender, sent_emails):
        fake_client.tables["workshop_sessions"] = [{
            "id": "s1",
            "session_date": "2026-06-14",
            "session_time": "2:00 PM",
            "meeting_link": "https://meet.test/abc",
            "max_participants": 12,
            "current_participants": 0,
        }]
        book(store, sender=email_sender)
        email = sent_emails[0]
        assert email["to"] == "nadine@example.com"
        assert email["subject"] == "Your Concrete Creations Workshop Access"
        assert "2:00 PM" in email["text"]
        assert "https://meet.test/abc" in email["text"]

    def test_confirmation_without_session(self, store, email_sender, sent_emails):
        book(store, sender=email_sender)
        assert "at TBD" in sent_emails[0]["text"]
        assert workshops.NO_LINK in sent_emails[0]["text"]

    def test_bookings_for_email(self, store):
        book(store)
        assert len(workshops.bookings_for_email(store, "nadine@example.com")) == 1
        with pytest.raises(ValidationError):
            workshops.bookings_for_email(store, "")


class TestEmailTemplate:
    def test_saved_template_is_used(self, store, email_sender, sent_emails):
        workshops.save_email_template(store, "See you {date}, {name}!", "Link: {link}")
        result = asyncio.run(workshops.send_confirmation(
            store, email_sender, "a@b.test", "Nadine", "June 14", "2 PM", "https://meet.test/x"
        ))
        assert result.success
        assert sent_emails[0]["subject"] == "See you June 14, Nadine!"
        assert sent_emails[0]["text"] == "Link: https://meet.test/x"

    def test_save_upserts_single_template(self, store, fake_client):
        workshops.save_email_template(store, "One", "Body one")
        workshops.save_email_template(store, "Two", "Body two")
        rows = fake_client.tables["email_templates"]
        assert len(rows) == 1
        assert rows[0]["subject"] == "Two"

    def test_save_requires_both(self, store):
        with pytest.raises(ValidationError) as exc:
            workshops.save_email_template(store, "Subject", "")
        assert exc.value.fields == ["body"]

    def test_fill_all_placeholders(self):
        text = fill_workshop_template("{name} {name} {date} {time} {link} {other}", "A", "B", "C", "D")
        assert text == "A A B C D {other}"

    def test_blank_template_fields_fall_back(self):
        email = render_workshop_confirmation({"subject": "", "body": "Hi {name}"}, "A", "d", "t", "l")
        assert email.subject == "Your Concrete Creations Workshop Access"
        assert email.text == "Hi A"

    def test_html_escapes_and_breaks_lines(self):
        email = render_workshop_confirmation({"subject": "s", "body": "<b>{name}</b>\nbye"}, "A", "d", "t", "l")
        assert "&lt;b&gt;A&lt;/b&gt;<br>bye" in email.html

    def test_reminder(self, email_sender, sent_emails):
        asyncio.run(workshops.send_reminder(email_sender, "a@b.test", "Nadine", "June 14", None, None))
        assert sent_emails[0]["subject"] == "Reminder: Workshop Tomorrow - June 14"
        assert "at TBD" in sent_emails[0]["text"]

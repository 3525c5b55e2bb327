from datetime import date

import pytest

from clinic_booking.core.config import settings
from clinic_booking.services import email_service
from clinic_booking.services.event_description import BookingEventData

DATA = BookingEventData(
    patient_name="陳<大文>",
    phone="91234567",
    email="tai.man@example.com",
    doctor_id="chan",
    doctor_name="Dr. Chan",
    doctor_name_zh="陳家富醫師",
    clinic_id="central",
    clinic_name="Central",
    clinic_name_zh="中環",
)


class RecordingSMTP:
    sent: list[tuple] = []

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def sendmail(self, from_addr, to_addrs, message):
        RecordingSMTP.sent.append((from_addr, to_addrs, message))


@pytest.fixture
def smtp(monkeypatch):
    RecordingSMTP.sent = []
    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
    monkeypatch.setattr(settings, "smtp_user", "clinic")
    monkeypatch.setattr(settings, "smtp_password", "secret")
    monkeypatch.setattr(settings, "from_email", "booking@example.com")
    monkeypatch.setattr(settings, "public_base_url", "https://clinic.example.com/")
    monkeypatch.setattr(email_service.smtplib, "SMTP", RecordingSMTP)
    return RecordingSMTP


def test_slot_display_in_chinese():
    assert email_service.format_slot_display(date(2026, 3, 16), "10:00", 30) == (
        "2026年3月16日 (星期一)",
        "10:00 – 10:30",
    )


def test_disabled_email_reports_not_sent(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "")

    assert email_service._send_email_sync("a@example.com", "subject", "<p>x</p>") is False


def test_confirmation_is_sent_with_manage_links(smtp):
    assert email_service.send_booking_confirmation_email(DATA, date(2026, 3, 16), "10:00", 30, "evt1", "cal@x")

    [(from_addr, to_addrs, message)] = smtp.sent
    assert to_addrs == ["tai.man@example.com"]
    assert from_addr == "booking@example.com"
    links = email_service.manage_links("evt1", "cal@x")
    assert links["cancel"] == "https://clinic.example.com/cancel?eventId=evt1&calendarId=cal%40x"


def test_smtp_failure_reports_not_sent(smtp, monkeypatch):
    def refuse(self, *args):
        raise OSError("connection refused")

    monkeypatch.setattr(RecordingSMTP, "starttls", refuse)

    assert email_service.send_booking_cancellation_email(DATA, date(2026, 3, 16), "10:00") is False


@pytest.mark.asyncio
async def test_notifier_runs_senders_off_the_loop(smtp):
    sent = await email_service.EmailNotifier().send_reminder(DATA, date(2026, 3, 16), "10:00", "evt1", "cal@x")

    assert sent is True
    assert len(smtp.sent) == 1

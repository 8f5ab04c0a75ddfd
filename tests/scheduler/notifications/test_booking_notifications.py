import logging
from datetime import datetime, timezone

import pytest

from scheduler.notifications import booking as booking_notifications
from scheduler.notifications import mailer

UTC = timezone.utc


def _details(**overrides) -> dict:
    details = {
        'uid': 'abc123',
        'event_title': 'Intro Call',
        'booker_name': 'Grace',
        'booker_email': 'grace@example.com',
        'host_name': 'Ada',
        'host_email': 'ada@example.com',
        'host_timezone': 'UTC',
        'start_time': datetime(2026, 1, 5, 10, 0, tzinfo=UTC),
        'end_time': datetime(2026, 1, 5, 10, 30, tzinfo=UTC),
    }
    details.update(overrides)
    return details


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str, str]]:
    messages: list[tuple[str, str, str]] = []
    monkeypatch.setattr('scheduler.core.config.NOTIFICATIONS_ENABLED', True)
    monkeypatch.setattr(booking_notifications, 'send_email', lambda to, subject, html: messages.append((to, subject, html)))
    return messages


def test_confirmation_goes_to_booker_and_host(sent) -> None:
    booking_notifications.notify_confirmed(_details())

    assert [(to, subject) for to, subject, _ in sent] == [
        ('grace@example.com', 'Confirmed: Intro Call between Grace and Ada'),
        ('ada@example.com', 'New Booking: Confirmed: Intro Call between Grace and Ada'),
    ]
    assert 'Hi Grace' in sent[0][2]
    assert 'Hi Ada' in sent[1][2]
    assert '/bookings/abc123/cancel' in sent[0][2]


def test_confirmation_skips_host_without_email(sent) -> None:
    booking_notifications.notify_confirmed(_details(host_email=None))

    assert [to for to, _, _ in sent] == ['grace@example.com']


def test_cancellation_goes_to_booker_and_host(sent) -> None:
    booking_notifications.notify_cancelled(_details())

    assert [(to, subject) for to, subject, _ in sent] == [
        ('grace@example.com', 'Cancelled: Intro Call between Grace and Ada'),
        ('ada@example.com', 'Cancelled: Intro Call between Grace and Ada'),
    ]


def test_rendered_html_escapes_user_input(sent) -> None:
    booking_notifications.notify_confirmed(_details(booker_name='<script>x</script>'))

    assert '<script>' not in sent[0][2]


def test_transport_failures_are_logged_not_raised(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    def broken_send(to, subject, html):
        raise ConnectionRefusedError('smtp down')

    monkeypatch.setattr('scheduler.core.config.NOTIFICATIONS_ENABLED', True)
    monkeypatch.setattr(booking_notifications, 'send_email', broken_send)

    with caplog.at_level(logging.ERROR, logger='scheduler.notifications.booking'):
        booking_notifications.notify_confirmed(_details())
        booking_notifications.notify_cancelled(_details())

    assert 'Confirmation notice failed for booking abc123' in caplog.text
    assert 'Cancellation notice failed for booking abc123' in caplog.text


def test_disabled_notifications_send_nothing(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr('scheduler.core.config.NOTIFICATIONS_ENABLED', False)
    monkeypatch.setattr(booking_notifications, 'send_email', lambda *args: calls.append('sent'))

    booking_notifications.notify_confirmed(_details())

    assert calls == []


def test_send_email_without_smtp_logs_preview(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setattr('scheduler.core.config.SMTP_HOST', '')

    with caplog.at_level(logging.INFO, logger='scheduler.notifications.mailer'):
        mailer.send_email('grace@example.com', 'Hello', '<p>Hi</p>')

    assert 'Mail preview to=grace@example.com' in caplog.text


def test_send_email_uses_smtp_when_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    delivered = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            self.host = host
            self.port = port

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return False

        def starttls(self):
            delivered.append('tls')

        def login(self, username, password):
            delivered.append(('login', username))

        def send_message(self, message):
            delivered.append(message['To'])

    monkeypatch.setattr('scheduler.core.config.SMTP_HOST', 'smtp.example.com')
    monkeypatch.setattr('scheduler.core.config.SMTP_USE_TLS', True)
    monkeypatch.setattr('scheduler.core.config.SMTP_USERNAME', 'mailer')
    monkeypatch.setattr(mailer.smtplib, 'SMTP', FakeSMTP)

    mailer.send_email('grace@example.com', 'Hello', '<p>Hi</p>')

    assert delivered == ['tls', ('login', 'mailer'), 'grace@example.com']

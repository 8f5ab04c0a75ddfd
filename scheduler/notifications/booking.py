"""
Booking notification service.

Sends confirmation and cancellation e-mails to the booker and the host. The
routes schedule ``notify_confirmed`` / ``notify_cancelled`` as background
tasks, so these run after the response has been sent and must never raise:
the booking is already persisted whatever happens here.

``details`` is a plain dict snapshot of the booking joined with its event
type and host (see ``booking_routes.build_booking_details``), taken while the
request's session was still open.
"""

import logging
from datetime import datetime
from html import escape

from scheduler.core import config
from scheduler.core.timezones import get_zone, to_utc
from scheduler.notifications.mailer import send_email

logger = logging.getLogger(__name__)


def _format_when(value: datetime, timezone_name: str | None) -> str:
    return to_utc(value).astimezone(get_zone(timezone_name)).strftime('%a %d %b %Y, %H:%M %Z')


def build_confirmation_subject(details: dict) -> str:
    return f"Confirmed: {details['event_title']} between {details['booker_name']} and {details['host_name']}"


def build_cancellation_subject(details: dict) -> str:
    return f"Cancelled: {details['event_title']} between {details['booker_name']} and {details['host_name']}"


def render_confirmation(details: dict, recipient_name: str) -> str:
    timezone_name = details.get('host_timezone')
    start = _format_when(details['start_time'], timezone_name)
    end = _format_when(details['end_time'], timezone_name)
    cancel_url = f"{config.APP_PUBLIC_URL.rstrip('/')}/bookings/{details['uid']}/cancel"

    return f"""
    <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Booking Confirmed</h2>
      <p>Hi {escape(recipient_name)},</p>
      <p>Your meeting <strong>{escape(details['event_title'])}</strong> with
         <strong>{escape(details['host_name'])}</strong> has been scheduled.</p>
      <div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p style="margin: 0;"><strong>When:</strong><br> {start} - {end}</p>
      </div>
      <p>Need to make changes? <a href="{escape(cancel_url)}">Cancel</a>.</p>
    </div>
    """


def render_cancellation(details: dict) -> str:
    return f"""
    <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Booking Cancelled</h2>
      <p>The following meeting has been cancelled:</p>
      <div style="background: #fee2e2; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p style="margin: 0;"><strong>Event:</strong> {escape(details['event_title'])}</p>
        <p style="margin: 10px 0 0;"><strong>With:</strong> {escape(details['booker_name'])}</p>
      </div>
    </div>
    """


def send_booking_confirmation(details: dict) -> None:
    subject = build_confirmation_subject(details)

    send_email(details['booker_email'], subject, render_confirmation(details, details['booker_name']))

    if details.get('host_email'):
        send_email(
            details['host_email'],
            f'New Booking: {subject}',
            render_confirmation(details, details['host_name']),
        )


def send_booking_cancellation(details: dict) -> None:
    subject = build_cancellation_subject(details)
    html = render_cancellation(details)

    send_email(details['booker_email'], subject, html)

    if details.get('host_email'):
        send_email(details['host_email'], subject, html)


def notify_confirmed(details: dict) -> None:
    if not config.NOTIFICATIONS_ENABLED:
        return
    try:
        send_booking_confirmation(details)
    except Exception:
        logger.exception('Confirmation notice failed for booking %s', details.get('uid'))


def notify_cancelled(details: dict) -> None:
    if not config.NOTIFICATIONS_ENABLED:
        return
    try:
        send_booking_cancellation(details)
    except Exception:
        logger.exception('Cancellation notice failed for booking %s', details.get('uid'))

import logging
import smtplib
from email.message import EmailMessage

from scheduler.core import config

logger = logging.getLogger(__name__)


def build_message(to: str, subject: str, html: str) -> EmailMessage:
    message = EmailMessage()
    message['From'] = config.MAIL_FROM
    message['To'] = to
    message['Subject'] = subject
    message.set_content('This message requires an HTML capable mail client.')
    message.add_alternative(html, subtype='html')
    return message


def send_email(to: str, subject: str, html: str) -> None:
    """Deliver one message. Raises on transport failure; callers decide what to do."""
    message = build_message(to, subject, html)

    if not config.SMTP_HOST:
        # No relay configured: log the message so it can be inspected locally.
        logger.info('Mail preview to=%s subject=%r\n%s', to, subject, html)
        return

    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30) as smtp:
        if config.SMTP_USE_TLS:
            smtp.starttls()
        if config.SMTP_USERNAME:
            smtp.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
        smtp.send_message(message)

    logger.info('Message sent to=%s subject=%r', to, subject)

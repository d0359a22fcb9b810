"""
Outbound mail
"""
from email.message import EmailMessage
import logging
import smtplib

from natours.core.config import Settings

logger = logging.getLogger(__name__)


def send_email(settings: Settings, recipient: str, subject: str, body: str) -> None:
    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(body)

    with smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=30) as smtp:
        if settings.EMAIL_USERNAME:
            smtp.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)
        smtp.send_message(message)

    logger.info(f"📧 Sent '{subject}' to {recipient}")

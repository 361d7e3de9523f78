"""
Outgoing registration e-mail over SMTP (aiosmtplib).

Both senders are post-commit side effects: they return False instead of
raising when delivery fails. With EMAIL_ENABLED=false the message is built
and logged but not sent.
"""

from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_side_effect_failure

logger = get_logger(__name__)

STATUS_MESSAGES = {
    "pending": "Your registration is pending approval.",
    "waitlisted": "You have been added to the waitlist.",
    "confirmed": "Your registration has been confirmed!",
    "cancelled": "Your registration has been cancelled.",
    "attended": "You have attended the event.",
    "rejected": "Your registration has been rejected.",
    "no-show": "You were marked as a no show.",
}

FOOTER = "StartupLab Business Center"


def _or_tbd(value) -> str:
    return str(value) if value not in (None, "") else "TBD"


class EmailService:
    def __init__(self):
        settings = get_settings()
        self.enabled = settings.EMAIL_ENABLED
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_address = settings.EMAIL_FROM
        self.admin_address = settings.ADMIN_NOTIFICATION_EMAIL

    def build_message(self, to: str, subject: str, text: str, html: Optional[str] = None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")
        return message

    async def _deliver(self, message: EmailMessage) -> bool:
        if not self.enabled:
            logger.info("email_skipped", to=message["To"], subject=message["Subject"])
            return True
        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                start_tls=self.use_tls,
                username=self.username or None,
                password=self.password or None,
            )
            logger.info("email_sent", to=message["To"], subject=message["Subject"])
            return True
        except Exception as e:
            record_side_effect_failure("email")
            logger.error("email_send_failed", to=message["To"], subject=message["Subject"], error=str(e))
            return False

    async def send_event_registration_email(
        self,
        email: str,
        user_name: str,
        event_title: str,
        event_date,
        event_time,
        event_location,
        status: str = "pending",
        registration_id: Optional[int] = None,
    ) -> bool:
        """Tell the attendee where their registration stands."""
        heading = "Registration Confirmed" if status == "confirmed" else "Registration Update"
        status_message = STATUS_MESSAGES.get(status, STATUS_MESSAGES["pending"])
        reference = f"Reference: #{registration_id}\n" if registration_id else ""
        text = (
            f"Dear {user_name},\n\n"
            f"Thank you for registering for {event_title}!\n"
            f"{status_message}\n\n"
            f"Event Details:\n"
            f"  Date: {_or_tbd(event_date)}\n"
            f"  Time: {_or_tbd(event_time)}\n"
            f"  Location: {_or_tbd(event_location)}\n\n"
            f"{reference}"
            f"If you have any questions or need to cancel your registration, "
            f"please contact our support team.\n\n{FOOTER}\n"
        )
        html = (
            f"<h2>{heading}</h2>"
            f"<p>Dear {user_name},</p>"
            f"<p>Thank you for registering for <strong>{event_title}</strong>!</p>"
            f"<p><strong>{status_message}</strong></p>"
            f"<p>Date: {_or_tbd(event_date)}<br>Time: {_or_tbd(event_time)}<br>"
            f"Location: {_or_tbd(event_location)}</p>"
            f"<p>{FOOTER}</p>"
        )
        message = self.build_message(email, f"{heading}: {event_title} - StartupLab", text, html)
        return await self._deliver(message)

    async def send_registration_notification_email(
        self,
        event_title: str,
        user_name: str,
        user_email: str,
        event_date,
        status: str,
    ) -> bool:
        """Tell the support inbox about a new registration or a status change."""
        text = (
            f"Registration update for {event_title}\n\n"
            f"  Attendee: {user_name} <{user_email}>\n"
            f"  Event date: {_or_tbd(event_date)}\n"
            f"  Status: {status.upper()}\n"
        )
        message = self.build_message(
            self.admin_address,
            f"New Registration ({status.upper()}): {event_title} - StartupLab",
            text,
        )
        return await self._deliver(message)


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service

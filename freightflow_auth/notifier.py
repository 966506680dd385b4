# freightflow_auth/notifier.py
"""Out-of-band delivery of password reset links.

A sender only has to honour ``send(to_address, subject, link) -> bool``:
True when the message was handed off, False when delivery failed.
"""
import html
import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlencode

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail as SendGridMail

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Reset Your Password"


def build_reset_link(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


def render_reset_email(link: str, valid_minutes: int) -> str:
    link = html.escape(link, quote=True)
    return (
        "<h2>Password Reset Request</h2>"
        "<p>Click the link below to reset your password:</p>"
        f'<a href="{link}">{link}</a>'
        f"<p>This link is valid for {valid_minutes} minutes.</p>"
    )


class NotificationSender(ABC):
    @abstractmethod
    def send(self, to_address: str, subject: str, link: str) -> bool:
        ...


class SendGridSender(NotificationSender):
    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: Optional[str] = None,
        valid_minutes: int = 10,
        client: Optional[SendGridAPIClient] = None,
    ):
        self.from_email = from_email
        self.from_name = from_name
        self.valid_minutes = valid_minutes
        self.client = client or SendGridAPIClient(api_key)

    def send(self, to_address: str, subject: str, link: str) -> bool:
        sender = (self.from_email, self.from_name) if self.from_name else self.from_email
        message = SendGridMail(
            from_email=sender,
            to_emails=to_address,
            subject=subject,
            html_content=render_reset_email(link, self.valid_minutes),
        )
        try:
            response = self.client.send(message)
        except Exception:
            logger.exception("Error sending email via SendGrid to %s", to_address)
            return False

        if response.status_code >= 400:
            logger.error(
                "SendGrid rejected email to %s, status: %s",
                to_address,
                response.status_code,
            )
            return False
        logger.info("Email sent to %s, status: %s", to_address, response.status_code)
        return True


class LoggingSender(NotificationSender):
    """Development sender: writes the link to the log instead of mailing it."""

    def send(self, to_address: str, subject: str, link: str) -> bool:
        logger.warning("SendGrid not configured. %s for %s: %s", subject, to_address, link)
        return True

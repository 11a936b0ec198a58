"""Password reset email delivery."""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from app.config import Settings, get_settings
from app.exceptions import NotificationError

logger = logging.getLogger("login_portal")

PASSWORD_RESET_SUBJECT = "Password reset"

PASSWORD_RESET_TEXT = """Hello,

To reset your password, open the link below:
{reset_link}

If you did not ask for a password reset, ignore this email.
(The link is valid for {ttl_minutes} minutes.)
"""

PASSWORD_RESET_HTML = """<!DOCTYPE html>
<html>
<body style="font-family: sans-serif;">
    <p>Hello,</p>
    <p>To reset your password, open the link below:</p>
    <p><a href="{reset_link}">{reset_link}</a></p>
    <p style="color: #6b7280;">If you did not ask for a password reset, ignore this email.
    The link is valid for {ttl_minutes} minutes.</p>
</body>
</html>
"""


class Notifier(Protocol):
    def send_reset_email(self, to_email: str, token: str) -> None: ...


def build_reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/auth/reset/{token}"


class MailService:
    """Sends reset links over SMTP, or logs them when SMTP is disabled."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _create_message(self, to_email: str, subject: str, text_body: str, html_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self._settings.SMTP_FROM_NAME} <{self._settings.SMTP_FROM_EMAIL}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
        return msg

    def _send(self, message: MIMEMultipart) -> None:
        settings = self._settings
        if not settings.SMTP_HOST:
            raise NotificationError("SMTP host not configured")
        try:
            if settings.SMTP_USE_TLS:
                # Implicit TLS (port 465)
                with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, context=ssl.create_default_context()) as server:
                    if settings.SMTP_USER:
                        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                    server.send_message(message)
            else:
                with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
                    if settings.SMTP_STARTTLS:
                        server.starttls(context=ssl.create_default_context())
                    if settings.SMTP_USER:
                        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                    server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError("Failed to send email") from e

    def send_reset_email(self, to_email: str, token: str) -> None:
        """Send the reset link for ``token`` to ``to_email``."""
        reset_link = build_reset_link(self._settings.BASE_URL, token)
        if not self._settings.SMTP_ENABLED:
            if self._settings.APP_ENV == "production":
                raise NotificationError("SMTP is disabled")
            # Development only: the link stands in for the email.
            logger.info("PASSWORD RESET (SMTP disabled): %s", reset_link)
            return

        ttl = self._settings.RESET_TOKEN_TTL_MINUTES
        message = self._create_message(
            to_email=to_email,
            subject=PASSWORD_RESET_SUBJECT,
            text_body=PASSWORD_RESET_TEXT.format(reset_link=reset_link, ttl_minutes=ttl),
            html_body=PASSWORD_RESET_HTML.format(reset_link=reset_link, ttl_minutes=ttl),
        )
        self._send(message)
        logger.info("Password reset email sent")


_mail_service: MailService | None = None


def get_mail_service() -> MailService:
    """Get singleton mail service instance."""
    global _mail_service
    if _mail_service is None:
        _mail_service = MailService(get_settings())
    return _mail_service

"""
Email delivery via SMTP (aiosmtplib).

send() never raises: failures are logged and reported as False.
When SMTP_HOST is not configured, messages are logged and dropped.
"""

from email.message import EmailMessage
from html import escape
import logging

import aiosmtplib

from snapscape.core.config import settings

logger = logging.getLogger(__name__)


class EmailSender:
    """Thin async SMTP client"""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        start_tls: bool | None = None,
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.sender = sender or settings.SMTP_FROM or self.username or "noreply@snapscape.app"
        self.start_tls = settings.SMTP_START_TLS if start_tls is None else start_tls

    @property
    def configured(self) -> bool:
        return bool(self.host)

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        if not self.configured:
            logger.info(f"SMTP not configured, skipping email to {to}: {subject}")
            return False

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or "Please view this message in an HTML capable client.")
        message.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.start_tls,
            )
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

        logger.debug(f"Email sent to {to}: {subject}")
        return True


def _layout(heading: str, body: str, link: str | None = None, link_label: str | None = None) -> str:
    """Heading, body and link are HTML-escaped."""
    button = ""
    if link:
        button = (
            f'<p><a href="{escape(link)}" style="background:#1a4d5c;color:#fff;padding:10px 18px;'
            f'border-radius:4px;text-decoration:none">{escape(link_label or "Open SnapScape")}</a></p>'
        )
    return f"<h2>{escape(heading)}</h2><p>{escape(body)}</p>{button}<p>- The SnapScape team</p>"


def verification_email(name: str, token: str) -> tuple[str, str]:
    link = f"{settings.FRONTEND_URL}/auth/verify-email?token={token}"
    return (
        "Verify your SnapScape account",
        _layout(f"Welcome, {name}!", "Please confirm your email address to start competing.", link, "Verify email"),
    )


def password_reset_email(name: str, token: str) -> tuple[str, str]:
    link = f"{settings.FRONTEND_URL}/auth/reset-password/confirm?token={token}"
    return (
        "Reset your SnapScape password",
        _layout(
            f"Hi {name},",
            f"A password reset was requested for your account. The link expires in "
            f"{settings.PASSWORD_RESET_EXPIRE_HOURS} hour(s). Ignore this email if it wasn't you.",
            link,
            "Reset password",
        ),
    )


def notification_email(title: str, message: str, link: str | None = None) -> tuple[str, str]:
    url = f"{settings.FRONTEND_URL}{link}" if link and link.startswith("/") else link
    return title, _layout(title, message, url)


# Shared instance used by routers; tests swap it through dependency overrides
email_sender = EmailSender()


def get_email_sender() -> EmailSender:
    return email_sender

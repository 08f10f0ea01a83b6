"""
Email service.

Handles sending emails via SMTP using aiosmtplib for async support.
Used by the auth flows to deliver password-reset and email-verification
links.

Delivery is best-effort: a failure raises ``NotificationError``, which
the Session Authority logs and swallows; credential state that was
already committed is never rolled back because an email bounced.
"""

import logging
from collections.abc import Awaitable, Callable
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Protocol

import aiosmtplib
from fastapi import BackgroundTasks

from momentum.core.config import Settings
from momentum.core.errors import NotificationError

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send_password_reset(self, to: str, name: str, token: str) -> None: ...

    async def send_email_verification(self, to: str, name: str, token: str) -> None: ...


class EmailNotifier:
    def __init__(self, settings: Settings):
        self._settings = settings

    async def send_email(self, to: str, subject: str, html_body: str) -> None:
        """Send an HTML email via the configured SMTP server."""
        if not self._settings.EMAIL_ENABLED:
            logger.info("Email delivery disabled; not sending %r to %s", subject, to)
            return

        message = EmailMessage()
        message["From"] = formataddr((self._settings.EMAIL_FROM_NAME, self._settings.SENDER_EMAIL))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(html_body, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.EMAIL_HOST,
                port=self._settings.EMAIL_PORT,
                username=self._settings.SENDER_EMAIL,
                password=self._settings.EMAIL_PASSWORD,
                start_tls=True,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.exception("Failed to send email to %s", to)
            raise NotificationError(f"Could not deliver email to {to}") from exc
        logger.info("Email sent to %s", to)

    async def send_password_reset(self, to: str, name: str, token: str) -> None:
        """
        Send the reset link.  The link points to the frontend, which
        posts the token back to POST /api/auth/reset-password.
        """
        app_name = self._settings.APP_NAME
        reset_link = f"{self._settings.FRONTEND_URL}/reset-password?token={token}"
        minutes = self._settings.PASSWORD_RESET_EXPIRE_MINUTES
        html_body = _render(
            heading="Reset your password",
            name=name,
            intro=f"We received a request to reset your <strong>{app_name}</strong> password.",
            link=reset_link,
            button="Reset Password",
            footer=f"This link expires in {minutes} minutes. "
                   "If you did not ask for a reset, you can ignore this email.",
        )
        await self.send_email(to, f"Password reset - {app_name}", html_body)

    async def send_email_verification(self, to: str, name: str, token: str) -> None:
        app_name = self._settings.APP_NAME
        verify_link = f"{self._settings.FRONTEND_URL}/verify-email?token={token}"
        html_body = _render(
            heading="Verify your email",
            name=name,
            intro=f"Welcome to <strong>{app_name}</strong>! Please confirm your email address.",
            link=verify_link,
            button="Verify Email",
            footer="If you did not create an account, you can ignore this email.",
        )
        await self.send_email(to, f"Verify your {app_name} account", html_body)


class BackgroundNotifier:
    """
    Defers delivery until after the response has been sent.

    Used by the HTTP layer so the time a request takes does not depend
    on whether an email went out (e.g. forgot-password on an unknown
    address vs. a real one).
    """

    def __init__(self, notifier: Notifier, background_tasks: BackgroundTasks):
        self._notifier = notifier
        self._tasks = background_tasks

    async def send_password_reset(self, to: str, name: str, token: str) -> None:
        self._tasks.add_task(_deliver, self._notifier.send_password_reset, to, name, token)

    async def send_email_verification(self, to: str, name: str, token: str) -> None:
        self._tasks.add_task(_deliver, self._notifier.send_email_verification, to, name, token)


async def _deliver(
    send: Callable[[str, str, str], Awaitable[None]],
    to: str,
    name: str,
    token: str,
) -> None:
    try:
        await send(to, name, token)
    except NotificationError:
        logger.warning("Background delivery to %s failed", to)


def _render(*, heading: str, name: str, intro: str, link: str, button: str, footer: str) -> str:
    return f"""\
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #2c3e50;">{heading}</h2>
            <p>Hi {escape(name)},</p>
            <p>{intro}</p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{link}"
                   style="background-color: #3498db; color: #fff; padding: 12px 30px;
                          text-decoration: none; border-radius: 5px; font-size: 16px;">
                    {button}
                </a>
            </div>
            <p style="color: #7f8c8d; font-size: 13px;">
                If the button doesn't work, copy and paste this link into your browser:<br>
                <a href="{link}">{link}</a>
            </p>
            <p style="color: #7f8c8d; font-size: 13px;">{footer}</p>
        </div>
    </body>
    </html>
    """

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transactional email using async SMTP.

Every public send method is fire-and-forget: delivery failures are logged
and swallowed so that a broken mail server never fails a login, an
invitation or a donation. When SMTP is not configured the service runs in
console mode and only logs the message summary.
"""

import logging
from decimal import Decimal
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import TYPE_CHECKING

import aiosmtplib

if TYPE_CHECKING:
    from floodaid.core.config.settings import EmailSettings

logger = logging.getLogger(__name__)


class EmailService:
    """Builds and delivers FloodAid notification emails.

    Args:
        settings: SMTP and sender configuration.
    """

    def __init__(self, settings: "EmailSettings") -> None:
        self._settings = settings

    @property
    def console_mode(self) -> bool:
        return not self._settings.is_configured

    async def send_confirmation(
        self,
        to_email: str,
        donor_name: str,
        amount: Decimal | float,
        donation_type: str,
        receipt_id: str,
    ) -> None:
        """Send a donation receipt."""
        subject = f"Thank you for your donation - Receipt {receipt_id}"
        body = (
            f"Dear {donor_name},\n\n"
            f"We have received your {donation_type.replace('_', ' ')} donation.\n"
            f"Amount: {Decimal(str(amount)):.2f}\n"
            f"Receipt ID: {receipt_id}\n\n"
            "Our team will review it shortly. Thank you for supporting flood relief."
        )
        await self._deliver(to_email, subject, body)

    async def send_otp(self, to_email: str, name: str, code: str, expire_minutes: int) -> None:
        """Send a login verification code."""
        subject = "Your FloodAid verification code"
        body = (
            f"Hello {name},\n\n"
            f"Your verification code is {code}.\n"
            f"It expires in {expire_minutes} minutes. If you did not try to sign in, "
            "ignore this email and consider changing your password."
        )
        await self._deliver(to_email, subject, body)

    async def send_invitation(
        self, to_email: str, role: str, accept_url: str, expire_days: int
    ) -> None:
        """Send an invitation link."""
        subject = "You have been invited to FloodAid"
        body = (
            "Hello,\n\n"
            f"You have been invited to join FloodAid as {role.replace('_', ' ')}.\n"
            f"Accept the invitation here: {accept_url}\n\n"
            f"This link expires in {expire_days} days and can be used once."
        )
        await self._deliver(to_email, subject, body)

    async def send_password_reset(
        self, to_email: str, name: str, reset_url: str, expire_minutes: int
    ) -> None:
        """Send a password reset link."""
        subject = "Reset your FloodAid password"
        body = (
            f"Hello {name},\n\n"
            f"Reset your password here: {reset_url}\n"
            f"The link expires in {expire_minutes} minutes."
        )
        await self._deliver(to_email, subject, body)

    def _build_message(self, to_email: str, subject: str, body: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = f"{self._settings.from_name} <{self._settings.from_address}>"
        message["To"] = to_email
        message["Subject"] = subject

        message.attach(MIMEText(body, "plain", "utf-8"))
        html_body = escape(body).replace("\n", "<br>")
        message.attach(
            MIMEText(
                f'<html><body style="font-family: sans-serif;">{html_body}</body></html>',
                "html",
                "utf-8",
            )
        )
        return message

    async def _deliver(self, to_email: str, subject: str, body: str) -> None:
        if self.console_mode:
            logger.info("Email (console mode) to %s: %s", to_email, subject)
            return

        password = self._settings.smtp_password
        try:
            await aiosmtplib.send(
                self._build_message(to_email, subject, body),
                hostname=self._settings.smtp_host,
                port=self._settings.smtp_port,
                username=self._settings.smtp_user,
                password=password.get_secret_value() if password else None,
                start_tls=self._settings.use_tls,
                timeout=self._settings.timeout,
            )
            logger.info("Email sent to %s: %s", to_email, subject)
        except Exception as e:
            logger.error("Failed to send email to %s: %s", to_email, str(e), exc_info=True)

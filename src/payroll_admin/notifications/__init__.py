"""Payslip email notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING

from payroll_admin.notifications.base import (
    PAYSLIP_EMAIL_SUBJECT,
    DeliveryStatus,
    EmailConfigurationError,
    EmailSender,
    PayslipEmail,
    SendResult,
    map_delivery_status,
    render_payslip_email,
)
from payroll_admin.notifications.resend import ResendEmailSender
from payroll_admin.notifications.smtp import SmtpEmailSender

if TYPE_CHECKING:
    from payroll_admin.config import Settings


def email_sender_from_settings(settings: Settings) -> EmailSender:
    """Build the configured provider.

    Raises:
        EmailConfigurationError: If the provider is unknown or lacks credentials.
    """
    if settings.email_provider == "resend":
        if not settings.resend_api_key:
            raise EmailConfigurationError("RESEND_API_KEY is not configured")
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            sender=settings.email_from,
            reply_to=settings.email_reply_to,
            base_url=settings.resend_base_url,
        )
    if settings.email_provider == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            reply_to=settings.email_reply_to,
        )
    raise EmailConfigurationError(f"Unknown email provider: {settings.email_provider}")


__all__ = [
    "PAYSLIP_EMAIL_SUBJECT",
    "DeliveryStatus",
    "EmailConfigurationError",
    "EmailSender",
    "PayslipEmail",
    "ResendEmailSender",
    "SendResult",
    "SmtpEmailSender",
    "email_sender_from_settings",
    "map_delivery_status",
    "render_payslip_email",
]

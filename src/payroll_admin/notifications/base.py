"""Email sender protocol and the payslip notification message."""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

PAYSLIP_EMAIL_SUBJECT = "Your latest payslip is now available"


class EmailConfigurationError(Exception):
    """Raised when the configured email provider cannot be built."""


@dataclass(frozen=True)
class PayslipEmail:
    """A rendered email ready to hand to a provider."""

    to: str
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class SendResult:
    """Result of handing one email to the provider."""

    ok: bool
    message_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class DeliveryStatus:
    """Provider-side state of a sent email."""

    message_id: str
    last_event: str | None = None
    created_at: datetime | None = None
    error: str | None = None

    @property
    def delivery_status(self) -> str | None:
        return map_delivery_status(self.last_event)


class EmailSender(Protocol):
    """Protocol for email providers.

    Neither method raises on provider errors; failures come back in the
    result so one bad address never stops a batch.
    """

    name: str

    async def send(self, email: PayslipEmail) -> SendResult:
        """Send one email."""
        ...

    async def get_status(self, message_id: str) -> DeliveryStatus:
        """Look up the latest delivery event for a sent email."""
        ...


def map_delivery_status(last_event: str | None) -> str | None:
    """Collapse provider events onto the stored delivery status.

    Bounces and complaints count as failed; any other event is kept as-is.
    """
    if not last_event:
        return None
    if last_event in ("bounced", "complained"):
        return "failed"
    return last_event


def render_payslip_email(
    to: str,
    employee_name: str | None,
    payslip_url: str,
    contact_email: str | None = None,
) -> PayslipEmail:
    """Notification carrying a link to the stored payslip."""
    name = employee_name or "there"
    safe_name = html.escape(name)
    safe_url = html.escape(payslip_url, quote=True)

    if contact_email:
        safe_contact = html.escape(contact_email)
        contact_html = (
            "If you have any questions, please reach out to your payroll administrator "
            f'at <a href="mailto:{safe_contact}">{safe_contact}</a>.'
        )
        contact_text = (
            "If you have any questions, please reach out to your payroll administrator "
            f"at {contact_email}."
        )
    else:
        contact_html = contact_text = (
            "If you have any questions, please reach out to your payroll administrator."
        )

    body = f"""\
<div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; padding: 24px; color: #111;">
  <h2 style="font-size: 18px; font-weight: 600;">Hi {safe_name},</h2>
  <p style="font-size: 14px; line-height: 1.5; margin: 16px 0;">
    Your payslip is now ready to view. Please click the button below to securely access and download your payslip.
  </p>
  <a href="{safe_url}" target="_blank" style="display: inline-block; background-color: #0d9488; color: white; text-decoration: none; padding: 10px 16px; border-radius: 6px; font-size: 14px; margin: 20px 0;">
    View Payslip
  </a>
  <p style="font-size: 13px; color: #555;">{contact_html}</p>
  <p style="font-size: 12px; color: #888; margin-top: 32px;">Do not reply directly to this email.</p>
</div>
"""
    text = (
        f"Hi {name},\n\n"
        "Your payslip is now ready to view. Open the link below to access and "
        f"download it:\n{payslip_url}\n\n"
        f"{contact_text}\n"
    )
    return PayslipEmail(to=to, subject=PAYSLIP_EMAIL_SUBJECT, html=body, text=text)

"""SMTP sender for deployments without an HTTP email provider."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

from payroll_admin.notifications.base import DeliveryStatus, PayslipEmail, SendResult

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """Sends over SMTP with implicit TLS.

    SMTP hands back no delivery events, so status lookups always report an
    error and the stored status stays at "sent".
    """

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        reply_to: str | None = None,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.reply_to = reply_to
        self.timeout = timeout

    def build_message(self, email: PayslipEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg["Message-ID"] = make_msgid()
        if self.reply_to:
            msg["Reply-To"] = self.reply_to
        # Plain-text part first for clients without HTML
        msg.set_content(email.text)
        msg.add_alternative(email.html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, email: PayslipEmail) -> SendResult:
        msg = self.build_message(email)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", email.to, e)
            return SendResult(ok=False, error=str(e) or type(e).__name__)
        return SendResult(ok=True, message_id=msg["Message-ID"])

    async def get_status(self, message_id: str) -> DeliveryStatus:
        return DeliveryStatus(message_id, error="Delivery status is not available over SMTP")

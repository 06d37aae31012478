"""Emailing payslip links to employees and tracking delivery."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from payroll_admin.models import PayrollRecord, PayslipSendEvent
from payroll_admin.notifications import EmailSender, render_payslip_email
from payroll_admin.services.payslip_service import MSG_NOT_FOUND, parse_uuid, unique_ids

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

MSG_SENT = "Email sent"
MSG_SENT_WITHOUT_ID = "Email accepted but provider message id not returned"
MSG_NO_PAYSLIP = "Payslip has not been generated"
MSG_NO_EMAIL = "Employee email address missing"


class EmailStatusError(Exception):
    """Raised when a status refresh has no message ids to check."""


@dataclass(frozen=True)
class EmailResult:
    """Outcome of emailing one record's payslip."""

    batch_id: str
    ok: bool
    message: str
    provider_message_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "ok": self.ok,
            "message": self.message,
            "provider_message_id": self.provider_message_id,
        }


@dataclass(frozen=True)
class StatusUpdate:
    """Refreshed delivery state for one provider message."""

    message_id: str
    status: str | None = None
    last_event: str | None = None
    updated_at: datetime | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "email_id": self.message_id,
            "status": self.status,
            "last_event": self.last_event,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "error": self.error,
        }


class PayslipEmailService:
    """Sends payslip links and records every attempt as a send event.

    Each record is committed on its own. A failure to record an event never
    turns a delivered email into a failed result.
    """

    def __init__(
        self,
        session: AsyncSession,
        sender: EmailSender,
        contact_email: str | None = None,
    ):
        self.session = session
        self.sender = sender
        self.contact_email = contact_email

    async def send(self, ids: Sequence[str]) -> list[EmailResult]:
        """Email each record's payslip link, one result per unique id."""
        batch = unique_ids(ids)
        logger.info("Emailing %d payslip(s) via %s", len(batch), self.sender.name)

        results = []
        for batch_id in batch:
            results.append(await self._send_one(batch_id))

        sent = sum(1 for r in results if r.ok)
        logger.info("Payslip emails finished: %d/%d sent", sent, len(results))
        return results

    async def _send_one(self, batch_id: str) -> EmailResult:
        record_id = parse_uuid(batch_id)
        try:
            record = (
                await self.session.get(PayrollRecord, record_id, populate_existing=True)
                if record_id is not None
                else None
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Payslip email %s: record could not be loaded: %s", batch_id, e)
            return EmailResult(batch_id, False, f"Failed to load payroll record: {e}")

        if record is None:
            return EmailResult(batch_id, False, MSG_NOT_FOUND)
        if not record.payslip_url:
            return EmailResult(batch_id, False, MSG_NO_PAYSLIP)
        if not record.email_id:
            return EmailResult(batch_id, False, MSG_NO_EMAIL)

        email = render_payslip_email(
            record.email_id, record.employee_name, record.payslip_url, self.contact_email
        )
        result = await self.sender.send(email)

        now = datetime.now(timezone.utc)
        if result.ok:
            warning = None if result.message_id else MSG_SENT_WITHOUT_ID
            event = PayslipSendEvent(
                batch_id=record.id,
                recipient_email=email.to,
                status="sent",
                error_message=warning,
                provider_message_id=result.message_id,
                delivery_status="sent",
                delivery_status_updated_at=now,
                last_event="sent",
            )
            outcome = EmailResult(batch_id, True, warning or MSG_SENT, result.message_id)
        else:
            event = PayslipSendEvent(
                batch_id=record.id,
                recipient_email=email.to,
                status="failed",
                error_message=result.error,
                delivery_status="failed",
                delivery_status_updated_at=now,
            )
            outcome = EmailResult(batch_id, False, f"Email send failed: {result.error}")

        try:
            self.session.add(event)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning("Send event for %s not recorded: %s", batch_id, e)
        return outcome

    async def message_ids_for(self, batch_ids: Sequence[str]) -> list[str]:
        """Provider message ids of every send event for the given records."""
        wanted = {u for u in (parse_uuid(i) for i in batch_ids) if u is not None}
        if not wanted:
            return []
        result = await self.session.execute(
            select(PayslipSendEvent.provider_message_id)
            .where(
                PayslipSendEvent.batch_id.in_(wanted),
                PayslipSendEvent.provider_message_id.is_not(None),
            )
            .order_by(PayslipSendEvent.created_at)
        )
        return list(dict.fromkeys(result.scalars()))

    async def refresh_statuses(
        self,
        batch_ids: Sequence[str] | None = None,
        message_ids: Sequence[str] | None = None,
    ) -> list[StatusUpdate]:
        """Ask the provider for each message's latest event and store it.

        batch_ids take precedence over message_ids.

        Raises:
            EmailStatusError: If no provider message ids were found.
        """
        if batch_ids:
            ids = await self.message_ids_for(batch_ids)
        else:
            ids = list(dict.fromkeys(m.strip() for m in (message_ids or []) if m and m.strip()))
        if not ids:
            raise EmailStatusError("No valid provider message ids found")

        updates = []
        for message_id in ids:
            updates.append(await self._refresh_one(message_id))
        return updates

    async def _refresh_one(self, message_id: str) -> StatusUpdate:
        status = await self.sender.get_status(message_id)
        if status.error:
            logger.warning("Status lookup for %s failed: %s", message_id, status.error)
            return StatusUpdate(message_id, error=status.error)

        now = datetime.now(timezone.utc)
        refreshed = StatusUpdate(
            message_id,
            status=status.delivery_status,
            last_event=status.last_event,
            updated_at=status.created_at or now,
        )
        try:
            await self.session.execute(
                update(PayslipSendEvent)
                .where(PayslipSendEvent.provider_message_id == message_id)
                .values(
                    delivery_status=status.delivery_status,
                    delivery_status_updated_at=now,
                    last_event=status.last_event,
                )
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to store status for %s: %s", message_id, e)
            return replace(refreshed, error="Failed to update database")
        return refreshed

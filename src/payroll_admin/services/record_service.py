"""Payroll record administration: listing, soft delete, export."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Sequence
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import defer

from payroll_admin.models import PayrollRecord, PayslipSendEvent
from payroll_admin.services.import_service import EXPECTED_COLUMNS

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql import Select

logger = logging.getLogger(__name__)

LIST_SORTABLE: dict[str, Any] = {
    "created_at": PayrollRecord.created_at,
    "pay_period_to": PayrollRecord.pay_period_to,
    "employer_name": PayrollRecord.employer_name,
    "employee_name": PayrollRecord.employee_name,
    "reviewer_email": PayrollRecord.reviewer_email,
    "email_id": PayrollRecord.email_id,
    "currency": PayrollRecord.currency,
    "net_salary": PayrollRecord.net_salary,
    "esop_deductions": PayrollRecord.esop_deductions,
    "total_payment_adjustments": PayrollRecord.total_payment_adjustments,
    "net_payment": PayrollRecord.net_payment,
}

EMPTY_SEND_STATUS: dict[str, Any] = {
    "last_sent_at": None,
    "delivery_status": None,
    "delivery_status_updated_at": None,
    "provider_message_id": None,
}


@dataclass
class RecordFilters:
    """Query options for listing payroll records."""

    limit: int = 200
    offset: int = 0
    sort_by: str | None = None
    sort_dir: str = "desc"
    search: str | None = None
    employers: list[str] = field(default_factory=list)
    dates: list[date] = field(default_factory=list)
    currencies: list[str] = field(default_factory=list)
    include_deleted: bool = False


def _parse_ids(ids: Sequence[str]) -> list[UUID]:
    parsed = []
    for value in ids:
        try:
            parsed.append(UUID(str(value).strip()))
        except ValueError:
            logger.debug("Skipping malformed record id %r", value)
    return parsed


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class PayrollRecordService:
    """Reads and maintains active payroll records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _apply_filters(self, query: Select, filters: RecordFilters) -> Select:
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.where(
                or_(
                    PayrollRecord.employee_name.ilike(pattern),
                    PayrollRecord.employer_name.ilike(pattern),
                    PayrollRecord.reviewer_email.ilike(pattern),
                    PayrollRecord.email_id.ilike(pattern),
                )
            )
        if filters.employers:
            query = query.where(PayrollRecord.employer_name.in_(filters.employers))
        if filters.dates:
            query = query.where(PayrollRecord.pay_period_to.in_(filters.dates))
        if filters.currencies:
            query = query.where(PayrollRecord.currency.in_(filters.currencies))
        return query

    def _order(self, query: Select, filters: RecordFilters) -> Select:
        column = LIST_SORTABLE.get(filters.sort_by or "")
        if column is None:
            return query.order_by(PayrollRecord.created_at.desc())
        if filters.sort_dir.lower() == "asc":
            return query.order_by(column.asc().nulls_first())
        return query.order_by(column.desc().nulls_last())

    async def _fetch(
        self, filters: RecordFilters, soft_delete_filter: bool
    ) -> tuple[list[PayrollRecord], int]:
        query = self._apply_filters(select(PayrollRecord), filters)
        count_query = self._apply_filters(
            select(func.count()).select_from(PayrollRecord), filters
        )
        if soft_delete_filter:
            condition = (
                PayrollRecord.deleted_at.is_not(None)
                if filters.include_deleted
                else PayrollRecord.deleted_at.is_(None)
            )
            query = query.where(condition)
            count_query = count_query.where(condition)
        else:
            query = query.options(defer(PayrollRecord.deleted_at, raiseload=True))

        query = self._order(query, filters).limit(filters.limit).offset(filters.offset)
        rows = (await self.session.execute(query)).scalars().all()
        total = (await self.session.execute(count_query)).scalar_one()
        return list(rows), total

    async def list_records(self, filters: RecordFilters) -> tuple[list[dict[str, Any]], int]:
        """List records with their latest send status.

        includeDeleted lists only soft-deleted rows. A database that predates
        soft delete is queried again without the deleted_at filter.
        """
        exclude: frozenset[str] = frozenset()
        try:
            rows, total = await self._fetch(filters, soft_delete_filter=True)
        except DBAPIError as e:
            if "deleted_at" not in str(e):
                raise
            logger.warning("deleted_at column unavailable, listing without soft-delete filter")
            await self.session.rollback()
            rows, total = await self._fetch(filters, soft_delete_filter=False)
            exclude = frozenset({"deleted_at"})

        events = await self.latest_send_events([r.id for r in rows])
        result = []
        for record in rows:
            data = record.to_dict(exclude=exclude)
            data["batch_id"] = record.id
            data.update(events.get(record.id, EMPTY_SEND_STATUS))
            result.append(data)
        return result, total

    async def latest_send_events(self, ids: Sequence[UUID]) -> dict[UUID, dict[str, Any]]:
        """Most recent send event per record id."""
        if not ids:
            return {}
        result = await self.session.execute(
            select(PayslipSendEvent)
            .where(PayslipSendEvent.batch_id.in_(ids))
            .order_by(PayslipSendEvent.created_at.desc())
        )
        latest: dict[UUID, dict[str, Any]] = {}
        for event in result.scalars():
            if event.batch_id in latest:
                continue
            latest[event.batch_id] = {
                "last_sent_at": event.created_at,
                "delivery_status": event.delivery_status,
                "delivery_status_updated_at": event.delivery_status_updated_at
                or event.created_at,
                "provider_message_id": event.provider_message_id,
            }
        return latest

    async def _matching_ids(self, ids: Sequence[str], *conditions: Any) -> list[UUID]:
        parsed = _parse_ids(ids)
        if not parsed:
            return []
        result = await self.session.execute(
            select(PayrollRecord.id).where(PayrollRecord.id.in_(parsed), *conditions)
        )
        return list(result.scalars())

    async def soft_delete(self, ids: Sequence[str]) -> list[UUID]:
        """Mark records deleted; returns the ids that exist."""
        matched = await self._matching_ids(ids)
        if matched:
            await self.session.execute(
                update(PayrollRecord)
                .where(PayrollRecord.id.in_(matched))
                .values(deleted_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        logger.info("Soft-deleted %d payroll record(s)", len(matched))
        return matched

    async def restore(self, ids: Sequence[str]) -> list[UUID]:
        matched = await self._matching_ids(ids)
        if matched:
            await self.session.execute(
                update(PayrollRecord)
                .where(PayrollRecord.id.in_(matched))
                .values(deleted_at=None)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        logger.info("Restored %d payroll record(s)", len(matched))
        return matched

    async def delete_permanent(self, ids: Sequence[str]) -> list[UUID]:
        """Hard-delete records, but only those already soft-deleted."""
        matched = await self._matching_ids(ids, PayrollRecord.deleted_at.is_not(None))
        if matched:
            await self.session.execute(
                delete(PayrollRecord)
                .where(PayrollRecord.id.in_(matched))
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        logger.info("Permanently deleted %d payroll record(s)", len(matched))
        return matched

    async def export_csv(self) -> str:
        """Active records as CSV in import-template column order."""
        result = await self.session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.deleted_at.is_(None))
            .order_by(PayrollRecord.pay_period_to.desc(), PayrollRecord.employee_name)
        )
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPECTED_COLUMNS)
        for record in result.scalars():
            writer.writerow([_csv_value(getattr(record, name)) for name in EXPECTED_COLUMNS])
        return buffer.getvalue()


def import_template_csv() -> str:
    """Empty import template: the header row only."""
    buffer = io.StringIO()
    csv.writer(buffer).writerow(EXPECTED_COLUMNS)
    return buffer.getvalue()

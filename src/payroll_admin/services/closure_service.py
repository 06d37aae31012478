"""Pay-period closure: move active payroll records into historical storage."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Sequence
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from payroll_admin.models import PAYROLL_FIELD_NAMES, HistoricalPayrun, PayrollRecord
from payroll_admin.renderers.money import DEFAULT_CURRENCY, to_decimal

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

HISTORY_SORTABLE: dict[str, Any] = {
    "closed_at": HistoricalPayrun.closed_at,
    "pay_period_to": HistoricalPayrun.pay_period_to,
    "employer_name": HistoricalPayrun.employer_name,
    "employee_name": HistoricalPayrun.employee_name,
    "currency": HistoricalPayrun.currency,
    "net_salary": HistoricalPayrun.net_salary,
    "total_to_transfer": HistoricalPayrun.total_to_transfer,
}


class ClosureError(Exception):
    """Raised when a pay-period closure cannot be completed."""

    def __init__(self, message: str, period_end_dates: Sequence[date] = ()):
        self.period_end_dates = tuple(period_end_dates)
        super().__init__(message)


@dataclass(frozen=True)
class PayPeriodClosureSummary:
    """What a closure moved, built from the rows it moved."""

    closure_batch_id: UUID
    period_end_dates: list[date]
    total_records_moved: int
    records_by_period: dict[str, int]
    total_amount: Decimal
    employers: list[str]
    employer_record_counts: dict[str, int]
    closed_at: datetime
    notes: str | None = None


@dataclass
class ActivePayPeriod:
    """Active records grouped by period end date."""

    pay_period_to: date | None
    record_count: int = 0
    employers: list[str] = field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    currency_breakdown: dict[str, Decimal] = field(default_factory=dict)


def record_amount(record: Any) -> Decimal:
    """Amount a record contributes to totals: net payment, else net salary, else 0."""
    for name in ("net_payment", "net_salary"):
        value = to_decimal(getattr(record, name, None))
        if value:
            return value
    return Decimal("0")


class PayPeriodClosureService:
    """Closes pay periods and reports on active and closed periods."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def close_periods(
        self,
        period_end_dates: Sequence[date],
        closed_by: str | None,
        notes: str | None = None,
    ) -> PayPeriodClosureSummary:
        """Move every record whose period ends on one of the dates.

        All dates are moved in a single transaction: either every matching
        row is archived and removed, or nothing changes.

        Raises:
            ClosureError: If no dates were given or the move failed.
        """
        dates = list(dict.fromkeys(period_end_dates))
        if not dates:
            raise ClosureError("No pay periods selected for closure")

        closure_batch_id = uuid4()
        closed_at = datetime.now(timezone.utc)

        try:
            result = await self.session.execute(
                select(PayrollRecord).where(PayrollRecord.pay_period_to.in_(dates))
            )
            records = list(result.scalars())

            for record in records:
                values = {name: getattr(record, name) for name in PAYROLL_FIELD_NAMES}
                self.session.add(
                    HistoricalPayrun(
                        id=uuid4(),
                        original_id=record.id,
                        closed_at=closed_at,
                        closed_by_user_id=closed_by,
                        closure_batch_id=closure_batch_id,
                        closure_notes=notes or None,
                        created_at=record.created_at,
                        **values,
                    )
                )
            await self.session.flush()

            await self.session.execute(
                delete(PayrollRecord)
                .where(PayrollRecord.id.in_([r.id for r in records]))
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Closure of %s failed: %s", dates, e)
            raise ClosureError(f"Failed to close pay periods: {e}", dates) from e

        summary = self._summarize(closure_batch_id, dates, records, closed_at, notes)
        logger.info(
            "Closed %d pay period(s): moved %d record(s) in batch %s",
            len(dates),
            summary.total_records_moved,
            closure_batch_id,
        )
        return summary

    @staticmethod
    def _summarize(
        closure_batch_id: UUID,
        dates: list[date],
        records: list[PayrollRecord],
        closed_at: datetime,
        notes: str | None,
    ) -> PayPeriodClosureSummary:
        by_period = Counter(r.pay_period_to for r in records)
        by_employer = Counter(r.employer_name or "" for r in records)
        return PayPeriodClosureSummary(
            closure_batch_id=closure_batch_id,
            period_end_dates=dates,
            total_records_moved=len(records),
            records_by_period={d.isoformat(): by_period.get(d, 0) for d in dates},
            total_amount=sum((record_amount(r) for r in records), Decimal("0")),
            employers=sorted(by_employer),
            employer_record_counts=dict(by_employer),
            closed_at=closed_at,
            notes=notes,
        )

    async def list_active_periods(self) -> list[ActivePayPeriod]:
        """Group active records by period end date, newest first."""
        result = await self.session.execute(
            select(
                PayrollRecord.pay_period_to,
                PayrollRecord.employer_name,
                PayrollRecord.currency,
                PayrollRecord.net_salary,
                PayrollRecord.net_payment,
            ).order_by(PayrollRecord.pay_period_to.desc())
        )

        periods: dict[date | None, ActivePayPeriod] = {}
        employers: dict[date | None, dict[str, None]] = defaultdict(dict)
        for row in result:
            period = periods.setdefault(row.pay_period_to, ActivePayPeriod(row.pay_period_to))
            amount = record_amount(row)
            currency = row.currency or DEFAULT_CURRENCY
            period.record_count += 1
            period.total_amount += amount
            period.currency_breakdown[currency] = (
                period.currency_breakdown.get(currency, Decimal("0")) + amount
            )
            if row.employer_name:
                employers[row.pay_period_to][row.employer_name] = None

        for key, period in periods.items():
            period.employers = list(employers[key])
        return list(periods.values())

    async def list_history(
        self,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "closed_at",
        sort_dir: str = "desc",
        batch_id: UUID | None = None,
    ) -> tuple[list[HistoricalPayrun], int]:
        """Page through archived records. Unknown sort columns use closed_at desc."""
        query = select(HistoricalPayrun)
        count_query = select(func.count()).select_from(HistoricalPayrun)
        if batch_id is not None:
            query = query.where(HistoricalPayrun.closure_batch_id == batch_id)
            count_query = count_query.where(HistoricalPayrun.closure_batch_id == batch_id)

        column = HISTORY_SORTABLE.get(sort_by)
        if column is None:
            query = query.order_by(HistoricalPayrun.closed_at.desc())
        elif sort_dir.lower() == "asc":
            query = query.order_by(column.asc().nulls_first())
        else:
            query = query.order_by(column.desc().nulls_last())

        rows = (await self.session.execute(query.limit(limit).offset(offset))).scalars().all()
        total = (await self.session.execute(count_query)).scalar_one()
        return list(rows), total

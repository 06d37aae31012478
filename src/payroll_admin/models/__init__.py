"""ORM models."""

from payroll_admin.models.base import Base, TimestampMixin
from payroll_admin.models.payroll import (
    ADJUSTMENT_FIELDS,
    EARNING_FIELDS,
    MONEY_FIELDS,
    PAYROLL_FIELD_NAMES,
    HistoricalPayrun,
    PayrollFieldsMixin,
    PayrollRecord,
    PayslipSendEvent,
)

__all__ = [
    "ADJUSTMENT_FIELDS",
    "EARNING_FIELDS",
    "MONEY_FIELDS",
    "PAYROLL_FIELD_NAMES",
    "Base",
    "HistoricalPayrun",
    "PayrollFieldsMixin",
    "PayrollRecord",
    "PayslipSendEvent",
    "TimestampMixin",
]

"""Typed payslip view of a payroll record."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from payroll_admin.renderers.money import DEFAULT_CURRENCY, is_nonzero

if TYPE_CHECKING:
    from payroll_admin.models import PayrollRecord


@dataclass(frozen=True)
class PayslipData:
    """Everything a renderer needs to draw one payslip.

    Built once per record so that every backend reads the same named,
    typed fields.
    """

    batch_id: str
    employee_name: str
    employer_name: str
    email_id: str | None = None
    pay_period_from: date | None = None
    pay_period_to: date | None = None
    currency: str = DEFAULT_CURRENCY
    bank_name: str | None = None
    iban: str | None = None

    basic_salary: Decimal | None = None
    housing_allowance: Decimal | None = None
    transport_allowance: Decimal | None = None
    education_allowance: Decimal | None = None
    flight_allowance: Decimal | None = None
    general_allowance: Decimal | None = None
    other_allowance: Decimal | None = None
    total_gross_salary: Decimal | None = None

    bonus: Decimal | None = None
    overtime: Decimal | None = None
    salary_in_arrears: Decimal | None = None
    gratuity_eosb: Decimal | None = None
    unutilised_leave_days_payment: Decimal | None = None
    expenses_deductions: Decimal | None = None
    other_reimbursements: Decimal | None = None
    expense_reimbursements: Decimal | None = None
    total_adjustments: Decimal | None = None

    net_salary: Decimal | None = None
    esop_deductions: Decimal | None = None
    total_payment_adjustments: Decimal | None = None
    net_payment: Decimal | None = None
    wps_fees: Decimal | None = None
    total_to_transfer: Decimal | None = None

    @classmethod
    def from_record(cls, record: PayrollRecord) -> PayslipData:
        """Build from an ORM row, applying display defaults."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name == "batch_id":
                continue
            values[f.name] = getattr(record, f.name, None)

        values["employee_name"] = record.employee_name or ""
        values["employer_name"] = record.employer_name or ""
        values["currency"] = record.currency or DEFAULT_CURRENCY
        return cls(batch_id=str(record.id), **values)

    @property
    def has_payment_adjustments(self) -> bool:
        """Payment adjustments are shown only when their total is non-zero."""
        return is_nonzero(self.total_payment_adjustments)

    def amount(self, name: str) -> Decimal | None:
        """Look up a monetary field by name."""
        return getattr(self, name)


def format_period_date(value: date | None) -> str:
    """Long-form date, e.g. 'January 31, 2025'."""
    if value is None:
        return ""
    return f"{value.strftime('%B')} {value.day}, {value.year}"

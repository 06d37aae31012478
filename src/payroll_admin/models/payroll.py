"""Payroll record, historical payrun and payslip send event models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from payroll_admin.models.base import Base, TimestampMixin

Money = Numeric(14, 2)

# Monetary columns in payslip order: earnings, adjustments, totals, transfer.
EARNING_FIELDS: tuple[str, ...] = (
    "basic_salary",
    "housing_allowance",
    "transport_allowance",
    "education_allowance",
    "flight_allowance",
    "general_allowance",
    "other_allowance",
)
ADJUSTMENT_FIELDS: tuple[str, ...] = (
    "bonus",
    "overtime",
    "salary_in_arrears",
    "gratuity_eosb",
    "unutilised_leave_days_payment",
    "expenses_deductions",
    "other_reimbursements",
    "expense_reimbursements",
)
MONEY_FIELDS: tuple[str, ...] = (
    *EARNING_FIELDS,
    "total_gross_salary",
    *ADJUSTMENT_FIELDS,
    "total_adjustments",
    "net_salary",
    "esop_deductions",
    "total_payment_adjustments",
    "net_payment",
    "wps_fees",
    "total_to_transfer",
)


class PayrollFieldsMixin:
    """Columns shared by active payroll records and their historical copies."""

    employee_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    employer_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    employer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    reviewer_email: Mapped[str | None] = mapped_column(String, nullable=True)
    employee_name: Mapped[str | None] = mapped_column(String, nullable=True)
    email_id: Mapped[str | None] = mapped_column(String, nullable=True)
    employee_mol: Mapped[str | None] = mapped_column(String, nullable=True)

    bank_name: Mapped[str | None] = mapped_column(String, nullable=True)
    iban: Mapped[str | None] = mapped_column(String(34), nullable=True)

    pay_period_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    pay_period_to: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    leave_without_pay_days: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True, default="AED")

    # Monthly earnings
    basic_salary: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    housing_allowance: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    transport_allowance: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    education_allowance: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    flight_allowance: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    general_allowance: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    other_allowance: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    total_gross_salary: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    # Other adjustments
    bonus: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    overtime: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    salary_in_arrears: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    gratuity_eosb: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    unutilised_leave_days_payment: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    expenses_deductions: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    other_reimbursements: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    expense_reimbursements: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    total_adjustments: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    # Totals and payment adjustments
    net_salary: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    esop_deductions: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    total_payment_adjustments: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    net_payment: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    wps_fees: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    total_to_transfer: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    # Payslip artifact
    payslip_filename: Mapped[str | None] = mapped_column(String, nullable=True)
    payslip_token: Mapped[str | None] = mapped_column(String, nullable=True)
    payslip_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    payslip_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    payslip_generation_method: Mapped[str | None] = mapped_column(String, nullable=True)


# Column names copied verbatim when a record is archived.
PAYROLL_FIELD_NAMES: tuple[str, ...] = (
    "employee_id",
    "employer_id",
    "employer_name",
    "reviewer_email",
    "employee_name",
    "email_id",
    "employee_mol",
    "bank_name",
    "iban",
    "pay_period_from",
    "pay_period_to",
    "leave_without_pay_days",
    "currency",
    *MONEY_FIELDS,
    "payslip_filename",
    "payslip_token",
    "payslip_url",
    "payslip_generated_at",
    "payslip_generation_method",
)


class PayrollRecord(Base, PayrollFieldsMixin, TimestampMixin):
    """One employee's payroll data for one pay period (the unit of payslip work)."""

    __tablename__ = "payroll_excel_imports"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_payroll_excel_imports_employer_name", "employer_name"),
    )

    @property
    def batch_id(self) -> UUID:
        """Alias used by send events and API clients."""
        return self.id


class HistoricalPayrun(Base, PayrollFieldsMixin, TimestampMixin):
    """Payroll record moved out of the active table by a pay-period closure."""

    __tablename__ = "payroll_historical_payruns"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    original_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    closed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    closed_by_user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    closure_batch_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    closure_notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class PayslipSendEvent(Base, TimestampMixin):
    """One email-send attempt for a payroll record.

    Rows are only appended by sending; a status refresh updates the delivery
    columns of every row sharing a provider message id.
    """

    __tablename__ = "payroll_payslip_send_events"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    batch_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    recipient_email: Mapped[str | None] = mapped_column(String, nullable=True)
    delivery_status: Mapped[str | None] = mapped_column(String, nullable=True)
    delivery_status_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    provider_message_id: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="sent")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_event: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (Index("ix_send_events_provider_message_id", "provider_message_id"),)

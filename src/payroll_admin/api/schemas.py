"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str
    code: str | None = None


# ============================================================================
# Payslip generation schemas
# ============================================================================


class GenerateFilters(BaseModel):
    """Filter object resolved against existing records."""

    ids: list[str] = Field(default_factory=list)


class GeneratePayslipsRequest(BaseModel):
    """Either an explicit id list or a filter object."""

    model_config = ConfigDict(populate_by_name=True)

    batch_ids: list[str] | None = Field(default=None, alias="batchIds")
    filters: GenerateFilters | None = None


class PayslipResultResponse(BaseModel):
    """Outcome for one record."""

    model_config = ConfigDict(from_attributes=True)

    batch_id: str
    ok: bool
    message: str | None = None


class GeneratePayslipsResponse(BaseModel):
    results: list[PayslipResultResponse]


# ============================================================================
# Payslip email schemas
# ============================================================================


class SendPayslipEmailsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    batch_ids: list[str] = Field(default_factory=list, alias="batchIds")


class EmailResultResponse(BaseModel):
    """Outcome of emailing one record."""

    model_config = ConfigDict(from_attributes=True)

    batch_id: str
    ok: bool
    message: str
    provider_message_id: str | None = None


class SendPayslipEmailsResponse(BaseModel):
    results: list[EmailResultResponse]


class CheckEmailStatusRequest(BaseModel):
    """Either record ids or provider message ids."""

    model_config = ConfigDict(populate_by_name=True)

    batch_ids: list[str] | None = Field(default=None, alias="batchIds")
    email_ids: list[str] | None = Field(default=None, alias="emailIds")


class EmailStatusResponse(BaseModel):
    """Refreshed state of one provider message."""

    email_id: str
    status: str | None = None
    last_event: str | None = None
    updated_at: datetime | None = None
    error: str | None = None


class CheckEmailStatusResponse(BaseModel):
    success: bool = True
    checked: int
    updates: list[EmailStatusResponse]


# ============================================================================
# Record administration schemas
# ============================================================================


class RecordListResponse(BaseModel):
    """A page of payroll records with their latest send status."""

    rows: list[dict[str, Any]]
    total: int


class IdsRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    ok: bool = True
    deleted: int
    ids: list[UUID] = Field(default_factory=list)


class RestoreResponse(BaseModel):
    ok: bool = True
    restored: int
    ids: list[UUID] = Field(default_factory=list)


class RowErrorResponse(BaseModel):
    """One CSV validation problem."""

    model_config = ConfigDict(from_attributes=True)

    row: int
    field: str
    message: str


class ImportResponse(BaseModel):
    """Result of a CSV import or dry run."""

    imported: int
    total: int
    dry_run: bool = False
    errors: list[RowErrorResponse] = Field(default_factory=list)


# ============================================================================
# Pay period schemas
# ============================================================================


class ClosePayPeriodsRequest(BaseModel):
    """Period end dates to close."""

    period_end_dates: list[date] = Field(default_factory=list)
    notes: str | None = None


class ClosureSummaryResponse(BaseModel):
    """What a closure moved."""

    model_config = ConfigDict(from_attributes=True)

    closure_batch_id: UUID
    period_end_dates: list[date]
    total_records_moved: int
    records_by_period: dict[str, int]
    total_amount: Decimal
    employers: list[str]
    employer_record_counts: dict[str, int]
    closed_at: datetime
    notes: str | None = None


class ClosePayPeriodsResponse(BaseModel):
    success: bool
    summary: ClosureSummaryResponse


class ActivePayPeriodResponse(BaseModel):
    """Active records grouped by period end."""

    model_config = ConfigDict(from_attributes=True)

    pay_period_to: date | None
    record_count: int
    employers: list[str]
    total_amount: Decimal
    currency_breakdown: dict[str, Decimal]


class ActivePayPeriodsResponse(BaseModel):
    periods: list[ActivePayPeriodResponse]


class HistoryListResponse(BaseModel):
    """A page of archived payroll records."""

    rows: list[dict[str, Any]]
    total: int

"""Payslip generation, email, closure, import and record services."""

from payroll_admin.services.closure_service import (
    ActivePayPeriod,
    ClosureError,
    PayPeriodClosureService,
    PayPeriodClosureSummary,
)
from payroll_admin.services.email_service import (
    EmailResult,
    EmailStatusError,
    PayslipEmailService,
    StatusUpdate,
)
from payroll_admin.services.import_service import (
    EXPECTED_COLUMNS,
    CsvFormatError,
    PayrollImportService,
    RowError,
    ValidationReport,
)
from payroll_admin.services.payslip_service import PayslipGenerationService, PayslipResult
from payroll_admin.services.record_service import PayrollRecordService, RecordFilters
from payroll_admin.services.state_machine import (
    InvalidTransitionError,
    PayslipJob,
    PayslipStateMachine,
    PayslipStatus,
)
from payroll_admin.services.totals import TotalMismatch, check_totals

__all__ = [
    "EXPECTED_COLUMNS",
    "ActivePayPeriod",
    "ClosureError",
    "CsvFormatError",
    "EmailResult",
    "EmailStatusError",
    "InvalidTransitionError",
    "PayPeriodClosureService",
    "PayPeriodClosureSummary",
    "PayrollImportService",
    "PayrollRecordService",
    "PayslipEmailService",
    "PayslipGenerationService",
    "PayslipJob",
    "PayslipResult",
    "PayslipStateMachine",
    "PayslipStatus",
    "RecordFilters",
    "StatusUpdate",
    "TotalMismatch",
    "ValidationReport",
    "RowError",
    "check_totals",
]

"""CSV import of payroll records with row-level validation.

Every problem in a file is collected before anything is written, so a user
fixing an upload sees all of them at once.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Iterable
from uuid import UUID

from payroll_admin.models import PayrollRecord
from payroll_admin.models.payroll import MONEY_FIELDS

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Import template column order, also used for CSV export.
EXPECTED_COLUMNS: tuple[str, ...] = (
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
    "basic_salary",
    "housing_allowance",
    "education_allowance",
    "flight_allowance",
    "general_allowance",
    "gratuity_eosb",
    "other_allowance",
    "transport_allowance",
    "total_gross_salary",
    "bonus",
    "overtime",
    "salary_in_arrears",
    "unutilised_leave_days_payment",
    "expenses_deductions",
    "other_reimbursements",
    "expense_reimbursements",
    "total_adjustments",
    "net_salary",
    "esop_deductions",
    "total_payment_adjustments",
    "net_payment",
    "wps_fees",
    "total_to_transfer",
)

REQUIRED_UUID_FIELDS = ("employee_id", "employer_id")
DATE_FIELDS = ("pay_period_from", "pay_period_to")
DECIMAL_FIELDS = (*MONEY_FIELDS, "leave_without_pay_days")
# (precision, scale) of each numeric column
DECIMAL_LIMITS: dict[str, tuple[int, int]] = {
    name: (column.type.precision, column.type.scale)
    for name in DECIMAL_FIELDS
    for column in (PayrollRecord.__table__.c[name],)
}
TEXT_FIELDS = (
    "employer_name",
    "reviewer_email",
    "employee_name",
    "email_id",
    "employee_mol",
    "bank_name",
)
# Optional columns accepted on import but absent from the template.
EXTRA_COLUMNS = ("id", "payslip_url", "payslip_token")

_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_CURRENCY = re.compile(r"^[A-Z]{3}$")
_IBAN = re.compile(r"^[A-Z]{2}[0-9]{2}[A-Z0-9]{11,30}$")


@dataclass(frozen=True)
class RowError:
    """One validation problem. row is the spreadsheet line (header is line 1)."""

    row: int
    field: str
    message: str


@dataclass
class ParsedRow:
    """One CSV data row as raw strings keyed by normalized header."""

    row: int
    values: dict[str, str]


@dataclass
class ValidationReport:
    """Normalized valid rows plus every error found."""

    valid_rows: list[dict[str, Any]] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    total: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors


class CsvFormatError(Exception):
    """Raised when a file cannot be read as CSV at all."""


def _normalize_header(name: str) -> str:
    return name.strip().strip('"').strip().lower().replace(" ", "_")


def parse_csv(text: str) -> list[ParsedRow]:
    """Read CSV text into rows keyed by header; fully blank rows are skipped.

    Raises:
        CsvFormatError: If the file is empty or has no header.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        header = next(reader)
    except StopIteration:
        raise CsvFormatError("CSV file is empty") from None
    except csv.Error as e:
        raise CsvFormatError(f"Invalid CSV: {e}") from e

    columns = [_normalize_header(h) for h in header]
    if not any(columns):
        raise CsvFormatError("CSV header row is empty")

    rows: list[ParsedRow] = []
    try:
        for line_no, cells in enumerate(reader, start=2):
            if not any(c.strip() for c in cells):
                continue
            values = {
                col: (cells[i] if i < len(cells) else "")
                for i, col in enumerate(columns)
                if col
            }
            rows.append(ParsedRow(line_no, values))
    except csv.Error as e:
        raise CsvFormatError(f"Invalid CSV: {e}") from e
    return rows


def parse_date(value: str) -> date:
    """Accept YYYY-MM-DD or d/m/yyyy."""
    m = _DMY.match(value)
    if m:
        day, month, year = (int(g) for g in m.groups())
        return date(year, month, day)
    return date.fromisoformat(value)


def parse_decimal(value: str, precision: int | None = None, scale: int | None = None) -> Decimal:
    """Parse a number, tolerating thousands separators.

    With precision and scale, the value is rounded to scale places and must
    fit the column's integer digits.
    """
    try:
        number = Decimal(value.replace(",", "").replace(" ", ""))
    except InvalidOperation:
        raise ValueError(f"'{value}' is not a number") from None
    if not number.is_finite():
        raise ValueError(f"'{value}' is not a finite number")
    if precision is None:
        return number

    places = scale or 0
    digits = precision - places
    out_of_range = ValueError(
        f"'{value}' is out of range (at most {digits} digits before the decimal point)"
    )
    if number and number.adjusted() >= digits:
        raise out_of_range
    rounded = number.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    if abs(rounded) >= Decimal(10) ** digits:
        raise out_of_range
    return rounded


def is_valid_iban(value: str) -> bool:
    """ISO 13616 structure and mod-97 checksum."""
    if not _IBAN.match(value):
        return False
    rearranged = value[4:] + value[:4]
    digits = "".join(str(int(ch, 36)) for ch in rearranged)
    return int(digits) % 97 == 1


def normalize_row(parsed: ParsedRow) -> tuple[dict[str, Any], list[RowError]]:
    """Convert one row's strings to typed values, collecting errors."""
    raw = {k: v.strip() for k, v in parsed.values.items()}
    values: dict[str, Any] = {}
    errors: list[RowError] = []

    def error(field_name: str, message: str) -> None:
        errors.append(RowError(parsed.row, field_name, message))

    for name in REQUIRED_UUID_FIELDS:
        text = raw.get(name, "").strip("'\"").strip()
        if not text:
            error(name, f"{name} is required")
            continue
        try:
            values[name] = UUID(text)
        except ValueError:
            error(name, f"{name} must be a valid UUID")

    record_id = raw.get("id", "").strip("'\"").strip()
    if record_id:
        try:
            values["id"] = UUID(record_id)
        except ValueError:
            error("id", "id must be a valid UUID")

    for name in TEXT_FIELDS + ("payslip_url", "payslip_token"):
        values[name] = raw.get(name) or None

    for name in DATE_FIELDS:
        text = raw.get(name)
        if not text:
            values[name] = None
            continue
        try:
            values[name] = parse_date(text)
        except ValueError:
            error(name, f"{name} must be a date (YYYY-MM-DD or D/M/YYYY)")

    for name in DECIMAL_FIELDS:
        text = raw.get(name)
        if not text:
            values[name] = None
            continue
        try:
            values[name] = parse_decimal(text, *DECIMAL_LIMITS[name])
        except ValueError as e:
            error(name, str(e))

    currency = raw.get("currency")
    if currency:
        currency = currency.upper()
        if _CURRENCY.match(currency):
            values["currency"] = currency
        else:
            error("currency", "currency must be a 3-letter ISO code")

    iban = raw.get("iban")
    if iban:
        iban = iban.replace(" ", "").upper()
        if is_valid_iban(iban):
            values["iban"] = iban
        else:
            error("iban", "iban is not a valid IBAN")
    else:
        values["iban"] = None

    start, end = values.get("pay_period_from"), values.get("pay_period_to")
    if isinstance(start, date) and isinstance(end, date) and start > end:
        error("pay_period_from", "pay_period_from is after pay_period_to")

    return values, errors


def validate_rows(rows: Iterable[ParsedRow]) -> ValidationReport:
    """Normalize and validate every row; rows with any error are excluded."""
    report = ValidationReport()
    for parsed in rows:
        report.total += 1
        values, errors = normalize_row(parsed)
        if errors:
            report.errors.extend(errors)
        else:
            report.valid_rows.append(values)
    return report


def missing_columns(rows: list[ParsedRow]) -> list[RowError]:
    """Required columns absent from the header."""
    if not rows:
        return []
    present = set(rows[0].values)
    return [
        RowError(1, name, f"Missing required column '{name}'")
        for name in REQUIRED_UUID_FIELDS
        if name not in present
    ]


class PayrollImportService:
    """Validates and writes uploaded payroll CSV files."""

    def __init__(self, session: AsyncSession, batch_size: int = 500):
        self.session = session
        self.batch_size = batch_size

    def validate(self, text: str) -> ValidationReport:
        rows = parse_csv(text)
        header_errors = missing_columns(rows)
        if header_errors:
            return ValidationReport(errors=header_errors, total=len(rows))

        known = set(EXPECTED_COLUMNS) | set(EXTRA_COLUMNS)
        ignored = set(rows[0].values) - known if rows else set()
        if ignored:
            logger.info("Ignoring unknown CSV columns: %s", sorted(ignored))
        return validate_rows(rows)

    async def import_rows(self, rows: list[dict[str, Any]]) -> int:
        """Insert rows in batches. Rows without an id get one from the model default."""
        imported = 0
        for start in range(0, len(rows), self.batch_size):
            chunk = rows[start : start + self.batch_size]
            self.session.add_all([PayrollRecord(**values) for values in chunk])
            await self.session.flush()
            imported += len(chunk)
            logger.info("Imported batch of %d payroll record(s)", len(chunk))
        await self.session.commit()
        return imported

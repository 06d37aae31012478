"""Tests for CSV import parsing and validation."""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select

from payroll_admin.models import PayrollRecord
from payroll_admin.services.import_service import (
    EXPECTED_COLUMNS,
    CsvFormatError,
    PayrollImportService,
    is_valid_iban,
    parse_csv,
    parse_date,
    parse_decimal,
    validate_rows,
)

EMPLOYEE = "3f1c2a4e-5b6d-4e7f-8a9b-0c1d2e3f4a5b"
EMPLOYER = "9a8b7c6d-5e4f-4a3b-2c1d-0e9f8a7b6c5d"

HEADER = "employee_id,employer_id,employee_name,pay_period_from,pay_period_to,currency,iban,basic_salary,net_salary"


def _csv(*rows: str, header: str = HEADER) -> str:
    return "\n".join([header, *rows]) + "\n"


class TestParseCsv:
    """Test reading raw rows."""

    def test_rows_keyed_by_header_with_line_numbers(self):
        rows = parse_csv(_csv(f"{EMPLOYEE},{EMPLOYER},Jane", "", f"{EMPLOYEE},{EMPLOYER},Bob"))

        assert [r.row for r in rows] == [2, 4]
        assert rows[0].values["employee_name"] == "Jane"
        assert rows[0].values["net_salary"] == ""

    def test_header_is_normalized(self):
        rows = parse_csv("\ufeff Employee_ID ,Employer ID\nx,y\n")
        assert set(rows[0].values) == {"employee_id", "employer_id"}

    def test_empty_file_rejected(self):
        with pytest.raises(CsvFormatError):
            parse_csv("")


class TestFieldParsers:
    def test_dates(self):
        assert parse_date("2025-01-31") == date(2025, 1, 31)
        assert parse_date("31/1/2025") == date(2025, 1, 31)
        with pytest.raises(ValueError):
            parse_date("31/13/2025")
        with pytest.raises(ValueError):
            parse_date("Jan 31")

    def test_decimals_tolerate_thousands_separators(self):
        assert parse_decimal("12,500.75") == Decimal("12500.75")
        assert parse_decimal("-10") == Decimal("-10")
        with pytest.raises(ValueError):
            parse_decimal("ten")
        with pytest.raises(ValueError):
            parse_decimal("Infinity")

    def test_decimals_bounded_by_column_precision(self):
        assert parse_decimal("999999999999.99", 14, 2) == Decimal("999999999999.99")
        assert parse_decimal("10.005", 14, 2) == Decimal("10.01")
        with pytest.raises(ValueError, match="out of range"):
            parse_decimal("1e13", 14, 2)
        with pytest.raises(ValueError, match="out of range"):
            parse_decimal("999999999999.995", 14, 2)
        with pytest.raises(ValueError, match="out of range"):
            parse_decimal("99999", 6, 2)

    def test_iban_checksum(self):
        assert is_valid_iban("GB82WEST12345698765432") is True
        assert is_valid_iban("AE070331234567890123456") is True
        assert is_valid_iban("GB82WEST12345698765433") is False
        assert is_valid_iban("NOTANIBAN") is False


class TestValidateRows:
    """Test that every problem is reported with its line."""

    def test_valid_row_is_normalized(self):
        report = validate_rows(
            parse_csv(
                _csv(
                    f" '{EMPLOYEE}' ,{EMPLOYER},  Jane Doe ,1/1/2025,31/1/2025,aed,"
                    'GB82 WEST 1234 5698 7654 32,"10,000.00",9500'
                )
            )
        )

        assert report.errors == []
        [row] = report.valid_rows
        assert row["employee_id"] == UUID(EMPLOYEE)
        assert row["employee_name"] == "Jane Doe"
        assert row["pay_period_to"] == date(2025, 1, 31)
        assert row["currency"] == "AED"
        assert row["iban"] == "GB82WEST12345698765432"
        assert row["basic_salary"] == Decimal("10000.00")
        assert row["housing_allowance"] is None

    def test_all_errors_collected(self):
        report = validate_rows(
            parse_csv(
                _csv(
                    f"{EMPLOYEE},{EMPLOYER},Ok,,,,,,",
                    f"not-a-uuid,,Bad,2025-13-01,,DIRHAM,GB00BAD,abc,",
                )
            )
        )

        assert report.total == 2
        assert len(report.valid_rows) == 1
        errors = {(e.row, e.field) for e in report.errors}
        assert errors == {
            (3, "employee_id"),
            (3, "employer_id"),
            (3, "pay_period_from"),
            (3, "currency"),
            (3, "iban"),
            (3, "basic_salary"),
        }

    def test_period_order_checked(self):
        report = validate_rows(
            parse_csv(_csv(f"{EMPLOYEE},{EMPLOYER},Jane,2025-02-01,2025-01-31,,,,"))
        )
        assert [e.field for e in report.errors] == ["pay_period_from"]

    def test_out_of_range_amounts_are_row_errors(self):
        header = HEADER + ",leave_without_pay_days"
        report = validate_rows(
            parse_csv(
                _csv(
                    f"{EMPLOYEE},{EMPLOYER},Jane,,,,,1e13,,99999",
                    f"{EMPLOYEE},{EMPLOYER},Bob,,,,,12000,11500,2.5",
                    header=header,
                )
            )
        )

        assert {(e.row, e.field) for e in report.errors} == {
            (2, "basic_salary"),
            (2, "leave_without_pay_days"),
        }
        [row] = report.valid_rows
        assert row["leave_without_pay_days"] == Decimal("2.50")


class TestPayrollImportService:
    async def test_missing_required_column(self, session):
        report = PayrollImportService(session).validate("employee_name\nJane\n")

        assert report.ok is False
        assert {(e.row, e.field) for e in report.errors} == {
            (1, "employee_id"),
            (1, "employer_id"),
        }

    async def test_import_in_batches(self, session):
        rows = "\n".join(f"{uuid4()},{EMPLOYER},Employee {i},,2025-01-31,,,,{i}" for i in range(5))
        service = PayrollImportService(session, batch_size=2)
        report = service.validate(_csv(rows))

        imported = await service.import_rows(report.valid_rows)

        assert imported == 5
        count = await session.scalar(select(func.count()).select_from(PayrollRecord))
        assert count == 5
        names = (await session.execute(select(PayrollRecord.employee_name))).scalars().all()
        assert sorted(names) == [f"Employee {i}" for i in range(5)]

    async def test_provided_id_kept_and_currency_defaults(self, session):
        record_id = uuid4()
        text = _csv(
            f"{record_id},{EMPLOYEE},{EMPLOYER},Jane",
            header="id,employee_id,employer_id,employee_name",
        )
        service = PayrollImportService(session)

        await service.import_rows(service.validate(text).valid_rows)

        stored = await session.get(PayrollRecord, record_id)
        assert stored is not None
        assert stored.currency == "AED"

    def test_template_columns(self):
        assert EXPECTED_COLUMNS[:2] == ("employee_id", "employer_id")
        assert "total_to_transfer" in EXPECTED_COLUMNS
        assert len(EXPECTED_COLUMNS) == len(set(EXPECTED_COLUMNS))

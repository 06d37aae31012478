"""Minimal declarative PDF backend (fallback B).

Plain fixed-position text, no boxes. Used when the browser could not be
launched for a batch and the styled layout also failed.
"""

from __future__ import annotations

from decimal import Decimal
from io import BytesIO

from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen.canvas import Canvas

from payroll_admin.renderers.money import format_money, is_nonzero
from payroll_admin.renderers.payslip import PayslipData, format_period_date

FONT = "Helvetica"
BOLD = "Helvetica-Bold"
LEFT = 50
LINE_HEIGHT = 15


def _gray(level: float) -> Color:
    return Color(level, level, level)


class MinimalPdfRenderer:
    """Single-page text payslip."""

    method = "minimal"
    is_fallback = True

    def __init__(self, footer_lines: tuple[str, ...] = ("Generated by Payroll Administration",)):
        self.footer_lines = footer_lines

    async def render(self, payslip: PayslipData) -> bytes:
        return self.build(payslip)

    def build(self, payslip: PayslipData) -> bytes:
        buffer = BytesIO()
        pdf = Canvas(buffer, pagesize=A4)
        _, height = A4
        currency = payslip.currency

        def text(y: float, value: str, size: int = 10, bold: bool = False, level: float = 0.3) -> None:
            pdf.setFont(BOLD if bold else FONT, size)
            pdf.setFillColor(_gray(level))
            pdf.drawString(LEFT, y, value)

        def amount_lines(y: float, items: list[tuple[str, Decimal | None]]) -> float:
            for label, value in items:
                # Zero and blank amounts are left off the minimal layout
                if is_nonzero(value):
                    text(y, f"{label}: {format_money(value, currency)}")
                    y -= LINE_HEIGHT
            return y

        header_y = height - 50
        text(header_y, "PAYSLIP", size=24, bold=True, level=0.2)
        text(header_y - 30, payslip.employer_name, size=14, bold=True)
        text(
            header_y - 50,
            f"Pay Period: {format_period_date(payslip.pay_period_from)} - "
            f"{format_period_date(payslip.pay_period_to)}",
            level=0.5,
        )

        y = header_y - 100
        text(y, "Employee Information", size=12, bold=True, level=0.2)
        text(y - 20, f"Name: {payslip.employee_name}")
        if payslip.email_id:
            text(y - 40, f"Email: {payslip.email_id}")

        y -= 80
        text(y, "Earnings", size=12, bold=True, level=0.2)
        y = amount_lines(
            y - 20,
            [
                ("Basic Salary", payslip.basic_salary),
                ("Housing Allowance", payslip.housing_allowance),
                ("Transport Allowance", payslip.transport_allowance),
                ("Education Allowance", payslip.education_allowance),
                ("Flight Allowance", payslip.flight_allowance),
                ("General Allowance", payslip.general_allowance),
                ("Other Allowance", payslip.other_allowance),
            ],
        )
        if is_nonzero(payslip.total_gross_salary):
            text(
                y - 10,
                f"Total Gross Salary: {format_money(payslip.total_gross_salary, currency)}",
                size=11,
                bold=True,
                level=0.2,
            )
            y -= LINE_HEIGHT + 10

        y -= 20
        text(y, "Adjustments", size=12, bold=True, level=0.2)
        y = amount_lines(
            y - 20,
            [
                ("Bonus", payslip.bonus),
                ("Gratuity / EOSB", payslip.gratuity_eosb),
                ("Overtime", payslip.overtime),
                ("Salary in Arrears", payslip.salary_in_arrears),
                ("Total Adjustments", payslip.total_adjustments),
            ],
        )

        if is_nonzero(payslip.net_salary):
            text(
                y - 20,
                f"Net Salary: {format_money(payslip.net_salary, currency)}",
                size=12,
                bold=True,
                level=0.1,
            )
            y -= 20 + LINE_HEIGHT
        if payslip.has_payment_adjustments and is_nonzero(payslip.net_payment):
            text(
                y - 20,
                f"Final Net Payment: {format_money(payslip.net_payment, currency)}",
                size=12,
                bold=True,
                level=0.1,
            )

        footer_y = 50
        for line in self.footer_lines:
            text(footer_y, line, size=8, level=0.5)
            footer_y -= 10

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

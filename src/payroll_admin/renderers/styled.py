"""Styled declarative PDF backend (fallback A).

Draws the payslip directly with the reportlab canvas: a dark header band,
label/value detail rows, boxed line-item sections with a left accent bar and
a two-column bank details grid. Needs no external process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from io import BytesIO

from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from payroll_admin.renderers.money import format_money, is_number
from payroll_admin.renderers.payslip import PayslipData

logger = logging.getLogger(__name__)

FONT = "Helvetica"
BOLD = "Helvetica-Bold"

COLORS = {
    "black": HexColor("#000100"),
    "green": HexColor("#80C041"),
    "green_bg": HexColor("#F0FDF4"),
    "blue": HexColor("#0EA5E9"),
    "blue_bg": HexColor("#F0F9FF"),
    "gray": HexColor("#E0E0E0"),
    "dark_gray": HexColor("#333333"),
    "light_gray": HexColor("#F9F9F9"),
    "text_dark": HexColor("#111111"),
    "text_gray": HexColor("#666666"),
}

DEFAULT_FOOTER = "Generated by Payroll Administration. For assistance, contact your payroll team."

MARGIN_X = 40
MARGIN_TOP = 40
MARGIN_BOTTOM = 40
LINE_HEIGHT = 14
BOX_PADDING_Y = 10
BOX_PADDING_X = 12
HEADER_HEIGHT = 50


@dataclass(frozen=True)
class BoxLine:
    label: str
    value: Decimal | None


class _StyledLayout:
    """Top-down drawing cursor over one canvas."""

    def __init__(self, pdf: Canvas, payslip: PayslipData):
        self.pdf = pdf
        self.payslip = payslip
        self.width, self.height = A4
        self.content_width = self.width - MARGIN_X * 2
        self.y = self.height - MARGIN_TOP

    def money(self, value: Decimal | None) -> str:
        return format_money(value, self.payslip.currency)

    def ensure_space(self, needed: float) -> None:
        if self.y - needed < MARGIN_BOTTOM:
            self.pdf.showPage()
            self.y = self.height - MARGIN_TOP

    def header(self) -> None:
        pdf = self.pdf
        pdf.setFillColor(COLORS["black"])
        pdf.rect(
            MARGIN_X, self.y - HEADER_HEIGHT, self.content_width, HEADER_HEIGHT,
            stroke=0, fill=1,
        )

        # Shrink long employer names to fit the band
        name = self.payslip.employer_name
        size = 16.0
        max_width = self.content_width - 20
        text_width = stringWidth(name, BOLD, size)
        if text_width > max_width:
            size = max_width / text_width * size
            text_width = stringWidth(name, BOLD, size)

        pdf.setFillColor(white)
        pdf.setFont(BOLD, size)
        pdf.drawString(
            MARGIN_X + (self.content_width - text_width) / 2,
            self.y - HEADER_HEIGHT / 2 - size / 2 + 4,
            name,
        )
        self.y -= HEADER_HEIGHT + 24

    def section_title(self, title: str) -> None:
        self.pdf.setFillColor(COLORS["dark_gray"])
        self.pdf.setFont(BOLD, 12)
        self.pdf.drawString(MARGIN_X + 8, self.y, title)
        self.y -= 20

    def label_value(self, label: str, value: str) -> None:
        pdf = self.pdf
        pdf.setFillColor(COLORS["dark_gray"])
        pdf.setFont(BOLD, 10)
        pdf.drawString(MARGIN_X + 8, self.y, label)
        pdf.setFillColor(COLORS["text_dark"])
        pdf.setFont(FONT, 10)
        pdf.drawString(MARGIN_X + 80, self.y, value)
        self.y -= LINE_HEIGHT

    def divider(self) -> None:
        self.pdf.setStrokeColor(COLORS["gray"])
        self.pdf.setLineWidth(0.5)
        self.pdf.line(MARGIN_X + 0.5, self.y, self.width - MARGIN_X - 0.5, self.y)
        self.y -= 20

    def box_section(
        self,
        title: str,
        lines: list[BoxLine],
        total_label: str | None = None,
        total_value: Decimal | None = None,
        background: str = "green_bg",
        accent: str = "green",
    ) -> bool:
        """Draw a titled box of line items. Returns False when skipped."""
        visible = [line for line in lines if is_number(line.value)]
        has_total = total_label is not None and is_number(total_value)
        if not visible and not has_total:
            return False

        rows = len(visible) + (2 if has_total else 0)
        box_height = BOX_PADDING_Y * 2 + rows * LINE_HEIGHT + (4 if has_total else 0)
        self.ensure_space(20 + box_height + 24)
        self.section_title(title)

        pdf = self.pdf
        top = self.y
        pdf.setFillColor(COLORS[background])
        pdf.rect(MARGIN_X, top - box_height, self.content_width, box_height, stroke=0, fill=1)
        pdf.setFillColor(COLORS[accent])
        pdf.rect(MARGIN_X, top - box_height, 4, box_height, stroke=0, fill=1)

        text_x = MARGIN_X + BOX_PADDING_X + 8
        value_x = MARGIN_X + self.content_width - BOX_PADDING_X - 8
        cursor = top - BOX_PADDING_Y - LINE_HEIGHT

        pdf.setFillColor(COLORS["text_dark"])
        for line in visible:
            pdf.setFont(FONT, 10)
            pdf.drawString(text_x, cursor, line.label)
            pdf.setFont(BOLD, 10)
            pdf.drawRightString(value_x, cursor, self.money(line.value))
            cursor -= LINE_HEIGHT

        if has_total:
            cursor -= 4
            pdf.setStrokeColor(COLORS["gray"])
            pdf.setLineWidth(0.8)
            pdf.line(text_x, cursor, value_x, cursor)
            cursor -= LINE_HEIGHT
            pdf.setFillColor(COLORS["text_dark"])
            pdf.setFont(BOLD, 10)
            pdf.drawString(text_x, cursor, total_label)
            pdf.drawRightString(value_x, cursor, self.money(total_value))

        self.y = top - box_height - 24
        return True

    def bank_details(self) -> None:
        box_height = 50
        gap = 12
        col_width = (self.content_width - gap) / 2
        self.ensure_space(20 + box_height + 24)
        self.section_title("Bank Details")

        top = self.y
        cells = (
            (MARGIN_X, "Bank", self.payslip.bank_name or "-"),
            (MARGIN_X + col_width + gap, "IBAN", self.payslip.iban or "-"),
        )
        pdf = self.pdf
        for x, label, value in cells:
            pdf.setFillColor(COLORS["light_gray"])
            pdf.setStrokeColor(COLORS["gray"])
            pdf.setLineWidth(0.5)
            pdf.rect(x, top - box_height, col_width, box_height, stroke=1, fill=1)
            pdf.setFillColor(COLORS["dark_gray"])
            pdf.setFont(BOLD, 10)
            pdf.drawString(x + 14, top - 14, label)
            pdf.setFillColor(COLORS["text_dark"])
            pdf.setFont(FONT, 10)
            pdf.drawString(x + 14, top - 30, value)

        self.y = top - box_height - 24

    def footer(self, text: str) -> None:
        self.ensure_space(40)
        self.divider()
        self.pdf.setFillColor(COLORS["text_gray"])
        self.pdf.setFont(FONT, 9)
        self.pdf.drawCentredString(MARGIN_X + self.content_width / 2, self.y + 2, text)


class StyledPdfRenderer:
    """Boxed A4 payslip drawn with reportlab."""

    method = "fallback"
    is_fallback = True

    def __init__(self, footer_text: str = DEFAULT_FOOTER):
        self.footer_text = footer_text

    async def render(self, payslip: PayslipData) -> bytes:
        return self.build(payslip)

    def build(self, payslip: PayslipData) -> bytes:
        buffer = BytesIO()
        pdf = Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"Payslip - {payslip.employee_name}")
        layout = _StyledLayout(pdf, payslip)
        p = payslip

        layout.header()

        layout.section_title("Payslip Details")
        layout.label_value("Employee:", p.employee_name)
        layout.label_value("Employer:", p.employer_name)
        layout.y -= 10
        layout.divider()

        layout.section_title("Payslip Period")
        layout.label_value("From:", p.pay_period_from.isoformat() if p.pay_period_from else "")
        layout.label_value("To:", p.pay_period_to.isoformat() if p.pay_period_to else "")
        layout.y -= 10
        layout.divider()

        layout.box_section(
            "Monthly Earnings",
            [
                BoxLine("Basic Salary & Wage", p.basic_salary),
                BoxLine("Housing Allowance", p.housing_allowance),
                BoxLine("Transport Allowance", p.transport_allowance),
                BoxLine("Flight Allowance", p.flight_allowance),
                BoxLine("Education Allowance", p.education_allowance),
                BoxLine("General Allowance", p.general_allowance),
                BoxLine("Other Allowance", p.other_allowance),
            ],
            "TOTAL EARNINGS",
            p.total_gross_salary,
        )
        layout.divider()

        layout.box_section(
            "Other Adjustments",
            [
                BoxLine("Bonuses", p.bonus),
                BoxLine("Overtime", p.overtime),
                BoxLine("Arrears/Advances", p.salary_in_arrears),
                BoxLine("Gratuity / EOSB", p.gratuity_eosb),
                BoxLine("Unutilised Leave Days Payment", p.unutilised_leave_days_payment),
                BoxLine("Expense Deductions", p.expenses_deductions),
                BoxLine("Other Reimbursements", p.other_reimbursements),
                BoxLine("Expense Reimbursements", p.expense_reimbursements),
            ],
            "TOTAL ADJUSTMENTS",
            p.total_adjustments,
        )
        layout.divider()

        layout.box_section("Net Earnings", [], "NET", p.net_salary)

        if p.has_payment_adjustments:
            layout.divider()
            layout.box_section(
                "Payment Adjustments",
                [BoxLine("ESOP Deductions", p.esop_deductions)],
                "TOTAL PAYMENT ADJUSTMENTS",
                p.total_payment_adjustments,
            )
            layout.divider()
            layout.box_section(
                "Final Net Payment",
                [],
                "FINAL NET PAYMENT",
                p.net_payment,
                background="blue_bg",
                accent="blue",
            )

        if is_number(p.wps_fees) or is_number(p.total_to_transfer):
            layout.divider()
            layout.box_section(
                "Transfer Summary",
                [BoxLine("WPS / Bank Fees", p.wps_fees)],
                "TOTAL TO TRANSFER",
                p.total_to_transfer,
            )

        layout.divider()
        layout.bank_details()
        layout.footer(self.footer_text)

        pdf.showPage()
        pdf.save()
        data = buffer.getvalue()
        logger.debug("Styled payslip for %s: %d bytes", payslip.batch_id, len(data))
        return data

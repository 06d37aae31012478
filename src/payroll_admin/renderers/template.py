"""HTML payslip template rendering.

Templates use ``{{field_name}}`` placeholders and a single
``{{#if has_payment_adjustments}}...{{/if}}`` block.
"""

from __future__ import annotations

import html
import re
from pathlib import Path

from payroll_admin.models import MONEY_FIELDS
from payroll_admin.renderers.money import format_money
from payroll_admin.renderers.payslip import PayslipData

PAYMENT_ADJUSTMENTS_BLOCK = re.compile(
    r"\{\{#if\s+has_payment_adjustments\s*\}\}(.*?)\{\{/if\}\}",
    re.DOTALL,
)
PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class TemplateNotFoundError(Exception):
    """Raised when the payslip template file cannot be read."""

    def __init__(self, path: str | Path):
        self.path = str(path)
        super().__init__(f"Payslip template not found: {self.path}")


def load_template(path: str | Path) -> str:
    """Read the template from disk."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise TemplateNotFoundError(path) from e


def template_values(payslip: PayslipData) -> dict[str, str]:
    """Placeholder name -> substituted text for one payslip."""
    values = {
        "batch_id": payslip.batch_id,
        "employee_name": html.escape(payslip.employee_name),
        "employer_name": html.escape(payslip.employer_name),
        "email_id": html.escape(payslip.email_id or ""),
        "pay_period_from": payslip.pay_period_from.isoformat() if payslip.pay_period_from else "",
        "pay_period_to": payslip.pay_period_to.isoformat() if payslip.pay_period_to else "",
        "currency": html.escape(payslip.currency.upper()),
        "bank_name": html.escape(payslip.bank_name or "-"),
        "iban": html.escape(payslip.iban or "-"),
    }
    for name in MONEY_FIELDS:
        values[name] = format_money(payslip.amount(name), payslip.currency)
    return values


def render_payslip_html(template: str, payslip: PayslipData) -> str:
    """Fill the template for one payslip. Pure string transform."""
    keep_block = payslip.has_payment_adjustments
    rendered = PAYMENT_ADJUSTMENTS_BLOCK.sub(
        lambda m: m.group(1) if keep_block else "",
        template,
        count=1,
    )
    values = template_values(payslip)
    return PLACEHOLDER.sub(lambda m: values.get(m.group(1), ""), rendered)

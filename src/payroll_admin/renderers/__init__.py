"""Payslip rendering: HTML template, PDF backends and the fallback chain."""

from payroll_admin.renderers.base import (
    BrowserLaunchError,
    PayslipRenderer,
    PayslipRenderError,
    RenderFailure,
    RenderOutcome,
    generate_with_fallback,
)
from payroll_admin.renderers.minimal import MinimalPdfRenderer
from payroll_admin.renderers.money import format_money
from payroll_admin.renderers.payslip import PayslipData
from payroll_admin.renderers.styled import StyledPdfRenderer
from payroll_admin.renderers.template import (
    TemplateNotFoundError,
    load_template,
    render_payslip_html,
)

__all__ = [
    "BrowserLaunchError",
    "MinimalPdfRenderer",
    "PayslipData",
    "PayslipRenderError",
    "PayslipRenderer",
    "RenderFailure",
    "RenderOutcome",
    "StyledPdfRenderer",
    "TemplateNotFoundError",
    "format_money",
    "generate_with_fallback",
    "load_template",
    "render_payslip_html",
]

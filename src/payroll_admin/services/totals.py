"""Consistency checks for imported payroll totals.

Totals arrive precomputed from the payroll spreadsheet and are rendered as-is.
These checks only log, so a mismatch never blocks a payslip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from payroll_admin.models.payroll import ADJUSTMENT_FIELDS, EARNING_FIELDS
from payroll_admin.renderers.money import is_number, to_decimal
from payroll_admin.renderers.payslip import PayslipData

logger = logging.getLogger(__name__)

TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class TotalMismatch:
    """A stored total that differs from the sum of its components."""

    field: str
    expected: Decimal
    actual: Decimal


def _sum(payslip: PayslipData, names: tuple[str, ...]) -> Decimal:
    total = Decimal("0")
    for name in names:
        value = payslip.amount(name)
        if is_number(value):
            total += to_decimal(value)
    return total


def check_totals(payslip: PayslipData) -> list[TotalMismatch]:
    """Recompute gross salary and final net payment and compare.

    Only totals that are present are checked.
    """
    mismatches: list[TotalMismatch] = []

    if is_number(payslip.total_gross_salary):
        expected = _sum(payslip, EARNING_FIELDS)
        actual = to_decimal(payslip.total_gross_salary)
        if abs(expected - actual) > TOLERANCE:
            mismatches.append(TotalMismatch("total_gross_salary", expected, actual))

    if is_number(payslip.total_adjustments):
        expected = _sum(payslip, ADJUSTMENT_FIELDS)
        actual = to_decimal(payslip.total_adjustments)
        if abs(expected - actual) > TOLERANCE:
            mismatches.append(TotalMismatch("total_adjustments", expected, actual))

    if is_number(payslip.net_payment) and is_number(payslip.net_salary):
        expected = to_decimal(payslip.net_salary)
        if is_number(payslip.total_payment_adjustments):
            expected += to_decimal(payslip.total_payment_adjustments)
        actual = to_decimal(payslip.net_payment)
        if abs(expected - actual) > TOLERANCE:
            mismatches.append(TotalMismatch("net_payment", expected, actual))

    for m in mismatches:
        logger.warning(
            "Payslip %s: %s is %s but components sum to %s",
            payslip.batch_id,
            m.field,
            m.actual,
            m.expected,
        )
    return mismatches

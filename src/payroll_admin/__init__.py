"""Payslip administration service: generation, storage and pay-period closure."""

__version__ = "0.1.0"

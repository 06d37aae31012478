"""API routes."""

from payroll_admin.api.routes.health import router as health_router
from payroll_admin.api.routes.pay_periods import router as pay_periods_router
from payroll_admin.api.routes.payslips import router as payslips_router

__all__ = ["health_router", "pay_periods_router", "payslips_router"]

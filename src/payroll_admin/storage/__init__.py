"""Payslip object storage."""

from payroll_admin.storage.base import (
    PDF_CONTENT_TYPE,
    PayslipStorage,
    UploadResult,
    payslip_filename,
    slugify_name,
)
from payroll_admin.storage.s3 import S3PayslipStorage

__all__ = [
    "PDF_CONTENT_TYPE",
    "PayslipStorage",
    "S3PayslipStorage",
    "UploadResult",
    "payslip_filename",
    "slugify_name",
]

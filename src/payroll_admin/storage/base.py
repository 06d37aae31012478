"""Storage protocol and deterministic payslip naming."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

PDF_CONTENT_TYPE = "application/pdf"

_UNSAFE = re.compile(r"[^A-Za-z0-9]")


@dataclass(frozen=True)
class UploadResult:
    """Result of uploading an object."""

    ok: bool
    path: str
    url: str | None = None
    error: str | None = None


class PayslipStorage(Protocol):
    """Protocol for payslip object storage.

    Uploads always overwrite an existing object at the same path.
    """

    bucket: str

    def upload(self, path: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> UploadResult:
        """Store bytes at path and resolve the object's public URL."""
        ...

    def public_url(self, path: str) -> str:
        """Public URL for an object path."""
        ...

    def check(self) -> str | None:
        """Error text when the bucket cannot be reached, otherwise None."""
        ...


def slugify_name(name: str | None, max_length: int = 64) -> str:
    """Replace non-alphanumerics with underscores, 'unknown' when empty."""
    slug = _UNSAFE.sub("_", (name or "").strip())[:max_length]
    return slug or "unknown"


def payslip_filename(employee_name: str | None, token: str) -> str:
    """Deterministic object name: the token is the sole source of uniqueness."""
    return f"{slugify_name(employee_name)}_{token}.pdf"

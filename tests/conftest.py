"""Pytest fixtures for payroll admin tests."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any, AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_admin.config import DEFAULT_TEMPLATE_PATH, Settings
from payroll_admin.models import Base, PayrollRecord
from payroll_admin.notifications import DeliveryStatus, PayslipEmail, SendResult
from payroll_admin.renderers import BrowserLaunchError, load_template
from payroll_admin.storage import UploadResult

# In-memory SQLite shared across connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

EMPLOYER_ID = uuid4()


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# Payroll records
# ============================================================================


@pytest.fixture
def make_record():
    """Build (but do not persist) a payroll record with realistic defaults."""

    def _make(**overrides: Any) -> PayrollRecord:
        values: dict[str, Any] = {
            "id": uuid4(),
            "employee_id": uuid4(),
            "employer_id": EMPLOYER_ID,
            "employer_name": "Acme Trading LLC",
            "reviewer_email": "reviewer@acme.example",
            "employee_name": "Jane Doe",
            "email_id": "jane@acme.example",
            "bank_name": "Emirates NBD",
            "iban": "AE070331234567890123456",
            "pay_period_from": date(2025, 1, 1),
            "pay_period_to": date(2025, 1, 31),
            "currency": "AED",
            "basic_salary": Decimal("10000.00"),
            "housing_allowance": Decimal("2500.00"),
            "transport_allowance": Decimal("500.00"),
            "total_gross_salary": Decimal("13000.00"),
            "bonus": Decimal("1000.00"),
            "total_adjustments": Decimal("1000.00"),
            "net_salary": Decimal("14000.00"),
        }
        values.update(overrides)
        return PayrollRecord(**values)

    return _make


@pytest_asyncio.fixture
async def add_records(session):
    """Persist records and return them."""

    async def _add(*records: PayrollRecord) -> list[PayrollRecord]:
        session.add_all(records)
        await session.commit()
        return list(records)

    return _add


# ============================================================================
# Storage and browser fakes
# ============================================================================


class FakeStorage:
    """In-memory payslip storage with overwrite semantics."""

    def __init__(self, bucket: str = "Payroll", fail_with: str | None = None):
        self.bucket = bucket
        self.fail_with = fail_with
        self.objects: dict[str, bytes] = {}
        self.uploads: list[str] = []

    def upload(self, path: str, data: bytes, content_type: str = "application/pdf") -> UploadResult:
        self.uploads.append(path)
        if self.fail_with:
            return UploadResult(ok=False, path=path, error=self.fail_with)
        self.objects[path] = data
        return UploadResult(ok=True, path=path, url=self.public_url(path))

    def public_url(self, path: str) -> str:
        return f"https://storage.test/{self.bucket}/{path}"

    def check(self) -> str | None:
        return self.fail_with


class FakePage:
    """Stands in for a browser page; fails content loads containing a marker."""

    def __init__(self, browser: FakeBrowser):
        self.browser = browser
        self.closed = False
        self.content: str | None = None

    async def set_content(self, html: str, wait_until: str, timeout: int) -> None:
        self.browser.content_calls.append({"wait_until": wait_until, "timeout": timeout})
        if any(marker in html for marker in self.browser.fail_content_for):
            raise TimeoutError(f"Timeout {timeout}ms exceeded.")
        self.content = html

    async def pdf(self, format: str, print_background: bool) -> bytes:
        self.browser.pdf_calls.append({"format": format, "print_background": print_background})
        return b"%PDF-1.4 browser"

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, fail_content_for: tuple[str, ...] = ()):
        self.fail_content_for = fail_content_for
        self.pages: list[FakePage] = []
        self.content_calls: list[dict[str, Any]] = []
        self.pdf_calls: list[dict[str, Any]] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        return page


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def failing_storage() -> FakeStorage:
    return FakeStorage(fail_with="AccessDenied: bucket policy rejects writes")


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def browser_launcher(fake_browser):
    """Launcher that yields the fake browser and marks it closed on exit."""

    @asynccontextmanager
    async def _launch():
        try:
            yield fake_browser
        finally:
            fake_browser.closed = True

    return _launch


@pytest.fixture
def failing_launcher():
    """Launcher whose browser never starts."""

    @asynccontextmanager
    async def _launch():
        raise BrowserLaunchError("Browser launch failed: executable not found")
        yield  # pragma: no cover

    return _launch


# ============================================================================
# Email fake
# ============================================================================


class FakeEmailSender:
    """Records sent emails; per-address failures and scripted status events."""

    name = "fake"

    def __init__(self):
        self.sent: list[PayslipEmail] = []
        self.fail_for: dict[str, str] = {}
        self.events: dict[str, str] = {}
        self.status_errors: dict[str, str] = {}
        self.status_checks: list[str] = []
        self.omit_ids = False

    async def send(self, email: PayslipEmail) -> SendResult:
        self.sent.append(email)
        if email.to in self.fail_for:
            return SendResult(ok=False, error=self.fail_for[email.to])
        if self.omit_ids:
            return SendResult(ok=True)
        return SendResult(ok=True, message_id=f"msg-{len(self.sent)}")

    async def get_status(self, message_id: str) -> DeliveryStatus:
        self.status_checks.append(message_id)
        if message_id in self.status_errors:
            return DeliveryStatus(message_id, error=self.status_errors[message_id])
        return DeliveryStatus(message_id, last_event=self.events.get(message_id, "sent"))


@pytest.fixture
def mailer() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        payslip_template_path=str(DEFAULT_TEMPLATE_PATH),
        browser_launch_timeout_ms=30000,
        page_content_timeout_ms=10000,
        pdf_print_timeout_ms=15000,
        storage_bucket="Payroll",
        storage_endpoint_url=None,
        storage_region="us-east-1",
        storage_access_key_id=None,
        storage_secret_access_key=None,
        storage_public_base_url=None,
        email_provider="resend",
        email_from="Payroll <payroll@example.com>",
        email_reply_to="payroll-team@example.com",
        resend_api_key="re_test",
        resend_base_url="https://api.resend.test",
        smtp_host="localhost",
        smtp_port=465,
        smtp_username=None,
        smtp_password=None,
        payslip_chunk_size=50,
        import_batch_size=500,
    )


@pytest.fixture
def template(settings) -> str:
    return load_template(settings.payslip_template_path)

"""Tests for the PDF backends."""

import asyncio
import io
from datetime import date
from decimal import Decimal

import pytest
from pypdf import PdfReader

from payroll_admin.renderers import (
    BrowserLaunchError,
    MinimalPdfRenderer,
    PayslipData,
    StyledPdfRenderer,
)
from payroll_admin.renderers import browser as browser_module
from payroll_admin.renderers.browser import BrowserPdfRenderer, launch_browser

pytestmark = pytest.mark.asyncio


def _text(pdf: bytes) -> str:
    reader = PdfReader(io.BytesIO(pdf))
    return "\n".join(page.extract_text() for page in reader.pages)


@pytest.fixture
def payslip() -> PayslipData:
    return PayslipData(
        batch_id="rec-1",
        employee_name="Jane Doe",
        employer_name="Acme Trading LLC",
        pay_period_from=date(2025, 1, 1),
        pay_period_to=date(2025, 1, 31),
        bank_name="Emirates NBD",
        iban="AE070331234567890123456",
        basic_salary=Decimal("10000"),
        housing_allowance=Decimal("2500"),
        total_gross_salary=Decimal("12500"),
        bonus=Decimal("1000"),
        total_adjustments=Decimal("1000"),
        net_salary=Decimal("13500"),
    )


class TestStyledPdfRenderer:
    """Test fallback A."""

    async def test_renders_pdf_with_sections(self, payslip):
        pdf = await StyledPdfRenderer().render(payslip)

        assert pdf.startswith(b"%PDF")
        text = _text(pdf)
        assert "Acme Trading LLC" in text
        assert "Monthly Earnings" in text
        assert "TOTAL EARNINGS" in text
        assert "Bank Details" in text

    async def test_payment_sections_only_when_adjusted(self, payslip):
        without = _text(await StyledPdfRenderer().render(payslip))
        assert "Final Net Payment" not in without

        adjusted = PayslipData(
            **{
                **payslip.__dict__,
                "esop_deductions": Decimal("-500"),
                "total_payment_adjustments": Decimal("-500"),
                "net_payment": Decimal("13000"),
            }
        )
        with_adjustments = _text(await StyledPdfRenderer().render(adjusted))
        assert "Payment Adjustments" in with_adjustments
        assert "Final Net Payment" in with_adjustments

    async def test_null_lines_are_omitted(self, payslip):
        text = _text(await StyledPdfRenderer().render(payslip))
        assert "Flight Allowance" not in text
        assert "Housing Allowance" in text

    async def test_malformed_currency_fails(self, payslip):
        bad = PayslipData(**{**payslip.__dict__, "currency": "XX"})
        with pytest.raises(ValueError):
            await StyledPdfRenderer().render(bad)


class TestMinimalPdfRenderer:
    """Test fallback B."""

    async def test_renders_plain_payslip(self, payslip):
        pdf = await MinimalPdfRenderer().render(payslip)

        assert pdf.startswith(b"%PDF")
        text = _text(pdf)
        assert "PAYSLIP" in text
        assert "Jane Doe" in text
        assert "Net Salary" in text

    async def test_method_tags(self):
        assert MinimalPdfRenderer.method == "minimal"
        assert MinimalPdfRenderer.is_fallback is True
        assert StyledPdfRenderer.method == "fallback"


class TestBrowserPdfRenderer:
    """Test the primary backend against a fake browser."""

    async def test_prints_a4_with_backgrounds(self, fake_browser, template, payslip):
        renderer = BrowserPdfRenderer(fake_browser, template)

        pdf = await renderer.render(payslip)

        assert pdf == b"%PDF-1.4 browser"
        assert fake_browser.content_calls == [{"wait_until": "networkidle", "timeout": 10000}]
        assert fake_browser.pdf_calls == [{"format": "A4", "print_background": True}]
        assert "Jane Doe" in fake_browser.pages[0].content
        assert fake_browser.pages[0].closed is True

    async def test_page_closed_when_content_load_fails(self, fake_browser, template, payslip):
        fake_browser.fail_content_for = ("Jane Doe",)
        renderer = BrowserPdfRenderer(fake_browser, template)

        with pytest.raises(TimeoutError):
            await renderer.render(payslip)

        assert fake_browser.pages[0].closed is True

    async def test_print_timeout(self, fake_browser, template, payslip, monkeypatch):
        async def slow_pdf(self, format, print_background):
            await asyncio.sleep(1)
            return b""

        page_class = type(await fake_browser.new_page())
        fake_browser.pages.clear()
        monkeypatch.setattr(page_class, "pdf", slow_pdf)
        renderer = BrowserPdfRenderer(fake_browser, template, print_timeout_ms=10)

        with pytest.raises(asyncio.TimeoutError):
            await renderer.render(payslip)

        assert fake_browser.pages[0].closed is True


class FakeChromium:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.launch_kwargs = None
        self.browser = None

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        if self.error is not None:
            raise self.error
        self.browser = FakeLaunchedBrowser()
        return self.browser


class FakeLaunchedBrowser:
    closed = False

    async def close(self):
        self.closed = True


class FakePlaywright:
    def __init__(self, chromium: FakeChromium):
        self.chromium = chromium
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakePlaywrightManager:
    def __init__(self, playwright: FakePlaywright):
        self.playwright = playwright

    async def start(self):
        return self.playwright


class TestLaunchBrowser:
    """Test browser lifecycle."""

    async def test_launch_with_hardening_flags_and_close(self, monkeypatch):
        playwright = FakePlaywright(FakeChromium())
        monkeypatch.setattr(
            browser_module, "async_playwright", lambda: FakePlaywrightManager(playwright)
        )

        async with launch_browser(timeout_ms=30000) as browser:
            assert browser.closed is False

        kwargs = playwright.chromium.launch_kwargs
        assert kwargs["headless"] is True
        assert kwargs["timeout"] == 30000
        assert "--no-sandbox" in kwargs["args"]
        assert browser.closed is True
        assert playwright.stopped is True

    async def test_closed_when_batch_raises(self, monkeypatch):
        playwright = FakePlaywright(FakeChromium())
        monkeypatch.setattr(
            browser_module, "async_playwright", lambda: FakePlaywrightManager(playwright)
        )

        with pytest.raises(RuntimeError):
            async with launch_browser():
                raise RuntimeError("batch crashed")

        assert playwright.chromium.browser.closed is True
        assert playwright.stopped is True

    async def test_launch_failure_raises_browser_launch_error(self, monkeypatch):
        playwright = FakePlaywright(FakeChromium(error=RuntimeError("Executable doesn't exist")))
        monkeypatch.setattr(
            browser_module, "async_playwright", lambda: FakePlaywrightManager(playwright)
        )

        with pytest.raises(BrowserLaunchError, match="Executable doesn't exist"):
            async with launch_browser():
                pass

        assert playwright.stopped is True

    async def test_driver_start_failure_raises_browser_launch_error(self, monkeypatch):
        class BrokenDriver:
            async def start(self):
                raise RuntimeError("Playwright driver could not be started")

        monkeypatch.setattr(browser_module, "async_playwright", BrokenDriver)

        with pytest.raises(BrowserLaunchError, match="driver could not be started"):
            async with launch_browser():
                pass

    async def test_driver_stopped_when_browser_close_fails(self, monkeypatch):
        playwright = FakePlaywright(FakeChromium())
        monkeypatch.setattr(
            browser_module, "async_playwright", lambda: FakePlaywrightManager(playwright)
        )

        async def broken_close():
            raise RuntimeError("Target closed")

        with pytest.raises(RuntimeError, match="Target closed"):
            async with launch_browser() as browser:
                browser.close = broken_close

        assert playwright.stopped is True

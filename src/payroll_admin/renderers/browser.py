"""Headless-browser PDF backend (primary).

The browser is launched once per batch through launch_browser and shared by
every page rendered in that batch.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from playwright.async_api import async_playwright

from payroll_admin.renderers.base import BrowserLaunchError
from payroll_admin.renderers.payslip import PayslipData
from payroll_admin.renderers.template import render_payslip_html

if TYPE_CHECKING:
    from playwright.async_api import Browser

logger = logging.getLogger(__name__)

HARDENING_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
    "--no-first-run",
    "--no-zygote",
)


@asynccontextmanager
async def launch_browser(timeout_ms: int = 30_000) -> AsyncIterator[Browser]:
    """Start Chromium and close it on every exit path.

    Raises:
        BrowserLaunchError: If the driver or the browser process cannot be
            started.
    """
    playwright = None
    try:
        playwright = await async_playwright().start()
        browser = await playwright.chromium.launch(
            headless=True,
            args=list(HARDENING_ARGS),
            timeout=timeout_ms,
        )
    except Exception as e:
        if playwright is not None:
            await playwright.stop()
        raise BrowserLaunchError(f"Browser launch failed: {e}") from e

    logger.info("Headless browser launched")
    try:
        yield browser
    finally:
        try:
            await browser.close()
        finally:
            await playwright.stop()
            logger.info("Headless browser closed")


class BrowserPdfRenderer:
    """Print the HTML template to an A4 PDF in a browser page."""

    method = "browser"
    is_fallback = False

    def __init__(
        self,
        browser: Browser,
        template: str,
        content_timeout_ms: int = 10_000,
        print_timeout_ms: int = 15_000,
    ):
        self.browser = browser
        self.template = template
        self.content_timeout_ms = content_timeout_ms
        self.print_timeout_ms = print_timeout_ms

    async def render(self, payslip: PayslipData) -> bytes:
        html = render_payslip_html(self.template, payslip)

        page = await self.browser.new_page()
        try:
            await page.set_content(
                html,
                wait_until="networkidle",
                timeout=self.content_timeout_ms,
            )
            # page.pdf() takes no timeout of its own
            return await asyncio.wait_for(
                page.pdf(format="A4", print_background=True),
                timeout=self.print_timeout_ms / 1000,
            )
        finally:
            await page.close()

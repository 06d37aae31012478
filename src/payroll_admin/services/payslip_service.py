"""Batch payslip generation: render, upload, link back to the record."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Sequence
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from payroll_admin.models import PayrollRecord
from payroll_admin.renderers import (
    BrowserLaunchError,
    MinimalPdfRenderer,
    PayslipData,
    PayslipRenderError,
    PayslipRenderer,
    StyledPdfRenderer,
    generate_with_fallback,
)
from payroll_admin.services.state_machine import PayslipJob, PayslipStatus
from payroll_admin.services.totals import check_totals
from payroll_admin.storage import PDF_CONTENT_TYPE, PayslipStorage, payslip_filename

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from payroll_admin.config import Settings

logger = logging.getLogger(__name__)

BrowserLauncher = Callable[[], AbstractAsyncContextManager[Any]]

MSG_PRIMARY_OK = "Generated using browser rendering"
MSG_FALLBACK_OK = "Generated using fallback method"
MSG_NOT_FOUND = "Payroll record not found"
MSG_LOAD_FAILED = "Failed to load payroll record"


def render_failure_message(error: PayslipRenderError) -> str:
    """Describe a failed chain by the renderers that were actually tried."""
    methods = [f.method for f in error.failures]
    detail = "; ".join(f.message for f in error.failures)
    if len(methods) == 2:
        return f"Both {methods[0]} and {methods[1]} rendering failed: {detail}"
    return f"Rendering failed ({', '.join(methods)}): {detail}"


@dataclass(frozen=True)
class PayslipResult:
    """Outcome for one requested record."""

    batch_id: str
    ok: bool
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"batch_id": self.batch_id, "ok": self.ok, "message": self.message}


def parse_uuid(value: str) -> UUID | None:
    """UUID from user input, or None when malformed."""
    try:
        return UUID(str(value).strip())
    except (ValueError, AttributeError):
        return None


def unique_ids(ids: Sequence[str]) -> list[str]:
    """Collapse duplicates, keeping the first occurrence's position."""
    return list(dict.fromkeys(str(i).strip() for i in ids))


class PayslipGenerationService:
    """Generates payslip PDFs for a batch of payroll records.

    Records are processed one at a time. A failure on one record is reported
    in its result and never stops the batch.
    """

    def __init__(
        self,
        session: AsyncSession,
        storage: PayslipStorage,
        template: str,
        browser_launcher: BrowserLauncher | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.storage = storage
        self.template = template
        self.browser_launcher = browser_launcher
        self.settings = settings

    async def resolve_ids(self, ids: Sequence[str]) -> list[str]:
        """Keep only ids that match an existing record, in input order."""
        wanted = {u for u in (parse_uuid(i) for i in ids) if u is not None}
        if not wanted:
            return []
        result = await self.session.execute(
            select(PayrollRecord.id).where(PayrollRecord.id.in_(wanted))
        )
        found = {str(row_id) for row_id in result.scalars()}
        return [i for i in unique_ids(ids) if i in found]

    async def generate(self, ids: Sequence[str]) -> list[PayslipResult]:
        """Generate payslips for every id, one result per unique id."""
        batch = unique_ids(ids)
        logger.info("Generating %d payslip(s)", len(batch))

        results: list[PayslipResult] = []
        async with AsyncExitStack() as stack:
            chain = await self._build_chain(stack)
            for batch_id in batch:
                try:
                    record = await self._load_record(batch_id)
                except SQLAlchemyError as e:
                    await self.session.rollback()
                    logger.error("Payslip %s could not be loaded: %s", batch_id, e)
                    results.append(
                        PayslipResult(batch_id, False, f"{MSG_LOAD_FAILED}: {e}")
                    )
                    continue
                result = await self._generate_one(batch_id, record, chain)
                results.append(result)

        succeeded = sum(1 for r in results if r.ok)
        logger.info("Payslip batch finished: %d/%d succeeded", succeeded, len(results))
        return results

    async def _load_record(self, batch_id: str) -> PayrollRecord | None:
        """Re-read one record; a rollback on an earlier record expires the session."""
        record_id = parse_uuid(batch_id)
        if record_id is None:
            return None
        return await self.session.get(PayrollRecord, record_id, populate_existing=True)

    async def _build_chain(self, stack: AsyncExitStack) -> list[PayslipRenderer]:
        """Launch the browser for the batch, or fall back for every record."""
        styled = StyledPdfRenderer()
        if self.browser_launcher is None:
            return [styled, MinimalPdfRenderer()]

        try:
            browser = await stack.enter_async_context(self.browser_launcher())
        except BrowserLaunchError as e:
            logger.warning("Browser unavailable, using fallback rendering for batch: %s", e)
            return [styled, MinimalPdfRenderer()]

        # Imported here so that fallback-only deployments never load playwright.
        from payroll_admin.renderers.browser import BrowserPdfRenderer

        kwargs: dict[str, int] = {}
        if self.settings is not None:
            kwargs = {
                "content_timeout_ms": self.settings.page_content_timeout_ms,
                "print_timeout_ms": self.settings.pdf_print_timeout_ms,
            }
        return [BrowserPdfRenderer(browser, self.template, **kwargs), styled]

    async def _generate_one(
        self,
        batch_id: str,
        record: PayrollRecord | None,
        chain: Sequence[PayslipRenderer],
    ) -> PayslipResult:
        job = PayslipJob(batch_id)
        if record is None:
            job.fail()
            return PayslipResult(batch_id, False, MSG_NOT_FOUND)

        payslip = PayslipData.from_record(record)
        check_totals(payslip)

        try:
            outcome = await generate_with_fallback(
                payslip,
                chain,
                on_attempt=lambda renderer: job.enter_rendering(renderer.is_fallback),
            )
        except PayslipRenderError as e:
            job.fail()
            message = render_failure_message(e)
            logger.error("Payslip %s failed to render: %s", batch_id, message)
            return PayslipResult(batch_id, False, message)

        job.transition(PayslipStatus.UPLOADING)
        token = record.payslip_token or str(uuid4())
        filename = payslip_filename(record.employee_name, token)

        upload = await asyncio.to_thread(
            self.storage.upload, filename, outcome.pdf, PDF_CONTENT_TYPE
        )
        if not upload.ok:
            job.fail()
            return PayslipResult(batch_id, False, f"Upload failed: {upload.error}")

        try:
            record.payslip_filename = filename
            record.payslip_token = token
            record.payslip_url = upload.url
            record.payslip_generated_at = datetime.now(timezone.utc)
            record.payslip_generation_method = outcome.method
            await self.session.commit()
        except SQLAlchemyError as e:
            # The object stays in storage; regenerating reuses the token path.
            await self.session.rollback()
            job.fail()
            logger.error("Payslip %s uploaded but not linked: %s", batch_id, e)
            return PayslipResult(batch_id, False, f"Database update failed: {e}")

        job.transition(PayslipStatus.SUCCEEDED)
        logger.info("Payslip %s generated with %s", batch_id, outcome.method)
        message = MSG_FALLBACK_OK if outcome.is_fallback else MSG_PRIMARY_OK
        return PayslipResult(batch_id, True, message)

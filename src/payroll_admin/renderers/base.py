"""Renderer protocol and the ordered fallback chain.

Every PDF backend turns a PayslipData into PDF bytes. The batch orchestrator
never calls a backend directly; it hands an ordered chain to
generate_with_fallback, which tries each renderer in turn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from payroll_admin.renderers.payslip import PayslipData

logger = logging.getLogger(__name__)


class BrowserLaunchError(Exception):
    """Raised when the headless browser process cannot be started."""


class PayslipRenderError(Exception):
    """Raised when every renderer in a chain failed for one payslip."""

    def __init__(self, batch_id: str, failures: Sequence[RenderFailure]):
        self.batch_id = batch_id
        self.failures = tuple(failures)
        detail = "; ".join(f"{f.method}: {f.message}" for f in self.failures)
        super().__init__(f"All renderers failed for {batch_id}: {detail}")


@dataclass(frozen=True)
class RenderFailure:
    """One renderer's failure for one payslip."""

    method: str
    message: str


@dataclass(frozen=True)
class RenderOutcome:
    """PDF produced by the first renderer in a chain that succeeded."""

    pdf: bytes
    method: str
    is_fallback: bool
    failures: tuple[RenderFailure, ...] = ()


class PayslipRenderer(Protocol):
    """Protocol for PDF backends."""

    method: str
    is_fallback: bool

    async def render(self, payslip: PayslipData) -> bytes:
        """Render one payslip to PDF bytes."""
        ...


async def generate_with_fallback(
    payslip: PayslipData,
    chain: Sequence[PayslipRenderer],
    on_attempt: Callable[[PayslipRenderer], None] | None = None,
) -> RenderOutcome:
    """Render with the first renderer that succeeds.

    on_attempt, if given, is called before each renderer is tried.

    Raises:
        PayslipRenderError: If every renderer in the chain raised.
    """
    failures: list[RenderFailure] = []
    for renderer in chain:
        if on_attempt is not None:
            on_attempt(renderer)
        try:
            pdf = await renderer.render(payslip)
        except Exception as e:
            logger.warning(
                "Renderer %s failed for %s: %s", renderer.method, payslip.batch_id, e
            )
            failures.append(RenderFailure(renderer.method, str(e) or type(e).__name__))
            continue

        if failures:
            logger.info(
                "Rendered %s with %s after %d failure(s)",
                payslip.batch_id,
                renderer.method,
                len(failures),
            )
        return RenderOutcome(
            pdf=pdf,
            method=renderer.method,
            is_fallback=renderer.is_fallback,
            failures=tuple(failures),
        )

    raise PayslipRenderError(payslip.batch_id, failures)

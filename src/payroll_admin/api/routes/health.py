"""Health check endpoints."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from payroll_admin.api.dependencies import AppSettings, DbSession, Storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str


class ReadinessResponse(BaseModel):
    """What payslip generation needs before it can take requests."""

    status: str
    template: str
    storage: str
    storage_error: str | None = None
    payslip_chunk_size: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession) -> HealthResponse:
    """Check API and database health."""
    db_status = "unhealthy"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", e)

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(settings: AppSettings, storage: Storage) -> JSONResponse:
    """Template and bucket must be usable before the service is ready.

    Also advertises how many ids a client should send per generate request.
    """
    template_ok = Path(settings.payslip_template_path).is_file()
    if not template_ok:
        logger.warning("Payslip template missing at %s", settings.payslip_template_path)
    storage_error = await asyncio.to_thread(storage.check)

    ready = template_ok and storage_error is None
    body = ReadinessResponse(
        status="ready" if ready else "not_ready",
        template="available" if template_ok else "missing",
        storage="available" if storage_error is None else "unavailable",
        storage_error=storage_error,
        payslip_chunk_size=settings.payslip_chunk_size,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(),
    )


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}

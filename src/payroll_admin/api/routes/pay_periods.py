"""Pay-period closure and history endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from payroll_admin.api.dependencies import DbSession, UserId
from payroll_admin.api.schemas import (
    ActivePayPeriodResponse,
    ActivePayPeriodsResponse,
    ClosePayPeriodsRequest,
    ClosePayPeriodsResponse,
    ClosureSummaryResponse,
    ErrorResponse,
    HistoryListResponse,
)
from payroll_admin.services.closure_service import ClosureError, PayPeriodClosureService

router = APIRouter(prefix="/pay-periods", tags=["pay-periods"])


@router.post(
    "/close",
    response_model=ClosePayPeriodsResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def close_pay_periods(
    db: DbSession,
    user_id: UserId,
    payload: ClosePayPeriodsRequest,
) -> ClosePayPeriodsResponse:
    """Move all records of the selected periods into history."""
    if not payload.period_end_dates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No pay periods selected for closure",
        )

    try:
        summary = await PayPeriodClosureService(db).close_periods(
            payload.period_end_dates, closed_by=user_id, notes=payload.notes
        )
    except ClosureError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    return ClosePayPeriodsResponse(
        success=True,
        summary=ClosureSummaryResponse.model_validate(summary),
    )


@router.get("/list-active", response_model=ActivePayPeriodsResponse)
async def list_active_pay_periods(db: DbSession) -> ActivePayPeriodsResponse:
    """Open pay periods with record counts and totals."""
    periods = await PayPeriodClosureService(db).list_active_periods()
    return ActivePayPeriodsResponse(
        periods=[ActivePayPeriodResponse.model_validate(p) for p in periods]
    )


@router.get("/history", response_model=HistoryListResponse)
async def list_closure_history(
    db: DbSession,
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    sort_by: Annotated[str, Query(alias="sortBy")] = "closed_at",
    sort_dir: Annotated[str, Query(alias="sortDir")] = "desc",
    batch_id: UUID | None = None,
) -> HistoryListResponse:
    """Archived records, optionally for one closure batch."""
    rows, total = await PayPeriodClosureService(db).list_history(
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_dir=sort_dir,
        batch_id=batch_id,
    )
    return HistoryListResponse(rows=[r.to_dict() for r in rows], total=total)

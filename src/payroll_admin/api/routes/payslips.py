"""Payslip generation and payroll record administration endpoints."""

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse, Response

from payroll_admin.api.dependencies import AppSettings, DbSession, Launcher, Mailer, Storage
from payroll_admin.api.schemas import (
    CheckEmailStatusRequest,
    CheckEmailStatusResponse,
    DeleteResponse,
    EmailResultResponse,
    EmailStatusResponse,
    ErrorResponse,
    GeneratePayslipsRequest,
    GeneratePayslipsResponse,
    IdsRequest,
    ImportResponse,
    PayslipResultResponse,
    RecordListResponse,
    RestoreResponse,
    RowErrorResponse,
    SendPayslipEmailsRequest,
    SendPayslipEmailsResponse,
)
from payroll_admin.renderers import TemplateNotFoundError, load_template
from payroll_admin.services.email_service import EmailStatusError, PayslipEmailService
from payroll_admin.services.import_service import CsvFormatError, PayrollImportService
from payroll_admin.services.payslip_service import PayslipGenerationService
from payroll_admin.services.record_service import (
    PayrollRecordService,
    RecordFilters,
    import_template_csv,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payslips", tags=["payslips"])


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _require_ids(payload: IdsRequest) -> list[str]:
    if not payload.ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ids array required",
        )
    return payload.ids


# ============================================================================
# Generation
# ============================================================================


@router.post(
    "/generate",
    response_model=GeneratePayslipsResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_payslips(
    db: DbSession,
    settings: AppSettings,
    storage: Storage,
    launcher: Launcher,
    payload: GeneratePayslipsRequest,
) -> GeneratePayslipsResponse:
    """Generate, upload and link payslip PDFs for the given records."""
    try:
        template = load_template(settings.payslip_template_path)
    except TemplateNotFoundError as e:
        logger.error("%s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    service = PayslipGenerationService(
        db, storage, template, browser_launcher=launcher, settings=settings
    )

    if payload.batch_ids:
        ids = payload.batch_ids
    elif payload.filters is not None:
        ids = await service.resolve_ids(payload.filters.ids)
    else:
        ids = []

    if not ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No payroll records selected",
        )

    results = await service.generate(ids)
    return GeneratePayslipsResponse(
        results=[PayslipResultResponse.model_validate(r) for r in results]
    )


# ============================================================================
# Email distribution
# ============================================================================


@router.post(
    "/send-email",
    response_model=SendPayslipEmailsResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def send_payslip_emails(
    db: DbSession,
    settings: AppSettings,
    sender: Mailer,
    payload: SendPayslipEmailsRequest,
) -> SendPayslipEmailsResponse:
    """Email each record's payslip link to the employee."""
    if not payload.batch_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No payroll records selected",
        )

    service = PayslipEmailService(db, sender, contact_email=settings.email_reply_to)
    results = await service.send(payload.batch_ids)
    return SendPayslipEmailsResponse(
        results=[EmailResultResponse.model_validate(r) for r in results]
    )


@router.post(
    "/check-email-status",
    response_model=CheckEmailStatusResponse,
    responses={400: {"model": ErrorResponse}},
)
async def check_email_status(
    db: DbSession,
    sender: Mailer,
    payload: CheckEmailStatusRequest,
) -> CheckEmailStatusResponse:
    """Refresh delivery status from the email provider."""
    if not payload.batch_ids and not payload.email_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either emailIds or batchIds must be provided",
        )

    service = PayslipEmailService(db, sender)
    try:
        updates = await service.refresh_statuses(
            batch_ids=payload.batch_ids, message_ids=payload.email_ids
        )
    except EmailStatusError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return CheckEmailStatusResponse(
        checked=len(updates),
        updates=[EmailStatusResponse(**u.to_dict()) for u in updates],
    )


# ============================================================================
# Listing and export
# ============================================================================


@router.get("/list", response_model=RecordListResponse)
async def list_payroll_records(
    db: DbSession,
    limit: Annotated[int, Query(ge=1, le=1000)] = 200,
    offset: Annotated[int, Query(ge=0)] = 0,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_dir: Annotated[str, Query(alias="sortDir")] = "desc",
    search: str | None = None,
    employers: str | None = None,
    dates: str | None = None,
    currency: str | None = None,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
) -> RecordListResponse:
    """List payroll records with filters and their latest send status."""
    try:
        period_dates = [date.fromisoformat(d) for d in _split_csv(dates)]
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="dates must be YYYY-MM-DD values",
        )

    filters = RecordFilters(
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_dir=sort_dir,
        search=(search or "").strip() or None,
        employers=_split_csv(employers),
        dates=period_dates,
        currencies=_split_csv(currency),
        include_deleted=include_deleted,
    )
    rows, total = await PayrollRecordService(db).list_records(filters)
    return RecordListResponse(rows=rows, total=total)


@router.get("/export")
async def export_payroll_records(db: DbSession) -> Response:
    """Active payroll records as CSV."""
    content = await PayrollRecordService(db).export_csv()
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="payroll_export.csv"'},
    )


@router.get("/template")
async def download_import_template() -> Response:
    """Empty CSV import template."""
    return Response(
        content=import_template_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="payroll_import_template.csv"'},
    )


# ============================================================================
# Import
# ============================================================================


@router.post(
    "/import",
    response_model=ImportResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ImportResponse}},
)
async def import_payroll_csv(
    db: DbSession,
    settings: AppSettings,
    file: Annotated[UploadFile, File()],
    dry_run: bool = False,
    skip_invalid: bool = False,
) -> ImportResponse | JSONResponse:
    """Validate an uploaded CSV and import its rows.

    Any row error rejects the whole file unless skip_invalid is set, in which
    case only the valid rows are written.
    """
    raw = await file.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded",
        )

    service = PayrollImportService(db, batch_size=settings.import_batch_size)
    try:
        report = service.validate(text)
    except CsvFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    errors = [RowErrorResponse.model_validate(e) for e in report.errors]
    if report.errors and not skip_invalid:
        body = ImportResponse(imported=0, total=report.total, dry_run=dry_run, errors=errors)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=body.model_dump(mode="json"),
        )

    imported = 0
    if not dry_run:
        imported = await service.import_rows(report.valid_rows)
    logger.info(
        "CSV import: %d of %d row(s) imported, %d error(s), dry_run=%s",
        imported,
        report.total,
        len(errors),
        dry_run,
    )
    return ImportResponse(imported=imported, total=report.total, dry_run=dry_run, errors=errors)


# ============================================================================
# Soft delete, restore, permanent delete
# ============================================================================


@router.post("/delete", response_model=DeleteResponse, responses={400: {"model": ErrorResponse}})
async def soft_delete_records(db: DbSession, payload: IdsRequest) -> DeleteResponse:
    """Soft-delete records."""
    ids = await PayrollRecordService(db).soft_delete(_require_ids(payload))
    return DeleteResponse(deleted=len(ids), ids=ids)


@router.post("/restore", response_model=RestoreResponse, responses={400: {"model": ErrorResponse}})
async def restore_records(db: DbSession, payload: IdsRequest) -> RestoreResponse:
    """Clear the soft-delete mark."""
    ids = await PayrollRecordService(db).restore(_require_ids(payload))
    return RestoreResponse(restored=len(ids), ids=ids)


@router.post(
    "/delete-permanent",
    response_model=DeleteResponse,
    responses={400: {"model": ErrorResponse}},
)
async def delete_records_permanently(db: DbSession, payload: IdsRequest) -> DeleteResponse:
    """Hard-delete records that are already soft-deleted."""
    ids = await PayrollRecordService(db).delete_permanent(_require_ids(payload))
    return DeleteResponse(deleted=len(ids), ids=ids)

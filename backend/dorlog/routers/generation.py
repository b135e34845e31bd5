"""
Report generation and reminder endpoints used by the web client.

These keep the request/response shapes the client already speaks
(camelCase JSON, {success, ...} envelopes):
1. POST /api/generate-report — Generate a report for one month or explicit periods
2. POST /api/generate-monthly-report — Generate a report for explicit periods
3. GET /reports/{file_name} — Serve a report stored by LocalStorageService
4. POST /api/reset-reminders — Reset today's medication reminders

Validation failures answer 400 with {success: false, error} rather than
FastAPI's 422 detail format, because that's what the client checks for.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, JSONResponse

from dorlog.firestore import get_firestore
from dorlog.schemas.reports import (
    GenerateReportRequest,
    GenerateReportResponse,
    ResetRemindersRequest,
    ResetRemindersResponse,
)
from dorlog.services.periods import (
    format_period_range,
    month_to_period,
    parse_period,
    span,
    validate_periods,
)
from dorlog.services.reminders import ReminderService
from dorlog.services.report_generation import (
    ReportOptions,
    ReportStrategy,
    build_report_strategy,
)
from dorlog.services.storage import LocalStorageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])

_MEDIA_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".pdf": "application/pdf",
}


def get_report_strategy(db=Depends(get_firestore)) -> ReportStrategy:
    """FastAPI dependency: the strategy configured by REPORT_FORMAT."""
    return build_report_strategy(db)


def get_local_storage() -> LocalStorageService:
    return LocalStorageService()


@router.post("/api/generate-report")
async def generate_report(
    request: GenerateReportRequest,
    strategy: ReportStrategy = Depends(get_report_strategy),
):
    """Generate a report for `reportMonth` ("YYYY-MM") or explicit `periods`."""
    if not request.user_id:
        return _bad_request("userId é obrigatório")

    periods = request.periods
    if request.report_month:
        try:
            periods = [month_to_period(request.report_month)]
        except ValueError:
            return _bad_request(f"reportMonth inválido: {request.report_month}")

    return await _run(strategy, request.user_id, periods, request.periods_text)


@router.post("/api/generate-monthly-report")
async def generate_monthly_report(
    request: GenerateReportRequest,
    strategy: ReportStrategy = Depends(get_report_strategy),
):
    """Generate a report covering every period in `periods`."""
    if not request.user_id:
        return _bad_request("userId é obrigatório")

    return await _run(strategy, request.user_id, request.periods, request.periods_text)


@router.get("/reports/{file_name}")
async def serve_report(
    file_name: str,
    storage: LocalStorageService = Depends(get_local_storage),
):
    """Serve a previously generated report file."""
    if not await storage.file_exists(file_name):
        raise HTTPException(status_code=404, detail="Report not found")

    path = storage.path_for(file_name)
    return FileResponse(path, media_type=_MEDIA_TYPES.get(path.suffix, "application/octet-stream"))


@router.post("/api/reset-reminders")
async def reset_reminders(
    request: ResetRemindersRequest,
    db=Depends(get_firestore),
):
    """Reset every medication reminder of the user for the new day."""
    if not request.user_id:
        return _bad_request("userId é obrigatório")

    now = datetime.now(timezone.utc)
    try:
        updated = await ReminderService(db).reset_all(request.user_id, now.date())
    except Exception as e:
        logger.exception("Reminder reset failed for %s", request.user_id)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    response = ResetRemindersResponse(
        success=True,
        user_id=request.user_id,
        updated_count=updated,
        timestamp=now,
    )
    return response.model_dump(mode="json", by_alias=True)


async def _run(strategy: ReportStrategy, user_id: str, periods: list[str], periods_text: str):
    if not validate_periods(periods):
        return _bad_request("periods deve conter ao menos um período YYYY-MM-DD_YYYY-MM-DD válido")

    if not periods_text:
        periods_text = format_period_range(span([parse_period(p) for p in periods]))

    result = await strategy.generate(
        ReportOptions(user_id=user_id, periods=periods, periods_text=periods_text)
    )
    response = GenerateReportResponse(
        success=result.success,
        report_url=result.report_url,
        file_name=result.file_name,
        report_id=result.report_id,
        execution_time=result.execution_time,
        message=result.message,
        error=result.error,
        data_status=result.data_status,
    )
    return JSONResponse(
        status_code=200 if result.success else 500,
        content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def _bad_request(error: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": error})

"""
Report API endpoints.

These back the reports screen of the app:
1. GET /reports/{email}/summary — Dashboard aggregates (JSON)
2. GET /reports/{email}/pdf — Download the health report as PDF
3. GET /reports/{email}/html — Download the health report as HTML

All three go through ReportDataService.load(), so one request means one
diary scan. The summary defaults to the last `days` days; the downloads
accept repeated `periods` query params ("YYYY-MM-DD_YYYY-MM-DD") and fall
back to the trailing window when none are given.

A failed Firestore read still returns 200 with status "error" in the
summary (and an error banner in the documents), so the client can tell
"no data" from "couldn't load data".
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from dorlog.config import settings
from dorlog.firestore import get_firestore
from dorlog.schemas.reports import (
    CrisisDayOut,
    DiaryAdherenceOut,
    LabelCountOut,
    MedicationResponseOut,
    MoodCrisisOut,
    PainPointOut,
    PainReadingOut,
    PainSeriesOut,
    ReportSummaryResponse,
    SleepPainOut,
)
from dorlog.services.html_report import render_html_report
from dorlog.services.pdf_report import PDFReportGenerator
from dorlog.services.periods import DateWindow, parse_period, trailing_window, utc_now
from dorlog.services.report_data import ReportData, ReportDataService

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/{email}/summary", response_model=ReportSummaryResponse)
async def get_report_summary(
    email: str,
    days: int = Query(default=settings.REPORT_WINDOW_DAYS, ge=1, le=365),
    db=Depends(get_firestore),
):
    """Aggregates for the dashboard over the last `days` days."""
    now = utc_now()
    data = await ReportDataService(db).load(email, windows=[trailing_window(now, days)], now=now)
    return _to_summary(data)


@router.get("/{email}/pdf")
async def download_report_pdf(
    email: str,
    periods: Optional[list[str]] = Query(default=None),
    db=Depends(get_firestore),
):
    """Render the health report as a PDF and return it as a download."""
    data = await ReportDataService(db).load(email, windows=_parse_windows(periods))
    pdf_bytes = PDFReportGenerator().generate_health_report(data)

    filename = f"dorlog_report_{data.generated_at:%Y%m%d}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{email}/html")
async def download_report_html(
    email: str,
    periods: Optional[list[str]] = Query(default=None),
    db=Depends(get_firestore),
):
    """Render the health report as a standalone HTML page."""
    data = await ReportDataService(db).load(email, windows=_parse_windows(periods))
    html = render_html_report(data)

    filename = f"dorlog_report_{data.generated_at:%Y%m%d}.html"
    return Response(
        content=html,
        media_type="text/html; charset=utf-8",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


def _parse_windows(periods: Optional[list[str]]) -> Optional[list[DateWindow]]:
    """Parse query periods; None means "use the trailing window"."""
    if not periods:
        return None
    try:
        return [parse_period(period) for period in periods]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _to_summary(data: ReportData) -> ReportSummaryResponse:
    series = data.pain_series
    summary = data.pain_summary
    if series.has_data:
        pain = PainSeriesOut(
            status="ok",
            points=[PainReadingOut(date=r.day, pain=r.intensity) for r in series.points],
            mean=summary.mean,
            min=summary.minimum,
            max=summary.maximum,
            count=summary.count,
        )
    else:
        pain = PainSeriesOut(status="no_data")

    adherence = None
    if data.adherence is not None:
        adherence = DiaryAdherenceOut(
            days_since_last_entry=data.adherence.days_since_last_entry,
            message=data.adherence.message,
            status=data.adherence.status,
        )

    sleep = data.sleep_pain

    return ReportSummaryResponse(
        user_email=data.user_email,
        status=data.status,
        error=data.error,
        window_start=data.window.start,
        window_end=data.window.end,
        days_with_records=data.days_with_records,
        crisis_count=data.crisis_count,
        quiz_counts={kind.value: count for kind, count in data.quiz_counts.items()},
        pain_points=[PainPointOut(point=p.point, count=p.count) for p in data.pain_points],
        pain_series=pain,
        crisis_days=[
            CrisisDayOut(date=day.day, episodes=len(day.quizzes))
            for day in data.crisis_episodes
        ],
        diary_adherence=adherence,
        crisis_triggers=[LabelCountOut(label=i.label, count=i.count) for i in data.crisis_triggers],
        crisis_pain_types=[LabelCountOut(label=i.label, count=i.count) for i in data.crisis_pain_types],
        medication_responses=[
            MedicationResponseOut(
                response=r.response, count=r.count, share=r.share, mean_intensity=r.mean_intensity,
            )
            for r in data.medication_responses
        ],
        mood_crisis=[
            MoodCrisisOut(mood=m.mood, days=m.days, crisis_days=m.crisis_days, rate=m.rate)
            for m in data.mood_crisis
        ],
        morning_symptoms=[LabelCountOut(label=i.label, count=i.count) for i in data.symptoms],
        sleep_pain=SleepPainOut(
            pairs=len(sleep.pairs),
            correlation=sleep.correlation,
            strength=sleep.strength,
            description=sleep.description,
            poor_sleep_nights=sleep.poor_sleep_nights,
            critical_nights=sleep.critical_nights,
        ),
        ownership_matches=data.ownership_matches,
    )

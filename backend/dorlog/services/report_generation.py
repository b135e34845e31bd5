"""
Report generation strategies.

POST /api/generate-monthly-report hands its options to whichever strategy
was configured at startup (settings.REPORT_FORMAT). A strategy:
1. Loads ReportData for the requested periods (one diary scan)
2. Renders it (HTML or PDF)
3. Stores the file and returns a ReportResult with the public URL

Strategies are injected into the router with Depends(get_report_strategy),
so tests and alternative deployments swap them without touching routes.
"""

import base64
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from dorlog.config import settings
from dorlog.services.html_report import render_html_report
from dorlog.services.pdf_report import PDFReportGenerator
from dorlog.services.periods import parse_period
from dorlog.services.report_data import ReportData, ReportDataService
from dorlog.services.storage import get_storage_service

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class ReportOptions:
    user_id: str
    periods: list[str]
    periods_text: str = ""


@dataclass
class ReportResult:
    success: bool
    report_url: Optional[str] = None
    file_name: Optional[str] = None
    report_id: Optional[str] = None
    execution_time: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    data_status: Optional[str] = None


class ReportStrategy(Protocol):
    async def generate(self, options: ReportOptions) -> ReportResult:
        ...


def generate_report_id(user_id: str, now_ms: Optional[int] = None) -> str:
    """Build an id shaped like "{user hash}_{epoch ms}_{random}"."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    user_hash = base64.urlsafe_b64encode(user_id.encode("utf-8")).decode("ascii")[:6]
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"{user_hash}_{now_ms}_{suffix}"


class _StoredReportStrategy:
    """Shared load -> render -> store flow. Subclasses implement render().

    `storage` may be None: the configured backend is then created inside
    generate(), and a failure to create it is reported as a failed
    ReportResult like any other.
    """

    extension = ""
    content_type = ""

    def __init__(self, data_service: ReportDataService, storage=None):
        self.data_service = data_service
        self.storage = storage

    def render(self, data: ReportData, options: ReportOptions, report_id: str) -> bytes:
        raise NotImplementedError

    async def generate(self, options: ReportOptions) -> ReportResult:
        start_time = time.perf_counter()
        report_id = generate_report_id(options.user_id)
        logger.info(
            "Generating %s report %s for %s (%d period(s))",
            self.extension, report_id, options.user_id, len(options.periods),
        )

        try:
            windows = [parse_period(period) for period in options.periods]
            data = await self.data_service.load(options.user_id, windows=windows)
            content = self.render(data, options, report_id)
            if self.storage is None:
                self.storage = get_storage_service()
            stored = await self.storage.save_report(
                content, f"report_{report_id}.{self.extension}", self.content_type,
            )
        except Exception as e:
            logger.exception("Report generation failed for %s", options.user_id)
            return ReportResult(
                success=False,
                error=str(e) or type(e).__name__,
                execution_time=_elapsed(start_time),
            )

        return ReportResult(
            success=True,
            report_url=stored.url,
            file_name=stored.file_name,
            report_id=report_id,
            execution_time=_elapsed(start_time),
            message=_status_message(data),
            data_status=data.status,
        )


class HtmlReportStrategy(_StoredReportStrategy):
    extension = "html"
    content_type = "text/html; charset=utf-8"

    def render(self, data: ReportData, options: ReportOptions, report_id: str) -> bytes:
        return render_html_report(
            data, periods_text=options.periods_text or None, report_id=report_id,
        ).encode("utf-8")


class PdfReportStrategy(_StoredReportStrategy):
    extension = "pdf"
    content_type = "application/pdf"

    def render(self, data: ReportData, options: ReportOptions, report_id: str) -> bytes:
        return PDFReportGenerator().generate_health_report(
            data, periods_text=options.periods_text or None, report_id=report_id,
        )


STRATEGIES = {
    "html": HtmlReportStrategy,
    "pdf": PdfReportStrategy,
}


def build_report_strategy(db, report_format: Optional[str] = None, storage=None) -> ReportStrategy:
    report_format = report_format or settings.REPORT_FORMAT
    strategy_cls = STRATEGIES.get(report_format)
    if strategy_cls is None:
        raise ValueError(
            f"Unknown report format: {report_format}. Expected one of: {list(STRATEGIES)}"
        )
    return strategy_cls(ReportDataService(db), storage)


def _elapsed(start_time: float) -> str:
    return f"{time.perf_counter() - start_time:.2f}s"


def _status_message(data: ReportData) -> str:
    if data.status == "error":
        return f"Relatório gerado sem dados do diário: {data.error}"
    if data.status == "empty":
        return "Relatório gerado: nenhum registro encontrado no período"
    return "Relatório gerado com dados reais do Firestore"

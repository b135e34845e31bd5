"""
Integration tests for report generation, report serving and reminders.

These endpoints speak the web client's camelCase JSON. Generated files
land in tmp_path through the LocalStorageService override in conftest.py
and are fetched back through GET /reports/{file_name}.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from dorlog.config import settings
from dorlog.main import app
from dorlog.routers.generation import get_report_strategy
from dorlog.services.report_data import ReportDataService
from dorlog.services.report_generation import (
    PdfReportStrategy,
    ReportOptions,
    build_report_strategy,
    generate_report_id,
)


def _current_period():
    today = datetime.now(timezone.utc).date()
    return f"{today - timedelta(days=30)}_{today}"


@pytest.mark.asyncio
async def test_generate_monthly_report(client: AsyncClient):
    """POST /api/generate-monthly-report stores an HTML report and links to it."""
    response = await client.post("/api/generate-monthly-report", json={
        "userId": "alice@example.com",
        "periods": [_current_period()],
        "periodsText": "Últimos 30 dias",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["fileName"].endswith(".html")
    assert data["reportUrl"] == f"http://test/reports/{data['fileName']}"
    assert data["reportId"] in data["fileName"]
    assert data["executionTime"].endswith("s")
    assert data["dataStatus"] == "ok"
    assert "message" in data

    # The link works
    served = await client.get(f"/reports/{data['fileName']}")
    assert served.status_code == 200
    assert served.headers["content-type"].startswith("text/html")
    assert "Últimos 30 dias" in served.text
    assert "Dra. Ana Souza" in served.text


@pytest.mark.asyncio
async def test_generate_report_by_month(client: AsyncClient):
    """reportMonth is converted into that month's period."""
    response = await client.post("/api/generate-report", json={
        "userId": "alice@example.com",
        "reportMonth": "2024-02",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    # Seed data is recent, so February 2024 has nothing in it
    assert data["dataStatus"] == "empty"

    served = await client.get(f"/reports/{data['fileName']}")
    assert "01/02/2024 - 29/02/2024" in served.text


@pytest.mark.asyncio
async def test_generate_report_pdf_strategy(client: AsyncClient, seeded_db, report_storage):
    """With the PDF strategy the stored file is a PDF."""
    app.dependency_overrides[get_report_strategy] = lambda: PdfReportStrategy(
        ReportDataService(seeded_db), report_storage,
    )

    response = await client.post("/api/generate-monthly-report", json={
        "userId": "alice@example.com",
        "periods": [_current_period()],
    })

    data = response.json()
    assert data["fileName"].endswith(".pdf")
    served = await client.get(f"/reports/{data['fileName']}")
    assert served.headers["content-type"] == "application/pdf"
    assert served.content[:5] == b"%PDF-"


@pytest.mark.asyncio
async def test_generate_report_missing_user(client: AsyncClient):
    """Missing userId is a 400 in the client's error format."""
    response = await client.post("/api/generate-monthly-report", json={
        "periods": [_current_period()],
    })

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "userId" in response.json()["error"]


@pytest.mark.asyncio
@pytest.mark.parametrize("periods", [[], ["not-a-period"], ["2024-02-10_2024-02-01"]])
async def test_generate_report_invalid_periods(client: AsyncClient, periods):
    response = await client.post("/api/generate-monthly-report", json={
        "userId": "alice@example.com",
        "periods": periods,
    })

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_generate_report_invalid_month(client: AsyncClient):
    response = await client.post("/api/generate-report", json={
        "userId": "alice@example.com",
        "reportMonth": "2024-13",
    })

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_generate_report_storage_failure(client: AsyncClient, seeded_db):
    """A storage error comes back as success=false with a 500."""
    class BrokenStorage:
        async def save_report(self, content, file_name, content_type):
            raise OSError("disk full")

    app.dependency_overrides[get_report_strategy] = lambda: PdfReportStrategy(
        ReportDataService(seeded_db), BrokenStorage(),
    )

    response = await client.post("/api/generate-monthly-report", json={
        "userId": "alice@example.com",
        "periods": [_current_period()],
    })

    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "disk full"


@pytest.mark.asyncio
async def test_serve_missing_report(client: AsyncClient):
    response = await client.get("/reports/report_does_not_exist.html")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_reset_reminders(client: AsyncClient, seeded_db):
    """POST /api/reset-reminders resets the user's reminders."""
    response = await client.post("/api/reset-reminders", json={"userId": "alice@example.com"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["userId"] == "alice@example.com"
    assert data["updatedCount"] == 1
    assert "timestamp" in data

    reminders = seeded_db.get("medicamentos", "med_pregabalina")["lembrete"]
    assert all(r["status"] is False for r in reminders)


@pytest.mark.asyncio
async def test_reset_reminders_missing_user(client: AsyncClient):
    response = await client.post("/api/reset-reminders", json={})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "userId é obrigatório"}


def test_generate_report_id_shape():
    report_id = generate_report_id("alice@example.com", now_ms=1700000000000)

    user_hash, timestamp, suffix = report_id.split("_")
    assert user_hash == "YWxpY2"
    assert timestamp == "1700000000000"
    assert len(suffix) == 6


def test_build_report_strategy_rejects_unknown_format(report_storage):
    with pytest.raises(ValueError):
        build_report_strategy(None, report_format="docx", storage=report_storage)


@pytest.mark.asyncio
async def test_strategy_without_firestore_still_produces_report(report_storage):
    """No Firestore client means an error-status report, not a crash."""
    strategy = build_report_strategy(None, report_format="html", storage=report_storage)

    result = await strategy.generate(ReportOptions(
        user_id="alice@example.com", periods=[_current_period()],
    ))

    assert result.success is True
    assert result.data_status == "error"
    assert (report_storage.base_path / result.file_name).is_file()


@pytest.mark.asyncio
async def test_generate_report_unavailable_bucket(client: AsyncClient, monkeypatch):
    """With Firebase storage selected but no Firebase app, the client still gets the JSON envelope."""
    monkeypatch.setattr(settings, "REPORT_STORAGE", "firebase")
    app.dependency_overrides.pop(get_report_strategy)

    response = await client.post("/api/generate-monthly-report", json={
        "userId": "alice@example.com",
        "periods": [_current_period()],
    })

    assert response.status_code == 500
    assert response.headers["content-type"] == "application/json"
    data = response.json()
    assert data["success"] is False
    assert data["error"]


@pytest.mark.asyncio
async def test_missing_user_checked_before_storage(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "REPORT_STORAGE", "firebase")
    app.dependency_overrides.pop(get_report_strategy)

    response = await client.post("/api/generate-monthly-report", json={
        "periods": [_current_period()],
    })

    assert response.status_code == 400

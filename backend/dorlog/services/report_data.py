"""
Report data assembly.

One entry point, ReportDataService.load(), that every consumer uses:
the dashboard endpoint, the on-the-fly PDF/HTML downloads and the
generate-report strategies. It performs a single diary scan plus the
doctors/medications lookups (concurrently) and derives every aggregate
from that one in-memory result.

The returned ReportData always carries an explicit status:
- "ok":    data fetched and at least one diary entry in the window
- "empty": data fetched, nothing in the window
- "error": the diary fetch failed (aggregates are empty, `error` says why)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from dorlog.config import settings
from dorlog.models import DiaryEntry, Doctor, Medication, QuizKind
from dorlog.services import aggregator
from dorlog.services.aggregator import (
    CrisisDay,
    DiaryAdherence,
    DiaryNote,
    LabelCount,
    MedicationResponseSummary,
    MoodCrisisRate,
    NoData,
    PainPointCount,
    PainSeries,
    PainSummary,
    RescueMedicationUsage,
    SleepPainAnalysis,
)
from dorlog.services.document_filter import DiaryScan, scan_user_diary
from dorlog.services.periods import DateWindow, span, trailing_window, utc_now
from dorlog.services.quiz_extractor import (
    extract_crisis_details,
    extract_morning_check_ins,
    extract_night_check_ins,
    extract_pain_locations,
    extract_pain_readings,
    extract_rescue_medications,
)

logger = logging.getLogger(__name__)


@dataclass
class ReportData:
    user_email: str
    window: DateWindow
    period_count: int
    generated_at: datetime
    status: str = "ok"
    error: Optional[str] = None
    entries: list[DiaryEntry] = field(default_factory=list)
    crisis_count: int = 0
    quiz_counts: dict[QuizKind, int] = field(default_factory=dict)
    days_with_records: int = 0
    pain_points: list[PainPointCount] = field(default_factory=list)
    pain_series: PainSeries = field(default_factory=lambda: aggregator.pain_series([]))
    crisis_episodes: list[CrisisDay] = field(default_factory=list)
    adherence: Optional[DiaryAdherence] = None
    rescue_medications: list[RescueMedicationUsage] = field(default_factory=list)
    crisis_triggers: list[LabelCount] = field(default_factory=list)
    crisis_pain_types: list[LabelCount] = field(default_factory=list)
    medication_responses: list[MedicationResponseSummary] = field(default_factory=list)
    mood_crisis: list[MoodCrisisRate] = field(default_factory=list)
    symptoms: list[LabelCount] = field(default_factory=list)
    sleep_pain: SleepPainAnalysis = field(default_factory=lambda: aggregator.analyze_sleep_pain([]))
    diary_notes: list[DiaryNote] = field(default_factory=list)
    doctors: list[Doctor] = field(default_factory=list)
    medications: list[Medication] = field(default_factory=list)
    observations: str = ""
    ownership_matches: dict[str, int] = field(default_factory=dict)

    @property
    def pain_summary(self) -> Union[PainSummary, NoData]:
        return self.pain_series.summary


def build_report_data(
    user_email: str,
    scan: DiaryScan,
    windows: list[DateWindow],
    now: datetime,
    doctors: Optional[list[Doctor]] = None,
    medications: Optional[list[Medication]] = None,
    top_n: int = aggregator.DEFAULT_TOP_N,
) -> ReportData:
    """Derive every aggregate from one diary scan. Pure, no I/O."""
    doctors = doctors or []
    medications = medications or []
    entries = sorted(scan.entries, key=lambda e: e.entry_date)

    series = aggregator.pain_series(extract_pain_readings(entries))
    rescue = aggregator.rescue_medication_usage(extract_rescue_medications(entries))
    crisis_count = aggregator.count_crises(entries)
    total_days = aggregator.days_with_records(entries)
    crises = extract_crisis_details(entries)
    nights = extract_night_check_ins(entries)
    mornings = extract_morning_check_ins(entries)
    sleep_pain = aggregator.analyze_sleep_pain(aggregator.sleep_pain_pairs(nights, mornings))

    if not scan.ok:
        status = "error"
    elif not entries:
        status = "empty"
    else:
        status = "ok"

    return ReportData(
        user_email=user_email,
        window=span(windows),
        period_count=len(windows),
        generated_at=now,
        status=status,
        error=scan.error,
        entries=entries,
        crisis_count=crisis_count,
        quiz_counts=aggregator.count_quizzes(entries),
        days_with_records=total_days,
        pain_points=aggregator.pain_point_frequency(extract_pain_locations(entries), top_n=top_n),
        pain_series=series,
        crisis_episodes=aggregator.crisis_episodes(entries),
        adherence=aggregator.diary_adherence(scan.latest_entry_date, now) if scan.ok else None,
        rescue_medications=rescue,
        crisis_triggers=aggregator.crisis_trigger_frequency(crises, top_n=top_n),
        crisis_pain_types=aggregator.crisis_pain_type_frequency(crises, top_n=top_n),
        medication_responses=aggregator.medication_response_summary(crises),
        mood_crisis=aggregator.mood_crisis_rates(nights),
        symptoms=aggregator.symptom_frequency(mornings, top_n=top_n),
        sleep_pain=sleep_pain,
        diary_notes=aggregator.diary_notes(mornings, nights),
        doctors=doctors,
        medications=medications,
        observations=aggregator.build_observations(
            total_days=total_days,
            period_count=len(windows),
            crisis_count=crisis_count,
            pain=series.summary,
            medication_count=len(medications),
            rescue_count=len(rescue),
            sleep_pain=sleep_pain,
        ),
        ownership_matches=dict(scan.ownership_matches),
    )


class ReportDataService:
    """Loads everything a report needs for one user.

    Usage:
        service = ReportDataService(db)
        data = await service.load("alice@example.com")              # last 30 days
        data = await service.load(email, windows=[parse_period(p)])  # explicit
    """

    def __init__(self, db):
        self.db = db

    async def load(
        self,
        user_email: str,
        windows: Optional[list[DateWindow]] = None,
        now: Optional[datetime] = None,
    ) -> ReportData:
        now = now or utc_now()
        windows = windows or [trailing_window(now, settings.REPORT_WINDOW_DAYS)]

        scan, doctors, medications = await asyncio.gather(
            scan_user_diary(self.db, user_email, windows),
            self.fetch_doctors(user_email),
            self.fetch_medications(user_email),
        )

        # Resolve each medication's prescribing doctor by id
        doctor_names = {doctor.id: doctor.name for doctor in doctors}
        for medication in medications:
            if medication.doctor_id in doctor_names:
                medication.doctor_name = doctor_names[medication.doctor_id]

        return build_report_data(
            user_email, scan, windows, now,
            doctors=doctors,
            medications=medications,
            top_n=settings.PAIN_POINTS_TOP_N,
        )

    async def fetch_doctors(self, user_email: str) -> list[Doctor]:
        rows = await self._query_by_owner(settings.DOCTORS_COLLECTION, user_email)
        return [Doctor.from_document(doc_id, data) for doc_id, data in rows]

    async def fetch_medications(self, user_email: str) -> list[Medication]:
        rows = await self._query_by_owner(settings.MEDICATIONS_COLLECTION, user_email)
        return [Medication.from_document(doc_id, data) for doc_id, data in rows]

    async def _query_by_owner(self, collection: str, user_email: str) -> list[tuple[str, dict]]:
        """Documents in `collection` with usuarioId == user_email. [] on failure."""
        if self.db is None:
            return []

        def _fetch():
            query = self.db.collection(collection).where("usuarioId", "==", user_email)
            return [(snapshot.id, snapshot.to_dict() or {}) for snapshot in query.stream()]

        try:
            return await asyncio.to_thread(_fetch)
        except Exception as e:
            logger.warning("Failed to fetch %s for %s: %s", collection, user_email, e)
            return []

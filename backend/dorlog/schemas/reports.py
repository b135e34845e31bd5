"""
Pydantic schemas for the report API.

Two families:
- Dashboard responses (snake_case, /api/v1/...)
- Report-generation endpoints kept compatible with the web client, which
  sends and expects camelCase keys ({userId, periods, periodsText} in,
  {success, reportUrl, ...} out)
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PainPointOut(BaseModel):
    point: str
    count: int


class PainReadingOut(BaseModel):
    date: date
    pain: int


class PainSeriesOut(BaseModel):
    """Pain readings plus summary stats.

    status is "no_data" when there are no readings; mean/min/max are then
    null rather than 0.
    """
    status: str
    points: list[PainReadingOut] = []
    mean: Optional[float] = None
    min: Optional[int] = None
    max: Optional[int] = None
    count: int = 0


class DiaryAdherenceOut(BaseModel):
    days_since_last_entry: int
    message: str
    status: str


class CrisisDayOut(BaseModel):
    date: date
    episodes: int


class LabelCountOut(BaseModel):
    label: str
    count: int


class MedicationResponseOut(BaseModel):
    response: str
    count: int
    share: float
    mean_intensity: Optional[float] = None


class MoodCrisisOut(BaseModel):
    mood: str
    days: int
    crisis_days: int
    rate: float


class SleepPainOut(BaseModel):
    """Night sleep quality against next-day pain.

    correlation is null below three pairs; strength is then "insuficiente".
    """
    pairs: int
    correlation: Optional[float] = None
    strength: str
    description: str
    poor_sleep_nights: int = 0
    critical_nights: int = 0


class ReportSummaryResponse(BaseModel):
    """Dashboard payload for the reports screen.

    `status` is ok | empty | error. Clients must show an error state for
    "error" instead of treating the zeroed aggregates as real.
    """
    user_email: str
    status: str
    error: Optional[str] = None
    window_start: datetime
    window_end: datetime
    days_with_records: int
    crisis_count: int
    quiz_counts: dict[str, int]
    pain_points: list[PainPointOut]
    pain_series: PainSeriesOut
    crisis_days: list[CrisisDayOut]
    diary_adherence: Optional[DiaryAdherenceOut] = None
    crisis_triggers: list[LabelCountOut] = []
    crisis_pain_types: list[LabelCountOut] = []
    medication_responses: list[MedicationResponseOut] = []
    mood_crisis: list[MoodCrisisOut] = []
    morning_symptoms: list[LabelCountOut] = []
    sleep_pain: Optional[SleepPainOut] = None
    ownership_matches: dict[str, int] = {}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateReportRequest(_CamelModel):
    """Body for /api/generate-report and /api/generate-monthly-report.

    userId is optional here so the route can answer a missing value with
    the client's expected 400 payload instead of a 422.
    """
    user_id: Optional[str] = None
    periods: list[str] = Field(default_factory=list)
    periods_text: str = ""
    report_month: Optional[str] = None  # "YYYY-MM", alternative to periods


class GenerateReportResponse(_CamelModel):
    success: bool
    report_url: Optional[str] = None
    file_name: Optional[str] = None
    report_id: Optional[str] = None
    execution_time: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    data_status: Optional[str] = None


class ResetRemindersRequest(_CamelModel):
    user_id: Optional[str] = None


class ResetRemindersResponse(_CamelModel):
    success: bool
    user_id: str
    updated_count: int
    timestamp: datetime

"""
Report aggregates.

Pure functions over extracted data. No I/O, no hidden state: the same
input always produces the same output.

Aggregates:
1. Crisis count: number of emergency quizzes
2. Pain points: location frequency, top N, ties broken alphabetically
3. Pain series: readings sorted by day plus mean/min/max, or NO_DATA
4. Quiz counts: per kind, plus days with at least one entry
5. Crisis episodes: emergency quizzes grouped by day
6. Diary adherence: how long since the user last wrote anything
7. Rescue medications: tally of free-text rescue medication notes
8. Crisis patterns: trigger and pain type frequency, medication response
9. Mood and crises: share of night check-ins per mood on a crisis day
10. Sleep and pain: night sleep quality against next-day pain (Pearson r)
11. Diary notes: free-text morning and night answers, by day
"""

import statistics
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from dorlog.models import DiaryEntry, QuizKind, QuizRecord
from dorlog.services.quiz_extractor import (
    CrisisDetail,
    MorningCheckIn,
    NightCheckIn,
    PainLocationHit,
    PainReading,
    RescueMedicationMention,
)

DEFAULT_TOP_N = 8
ADHERENCE_DANGER_DAYS = 7

# Sleep-pain analysis
MIN_SLEEP_PAIR_SAMPLES = 3
POOR_SLEEP_MAX = 3
HIGH_PAIN_MIN = 7


@dataclass(frozen=True)
class PainPointCount:
    point: str
    count: int


@dataclass(frozen=True)
class PainSummary:
    mean: float
    minimum: int
    maximum: int
    count: int


@dataclass(frozen=True)
class NoData:
    """Marker for aggregates computed over zero readings."""
    reason: str = "insufficient data"


NO_DATA = NoData()


@dataclass(frozen=True)
class PainSeries:
    points: tuple[PainReading, ...]
    summary: Union[PainSummary, NoData]

    @property
    def has_data(self) -> bool:
        return isinstance(self.summary, PainSummary)


@dataclass(frozen=True)
class CrisisDay:
    day: date
    quizzes: tuple[QuizRecord, ...]


@dataclass(frozen=True)
class DiaryAdherence:
    days_since_last_entry: int
    message: str
    status: str  # good | warning | danger | empty


@dataclass(frozen=True)
class RescueMedicationUsage:
    medication: str
    frequency: int
    dates: tuple[date, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LabelCount:
    label: str
    count: int


@dataclass(frozen=True)
class MedicationResponseSummary:
    response: str
    count: int
    share: float
    mean_intensity: Optional[float] = None


@dataclass(frozen=True)
class MoodCrisisRate:
    mood: str
    days: int
    crisis_days: int

    @property
    def rate(self) -> float:
        return self.crisis_days / self.days if self.days else 0.0


@dataclass(frozen=True)
class SleepPainPair:
    night: date
    sleep_quality: int
    next_day: date
    pain: int


@dataclass(frozen=True)
class SleepPainAnalysis:
    pairs: tuple[SleepPainPair, ...]
    correlation: Optional[float]
    strength: str  # forte | moderada | fraca | insuficiente
    description: str
    poor_sleep_nights: int = 0
    critical_nights: int = 0

    @property
    def has_data(self) -> bool:
        return self.correlation is not None


@dataclass(frozen=True)
class DiaryNote:
    day: date
    label: str
    text: str


def count_crises(entries: Iterable[DiaryEntry]) -> int:
    """Number of crisis episodes (emergency quizzes) across `entries`."""
    return sum(len(entry.quizzes_of(QuizKind.EMERGENCY)) for entry in entries)


def count_quizzes(entries: Iterable[DiaryEntry]) -> dict[QuizKind, int]:
    counts = {kind: 0 for kind in QuizKind}
    for entry in entries:
        for quiz in entry.quizzes:
            counts[quiz.kind] += 1
    return counts


def days_with_records(entries: Iterable[DiaryEntry]) -> int:
    return len({entry.day for entry in entries})


def pain_point_frequency(
    hits: Iterable[PainLocationHit], top_n: int = DEFAULT_TOP_N,
) -> list[PainPointCount]:
    """Most frequent pain locations.

    Sorted by count descending, then by label ascending so equal counts
    always come out in the same order.
    """
    ranked = label_frequency((hit.location for hit in hits), top_n)
    return [PainPointCount(point=item.label, count=item.count) for item in ranked]


def label_frequency(labels: Iterable[str], top_n: int = DEFAULT_TOP_N) -> list[LabelCount]:
    """Count non-blank labels, most frequent first, ties alphabetical."""
    counts = Counter()
    for label in labels:
        label = label.strip()
        if label:
            counts[label] += 1

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [LabelCount(label=label, count=count) for label, count in ranked[:top_n]]


def summarize_pain(intensities: Iterable[int]) -> Union[PainSummary, NoData]:
    values = list(intensities)
    if not values:
        return NO_DATA
    return PainSummary(
        mean=sum(values) / len(values),
        minimum=min(values),
        maximum=max(values),
        count=len(values),
    )


def pain_series(readings: Iterable[PainReading]) -> PainSeries:
    """Readings in ascending day order (same-day readings kept, in order)."""
    ordered = tuple(sorted(readings, key=lambda reading: reading.day))
    return PainSeries(
        points=ordered,
        summary=summarize_pain(reading.intensity for reading in ordered),
    )


def crisis_episodes(entries: Iterable[DiaryEntry]) -> list[CrisisDay]:
    days = []
    for entry in sorted(entries, key=lambda e: e.entry_date):
        crises = entry.quizzes_of(QuizKind.EMERGENCY)
        if crises:
            days.append(CrisisDay(day=entry.day, quizzes=tuple(crises)))
    return days


def diary_adherence(latest_entry: Optional[datetime], now: datetime) -> DiaryAdherence:
    """Classify how recently the user last filled in the diary."""
    if latest_entry is None:
        return DiaryAdherence(
            days_since_last_entry=0,
            message="Você ainda não fez nenhum registro no Diário",
            status="empty",
        )

    days_since = (now.date() - latest_entry.date()).days
    if days_since <= 0:
        return DiaryAdherence(0, "Você está em dia com os registros no Diário", "good")
    if days_since == 1:
        return DiaryAdherence(1, "Você ainda não fez nenhum registro hoje", "warning")

    return DiaryAdherence(
        days_since_last_entry=days_since,
        message=f"{days_since} dias sem registros",
        status="danger" if days_since > ADHERENCE_DANGER_DAYS else "warning",
    )


def rescue_medication_usage(
    mentions: Iterable[RescueMedicationMention],
) -> list[RescueMedicationUsage]:
    """Group rescue medication notes case-insensitively, most frequent first."""
    grouped: dict[str, list[RescueMedicationMention]] = {}
    for mention in mentions:
        grouped.setdefault(mention.text.casefold(), []).append(mention)

    usage = [
        RescueMedicationUsage(
            medication=group[0].text,
            frequency=len(group),
            dates=tuple(sorted({m.day for m in group})),
        )
        for group in grouped.values()
    ]
    return sorted(usage, key=lambda u: (-u.frequency, u.medication.casefold()))


def crisis_trigger_frequency(
    details: Iterable[CrisisDetail], top_n: int = DEFAULT_TOP_N,
) -> list[LabelCount]:
    return label_frequency((t for d in details for t in d.triggers), top_n)


def crisis_pain_type_frequency(
    details: Iterable[CrisisDetail], top_n: int = DEFAULT_TOP_N,
) -> list[LabelCount]:
    return label_frequency((p for d in details for p in d.pain_types), top_n)


def symptom_frequency(
    mornings: Iterable[MorningCheckIn], top_n: int = DEFAULT_TOP_N,
) -> list[LabelCount]:
    return label_frequency((s for m in mornings for s in m.symptoms), top_n)


def medication_response_summary(
    details: Iterable[CrisisDetail],
) -> list[MedicationResponseSummary]:
    """How rescue medication worked during crises.

    One row per distinct answer, with its share of all answered crises and
    the mean crisis intensity when it was reported. Most frequent first.
    """
    grouped: dict[str, list[CrisisDetail]] = {}
    for detail in details:
        if detail.medication_response:
            grouped.setdefault(detail.medication_response, []).append(detail)

    total = sum(len(group) for group in grouped.values())
    summaries = []
    for response, group in grouped.items():
        intensities = [d.intensity for d in group if d.intensity is not None]
        summaries.append(MedicationResponseSummary(
            response=response,
            count=len(group),
            share=len(group) / total,
            mean_intensity=sum(intensities) / len(intensities) if intensities else None,
        ))
    return sorted(summaries, key=lambda s: (-s.count, s.response))


def mood_crisis_rates(nights: Iterable[NightCheckIn]) -> list[MoodCrisisRate]:
    """For each evening mood, how many of those days also had a crisis."""
    days: Counter = Counter()
    crisis_days: Counter = Counter()
    for night in nights:
        if not night.mood:
            continue
        days[night.mood] += 1
        if night.had_crisis:
            crisis_days[night.mood] += 1

    rates = [MoodCrisisRate(mood, count, crisis_days[mood]) for mood, count in days.items()]
    return sorted(rates, key=lambda r: (-r.days, r.mood))


def sleep_pain_pairs(
    nights: Iterable[NightCheckIn], mornings: Iterable[MorningCheckIn],
) -> list[SleepPainPair]:
    """Pair each night's sleep quality with the pain reported the next day.

    Next-day pain is the morning check-in intensity, or the night one when
    that day has no morning intensity. The first answer of a day wins.
    """
    nights = list(nights)
    sleep_by_day: dict[date, int] = {}
    night_pain: dict[date, int] = {}
    for night in nights:
        if night.sleep_quality is not None:
            sleep_by_day.setdefault(night.day, night.sleep_quality)
        if night.pain is not None:
            night_pain.setdefault(night.day, night.pain)

    morning_pain: dict[date, int] = {}
    for morning in mornings:
        if morning.pain is not None:
            morning_pain.setdefault(morning.day, morning.pain)

    pairs = []
    for day in sorted(sleep_by_day):
        next_day = day + timedelta(days=1)
        pain = morning_pain.get(next_day, night_pain.get(next_day))
        if pain is not None:
            pairs.append(SleepPainPair(day, sleep_by_day[day], next_day, pain))
    return pairs


def analyze_sleep_pain(pairs: Iterable[SleepPainPair]) -> SleepPainAnalysis:
    pairs = tuple(pairs)
    poor = sum(1 for p in pairs if p.sleep_quality <= POOR_SLEEP_MAX)
    critical = sum(
        1 for p in pairs if p.sleep_quality <= POOR_SLEEP_MAX and p.pain >= HIGH_PAIN_MIN
    )

    if len(pairs) < MIN_SLEEP_PAIR_SAMPLES:
        return SleepPainAnalysis(
            pairs, None, "insuficiente", "Dados insuficientes para análise", poor, critical,
        )

    try:
        r = statistics.correlation(
            [p.sleep_quality for p in pairs], [p.pain for p in pairs],
        )
    except statistics.StatisticsError:
        # One of the series is constant
        r = 0.0

    if abs(r) > 0.6:
        strength = "forte"
        description = (
            "Forte correlação negativa: melhor sono acompanha menos dor no dia seguinte"
            if r < 0 else
            "Forte correlação positiva: melhor sono acompanha mais dor no dia seguinte"
        )
    elif abs(r) > 0.3:
        strength = "moderada"
        description = (
            "Correlação moderada: sono de qualidade pode reduzir a dor do dia seguinte"
            if r < 0 else
            "Correlação moderada: existe relação entre qualidade do sono e dor"
        )
    else:
        strength = "fraca"
        description = "Correlação fraca: sono e dor do dia seguinte parecem independentes"

    return SleepPainAnalysis(pairs, r, strength, description, poor, critical)


def diary_notes(
    mornings: Iterable[MorningCheckIn], nights: Iterable[NightCheckIn],
) -> list[DiaryNote]:
    """Free-text and single-choice answers worth showing verbatim, by day."""
    notes = []
    for morning in mornings:
        if morning.wake_feeling:
            notes.append(DiaryNote(morning.day, "Como acordou", morning.wake_feeling))
        if morning.sleep_notes:
            notes.append(DiaryNote(morning.day, "Sono", morning.sleep_notes))
    for night in nights:
        if night.mood:
            notes.append(DiaryNote(night.day, "Humor", night.mood))
        if night.bowel_notes:
            notes.append(DiaryNote(night.day, "Evacuação", night.bowel_notes))
    return sorted(notes, key=lambda n: n.day)


def build_observations(
    total_days: int,
    period_count: int,
    crisis_count: int,
    pain: Union[PainSummary, NoData],
    medication_count: int,
    rescue_count: int,
    sleep_pain: Optional[SleepPainAnalysis] = None,
) -> str:
    """One-paragraph plain-language summary for the report header."""
    parts = [f"Relatório baseado em {total_days} dias de registros entre {period_count} período(s)."]

    if crisis_count > 0:
        parts.append(f"Foram registrados {crisis_count} episódios de crise no período.")
    else:
        parts.append("Nenhum episódio de crise foi registrado no período.")

    if isinstance(pain, PainSummary):
        parts.append(f"A dor média registrada foi de {pain.mean:.1f} em uma escala de 0 a 10.")

    if medication_count > 0:
        parts.append(f"O paciente utiliza {medication_count} medicamento(s) prescritos.")

    if rescue_count > 0:
        parts.append(f"Durante crises, foram utilizados {rescue_count} medicamento(s) de resgate.")

    if sleep_pain is not None and sleep_pain.critical_nights > 0:
        parts.append(
            f"Em {sleep_pain.critical_nights} noite(s) de sono ruim a dor do dia seguinte foi alta."
        )

    return " ".join(parts)

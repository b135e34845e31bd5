"""
Quiz extraction.

Turns filtered DiaryEntry objects into flat lists of semantic tuples that
the aggregator can tally without knowing anything about question indexes:

- PainReading(day, intensity)       one per valid night-quiz intensity
- PainLocationHit(day, location)    one per reported location
- RescueMedicationMention(day, text)
- CrisisDetail                      one per emergency quiz
- NightCheckIn / MorningCheckIn     one per night / morning quiz

Values are read through question_schema, so a malformed answer is dropped
there (and logged at debug level) instead of surfacing as a zero.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Iterator, Optional

from dorlog.models import DiaryEntry, QuizKind, QuizRecord
from dorlog.services.question_schema import read_answer


@dataclass(frozen=True)
class PainReading:
    day: date
    intensity: int
    kind: QuizKind = QuizKind.NIGHT


@dataclass(frozen=True)
class PainLocationHit:
    day: date
    location: str


@dataclass(frozen=True)
class RescueMedicationMention:
    day: date
    text: str


def quizzes_of_kind(
    entries: Iterable[DiaryEntry], kind: QuizKind,
) -> Iterator[tuple[DiaryEntry, QuizRecord]]:
    """Yield (entry, quiz) for every quiz of `kind`, in submission order."""
    for entry in entries:
        for quiz in entry.quizzes:
            if quiz.kind == kind:
                yield entry, quiz


def extract_pain_readings(
    entries: Iterable[DiaryEntry], kind: QuizKind = QuizKind.NIGHT,
) -> list[PainReading]:
    """Pain intensities reported in quizzes of `kind` (night by default)."""
    readings = []
    for entry, quiz in quizzes_of_kind(entries, kind):
        intensity = read_answer(quiz, "pain_intensity")
        if intensity is not None:
            readings.append(PainReading(day=entry.day, intensity=intensity, kind=kind))
    return readings


def extract_pain_locations(entries: Iterable[DiaryEntry]) -> list[PainLocationHit]:
    """Night-quiz pain locations, expanded to one hit per location."""
    hits = []
    for entry, quiz in quizzes_of_kind(entries, QuizKind.NIGHT):
        for location in read_answer(quiz, "pain_locations"):
            hits.append(PainLocationHit(day=entry.day, location=location))
    return hits


def extract_rescue_medications(entries: Iterable[DiaryEntry]) -> list[RescueMedicationMention]:
    """Free-text rescue medication notes from crisis quizzes."""
    mentions = []
    for entry, quiz in quizzes_of_kind(entries, QuizKind.EMERGENCY):
        text = read_answer(quiz, "rescue_medication")
        if text:
            mentions.append(RescueMedicationMention(day=entry.day, text=text))
    return mentions


@dataclass(frozen=True)
class CrisisDetail:
    day: date
    intensity: Optional[int]
    pain_types: tuple[str, ...] = ()
    triggers: tuple[str, ...] = ()
    medication_response: Optional[str] = None


@dataclass(frozen=True)
class NightCheckIn:
    day: date
    pain: Optional[int]
    sleep_quality: Optional[int]
    mood: Optional[str]
    bowel_notes: Optional[str]
    had_crisis: bool = False


@dataclass(frozen=True)
class MorningCheckIn:
    day: date
    wake_feeling: Optional[str]
    pain: Optional[int]
    symptoms: tuple[str, ...] = ()
    sleep_notes: Optional[str] = None


def extract_crisis_details(entries: Iterable[DiaryEntry]) -> list[CrisisDetail]:
    """One CrisisDetail per emergency quiz: intensity, pain type, triggers, medication response."""
    details = []
    for entry, quiz in quizzes_of_kind(entries, QuizKind.EMERGENCY):
        details.append(CrisisDetail(
            day=entry.day,
            intensity=read_answer(quiz, "pain_intensity"),
            pain_types=tuple(read_answer(quiz, "pain_type")),
            triggers=tuple(read_answer(quiz, "triggers")),
            medication_response=read_answer(quiz, "medication_response"),
        ))
    return details


def extract_night_check_ins(entries: Iterable[DiaryEntry]) -> list[NightCheckIn]:
    """Night quizzes with sleep, mood and bowel answers.

    `had_crisis` is set when the same diary day also holds a crisis quiz.
    """
    check_ins = []
    for entry in entries:
        had_crisis = bool(entry.quizzes_of(QuizKind.EMERGENCY))
        for quiz in entry.quizzes_of(QuizKind.NIGHT):
            check_ins.append(NightCheckIn(
                day=entry.day,
                pain=read_answer(quiz, "pain_intensity"),
                sleep_quality=read_answer(quiz, "sleep_quality"),
                mood=read_answer(quiz, "mood"),
                bowel_notes=read_answer(quiz, "bowel_notes"),
                had_crisis=had_crisis,
            ))
    return check_ins


def extract_morning_check_ins(entries: Iterable[DiaryEntry]) -> list[MorningCheckIn]:
    check_ins = []
    for entry, quiz in quizzes_of_kind(entries, QuizKind.MORNING):
        check_ins.append(MorningCheckIn(
            day=entry.day,
            wake_feeling=read_answer(quiz, "wake_feeling"),
            pain=read_answer(quiz, "pain_intensity"),
            symptoms=tuple(read_answer(quiz, "symptoms")),
            sleep_notes=read_answer(quiz, "sleep_notes"),
        ))
    return check_ins

"""
Quiz question schema.

Stored answers are keyed by question index ("1", "2", ...) and the
meaning of an index depends on the quiz kind: "1" is pain intensity in
the night quiz but the wake-up mood in the morning quiz. This table is
the single source of truth for those conventions. Readers ask for a
semantic field ("pain_locations") and get back a value that has already
been checked against the declared type.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from dorlog.models import QuizKind, QuizRecord

logger = logging.getLogger(__name__)


class ValueType(str, Enum):
    SCALE = "scale"                  # Integer 0-10 (EVA scale / slider)
    MULTI_SELECT = "multi_select"    # One string or a list of strings
    SINGLE_SELECT = "single_select"  # One string
    TEXT = "text"                    # Free text


@dataclass(frozen=True)
class QuestionField:
    semantic_name: str
    value_type: ValueType


QUESTION_SCHEMA: dict[tuple[QuizKind, str], QuestionField] = {
    # Morning check-in
    (QuizKind.MORNING, "1"): QuestionField("wake_feeling", ValueType.SINGLE_SELECT),
    (QuizKind.MORNING, "2"): QuestionField("pain_intensity", ValueType.SCALE),
    (QuizKind.MORNING, "3"): QuestionField("symptoms", ValueType.MULTI_SELECT),
    (QuizKind.MORNING, "4"): QuestionField("sleep_notes", ValueType.TEXT),
    # Night check-in
    (QuizKind.NIGHT, "1"): QuestionField("pain_intensity", ValueType.SCALE),
    (QuizKind.NIGHT, "2"): QuestionField("pain_locations", ValueType.MULTI_SELECT),
    (QuizKind.NIGHT, "4"): QuestionField("sleep_quality", ValueType.SCALE),
    (QuizKind.NIGHT, "8"): QuestionField("bowel_notes", ValueType.TEXT),
    (QuizKind.NIGHT, "9"): QuestionField("mood", ValueType.SINGLE_SELECT),
    # Crisis (emergency) check-in
    (QuizKind.EMERGENCY, "1"): QuestionField("pain_intensity", ValueType.SCALE),
    (QuizKind.EMERGENCY, "2"): QuestionField("rescue_medication", ValueType.TEXT),
    (QuizKind.EMERGENCY, "3"): QuestionField("pain_type", ValueType.MULTI_SELECT),
    (QuizKind.EMERGENCY, "5"): QuestionField("triggers", ValueType.MULTI_SELECT),
    (QuizKind.EMERGENCY, "7"): QuestionField("medication_response", ValueType.SINGLE_SELECT),
}

SCALE_MIN = 0
SCALE_MAX = 10

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def question_index_for(kind: QuizKind, semantic_name: str) -> Optional[str]:
    """Reverse lookup: which question index holds `semantic_name` for `kind`."""
    for (schema_kind, index), question in QUESTION_SCHEMA.items():
        if schema_kind == kind and question.semantic_name == semantic_name:
            return index
    return None


def field_for(kind: QuizKind, index: str) -> Optional[QuestionField]:
    return QUESTION_SCHEMA.get((kind, str(index)))


def parse_scale(value: Any) -> Optional[int]:
    """Strict integer parse for scale answers.

    Accepts ints, integral floats and integer strings ("7", " 7 ").
    Rejects booleans, "7.5", "abc" and anything outside 0-10.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        parsed = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not _INTEGER_RE.match(stripped):
            return None
        parsed = int(stripped)
    else:
        return None

    if not SCALE_MIN <= parsed <= SCALE_MAX:
        return None
    return parsed


def normalize_multi_select(value: Any) -> list[str]:
    """Normalise a string-or-list answer into trimmed, non-empty strings."""
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def normalize_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


_NORMALIZERS = {
    ValueType.SCALE: parse_scale,
    ValueType.MULTI_SELECT: normalize_multi_select,
    ValueType.SINGLE_SELECT: normalize_text,
    ValueType.TEXT: normalize_text,
}


def read_answer(quiz: QuizRecord, semantic_name: str) -> Any:
    """Read a semantic field from a quiz, validated against its type.

    Returns None (or [] for multi-select) when the quiz kind has no such
    question, the answer is missing, or the stored value doesn't fit.
    """
    index = question_index_for(quiz.kind, semantic_name)
    if index is None:
        raise KeyError(f"{quiz.kind.value} quiz has no '{semantic_name}' question")

    question = QUESTION_SCHEMA[(quiz.kind, index)]
    empty = [] if question.value_type == ValueType.MULTI_SELECT else None

    if index not in quiz.answers:
        return empty

    raw = quiz.answers[index]
    value = _NORMALIZERS[question.value_type](raw)
    if value is None or value == []:
        logger.debug(
            "Dropping %s answer %r for question %s (%s)",
            quiz.kind.value, raw, index, question.semantic_name,
        )
        return empty
    return value

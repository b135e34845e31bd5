from dorlog.models.diary import (
    DiaryEntry,
    Doctor,
    Medication,
    QuizKind,
    QuizRecord,
)

__all__ = [
    "QuizKind",
    "QuizRecord",
    "DiaryEntry",
    "Doctor",
    "Medication",
]

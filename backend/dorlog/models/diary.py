"""
Domain records read from Firestore.

These mirror the stored documents but with normalised Python types:
- DiaryEntry: one `report_diario` document (one user, one calendar day)
- QuizRecord: one submitted check-in inside a diary entry
- Doctor / Medication: the user's care team and prescriptions

Storage field names are Portuguese (tipo, respostas, usuarioId, ...);
the from_document() constructors are the only place that knows them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


class QuizKind(str, Enum):
    """Quiz categories, valued by the exact strings stored in `tipo`."""
    MORNING = "matinal"
    NIGHT = "noturno"
    EMERGENCY = "emergencial"

    @classmethod
    def parse(cls, value: Any) -> Optional["QuizKind"]:
        """Exact, case-sensitive match against the stored values."""
        for kind in cls:
            if value == kind.value:
                return kind
        return None


@dataclass
class QuizRecord:
    kind: QuizKind
    answers: dict[str, Any] = field(default_factory=dict)
    timestamp: Any = None

    @classmethod
    def from_document(cls, raw: Any) -> Optional["QuizRecord"]:
        """Build from a stored quiz map, or None if it isn't one."""
        if not isinstance(raw, dict):
            return None
        kind = QuizKind.parse(raw.get("tipo"))
        if kind is None:
            return None
        answers = raw.get("respostas")
        if not isinstance(answers, dict):
            answers = {}
        # Answer keys are question indexes; some writers stored them as ints
        return cls(
            kind=kind,
            answers={str(k): v for k, v in answers.items()},
            timestamp=raw.get("timestamp"),
        )


@dataclass
class DiaryEntry:
    """A user's diary for one day, after ownership and date checks."""
    document_id: str
    entry_date: datetime
    quizzes: list[QuizRecord] = field(default_factory=list)

    @property
    def day(self) -> date:
        return self.entry_date.date()

    def quizzes_of(self, kind: QuizKind) -> list[QuizRecord]:
        return [q for q in self.quizzes if q.kind == kind]


def _text(data: dict, *keys: str) -> str:
    """First non-empty value among `keys`, as a stripped string ("" if none).

    Some documents were written by forms that stored numbers (a CRM, a
    phone) as numbers, so everything is coerced to str here.
    """
    for key in keys:
        value = data.get(key)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


@dataclass
class Doctor:
    id: str
    name: str
    specialty: str
    crm: str
    contact: str = ""

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Doctor":
        return cls(
            id=doc_id,
            name=_text(data, "nome") or "Nome não informado",
            specialty=_text(data, "especialidade") or "Especialidade não informada",
            crm=_text(data, "crm") or "CRM não informado",
            contact=_text(data, "contato", "telefone"),
        )


@dataclass
class Medication:
    id: str
    name: str
    dosage: str
    frequency: str
    doctor_id: str = ""
    doctor_name: str = "Médico não especificado"
    notes: str = ""

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Medication":
        return cls(
            id=doc_id,
            name=_text(data, "nome") or "Medicamento não especificado",
            dosage=_text(data, "posologia", "dosagem") or "Posologia não especificada",
            frequency=_text(data, "frequencia") or "Não especificada",
            doctor_id=_text(data, "medicoId"),
            notes=_text(data, "observacoes"),
        )

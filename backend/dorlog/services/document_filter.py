"""
Diary document filter.

`report_diario` has no per-user index we can query on: document ids are
"{email}_{YYYY-MM-DD}", but older writers also (or only) stored the owner
in a `usuarioId` or `email` field. So we scan the whole collection and
decide ownership per document:

    doc.id startswith "{email}_"  OR  usuarioId == email  OR  email == email

All three rules stay accepted. Which one matched is counted per scan and
logged so we can see when the legacy fields stop appearing.

The scan happens ONCE per request; every aggregate is derived from the
resulting in-memory DiaryScan.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Optional

from dorlog.config import settings
from dorlog.models import DiaryEntry, QuizRecord
from dorlog.services.periods import DateWindow

logger = logging.getLogger(__name__)

OWNERSHIP_RULES = ("document_id", "usuarioId", "email")


@dataclass
class DiaryScan:
    """Result of scanning the diary collection for one user.

    `ok` is False when the fetch itself failed. An empty `entries` list
    with ok=True means the user genuinely has no entries in the window.
    """
    ok: bool = True
    error: Optional[str] = None
    entries: list[DiaryEntry] = field(default_factory=list)
    documents_scanned: int = 0
    documents_owned: int = 0
    skipped_unparseable: int = 0
    latest_entry_date: Optional[datetime] = None
    ownership_matches: Counter = field(default_factory=Counter)


def coerce_date(value: Any) -> Optional[datetime]:
    """Convert a stored `data` value into an aware UTC datetime.

    Handles Firestore timestamps (returned as datetime subclasses), protobuf
    or JS-style timestamp objects, plain dates, ISO strings and epoch
    seconds. Returns None rather than raising when nothing fits.
    """
    if value is None or isinstance(value, bool):
        return None

    for accessor in ("to_datetime", "ToDatetime", "toDate"):
        method = getattr(value, accessor, None)
        if callable(method):
            try:
                value = method()
            except Exception:
                return None
            break

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return coerce_date(parsed)
    return None


def match_ownership(doc_id: str, data: dict, email: str) -> Optional[str]:
    """Return the first ownership rule the document satisfies, or None."""
    if not email:
        return None
    if doc_id.startswith(f"{email}_"):
        return "document_id"
    if data.get("usuarioId") == email:
        return "usuarioId"
    if data.get("email") == email:
        return "email"
    return None


def _parse_quizzes(doc_id: str, raw_quizzes: Any) -> list[QuizRecord]:
    if not isinstance(raw_quizzes, list):
        if raw_quizzes is not None:
            logger.debug("Document %s: quizzes is %s, not a list", doc_id, type(raw_quizzes).__name__)
        return []

    quizzes = []
    for raw in raw_quizzes:
        quiz = QuizRecord.from_document(raw)
        if quiz is None:
            # Legacy documents stored bare numeric arrays here
            logger.debug("Document %s: ignoring unrecognised quiz %r", doc_id, raw)
            continue
        quizzes.append(quiz)
    return quizzes


def filter_user_documents(
    documents: Iterable[tuple[str, dict]],
    email: str,
    windows: list[DateWindow],
) -> DiaryScan:
    """Select the user's diary entries that fall inside any of `windows`.

    Args:
        documents: (document_id, data) pairs from the full collection.
        email: The user's email, which is also their id in this collection.
        windows: Inclusive date windows; a document is kept if its date
            lies in at least one of them.
    """
    scan = DiaryScan()

    for doc_id, data in documents:
        scan.documents_scanned += 1
        data = data or {}

        rule = match_ownership(doc_id, data, email)
        if rule is None:
            continue
        scan.documents_owned += 1
        scan.ownership_matches[rule] += 1

        entry_date = coerce_date(data.get("data"))
        if entry_date is None:
            scan.skipped_unparseable += 1
            logger.debug("Document %s: unparseable date %r, skipped", doc_id, data.get("data"))
            continue

        if scan.latest_entry_date is None or entry_date > scan.latest_entry_date:
            scan.latest_entry_date = entry_date

        if not any(window.contains(entry_date) for window in windows):
            continue

        scan.entries.append(DiaryEntry(
            document_id=doc_id,
            entry_date=entry_date,
            quizzes=_parse_quizzes(doc_id, data.get("quizzes")),
        ))

    return scan


async def scan_user_diary(db, email: str, windows: list[DateWindow]) -> DiaryScan:
    """Fetch the full diary collection and filter it for one user.

    Never raises: a missing client or a failed fetch produces
    DiaryScan(ok=False, error=...) with no entries.
    """
    if db is None:
        return DiaryScan(ok=False, error="Firestore is not configured")

    def _fetch() -> list[tuple[str, dict]]:
        return [
            (snapshot.id, snapshot.to_dict())
            for snapshot in db.collection(settings.DIARY_COLLECTION).stream()
        ]

    try:
        documents = await asyncio.to_thread(_fetch)
    except Exception as e:
        logger.error("Failed to fetch %s for %s: %s", settings.DIARY_COLLECTION, email, e)
        return DiaryScan(ok=False, error=f"Failed to fetch diary entries: {e}")

    scan = filter_user_documents(documents, email, windows)
    logger.info(
        "Diary scan for %s: %d documents, %d owned, %d in window, matches=%s",
        email, scan.documents_scanned, scan.documents_owned,
        len(scan.entries), dict(scan.ownership_matches),
    )
    return scan

"""
Daily medication reminder reset.

Each medication document carries a `lembrete` list of {hora, status}
entries; `status` flips to true when the user confirms a dose. Once per
day every status goes back to false and `lastReset` is stamped with the
date, so a second call on the same day is a no-op.
"""

import asyncio
import logging
from datetime import date
from typing import Optional

from dorlog.config import settings

logger = logging.getLogger(__name__)

# Firestore rejects batches with more than 500 writes
MAX_BATCH_WRITES = 500


def should_reset(last_reset: Optional[str], today: date) -> bool:
    """True unless `last_reset` (YYYY-MM-DD) is already today."""
    return not last_reset or last_reset != today.isoformat()


def reset_reminder_list(reminders) -> list:
    """Set status=false on every {hora, status} entry; other items pass through."""
    return [
        {**reminder, "status": False} if isinstance(reminder, dict) else reminder
        for reminder in reminders or []
    ]


class ReminderService:
    """Resets medication reminders for one user, in batches of up to 500 writes."""

    def __init__(self, db):
        self.db = db

    async def reset_all(self, user_id: str, today: date) -> int:
        """Reset reminders on every medication not yet reset today.

        Returns:
            Number of medication documents updated.

        Raises:
            RuntimeError: If Firestore isn't configured.
        """
        if self.db is None:
            raise RuntimeError("Firestore is not configured")

        return await asyncio.to_thread(self._reset_all_sync, user_id, today)

    def _reset_all_sync(self, user_id: str, today: date) -> int:
        collection = self.db.collection(settings.MEDICATIONS_COLLECTION)
        snapshots = list(collection.where("usuarioId", "==", user_id).stream())

        pending = []
        for snapshot in snapshots:
            data = snapshot.to_dict() or {}
            if not should_reset(data.get("lastReset"), today):
                continue
            pending.append((collection.document(snapshot.id), {
                "lembrete": reset_reminder_list(data.get("lembrete")),
                "lastReset": today.isoformat(),
            }))

        for start in range(0, len(pending), MAX_BATCH_WRITES):
            batch = self.db.batch()
            for ref, update in pending[start:start + MAX_BATCH_WRITES]:
                batch.update(ref, update)
            batch.commit()

        logger.info("Reset reminders on %d medication(s) for %s", len(pending), user_id)
        return len(pending)

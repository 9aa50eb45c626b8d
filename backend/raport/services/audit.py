"""
Audit Log - append-only list of human-readable change records.

Newest entries come first. The log lives beside the history stack, not
inside it, so undo and redo never revert it.
"""

from datetime import datetime, timezone
from typing import Tuple
from pydantic import Field
from raport.models.base import DomainModel
from raport.models.history_log import HistoryLogEntry


class AuditLog(DomainModel):
    entries: Tuple[HistoryLogEntry, ...] = Field(default_factory=tuple)

    def record(self, user: str, action: str, details: str,
               timestamp: datetime = None) -> "AuditLog":
        entry = HistoryLogEntry(
            timestamp=timestamp or datetime.now(timezone.utc),
            user=user,
            action=action,
            details=details,
        )
        return AuditLog(entries=(entry,) + self.entries)

    def latest(self):
        return self.entries[0] if self.entries else None

    def __len__(self):
        return len(self.entries)

"""
HistoryLogEntry model - one line of the human-readable audit trail.

Entries are append-only: undo and redo add entries of their own but
never remove or rewrite earlier ones.
"""

from datetime import datetime, timezone
from pydantic import Field
from raport.models.base import DomainModel


class HistoryLogEntry(DomainModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    user: str
    action: str
    details: str = ""

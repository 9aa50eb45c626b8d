"""
History Stack - linear undo/redo over DataSnapshots.

The stack is an ordered tuple of snapshots plus a cursor pointing at the
current one. Pushing after an undo drops everything beyond the cursor
(standard linear undo, not a tree). Every operation returns a new
HistoryStack; at a boundary undo/redo hand back the same instance so the
caller can tell nothing moved.

Writing the matching audit entry is the caller's job (see services.state).
"""

from typing import Tuple
from pydantic import Field, model_validator
from raport.models.base import DomainModel
from raport.models.snapshot import DataSnapshot
from raport.logging_config import get_logger, log_with_context

logger = get_logger("history")


class HistoryStack(DomainModel):
    snapshots: Tuple[DataSnapshot, ...] = Field(..., min_length=1, alias="historyStack")
    cursor: int = Field(0, alias="historyIndex", strict=True)

    @model_validator(mode="after")
    def _cursor_in_range(self):
        if not 0 <= self.cursor < len(self.snapshots):
            raise ValueError(
                f"historyIndex {self.cursor} out of range for {len(self.snapshots)} snapshots")
        return self

    @classmethod
    def start(cls, snapshot: DataSnapshot) -> "HistoryStack":
        return cls(snapshots=(snapshot,), cursor=0)

    def current(self) -> DataSnapshot:
        return self.snapshots[self.cursor]

    def can_undo(self) -> bool:
        return self.cursor > 0

    def can_redo(self) -> bool:
        return self.cursor < len(self.snapshots) - 1

    def push(self, snapshot: DataSnapshot) -> "HistoryStack":
        kept = self.snapshots[:self.cursor + 1]
        discarded = len(self.snapshots) - len(kept)
        pushed = HistoryStack(snapshots=kept + (snapshot,), cursor=len(kept))
        log_with_context(logger, "DEBUG", "Snapshot pushed",
                         extra_data={"cursor": pushed.cursor, "depth": len(pushed.snapshots),
                                     "discarded_redo": discarded})
        return pushed

    def undo(self) -> "HistoryStack":
        if not self.can_undo():
            return self
        log_with_context(logger, "DEBUG", "Undo", extra_data={"cursor": self.cursor - 1})
        return self.model_copy(update={"cursor": self.cursor - 1})

    def redo(self) -> "HistoryStack":
        if not self.can_redo():
            return self
        log_with_context(logger, "DEBUG", "Redo", extra_data={"cursor": self.cursor + 1})
        return self.model_copy(update={"cursor": self.cursor + 1})

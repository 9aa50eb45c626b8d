"""
Application state - the explicit object owned by the top-level control flow.

Bundles the history stack and the audit log, and pairs every structural
change with exactly one audit entry:

- commit(): push the snapshot produced by a mutation, log its action
- undo() / redo(): move the cursor, log "Undo" / "Redo"

At an undo/redo boundary the same state object is returned and nothing
is logged.
"""

from typing import NamedTuple
from raport.models.base import DomainModel
from raport.models.snapshot import DataSnapshot
from raport.services.history import HistoryStack
from raport.services.audit import AuditLog
from raport.logging_config import get_logger, log_with_context

logger = get_logger("history")

SYSTEM_USER = "System"


class Mutation(NamedTuple):
    """Outcome of a successful Mutation Engine call."""
    snapshot: DataSnapshot
    action: str
    details: str


class AppState(DomainModel):
    history: HistoryStack
    audit: AuditLog = AuditLog()

    @classmethod
    def start(cls, snapshot: DataSnapshot) -> "AppState":
        return cls(history=HistoryStack.start(snapshot), audit=AuditLog())

    @property
    def current(self) -> DataSnapshot:
        return self.history.current()


def _actor_name(actor) -> str:
    return getattr(actor, "name", None) or SYSTEM_USER


def commit(state: AppState, actor, mutation: Mutation) -> AppState:
    """Push the mutated snapshot and record its audit entry."""
    history = state.history.push(mutation.snapshot)
    audit = state.audit.record(_actor_name(actor), mutation.action, mutation.details)
    log_with_context(logger, "INFO", f"{mutation.action}: {mutation.details}",
                     context={"user": _actor_name(actor)},
                     extra_data={"cursor": history.cursor, "depth": len(history.snapshots)})
    return AppState(history=history, audit=audit)


def undo(state: AppState, actor) -> AppState:
    if not state.history.can_undo():
        return state
    return AppState(
        history=state.history.undo(),
        audit=state.audit.record(_actor_name(actor), "Undo", "Reverted the last data change."),
    )


def redo(state: AppState, actor) -> AppState:
    if not state.history.can_redo():
        return state
    return AppState(
        history=state.history.redo(),
        audit=state.audit.record(_actor_name(actor), "Redo", "Reapplied a reverted data change."),
    )

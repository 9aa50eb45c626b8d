"""
Persistence Service - saves and restores the application state blob.

The persisted shape is one JSON document:

    {"historyStack": [DataSnapshot, ...],   # non-empty
     "historyIndex": int,                   # 0 <= index < len(historyStack)
     "history": [HistoryLogEntry, ...]}     # audit log, newest first

Loading is all-or-nothing: a blob that fails any check is discarded and
the built-in default state is used instead. The failure is logged, never
raised.
"""

import json
from typing import Tuple
from pydantic import Field, ValidationError
from sqlalchemy.orm import Session

from raport.models.base import DomainModel
from raport.models.snapshot import DataSnapshot
from raport.models.history_log import HistoryLogEntry
from raport.models.app_state import AppStateRecord, DEFAULT_STATE_KEY
from raport.services.history import HistoryStack
from raport.services.audit import AuditLog
from raport.services.state import AppState
from raport.logging_config import get_logger, log_with_context

logger = get_logger("persistence")

DEFAULT_SUBJECTS = (
    "Aqidah", "Bahasa Arab", "Bahasa Indonesia", "Bahasa Inggris", "Fiqih",
    "Hadits", "Matematika", "Nahwu", "Shorof", "Tafsir",
)


class PersistedState(DomainModel):
    """Wire form of AppState; validates the whole blob in one pass."""
    history_stack: Tuple[DataSnapshot, ...] = Field(..., min_length=1)
    history_index: int = Field(..., strict=True)
    history: Tuple[HistoryLogEntry, ...] = Field(default_factory=tuple)


def default_snapshot() -> DataSnapshot:
    return DataSnapshot(subjects=tuple(sorted(DEFAULT_SUBJECTS)))


def default_app_state() -> AppState:
    return AppState.start(default_snapshot())


def dump_app_state(state: AppState) -> str:
    persisted = PersistedState(
        history_stack=state.history.snapshots,
        history_index=state.history.cursor,
        history=state.audit.entries,
    )
    return json.dumps(persisted.to_json_dict())


def load_app_state(blob) -> AppState:
    """
    Rebuild AppState from a persisted blob (str, bytes or already-parsed dict).

    Returns the default state when the blob is missing or invalid.
    """
    if blob is None or blob == "":
        return default_app_state()
    try:
        data = json.loads(blob) if isinstance(blob, (str, bytes)) else blob
        persisted = PersistedState.model_validate(data)
        return AppState(
            history=HistoryStack(snapshots=persisted.history_stack, cursor=persisted.history_index),
            audit=AuditLog(entries=persisted.history),
        )
    except (ValueError, TypeError, ValidationError) as e:
        # json.JSONDecodeError and pydantic's ValidationError are ValueErrors
        log_with_context(logger, "WARNING",
                         "Discarding invalid persisted state, falling back to default",
                         extra_data={"error": str(e)[:500]})
        return default_app_state()


def load_from_db(db: Session, key: str = DEFAULT_STATE_KEY, for_update: bool = False) -> AppState:
    """
    Read the saved state. ``for_update`` locks the row (SELECT ... FOR UPDATE
    where the database supports it) until the session commits.
    """
    record = db.get(AppStateRecord, key, populate_existing=True,
                    with_for_update=True if for_update else None)
    if record is None:
        log_with_context(logger, "INFO", "No saved state found, starting from default",
                         context={"state_key": key})
        return default_app_state()
    return load_app_state(record.payload)


def save_to_db(db: Session, state: AppState, key: str = DEFAULT_STATE_KEY) -> AppStateRecord:
    payload = dump_app_state(state)
    record = db.get(AppStateRecord, key)
    if record is None:
        record = AppStateRecord(key=key, payload=payload)
        db.add(record)
    else:
        record.payload = payload
    db.commit()
    log_with_context(logger, "DEBUG", "State saved",
                     context={"state_key": key},
                     extra_data={"bytes": len(payload), "cursor": state.history.cursor,
                                 "depth": len(state.history.snapshots)})
    return record

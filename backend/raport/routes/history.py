"""
History API routes - undo, redo and the audit log.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from raport.database import get_db
from raport.services.access import AppView
from raport.services import state as app_state
from raport.routes.deps import get_app_state, require_view, history_status, apply_history_move

router = APIRouter()
data_admin = require_view(AppView.DATA_MANAGEMENT)


@router.get("/api/history/status")
def get_status(user=Depends(data_admin), state: app_state.AppState = Depends(get_app_state)):
    return history_status(state)


@router.post("/api/history/undo")
def undo(user=Depends(data_admin), db: Session = Depends(get_db)):
    """Step back one change. At the oldest snapshot this is a no-op."""
    return apply_history_move(db, user, app_state.undo)


@router.post("/api/history/redo")
def redo(user=Depends(data_admin), db: Session = Depends(get_db)):
    """Step forward one change. At the newest snapshot this is a no-op."""
    return apply_history_move(db, user, app_state.redo)


@router.get("/api/history")
def get_audit_log(user=Depends(require_view(AppView.HISTORY)),
                  state: app_state.AppState = Depends(get_app_state)):
    """Audit log, newest first."""
    return {"history": [entry.to_json_dict() for entry in state.audit.entries]}

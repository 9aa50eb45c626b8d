"""
Subject API routes - add, cascading rename and guarded delete.
"""

from typing import Any, Literal
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from raport.database import get_db
from raport.services.access import AppView
from raport.services.mutations import subject_action
from raport.services.state import AppState
from raport.routes.deps import get_app_state, get_current_user, require_view, apply_mutation

router = APIRouter()


@router.get("/api/subjects")
def list_subjects(user=Depends(get_current_user), state: AppState = Depends(get_app_state)):
    return {"subjects": list(state.current.subjects)}


@router.post("/api/subjects/{action}")
def edit_subject(action: Literal["add", "update", "delete"], payload: Any = Body(...),
                 user=Depends(require_view(AppView.DATA_MANAGEMENT)),
                 db: Session = Depends(get_db)):
    """
    - add: {"name": "Fiqih"}
    - update: {"oldName": "Fiqih", "newName": "Fiqh"}
    - delete: {"name": "Fiqih"}
    """
    return apply_mutation(db, user, lambda snapshot: subject_action(snapshot, action, payload))

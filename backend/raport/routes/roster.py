"""
Roster API routes - students, subject teachers and homeroom teachers.

All edits are admin-only (Data Management view) and go through the
Mutation Engine, so each successful call is one undoable step.
"""

from typing import Any, List, Literal
from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from raport.database import get_db
from raport.services.access import AppView
from raport.services.mutations import (
    student_action, teacher_action, homeroom_action, bulk_data_change, paste_students
)
from raport.services.state import AppState
from raport.routes.deps import get_app_state, require_view, apply_mutation

router = APIRouter()

Action = Literal["add", "update", "delete"]
admin_only = require_view(AppView.DATA_MANAGEMENT)


class PasteRequest(BaseModel):
    text: str


def _collection(items) -> list:
    return [item.to_json_dict() for item in items]


@router.get("/api/roster")
def get_roster(user=Depends(admin_only), state: AppState = Depends(get_app_state)):
    snapshot = state.current
    return {
        "students": _collection(snapshot.students),
        "teachers": _collection(snapshot.teachers),
        "homeroom_teachers": _collection(snapshot.homeroom_teachers),
        "subjects": list(snapshot.subjects),
    }


@router.post("/api/students/{action}")
def edit_student(action: Action, payload: Any = Body(...), user=Depends(admin_only),
                 db: Session = Depends(get_db)):
    """add/update take a student record; delete takes {"id": ...} or the id string."""
    return apply_mutation(db, user, lambda snapshot: student_action(snapshot, action, payload))


@router.post("/api/teachers/{action}")
def edit_teacher(action: Action, payload: Any = Body(...), user=Depends(admin_only),
                 db: Session = Depends(get_db)):
    return apply_mutation(db, user, lambda snapshot: teacher_action(snapshot, action, payload))


@router.post("/api/homeroom-teachers/{action}")
def edit_homeroom_teacher(action: Action, payload: Any = Body(...), user=Depends(admin_only),
                          db: Session = Depends(get_db)):
    return apply_mutation(db, user, lambda snapshot: homeroom_action(snapshot, action, payload))


@router.post("/api/bulk/students/paste")
def paste_student_rows(request: PasteRequest, user=Depends(admin_only), db: Session = Depends(get_db)):
    """Append students pasted as `name, registration number, class, L|P` rows."""
    return apply_mutation(db, user, lambda snapshot: paste_students(snapshot, request.text))


@router.post("/api/bulk/{target}")
def replace_collection(target: Literal["students", "teachers", "homeroom"], records: List[Any] = Body(...),
                       user=Depends(admin_only), db: Session = Depends(get_db)):
    """Replace a whole roster collection with an uploaded JSON list."""
    return apply_mutation(db, user, lambda snapshot: bulk_data_change(snapshot, target, records))

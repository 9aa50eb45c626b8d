"""
Grade API routes - grade entry by subject teachers and the grade summary.
"""

from typing import Dict, Literal, Optional, Union
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, StrictInt
from sqlalchemy.orm import Session

from raport.database import get_db
from raport.errors import PermissionDenied
from raport.services.access import AppView, can_grade, visible_classes
from raport.services.ledger import filter_grades
from raport.services.mutations import grades_from_scores, save_grades
from raport.services.state import AppState
from raport.routes.deps import get_app_state, require_view, apply_mutation

router = APIRouter()


class GradeEntryRequest(BaseModel):
    """One grade-entry form: a subject, class and semester plus a score per student."""
    subject: str
    class_name: str = Field(..., alias="class")
    semester: Literal[1, 2]
    scores: Dict[str, Optional[Union[StrictInt, str]]] = Field(
        ..., description="Registration number -> score (blank = not graded yet)")


@router.post("/api/grades")
def enter_grades(request: GradeEntryRequest, user=Depends(require_view(AppView.GRADE_INPUT)),
                 db: Session = Depends(get_db)):
    if not can_grade(user, request.subject):
        raise PermissionDenied(f"{user.name} is not assigned to {request.subject}")

    def build(snapshot):
        grades = grades_from_scores(snapshot, request.scores, request.subject, request.class_name,
                                    request.semester, user.id)
        return save_grades(snapshot, grades, request.subject, request.class_name)

    return apply_mutation(db, user, build)


@router.get("/api/grades")
def grade_summary(
    class_name: Optional[str] = Query(None, alias="class"),
    subject: Optional[str] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=2),
    user=Depends(require_view(AppView.SUMMARY)),
    state: AppState = Depends(get_app_state),
):
    rows = filter_grades(state.current, class_name, subject, semester)
    allowed = set(visible_classes(user, [r["class"] for r in rows]))
    return {"grades": [r for r in rows if r["class"] in allowed]}

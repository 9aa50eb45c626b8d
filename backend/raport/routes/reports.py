"""
Report API routes - class ledger, report cards and dashboard counters.

All of these read the current snapshot only.
"""

from fastapi import APIRouter, Depends, Query

from raport.errors import PermissionDenied
from raport.services.access import AppView, visible_classes
from raport.services.ledger import (
    build_ledger, ledger_table, build_report_card, dashboard_stats
)
from raport.services.state import AppState
from raport.routes.deps import get_app_state, require_view

router = APIRouter()
report_reader = require_view(AppView.REPORT_CARD)


def _check_class(user, class_name: str):
    if not visible_classes(user, [class_name]):
        raise PermissionDenied(f"Class {class_name} is not visible to {user.name}")


@router.get("/api/reports/ledger")
def get_ledger(class_name: str = Query(..., alias="class"),
               semester: int = Query(..., ge=1, le=2),
               user=Depends(report_reader), state: AppState = Depends(get_app_state)):
    _check_class(user, class_name)
    return build_ledger(state.current, class_name, semester).model_dump()


@router.get("/api/reports/ledger/table")
def get_ledger_table(class_name: str = Query(..., alias="class"),
                     semester: int = Query(..., ge=1, le=2),
                     user=Depends(report_reader), state: AppState = Depends(get_app_state)):
    """Ledger as plain columns/rows for spreadsheet or document export."""
    _check_class(user, class_name)
    return ledger_table(build_ledger(state.current, class_name, semester))


@router.get("/api/reports/card/{student_id}")
def get_report_card(student_id: str, semester: int = Query(..., ge=1, le=2),
                    user=Depends(report_reader), state: AppState = Depends(get_app_state)):
    card = build_report_card(state.current, student_id, semester)
    _check_class(user, card.student["class"])
    return card.model_dump()


@router.get("/api/dashboard")
def get_dashboard(user=Depends(require_view(AppView.DASHBOARD)),
                  state: AppState = Depends(get_app_state)):
    return dashboard_stats(state.current)

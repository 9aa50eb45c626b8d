"""
Session API route - role selection.

There is no authentication beyond picking a role: the client calls
POST /api/session to resolve the user and the views it may open, then
sends the same selection as X-Role / X-User-Id / X-Class headers.
"""

from typing import Literal, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from raport.services.access import resolve_user, available_views, visible_classes
from raport.services.ledger import all_classes
from raport.services.state import AppState
from raport.routes.deps import get_app_state, get_current_user
from raport.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")


class SessionRequest(BaseModel):
    role: Literal["admin", "teacher", "homeroom"]
    selection: Optional[str] = None


def _describe(user) -> dict:
    return {
        "user": user.to_json_dict(),
        "views": [v.value for v in available_views(user)],
    }


@router.post("/api/session")
def select_role(request: SessionRequest, state: AppState = Depends(get_app_state)):
    """Resolve a role selection into a user and its available views."""
    user = resolve_user(state.current, request.role, request.selection)
    log_with_context(logger, "INFO", "Role selected: {} ({})".format(user.name, user.role),
                     context={"user_id": user.id})
    return _describe(user)


@router.get("/api/session")
def current_session(user=Depends(get_current_user)):
    return _describe(user)


@router.get("/api/classes")
def list_classes(user=Depends(get_current_user), state: AppState = Depends(get_app_state)):
    return {"classes": visible_classes(user, all_classes(state.current))}

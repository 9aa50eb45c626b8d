"""
Shared FastAPI dependencies for the gradebook routes.

Each request loads the persisted AppState and resolves the acting user from
the role-selection headers. Writes go through apply_mutation /
apply_history_move, which reload the state under a process-wide lock and
a row lock, apply one core operation and save the new state before
releasing, so concurrent writes are applied one after another.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from raport.database import get_db
from raport.errors import NotAuthenticated, PermissionDenied, GradebookError
from raport.services.access import AppView, is_view_allowed, resolve_user
from raport.services.persistence import load_from_db, save_to_db
from raport.models.user import User
from raport.models.snapshot import DataSnapshot
from raport.services.state import AppState, Mutation, commit

_state_lock = threading.Lock()


def get_app_state(db: Session = Depends(get_db)) -> AppState:
    return load_from_db(db)


def get_current_user(
    x_role: Optional[str] = Header(None, description="admin | teacher | homeroom"),
    x_user_id: Optional[str] = Header(None, description="Teacher id when X-Role is teacher"),
    x_class: Optional[str] = Header(None, description="Class when X-Role is homeroom"),
    state: AppState = Depends(get_app_state),
) -> User:
    if not x_role:
        raise NotAuthenticated("Select a role first (X-Role header missing)")
    selection = x_user_id if x_role == "teacher" else x_class
    try:
        return resolve_user(state.current, x_role, selection)
    except GradebookError as e:
        raise NotAuthenticated(e.message)


def require_view(view: AppView):
    """Dependency factory: the acting user must be allowed to open ``view``."""
    def dependency(user=Depends(get_current_user)):
        if not is_view_allowed(view, user):
            raise PermissionDenied(f"{view.value} is not available for role '{user.role}'")
        return user
    return dependency


def history_status(state: AppState) -> dict:
    return {
        "cursor": state.history.cursor,
        "depth": len(state.history.snapshots),
        "can_undo": state.history.can_undo(),
        "can_redo": state.history.can_redo(),
    }


@contextmanager
def locked_state(db: Session):
    """Latest saved state, held exclusively until the block exits."""
    with _state_lock:
        try:
            yield load_from_db(db, for_update=True)
        except Exception:
            db.rollback()
            raise


def apply_mutation(db: Session, user, build: Callable[[DataSnapshot], Mutation]) -> dict:
    """
    Build a mutation from the latest snapshot, commit it to history + audit
    log and persist it. ``build`` raising a GradebookError leaves the saved
    state untouched.
    """
    with locked_state(db) as state:
        mutation = build(state.current)
        new_state = commit(state, user, mutation)
        save_to_db(db, new_state)
    return {
        "action": mutation.action,
        "details": mutation.details,
        **history_status(new_state),
    }


def apply_history_move(db: Session, user, move: Callable) -> dict:
    """Apply undo or redo to the latest state; a boundary move saves nothing."""
    with locked_state(db) as state:
        new_state = move(state, user)
        moved = new_state is not state
        if moved:
            save_to_db(db, new_state)
        else:
            db.rollback()
    return {"moved": moved, **history_status(new_state)}

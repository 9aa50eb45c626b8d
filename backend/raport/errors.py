"""
Domain errors raised by the gradebook core.

Every mutation validates before it builds a new snapshot, so raising one
of these always means nothing was changed. The HTTP layer turns them into
JSON responses using ``status_code``.
"""


class GradebookError(Exception):
    """Base class for user-facing gradebook failures."""
    status_code = 400

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_dict(self) -> dict:
        return {"detail": self.message, "errors": self.errors}


class ValidationConflict(GradebookError):
    """Duplicate subject, duplicate registration number, bad score, ..."""
    status_code = 409


class ReferentialIntegrityError(GradebookError):
    """A subject cannot be removed while teachers or grades still use it."""
    status_code = 409

    def __init__(self, message: str, teachers: list = None, grade_count: int = 0):
        self.teachers = list(teachers or [])
        self.grade_count = grade_count
        super().__init__(message, errors=[
            {"blocked_by": "teachers", "names": self.teachers},
            {"blocked_by": "grades", "count": grade_count},
        ])


class MalformedImportError(GradebookError):
    """
    An import batch was rejected as a whole.

    ``errors`` holds one ``{"line": n, "reason": ...}`` entry per offending
    line (1-based) or record (0-based index for JSON uploads).
    """
    status_code = 422


class EntityNotFound(GradebookError):
    status_code = 404


class PermissionDenied(GradebookError):
    status_code = 403


class NotAuthenticated(GradebookError):
    status_code = 401

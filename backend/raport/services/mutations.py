"""
Mutation Engine - turns editing intents into the next DataSnapshot.

One entry point per entity kind, each taking an action (add | update |
delete) and a payload:

- student_action / teacher_action / homeroom_action: plain CRUD by ``id``
- subject_action: add, cascading rename, guarded delete
- save_grades: upsert merge keyed by (student_id, subject, semester)
- bulk_data_change / paste_students: wholesale roster upload or append

Every function validates first and only then builds a snapshot
(guard-then-commit), so a raised GradebookError always means nothing
changed. A successful call returns a Mutation for services.state.commit().
"""

import uuid
from typing import Iterable, Sequence
from pydantic import Field, ValidationError

from raport.errors import (
    ValidationConflict, ReferentialIntegrityError, MalformedImportError, EntityNotFound
)
from raport.models.base import DomainModel
from raport.models.student import Student
from raport.models.teacher import Teacher, HomeroomTeacher
from raport.models.grade import Grade, MIN_SCORE, MAX_SCORE
from raport.models.snapshot import DataSnapshot
from raport.services.state import Mutation
from raport.services.importing import (
    parse_records, parse_student_lines, find_duplicate_registrations, find_duplicate_ids
)
from raport.logging_config import get_logger, log_with_context

logger = get_logger("mutation")

ACTIONS = ("add", "update", "delete")

BULK_TARGETS = {
    "students": ("students", "Students"),
    "teachers": ("teachers", "Teachers"),
    "homeroom": ("homeroom_teachers", "Homeroom Teachers"),
}


class SubjectRename(DomainModel):
    old_name: str = Field(..., min_length=1)
    new_name: str = Field(..., min_length=1)


def new_id(prefix: str) -> str:
    """System identifier for a freshly added roster record."""
    return f"{prefix}{uuid.uuid4().hex[:12].upper()}"


def _rejected(error, **context):
    log_with_context(logger, "WARNING", "Mutation rejected: {}".format(error.message),
                     context=context, extra_data={"errors": error.errors})
    return error


def _check_action(action: str):
    if action not in ACTIONS:
        raise ValidationConflict(f"Unknown action '{action}' (expected add, update or delete)")


def _coerce(model, payload):
    """Accept either a model instance or a raw dict from the presentation layer."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        reasons = [
            {"field": ".".join(str(p) for p in item.get("loc", ())), "reason": item.get("msg")}
            for item in e.errors()
        ]
        raise _rejected(ValidationConflict(f"Invalid {model.__name__.lower()} data", errors=reasons))


def _payload_id(payload) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        return payload.get("id", "")
    return getattr(payload, "id", "")


def _replace_by_id(items: Sequence, updated) -> tuple:
    return tuple(updated if item.id == updated.id else item for item in items)


def _remove_by_id(items: Sequence, record_id: str) -> tuple:
    return tuple(item for item in items if item.id != record_id)


def _require(record, kind: str, record_id: str):
    if record is None:
        raise _rejected(EntityNotFound(f"{kind} '{record_id}' not found"), id=record_id)
    return record


# ──────────────────────────────────────────────────────────────
# Students
# ──────────────────────────────────────────────────────────────

def _check_registration_free(snapshot: DataSnapshot, student: Student):
    holder = snapshot.find_student_by_registration(student.student_id)
    if holder is not None and holder.id != student.id:
        raise _rejected(ValidationConflict(
            "Registration number '{}' is already used by {}".format(student.student_id, holder.name)),
            student_id=student.student_id)


def student_action(snapshot: DataSnapshot, action: str, payload) -> Mutation:
    _check_action(action)

    if action == "delete":
        student_id = _payload_id(payload)
        student = _require(snapshot.find_student(student_id), "Student", student_id)
        return Mutation(
            snapshot.replace(students=_remove_by_id(snapshot.students, student_id)),
            "Delete Student", f"Deleted student: {student.name}")

    student = _coerce(Student, payload)
    if action == "add":
        student = student.model_copy(update={"id": new_id("S")})
        _check_registration_free(snapshot, student)
        return Mutation(
            snapshot.replace(students=snapshot.students + (student,)),
            "Add Student", f"Added student: {student.name} ({student.student_id})")

    _require(snapshot.find_student(student.id), "Student", student.id)
    _check_registration_free(snapshot, student)
    return Mutation(
        snapshot.replace(students=_replace_by_id(snapshot.students, student)),
        "Update Student", f"Updated student: {student.name}")


# ──────────────────────────────────────────────────────────────
# Teachers and homeroom teachers
# ──────────────────────────────────────────────────────────────

def _unique_subjects(teacher: Teacher) -> Teacher:
    return teacher.model_copy(update={"subjects": tuple(dict.fromkeys(teacher.subjects))})


def teacher_action(snapshot: DataSnapshot, action: str, payload) -> Mutation:
    _check_action(action)

    if action == "delete":
        teacher_id = _payload_id(payload)
        teacher = _require(snapshot.find_teacher(teacher_id), "Teacher", teacher_id)
        return Mutation(
            snapshot.replace(teachers=_remove_by_id(snapshot.teachers, teacher_id)),
            "Delete Teacher", f"Deleted teacher: {teacher.name}")

    teacher = _unique_subjects(_coerce(Teacher, payload))
    if action == "add":
        teacher = teacher.model_copy(update={"id": new_id("T")})
        return Mutation(
            snapshot.replace(teachers=snapshot.teachers + (teacher,)),
            "Add Teacher", f"Added teacher: {teacher.name}")

    _require(snapshot.find_teacher(teacher.id), "Teacher", teacher.id)
    return Mutation(
        snapshot.replace(teachers=_replace_by_id(snapshot.teachers, teacher)),
        "Update Teacher", f"Updated teacher: {teacher.name}")


def homeroom_action(snapshot: DataSnapshot, action: str, payload) -> Mutation:
    _check_action(action)

    if action == "delete":
        hr_id = _payload_id(payload)
        hr = _require(snapshot.find_homeroom_teacher(hr_id), "Homeroom teacher", hr_id)
        return Mutation(
            snapshot.replace(homeroom_teachers=_remove_by_id(snapshot.homeroom_teachers, hr_id)),
            "Delete Homeroom Teacher", f"Deleted homeroom teacher: {hr.name}")

    hr = _coerce(HomeroomTeacher, payload)
    if action == "add":
        hr = hr.model_copy(update={"id": new_id("HR")})
        return Mutation(
            snapshot.replace(homeroom_teachers=snapshot.homeroom_teachers + (hr,)),
            "Add Homeroom Teacher", f"Added homeroom teacher: {hr.name} ({hr.class_name})")

    _require(snapshot.find_homeroom_teacher(hr.id), "Homeroom teacher", hr.id)
    return Mutation(
        snapshot.replace(homeroom_teachers=_replace_by_id(snapshot.homeroom_teachers, hr)),
        "Update Homeroom Teacher", f"Updated homeroom teacher: {hr.name}")


# ──────────────────────────────────────────────────────────────
# Subjects
# ──────────────────────────────────────────────────────────────

def _subject_name(payload) -> str:
    if isinstance(payload, dict):
        payload = payload.get("name", "")
    name = (payload or "").strip() if isinstance(payload, str) else ""
    if not name:
        raise _rejected(ValidationConflict("Subject name must not be empty"))
    return name


def subject_usage(snapshot: DataSnapshot, subject: str):
    """Names of teachers assigned to ``subject`` and the number of grades recorded for it."""
    teachers = [t.name for t in snapshot.teachers if subject in t.subjects]
    grade_count = sum(1 for g in snapshot.grades if g.subject == subject)
    return teachers, grade_count


def subject_action(snapshot: DataSnapshot, action: str, payload) -> Mutation:
    """
    Subject edits.

    - add: payload is the name; rejected if it already exists
    - update: payload is {oldName, newName}; renames the subject in the
      subject list, every teacher's subjects and every grade, in one snapshot
    - delete: payload is the name; blocked while any teacher or grade uses it
    """
    _check_action(action)

    if action == "add":
        name = _subject_name(payload)
        if name in snapshot.subjects:
            raise _rejected(ValidationConflict(f'Subject "{name}" already exists'), subject=name)
        return Mutation(
            snapshot.replace(subjects=sorted(snapshot.subjects + (name,))),
            "Add Subject", f"Added subject: {name}")

    if action == "update":
        rename = _coerce(SubjectRename, payload)
        old_name, new_name = rename.old_name, rename.new_name
        if old_name not in snapshot.subjects:
            raise _rejected(EntityNotFound(f'Subject "{old_name}" not found'), subject=old_name)
        if new_name in snapshot.subjects and new_name != old_name:
            raise _rejected(ValidationConflict(f'Subject "{new_name}" already exists'), subject=new_name)

        subjects = sorted(new_name if s == old_name else s for s in snapshot.subjects)
        teachers = tuple(
            t.model_copy(update={"subjects": tuple(dict.fromkeys(
                new_name if s == old_name else s for s in t.subjects))})
            if old_name in t.subjects else t
            for t in snapshot.teachers
        )
        grades = tuple(
            g.model_copy(update={"subject": new_name}) if g.subject == old_name else g
            for g in snapshot.grades
        )
        return Mutation(
            snapshot.replace(subjects=subjects, teachers=teachers, grades=grades),
            "Rename Subject", f'Renamed subject "{old_name}" to "{new_name}"')

    name = _subject_name(payload)
    if name not in snapshot.subjects:
        raise _rejected(EntityNotFound(f'Subject "{name}" not found'), subject=name)
    teachers, grade_count = subject_usage(snapshot, name)
    if teachers or grade_count:
        raise _rejected(ReferentialIntegrityError(
            f'Cannot delete "{name}" because it is used by teachers or recorded grades',
            teachers=teachers, grade_count=grade_count), subject=name)
    return Mutation(
        snapshot.replace(subjects=tuple(s for s in snapshot.subjects if s != name)),
        "Delete Subject", f"Deleted subject: {name}")


# ──────────────────────────────────────────────────────────────
# Grades
# ──────────────────────────────────────────────────────────────

def grades_from_scores(snapshot: DataSnapshot, scores: dict, subject: str, class_name: str,
                       semester: int, teacher_id: str) -> list:
    """
    Build Grade records from a ``{registration number: score}`` entry form.

    Blank entries are skipped (not graded yet). A score that is not a whole
    number between 0 and 100, or that belongs to someone who is not a
    student of ``class_name``, rejects the whole form.
    """
    enrolled = {s.student_id for s in snapshot.students if s.class_name == class_name}
    grades = []
    errors = []
    for student_id, raw in scores.items():
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        if student_id not in enrolled:
            errors.append({"student_id": student_id,
                           "reason": f"'{student_id}' is not a student of class {class_name}"})
            continue
        # bool is an int subclass; true/false are not scores
        if isinstance(raw, bool):
            errors.append({"student_id": student_id, "reason": f"Score '{raw}' is not a whole number"})
            continue
        try:
            score = int(str(raw).strip())
        except ValueError:
            errors.append({"student_id": student_id, "reason": f"Score '{raw}' is not a whole number"})
            continue
        if not MIN_SCORE <= score <= MAX_SCORE:
            errors.append({"student_id": student_id,
                           "reason": f"Score {score} is outside {MIN_SCORE}-{MAX_SCORE}"})
            continue
        grades.append({
            "studentId": student_id,
            "subject": subject,
            "teacherId": teacher_id,
            "class": class_name,
            "semester": semester,
            "score": score,
        })
    if errors:
        raise _rejected(ValidationConflict("Some scores are invalid", errors=errors),
                        subject=subject, class_name=class_name)
    return [_coerce(Grade, g) for g in grades]


def save_grades(snapshot: DataSnapshot, grades: Iterable, subject: str, class_name: str) -> Mutation:
    """
    Upsert ``grades`` into the grade collection.

    A grade whose (student_id, subject, semester) already exists replaces
    it in place; new keys are appended. Grades for other subjects, classes
    and semesters are kept. ``subject`` and ``class_name`` only describe the
    save in the audit log.
    """
    incoming = [_coerce(Grade, g) for g in grades]
    if not incoming:
        raise _rejected(ValidationConflict("No grades to save"), subject=subject, class_name=class_name)

    merged = list(snapshot.grades)
    positions = {g.key: i for i, g in enumerate(merged)}
    for grade in incoming:
        index = positions.get(grade.key)
        if index is not None:
            merged[index] = grade
        else:
            positions[grade.key] = len(merged)
            merged.append(grade)

    return Mutation(
        snapshot.replace(grades=merged),
        "Save Grades", f"Saved {len(incoming)} grades for {subject} in class {class_name}.")


# ──────────────────────────────────────────────────────────────
# Bulk roster changes
# ──────────────────────────────────────────────────────────────

def bulk_data_change(snapshot: DataSnapshot, target: str, records: Sequence,
                     append: bool = False, line_numbers: Sequence[int] = None,
                     source: str = "upload") -> Mutation:
    """
    Replace (or with ``append=True`` extend) the student, teacher or
    homeroom collection with externally supplied records.

    The batch is all-or-nothing: any invalid record, a repeated explicit
    id, or a student whose registration number collides with another
    rejects everything.
    """
    if target not in BULK_TARGETS:
        raise _rejected(MalformedImportError(
            f"Unknown bulk target '{target}'",
            errors=[{"line": 0, "reason": "Target must be one of: " + ", ".join(BULK_TARGETS)}]))
    collection, label = BULK_TARGETS[target]

    parsed = parse_records(target, records, line_numbers)
    if line_numbers is None:
        line_numbers = range(1, len(parsed) + 1)

    existing = getattr(snapshot, collection) if append else ()
    duplicate_ids = find_duplicate_ids(parsed, line_numbers, existing)
    if duplicate_ids:
        raise _rejected(MalformedImportError(
            "Import rejected: {} duplicate id(s)".format(len(duplicate_ids)), errors=duplicate_ids))

    if target == "students":
        duplicates = find_duplicate_registrations(parsed, line_numbers, existing)
        if duplicates:
            raise _rejected(MalformedImportError(
                "Import rejected: {} duplicate registration number(s)".format(len(duplicates)),
                errors=duplicates))

    prefix = {"students": "S", "teachers": "T", "homeroom": "HR"}[target]
    parsed = [r if r.id else r.model_copy(update={"id": new_id(prefix)}) for r in parsed]
    if target == "teachers":
        parsed = [_unique_subjects(t) for t in parsed]

    if append:
        updated = tuple(getattr(snapshot, collection)) + tuple(parsed)
        action, details = f"Import {label}", f"Imported {len(parsed)} {label.lower()} from {source}"
    else:
        updated = tuple(parsed)
        action, details = f"Upload {label}", f"Replaced {label.lower()} with {len(parsed)} records from {source}"

    return Mutation(snapshot.replace(**{collection: updated}), action, details)


def paste_students(snapshot: DataSnapshot, text: str) -> Mutation:
    """Append students pasted as text rows (see importing.parse_student_lines)."""
    rows = parse_student_lines(text)
    line_numbers = [line_no for line_no, _ in rows]
    records = [record for _, record in rows]
    return bulk_data_change(snapshot, "students", records, append=True,
                            line_numbers=line_numbers, source="pasted text")

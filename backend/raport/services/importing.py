"""
Import parsing - turns pasted text and uploaded JSON into roster records.

Two entry points feed the Mutation Engine's bulk operation:

1. parse_student_lines(): multi-line paste, one student per line as
   ``name, registration number, class, gender`` (tab or comma separated)
2. parse_records(): an uploaded JSON list of Student / Teacher /
   HomeroomTeacher records

Both are all-or-nothing: every bad line is collected and the batch is
rejected with a MalformedImportError listing them, so the caller can fix
the whole paste in one go.
"""

from typing import List, Sequence, Tuple
from pydantic import ValidationError

from raport.errors import MalformedImportError
from raport.models.student import Student, MALE, FEMALE
from raport.models.teacher import Teacher, HomeroomTeacher
from raport.logging_config import get_logger, log_with_context

logger = get_logger("mutation")

STUDENT_COLUMNS = ("name", "registration number", "class", "gender")

GENDER_CODES = {
    "l": MALE,
    "p": FEMALE,
    MALE.lower(): MALE,
    FEMALE.lower(): FEMALE,
}

RECORD_TYPES = {
    "students": Student,
    "teachers": Teacher,
    "homeroom": HomeroomTeacher,
}


def parse_gender(code: str) -> str:
    """Map a gender code (L/P or the full label) to the stored label."""
    gender = GENDER_CODES.get((code or "").strip().lower())
    if gender is None:
        raise ValueError(f"Invalid gender code '{code}' (expected L or P)")
    return gender


def _split_line(line: str) -> List[str]:
    separator = "\t" if "\t" in line else ","
    return [part.strip() for part in line.split(separator)]


def parse_student_lines(text: str) -> List[Tuple[int, dict]]:
    """
    Parse pasted student rows.

    Returns (line_number, record) pairs; blank lines are skipped but still
    counted so reported line numbers match what the user pasted.

    Raises:
        MalformedImportError: if any line has the wrong column count, an
            empty field or an unknown gender code
    """
    parsed = []
    errors = []

    for line_no, line in enumerate((text or "").splitlines(), 1):
        if not line.strip():
            continue

        fields = _split_line(line)
        if len(fields) != len(STUDENT_COLUMNS):
            errors.append({
                "line": line_no,
                "reason": "Expected {} columns ({}), got {}".format(
                    len(STUDENT_COLUMNS), ", ".join(STUDENT_COLUMNS), len(fields)),
            })
            continue

        name, registration, class_name, gender_code = fields
        missing = [label for label, value in zip(STUDENT_COLUMNS, fields) if not value]
        if missing:
            errors.append({"line": line_no, "reason": "Missing {}".format(", ".join(missing))})
            continue

        try:
            gender = parse_gender(gender_code)
        except ValueError as e:
            errors.append({"line": line_no, "reason": str(e)})
            continue

        parsed.append((line_no, {
            "name": name,
            "studentId": registration,
            "class": class_name,
            "gender": gender,
        }))

    if errors:
        log_with_context(logger, "WARNING",
                         "Rejected pasted student batch: {} bad lines".format(len(errors)),
                         extra_data={"errors": errors})
        raise MalformedImportError(
            "Import rejected: {} line(s) could not be parsed".format(len(errors)), errors=errors)

    if not parsed:
        raise MalformedImportError("Import rejected: no student rows found",
                                   errors=[{"line": 0, "reason": "Empty input"}])
    return parsed


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "record"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def parse_records(kind: str, records: Sequence, line_numbers: Sequence[int] = None) -> list:
    """
    Validate raw records for a bulk upload of ``kind``
    (students | teachers | homeroom).

    Raises:
        MalformedImportError: listing every record that failed validation
    """
    model = RECORD_TYPES.get(kind)
    if model is None:
        raise MalformedImportError(f"Unknown import target '{kind}'",
                                   errors=[{"line": 0, "reason": f"Unknown target {kind}"}])
    if not isinstance(records, (list, tuple)):
        raise MalformedImportError("Import rejected: expected a list of records",
                                   errors=[{"line": 0, "reason": "Not a list"}])

    line_numbers = list(line_numbers) if line_numbers is not None else list(range(1, len(records) + 1))
    parsed = []
    errors = []
    for line_no, raw in zip(line_numbers, records):
        if isinstance(raw, model):
            parsed.append(raw)
            continue
        try:
            parsed.append(model.model_validate(raw))
        except ValidationError as e:
            errors.append({"line": line_no, "reason": _describe_validation_error(e)})

    if errors:
        log_with_context(logger, "WARNING",
                         "Rejected {} upload: {} invalid records".format(kind, len(errors)),
                         extra_data={"errors": errors})
        raise MalformedImportError(
            "Import rejected: {} record(s) are invalid".format(len(errors)), errors=errors)
    return parsed


def find_duplicate_registrations(students: Sequence[Student], line_numbers: Sequence[int],
                                 existing: Sequence[Student] = ()) -> List[dict]:
    """
    Report registration numbers that collide with ``existing`` students or
    repeat inside the batch itself. One error entry per offending record.
    """
    taken = {s.student_id: s for s in existing}
    seen = {}
    errors = []
    for line_no, student in zip(line_numbers, students):
        number = student.student_id
        if number in taken:
            errors.append({
                "line": line_no,
                "reason": "Duplicate registration number '{}' (already used by {})".format(
                    number, taken[number].name),
            })
        elif number in seen:
            errors.append({
                "line": line_no,
                "reason": "Duplicate registration number '{}' (also on line {})".format(
                    number, seen[number]),
            })
        else:
            seen[number] = line_no
    return errors


def find_duplicate_ids(records: Sequence, line_numbers: Sequence[int], existing: Sequence = ()) -> List[dict]:
    """
    Report explicit record ids that collide with ``existing`` records or
    repeat inside the batch. Records without an id get a fresh one later
    and are never reported.
    """
    taken = {r.id for r in existing}
    seen = {}
    errors = []
    for line_no, record in zip(line_numbers, records):
        if not record.id:
            continue
        if record.id in taken:
            errors.append({"line": line_no, "reason": f"Duplicate id '{record.id}' (already in use)"})
        elif record.id in seen:
            errors.append({"line": line_no,
                           "reason": f"Duplicate id '{record.id}' (also on line {seen[record.id]})"})
        else:
            seen[record.id] = line_no
    return errors

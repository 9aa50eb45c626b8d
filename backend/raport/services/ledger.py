"""
Ledger Service - read-only report data derived from the current snapshot.

Builds the class ledger (leger nilai) for one class and semester:
1. Students of the class, grades of the class and semester
2. Columns = subjects that actually have grades there, sorted
3. Per student: score per column (missing counts as 0), total, average
   over the column count, predicate band
4. Rank by total, highest first; equal totals keep roster order
5. Rows are returned in name order; rank is only an attribute

Also derives the individual report card, the grade summary, dashboard
counters and the plain table handed to export collaborators. Nothing
here mutates its input.
"""

import time
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field

from raport.config import school_info
from raport.errors import EntityNotFound
from raport.models.snapshot import DataSnapshot
from raport.logging_config import get_logger, log_with_context

logger = get_logger("ledger")

# Lower bounds, evaluated top-down; first match wins
PREDICATE_BANDS: Tuple[Tuple[float, str], ...] = (
    (85, "Mumtaz"),
    (75, "Jayyid Jiddan"),
    (65, "Jayyid"),
    (50, "Hasan"),
    (40, "Maqbul"),
)
LOWEST_PREDICATE = "Rosib"


class LedgerRow(BaseModel):
    student_id: str
    student_name: str
    scores: Dict[str, int]
    total: int
    average: float
    rank: int
    predicate: str


class Ledger(BaseModel):
    class_name: str
    semester: int
    subjects: List[str]
    rows: List[LedgerRow]


class ReportCardRow(BaseModel):
    subject: str
    score: int
    teacher: str


class ReportCard(BaseModel):
    school: dict
    student: dict
    homeroom_teacher: Optional[str] = None
    semester: int
    rows: List[ReportCardRow] = Field(default_factory=list)
    total: int
    average: float
    predicate: str
    rank: Optional[int] = None
    class_size: int


def predicate_for(average: float) -> str:
    for lower_bound, label in PREDICATE_BANDS:
        if average >= lower_bound:
            return label
    return LOWEST_PREDICATE


def build_ledger(snapshot: DataSnapshot, class_name: str, semester: int) -> Ledger:
    start_time = time.time()

    students = [s for s in snapshot.students if s.class_name == class_name]
    grades = [g for g in snapshot.grades if g.class_name == class_name and g.semester == semester]
    subjects = sorted({g.subject for g in grades})

    scores_by_student: Dict[str, Dict[str, int]] = {}
    for grade in grades:
        scores_by_student.setdefault(grade.student_id, {})[grade.subject] = grade.score

    entries = []
    for student in students:
        recorded = scores_by_student.get(student.student_id, {})
        scores = {subject: recorded.get(subject, 0) for subject in subjects}
        total = sum(scores.values())
        # Missing subjects count as 0 but still add to the divisor
        average = total / len(subjects) if recorded and subjects else 0.0
        entries.append({
            "student": student,
            "scores": scores,
            "total": total,
            "average": average,
        })

    # sorted() is stable, so equal totals keep roster order
    ranked = sorted(entries, key=lambda e: e["total"], reverse=True)
    for rank, entry in enumerate(ranked, 1):
        entry["rank"] = rank

    rows = [
        LedgerRow(
            student_id=e["student"].student_id,
            student_name=e["student"].name,
            scores=e["scores"],
            total=e["total"],
            average=e["average"],
            rank=e["rank"],
            predicate=predicate_for(e["average"]),
        )
        for e in sorted(entries, key=lambda e: e["student"].name)
    ]

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Ledger generated: {} students, {} subjects for class {} semester {}".format(
            len(rows), len(subjects), class_name, semester),
        context={"class": class_name, "semester": semester},
        extra_data={"duration_ms": round(duration_ms, 2)})

    return Ledger(class_name=class_name, semester=semester, subjects=subjects, rows=rows)


def ledger_table(ledger: Ledger) -> dict:
    """Flatten a ledger into header + rows for spreadsheet/document export."""
    columns = ["No", "Registration No", "Name"] + ledger.subjects + ["Total", "Average", "Rank", "Predicate"]
    rows = []
    for number, row in enumerate(ledger.rows, 1):
        rows.append(
            [number, row.student_id, row.student_name]
            + [row.scores[subject] for subject in ledger.subjects]
            + [row.total, round(row.average, 2), row.rank, row.predicate]
        )
    return {
        "title": f"Ledger {ledger.class_name} - Semester {ledger.semester}",
        "columns": columns,
        "rows": rows,
    }


def build_report_card(snapshot: DataSnapshot, student_id: str, semester: int) -> ReportCard:
    """
    Individual report card for one student (by registration number).

    Unlike the ledger, the average here is over the grades the student
    actually has. The rank is taken from the class ledger.
    """
    student = snapshot.find_student_by_registration(student_id)
    if student is None:
        raise EntityNotFound(f"Student '{student_id}' not found")

    teacher_names = {t.id: t.name for t in snapshot.teachers}
    grades = sorted(
        (g for g in snapshot.grades if g.student_id == student_id and g.semester == semester),
        key=lambda g: g.subject,
    )
    rows = [
        ReportCardRow(subject=g.subject, score=g.score, teacher=teacher_names.get(g.teacher_id, "N/A"))
        for g in grades
    ]
    total = sum(g.score for g in grades)
    average = total / len(grades) if grades else 0.0

    ledger = build_ledger(snapshot, student.class_name, semester)
    rank = next((r.rank for r in ledger.rows if r.student_id == student_id), None)
    homeroom = next((h.name for h in snapshot.homeroom_teachers if h.class_name == student.class_name), None)

    return ReportCard(
        school=school_info(),
        student=student.to_json_dict(),
        homeroom_teacher=homeroom,
        semester=semester,
        rows=rows,
        total=total,
        average=round(average, 2),
        predicate=predicate_for(average),
        rank=rank,
        class_size=len(ledger.rows),
    )


def all_classes(snapshot: DataSnapshot) -> List[str]:
    return sorted({s.class_name for s in snapshot.students} | {h.class_name for h in snapshot.homeroom_teachers})


def filter_grades(snapshot: DataSnapshot, class_name: str = None, subject: str = None,
                  semester: int = None) -> List[dict]:
    """Grade summary rows matching the given filters, ordered by student name."""
    students = {s.student_id: s for s in snapshot.students}
    teachers = {t.id: t.name for t in snapshot.teachers}

    matched = [
        g for g in snapshot.grades
        if (class_name is None or g.class_name == class_name)
        and (subject is None or g.subject == subject)
        and (semester is None or g.semester == semester)
    ]

    def student_name(grade):
        student = students.get(grade.student_id)
        return student.name if student else ""

    return [
        {
            "student_id": g.student_id,
            "student_name": student_name(g) or "N/A",
            "class": g.class_name,
            "subject": g.subject,
            "semester": g.semester,
            "score": g.score,
            "teacher": teachers.get(g.teacher_id, "N/A"),
        }
        for g in sorted(matched, key=student_name)
    ]


def dashboard_stats(snapshot: DataSnapshot) -> dict:
    grades = snapshot.grades
    average = round(sum(g.score for g in grades) / len(grades), 2) if grades else None
    return {
        "total_students": len(snapshot.students),
        "total_teachers": len(snapshot.teachers),
        "average_grade": average,
        "grades_entered": len(grades),
    }

import pytest
from pydantic import ValidationError

from raport.errors import (
    ValidationConflict, ReferentialIntegrityError, MalformedImportError, EntityNotFound
)
from raport.models import Grade, Student
from raport.services.mutations import (
    student_action, teacher_action, homeroom_action, subject_action,
    save_grades, grades_from_scores, bulk_data_change, paste_students
)
from tests.conftest import make_grade


# ── Students ──────────────────────────────────────────────────

def test_add_student_assigns_fresh_id(school):
    result = student_action(school, "add", {
        "studentId": "S010", "name": "Dewi", "class": "7B", "gender": "Perempuan"})
    added = result.snapshot.students[-1]
    assert added.id.startswith("S") and added.id not in {s.id for s in school.students}
    assert added.student_id == "S010"
    assert result.action == "Add Student"
    assert len(school.students) == 3


def test_add_student_rejects_duplicate_registration_number(school):
    with pytest.raises(ValidationConflict) as exc:
        student_action(school, "add", {"studentId": "S001", "name": "X", "class": "7A"})
    assert "S001" in exc.value.message


def test_update_student_replaces_matching_record(school):
    updated = school.students[0].model_copy(update={"name": "Ahmad Fauzi"})
    result = student_action(school, "update", updated)
    assert result.snapshot.find_student("S1").name == "Ahmad Fauzi"
    assert result.snapshot.students[1] == school.students[1]


def test_update_unknown_student_is_not_found(school):
    with pytest.raises(EntityNotFound):
        student_action(school, "update", {"id": "nope", "studentId": "S999", "name": "X", "class": "7A"})


def test_delete_student(school):
    result = student_action(school, "delete", "S2")
    assert [s.id for s in result.snapshot.students] == ["S1", "S3"]
    assert "Budi" in result.details


def test_unknown_action_is_rejected(school):
    with pytest.raises(ValidationConflict):
        student_action(school, "archive", "S1")


# ── Teachers / homeroom ───────────────────────────────────────

def test_teacher_crud(school):
    added = teacher_action(school, "add", {"name": "Ustadz Ali", "subjects": ["Tafsir", "Tafsir"]})
    teacher = added.snapshot.teachers[-1]
    assert teacher.subjects == ("Tafsir",)
    assert teacher.role == "teacher"

    renamed = teacher_action(added.snapshot, "update", teacher.model_copy(update={"name": "Ustadz Ali S."}))
    assert renamed.snapshot.find_teacher(teacher.id).name == "Ustadz Ali S."

    removed = teacher_action(renamed.snapshot, "delete", {"id": teacher.id})
    assert removed.snapshot.find_teacher(teacher.id) is None


def test_homeroom_crud(school):
    added = homeroom_action(school, "add", {"name": "Ustadzah Fatimah", "class": "7B"})
    hr = added.snapshot.homeroom_teachers[-1]
    assert hr.class_name == "7B"

    removed = homeroom_action(added.snapshot, "delete", hr.id)
    assert removed.snapshot.homeroom_teachers == school.homeroom_teachers


def test_invalid_record_reports_fields(school):
    with pytest.raises(ValidationConflict) as exc:
        homeroom_action(school, "add", {"name": "No Class"})
    assert any("class" in e["field"] for e in exc.value.errors)


# ── Subjects ──────────────────────────────────────────────────

def test_add_subject_keeps_list_sorted(school):
    result = subject_action(school, "add", "Aqidah")
    assert result.snapshot.subjects == ("Aqidah", "Fiqih", "Matematika", "Nahwu", "Tafsir")


def test_add_existing_subject_conflicts(school):
    with pytest.raises(ValidationConflict):
        subject_action(school, "add", {"name": "Fiqih"})


def test_rename_subject_cascades_to_teachers_and_grades(school):
    result = subject_action(school, "update", {"oldName": "Fiqih", "newName": "Fiqh"})
    snapshot = result.snapshot

    assert snapshot.subjects == ("Fiqh", "Matematika", "Nahwu", "Tafsir")
    teacher = snapshot.find_teacher("T1")
    assert "Fiqh" in teacher.subjects and "Fiqih" not in teacher.subjects
    assert teacher.subjects == ("Fiqh", "Nahwu")
    assert {g.subject for g in snapshot.grades} == {"Fiqh"}
    assert snapshot.find_teacher("T2") == school.find_teacher("T2")
    assert result.action == "Rename Subject"


def test_rename_onto_existing_subject_conflicts(school):
    with pytest.raises(ValidationConflict):
        subject_action(school, "update", {"oldName": "Fiqih", "newName": "Nahwu"})


def test_rename_unknown_subject_is_not_found(school):
    with pytest.raises(EntityNotFound):
        subject_action(school, "update", {"oldName": "Sejarah", "newName": "Tarikh"})


def test_delete_subject_used_by_grades_is_blocked(school):
    with pytest.raises(ReferentialIntegrityError) as exc:
        subject_action(school, "delete", "Fiqih")
    assert exc.value.teachers == ["Ustadz Hasan"]
    assert exc.value.grade_count == 2


def test_delete_subject_used_only_in_grades_is_blocked(school):
    snapshot = school.replace(teachers=())
    with pytest.raises(ReferentialIntegrityError) as exc:
        subject_action(snapshot, "delete", "Fiqih")
    assert exc.value.teachers == []
    assert exc.value.grade_count == 2
    # input snapshot is untouched
    assert snapshot.subjects == school.subjects
    assert snapshot.grades == school.grades


def test_delete_unused_subject(school):
    result = subject_action(school, "delete", "Tafsir")
    assert "Tafsir" not in result.snapshot.subjects


# ── Grades ────────────────────────────────────────────────────

def test_save_grades_upserts_by_composite_key(school):
    first = save_grades(school, [make_grade("S001", "Matematika", 60)], "Matematika", "7A")
    second = save_grades(first.snapshot, [make_grade("S001", "Matematika", 95)], "Matematika", "7A")

    matching = [g for g in second.snapshot.grades
                if g.key == ("S001", "Matematika", 1)]
    assert len(matching) == 1
    assert matching[0].score == 95
    # grades for other subjects are kept
    assert [g for g in second.snapshot.grades if g.subject == "Fiqih"] == list(school.grades)


def test_save_grades_replaces_in_place(school):
    result = save_grades(school, [make_grade("S001", "Fiqih", 91)], "Fiqih", "7A")
    assert result.snapshot.grades[0].score == 91
    assert result.snapshot.grades[1] == school.grades[1]
    assert result.details == "Saved 1 grades for Fiqih in class 7A."


def test_semester_is_part_of_the_key(school):
    result = save_grades(school, [make_grade("S001", "Fiqih", 50, semester=2)], "Fiqih", "7A")
    assert len(result.snapshot.grades) == 3


def test_save_grades_rejects_out_of_range_score(school):
    with pytest.raises(ValidationConflict):
        save_grades(school, [{"studentId": "S001", "subject": "Fiqih", "teacherId": "T1",
                              "class": "7A", "semester": 1, "score": 101}], "Fiqih", "7A")


def test_save_empty_grade_list_is_rejected(school):
    with pytest.raises(ValidationConflict):
        save_grades(school, [], "Fiqih", "7A")


def test_grades_from_scores_skips_blanks_and_rejects_garbage(school):
    grades = grades_from_scores(school, {"S001": "85", "S002": "", "S003": None}, "Nahwu", "7A", 1, "T1")
    assert grades == [Grade(student_id="S001", subject="Nahwu", teacher_id="T1",
                            class_name="7A", semester=1, score=85)]

    with pytest.raises(ValidationConflict) as exc:
        grades_from_scores(school, {"S001": "abc", "S002": -5}, "Nahwu", "7A", 1, "T1")
    assert [e["student_id"] for e in exc.value.errors] == ["S001", "S002"]


def test_grades_from_scores_rejects_booleans(school):
    with pytest.raises(ValidationConflict) as exc:
        grades_from_scores(school, {"S001": True, "S002": 80}, "Nahwu", "7A", 1, "T1")
    assert exc.value.errors == [{"student_id": "S001", "reason": "Score 'True' is not a whole number"}]


def test_grade_score_must_be_a_real_integer():
    with pytest.raises(ValidationError):
        make_grade("S001", "Nahwu", True)


def test_grades_from_scores_only_accepts_students_of_the_class(school):
    with pytest.raises(ValidationConflict) as exc:
        grades_from_scores(school, {"S001": 90, "S003": 75, "ZZZ": 50}, "Nahwu", "7A", 1, "T1")
    assert [e["student_id"] for e in exc.value.errors] == ["S003", "ZZZ"]
    assert "not a student of class 7A" in exc.value.errors[1]["reason"]


# ── Bulk ──────────────────────────────────────────────────────

def test_bulk_replace_students(school):
    result = bulk_data_change(school, "students", [
        {"studentId": "N1", "name": "Eka", "class": "8A", "gender": "Perempuan"},
        {"id": "KEEP", "studentId": "N2", "name": "Fajar", "class": "8A"},
    ])
    students = result.snapshot.students
    assert [s.student_id for s in students] == ["N1", "N2"]
    assert students[0].id and students[1].id == "KEEP"
    assert result.snapshot.grades == school.grades
    assert result.action == "Upload Students"


def test_bulk_replace_is_all_or_nothing(school):
    with pytest.raises(MalformedImportError) as exc:
        bulk_data_change(school, "students", [
            {"studentId": "N1", "name": "Eka", "class": "8A"},
            {"studentId": "N2", "name": "Fajar", "class": "8A", "gender": "X"},
        ])
    assert [e["line"] for e in exc.value.errors] == [2]


def test_bulk_replace_rejects_duplicates_within_batch(school):
    with pytest.raises(MalformedImportError) as exc:
        bulk_data_change(school, "students", [
            {"studentId": "N1", "name": "Eka", "class": "8A"},
            {"studentId": "N1", "name": "Fajar", "class": "8A"},
        ])
    assert exc.value.errors[0]["line"] == 2
    assert "N1" in exc.value.errors[0]["reason"]


def test_bulk_replace_teachers_and_homeroom(school):
    teachers = bulk_data_change(school, "teachers", [{"name": "Ustadz Ali", "subjects": ["Tafsir"]}])
    assert [t.name for t in teachers.snapshot.teachers] == ["Ustadz Ali"]

    homeroom = bulk_data_change(school, "homeroom", [{"name": "Ustadz Umar", "class": "8A"}])
    assert homeroom.snapshot.homeroom_teachers[0].class_name == "8A"


def test_bulk_unknown_target(school):
    with pytest.raises(MalformedImportError):
        bulk_data_change(school, "subjects", ["Fiqih"])


def test_paste_students_appends(school):
    result = paste_students(school, "Dewi, S010, 7B, P\nEko\tS011\t7B\tL\n")
    assert [s.student_id for s in result.snapshot.students] == ["S001", "S002", "S003", "S010", "S011"]
    assert result.snapshot.students[-1].gender == "Laki-laki"
    assert result.action == "Import Students"


def test_paste_with_one_bad_line_adds_nobody(school):
    text = "\n".join([
        "Dewi, S010, 7B, P",
        "Eko, S011, 7B, L",
        "Fajar, S012, 7B, X",
        "Gita, S013, 7B, P",
        "Hana, S014, 7B, P",
        "Irfan, S015, 7B, L",
    ])
    with pytest.raises(MalformedImportError) as exc:
        paste_students(school, text)
    assert exc.value.errors == [{"line": 3, "reason": "Invalid gender code 'X' (expected L or P)"}]


def test_paste_rejects_registration_numbers_already_taken(school):
    with pytest.raises(MalformedImportError) as exc:
        paste_students(school, "Dewi, S010, 7B, P\nAhmad, S001, 7A, L")
    assert exc.value.errors[0]["line"] == 2
    assert "S001" in exc.value.errors[0]["reason"]
    assert "Ahmad" in exc.value.errors[0]["reason"]


def test_bulk_upload_rejects_repeated_ids(school):
    with pytest.raises(MalformedImportError) as exc:
        bulk_data_change(school, "teachers", [
            {"id": "T9", "name": "Ustadz Ali", "subjects": ["Tafsir"]},
            {"name": "Ustadz Bakr", "subjects": ["Nahwu"]},
            {"id": "T9", "name": "Ustadz Idris", "subjects": ["Fiqih"]},
        ])
    assert exc.value.errors == [{"line": 3, "reason": "Duplicate id 'T9' (also on line 1)"}]


def test_appended_records_cannot_reuse_existing_ids(school):
    with pytest.raises(MalformedImportError) as exc:
        bulk_data_change(school, "students", [
            {"id": "S1", "studentId": "S020", "name": "Fajar", "class": "7B"}], append=True)
    assert exc.value.errors[0]["reason"] == "Duplicate id 'S1' (already in use)"
    assert exc.value.errors[0]["line"] == 1

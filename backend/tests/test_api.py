from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ADMIN = {"X-Role": "admin"}


def teacher_headers(teacher_id):
    return {"X-Role": "teacher", "X-User-Id": teacher_id}


def add_teacher(client, name, subjects):
    client.post("/api/teachers/add", json={"name": name, "subjects": subjects}, headers=ADMIN)
    roster = client.get("/api/roster", headers=ADMIN).json()
    return next(t for t in roster["teachers"] if t["name"] == name)


def seed_class(client):
    resp = client.post("/api/bulk/students/paste", headers=ADMIN, json={
        "text": "Ahmad, A01, 7A, L\nBudi, B01, 7A, L\nCitra, C01, 7B, P"})
    assert resp.status_code == 200
    client.post("/api/homeroom-teachers/add", headers=ADMIN,
                json={"name": "Ustadz Umar", "class": "7A"})
    return add_teacher(client, "Ustadz Hasan", ["Matematika", "Fiqih"])


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert "X-Request-ID" in client.get("/health").headers


def test_requests_without_role_are_rejected(client):
    resp = client.get("/api/roster")
    assert resp.status_code == 401


def test_session_lists_views(client):
    resp = client.post("/api/session", json={"role": "admin"})
    assert resp.status_code == 200
    assert "Data Management" in resp.json()["views"]


def test_teacher_cannot_manage_data(client):
    teacher = seed_class(client)
    resp = client.post("/api/subjects/add", json={"name": "Tarikh"},
                       headers=teacher_headers(teacher["id"]))
    assert resp.status_code == 403


def test_grade_entry_ledger_and_report_card(client):
    teacher = seed_class(client)
    headers = teacher_headers(teacher["id"])

    resp = client.post("/api/grades", headers=headers, json={
        "subject": "Matematika", "class": "7A", "semester": 1,
        "scores": {"A01": 90, "B01": "70"}})
    assert resp.status_code == 200, resp.json()
    client.post("/api/grades", headers=headers, json={
        "subject": "Fiqih", "class": "7A", "semester": 1,
        "scores": {"A01": 80, "B01": 60}})

    ledger = client.get("/api/reports/ledger", headers=ADMIN,
                        params={"class": "7A", "semester": 1}).json()
    assert ledger["subjects"] == ["Fiqih", "Matematika"]
    assert [(r["student_name"], r["total"], r["rank"], r["predicate"]) for r in ledger["rows"]] == [
        ("Ahmad", 170, 1, "Mumtaz"), ("Budi", 130, 2, "Jayyid")]

    table = client.get("/api/reports/ledger/table", headers=ADMIN,
                       params={"class": "7A", "semester": 1}).json()
    assert table["rows"][1][:3] == [2, "B01", "Budi"]

    card = client.get("/api/reports/card/B01", headers={"X-Role": "homeroom", "X-Class": "7A"},
                      params={"semester": 1}).json()
    assert card["homeroom_teacher"] == "Ustadz Umar"
    assert card["rank"] == 2


def test_teacher_cannot_grade_unassigned_subject(client):
    teacher = seed_class(client)
    resp = client.post("/api/grades", headers=teacher_headers(teacher["id"]), json={
        "subject": "Tafsir", "class": "7A", "semester": 1, "scores": {"A01": 90}})
    assert resp.status_code == 403


def test_out_of_range_score_is_rejected_without_change(client):
    teacher = seed_class(client)
    resp = client.post("/api/grades", headers=teacher_headers(teacher["id"]), json={
        "subject": "Matematika", "class": "7A", "semester": 1, "scores": {"A01": 101}})
    assert resp.status_code == 409
    assert resp.json()["errors"][0]["student_id"] == "A01"
    assert client.get("/api/dashboard", headers=ADMIN).json()["grades_entered"] == 0


def test_homeroom_cannot_read_other_class(client):
    seed_class(client)
    resp = client.get("/api/reports/ledger", headers={"X-Role": "homeroom", "X-Class": "7A"},
                      params={"class": "7B", "semester": 1})
    assert resp.status_code == 403


def test_subject_rename_and_blocked_delete(client):
    teacher = seed_class(client)
    client.post("/api/grades", headers=teacher_headers(teacher["id"]), json={
        "subject": "Fiqih", "class": "7A", "semester": 1, "scores": {"A01": 80}})

    resp = client.post("/api/subjects/update", headers=ADMIN,
                       json={"oldName": "Fiqih", "newName": "Fiqh"})
    assert resp.status_code == 200
    roster = client.get("/api/roster", headers=ADMIN).json()
    assert "Fiqh" in roster["subjects"] and "Fiqih" not in roster["subjects"]
    assert "Fiqh" in roster["teachers"][0]["subjects"]
    grades = client.get("/api/grades", headers=ADMIN).json()["grades"]
    assert [g["subject"] for g in grades] == ["Fiqh"]

    resp = client.post("/api/subjects/delete", headers=ADMIN, json={"name": "Fiqh"})
    assert resp.status_code == 409
    assert resp.json()["errors"][1] == {"blocked_by": "grades", "count": 1}


def test_undo_redo_and_audit_log(client):
    client.post("/api/subjects/add", headers=ADMIN, json={"name": "Tarikh"})
    assert "Tarikh" in client.get("/api/subjects", headers=ADMIN).json()["subjects"]

    resp = client.post("/api/history/undo", headers=ADMIN).json()
    assert resp["moved"] is True
    assert resp["can_redo"] is True
    assert "Tarikh" not in client.get("/api/subjects", headers=ADMIN).json()["subjects"]

    # at the start of history undo is a no-op
    assert client.post("/api/history/undo", headers=ADMIN).json()["moved"] is False

    client.post("/api/history/redo", headers=ADMIN)
    assert "Tarikh" in client.get("/api/subjects", headers=ADMIN).json()["subjects"]

    log = client.get("/api/history", headers=ADMIN).json()["history"]
    assert [e["action"] for e in log] == ["Redo", "Undo", "Add Subject"]
    assert log[0]["user"] == "Administrator"


def test_malformed_paste_reports_lines(client):
    resp = client.post("/api/bulk/students/paste", headers=ADMIN, json={
        "text": "Ahmad, A01, 7A, L\nBudi, B01, 7A"})
    assert resp.status_code == 422
    assert resp.json()["errors"][0]["line"] == 2
    assert client.get("/api/roster", headers=ADMIN).json()["students"] == []


def test_bulk_upload_replaces_collection(client):
    seed_class(client)
    resp = client.post("/api/bulk/students", headers=ADMIN, json=[
        {"studentId": "N1", "name": "Eka", "class": "8A", "gender": "Perempuan"}])
    assert resp.status_code == 200
    students = client.get("/api/roster", headers=ADMIN).json()["students"]
    assert [s["studentId"] for s in students] == ["N1"]


def test_boolean_score_is_rejected(client):
    teacher = seed_class(client)
    resp = client.post("/api/grades", headers=teacher_headers(teacher["id"]), json={
        "subject": "Matematika", "class": "7A", "semester": 1, "scores": {"A01": True}})
    assert resp.status_code == 422
    assert client.get("/api/grades", headers=ADMIN).json()["grades"] == []


def test_scores_for_students_outside_the_class_are_rejected(client):
    teacher = seed_class(client)
    resp = client.post("/api/grades", headers=teacher_headers(teacher["id"]), json={
        "subject": "Matematika", "class": "7A", "semester": 1,
        "scores": {"A01": 90, "C01": 70, "ZZZ": 50}})
    assert resp.status_code == 409
    assert [e["student_id"] for e in resp.json()["errors"]] == ["C01", "ZZZ"]
    assert client.get("/api/grades", headers=ADMIN).json()["grades"] == []


def test_concurrent_writes_are_all_kept(tmp_path):
    from fastapi.testclient import TestClient
    from raport.main import app
    from raport.database import Base, get_db

    engine = create_engine(f"sqlite:///{tmp_path / 'raport.db'}",
                           connect_args={"check_same_thread": False, "timeout": 30})
    Base.metadata.create_all(bind=engine)
    FileSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def file_db():
        db = FileSession()
        try:
            yield db
        finally:
            db.close()

    def add_subject(name):
        return client.post("/api/subjects/add", json={"name": name}, headers=ADMIN).status_code

    app.dependency_overrides[get_db] = file_db
    try:
        with TestClient(app) as client:
            names = ["Subject {:02d}".format(i) for i in range(20)]
            with ThreadPoolExecutor(max_workers=10) as pool:
                codes = list(pool.map(add_subject, names))
            assert codes == [200] * 20

            subjects = client.get("/api/subjects", headers=ADMIN).json()["subjects"]
            assert set(names) <= set(subjects)
            assert client.get("/api/history/status", headers=ADMIN).json()["depth"] == 21
            assert len(client.get("/api/history", headers=ADMIN).json()["history"]) == 20
    finally:
        app.dependency_overrides.clear()
        engine.dispose()

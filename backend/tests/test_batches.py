"""차수 생성/조회/수정/삭제와 수강 인원 캐시 보정을 검증하는 자동화 테스트입니다."""

import re
from datetime import date

from app.models.batch import Batch
from app.models.enrollment import Enrollment
from app.models.session import BatchSession
from tests.conftest import auth_headers, make_batch


def _enroll(db, batch, student, status="active"):
    db.add(Enrollment(student_id=student.user_id, course_id=batch.course_id, batch_id=batch.batch_id, status=status))
    db.commit()


def test_create_batch_generates_code_and_hex_id(client, seed_users, seed_course):
    headers = auth_headers(client, "admin001")
    resp = client.post(
        "/api/batches",
        json={
            "course_id": seed_course.course_id,
            "batch_name": "FSWD 2026 봄",
            "capacity": 25,
            "start_date": "2026-03-01",
            "end_date": "2026-06-30",
        },
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert re.fullmatch(r"[0-9a-f]{24}", data["batch_id"])
    assert re.fullmatch(r"FSWD-\d{6}", data["batch_code"])
    assert data["status"] == "Upcoming"
    assert data["enrolled_students"] == 0
    assert data["session_count"] == 0


def test_create_individual_batch_forces_capacity_one(client, seed_users, seed_course):
    headers = auth_headers(client, "admin001")
    resp = client.post(
        "/api/batches",
        json={"course_id": seed_course.course_id, "batch_name": "1:1", "batch_type": "individual", "capacity": 10},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["capacity"] == 1


def test_create_batch_rejects_inverted_dates_and_duplicate_code(client, seed_users, seed_course, seed_batch):
    headers = auth_headers(client, "admin001")
    inverted = client.post(
        "/api/batches",
        json={
            "course_id": seed_course.course_id,
            "batch_name": "bad",
            "start_date": "2026-06-30",
            "end_date": "2026-03-01",
        },
        headers=headers,
    )
    assert inverted.status_code == 400
    assert inverted.json()["code"] == "validation_error"

    duplicate = client.post(
        "/api/batches",
        json={"course_id": seed_course.course_id, "batch_name": "dup", "batch_code": seed_batch.batch_code},
        headers=headers,
    )
    assert duplicate.status_code == 400


def test_create_batch_requires_admin(client, seed_users, seed_course):
    headers = auth_headers(client, "inst001")
    resp = client.post(
        "/api/batches",
        json={"course_id": seed_course.course_id, "batch_name": "nope"},
        headers=headers,
    )
    assert resp.status_code == 403


def test_create_batch_unknown_course_is_404(client, seed_users):
    headers = auth_headers(client, "admin001")
    resp = client.post("/api/batches", json={"course_id": 999, "batch_name": "x"}, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_list_batches_paginates_and_filters(client, db, seed_users, seed_course):
    for index in range(3):
        make_batch(db, seed_course, seed_users["admin"], batch_name=f"B{index}", start_date=date(2025, 1, 1 + index))
    make_batch(db, seed_course, seed_users["admin"], batch_name="cancelled", status="Cancelled")
    headers = auth_headers(client, "stud001")

    first = client.get("/api/batches?page=1&page_size=2", headers=headers)
    assert first.status_code == 200
    body = first.json()
    assert body["total_count"] == 4
    assert body["page"] == 1 and body["page_size"] == 2
    assert len(body["items"]) == 2

    cancelled = client.get("/api/batches?status=Cancelled", headers=headers).json()
    assert [item["batch_name"] for item in cancelled["items"]] == ["cancelled"]


def test_get_batch_reconciles_enrolled_students(client, db, seed_users, seed_batch):
    _enroll(db, seed_batch, seed_users["student"])
    _enroll(db, seed_batch, seed_users["student2"], status="cancelled")
    seed_batch.enrolled_students = 7
    db.commit()

    resp = client.get(f"/api/batches/{seed_batch.batch_id}", headers=auth_headers(client, "admin001"))
    assert resp.status_code == 200
    assert resp.json()["enrolled_students"] == 1

    db.expire_all()
    assert db.get(Batch, seed_batch.batch_id).enrolled_students == 1


def test_update_capacity_below_occupancy_rejected(client, db, seed_users, seed_batch):
    _enroll(db, seed_batch, seed_users["student"])
    _enroll(db, seed_batch, seed_users["student2"])
    headers = auth_headers(client, "admin001")

    shrink = client.put(f"/api/batches/{seed_batch.batch_id}", json={"capacity": 1}, headers=headers)
    assert shrink.status_code == 409
    assert shrink.json()["code"] == "capacity_exceeded"

    to_individual = client.put(f"/api/batches/{seed_batch.batch_id}", json={"batch_type": "individual"}, headers=headers)
    assert to_individual.status_code == 409

    grow = client.put(f"/api/batches/{seed_batch.batch_id}", json={"capacity": 10}, headers=headers)
    assert grow.status_code == 200
    assert grow.json()["capacity"] == 10
    assert grow.json()["enrolled_students"] == 2


def test_update_dates_must_cover_existing_sessions(client, db, seed_users, seed_batch):
    db.add(BatchSession(batch_id=seed_batch.batch_id, session_date=date(2025, 11, 5), start_time="10:00", end_time="11:00"))
    db.commit()
    headers = auth_headers(client, "admin001")

    resp = client.put(f"/api/batches/{seed_batch.batch_id}", json={"end_date": "2025-10-31"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "out_of_range"

    ok = client.put(f"/api/batches/{seed_batch.batch_id}", json={"end_date": "2025-11-30"}, headers=headers)
    assert ok.status_code == 200
    assert ok.json()["end_date"] == "2025-11-30"
    assert ok.json()["session_count"] == 1


def test_assign_instructor_requires_instructor_role(client, seed_users, seed_batch):
    headers = auth_headers(client, "admin001")
    bad = client.put(
        f"/api/batches/{seed_batch.batch_id}/instructor",
        json={"instructor_id": seed_users["student"].user_id},
        headers=headers,
    )
    assert bad.status_code == 404

    good = client.put(
        f"/api/batches/{seed_batch.batch_id}/instructor",
        json={"instructor_id": seed_users["instructor2"].user_id},
        headers=headers,
    )
    assert good.status_code == 200
    assert good.json()["assigned_instructor"]["name"] == "Instructor 2"


def test_delete_batch_blocked_while_enrollments_exist(client, db, seed_users, seed_batch, seed_course):
    headers = auth_headers(client, "admin001")
    _enroll(db, seed_batch, seed_users["student"], status="cancelled")
    blocked = client.delete(f"/api/batches/{seed_batch.batch_id}", headers=headers)
    assert blocked.status_code == 400

    empty = make_batch(db, seed_course, seed_users["admin"], batch_name="empty")
    db.add(BatchSession(batch_id=empty.batch_id, session_date=date(2025, 2, 1), start_time="09:00", end_time="10:00"))
    db.commit()
    resp = client.delete(f"/api/batches/{empty.batch_id}", headers=headers)
    assert resp.status_code == 200

    db.expire_all()
    assert db.get(Batch, empty.batch_id) is None
    assert db.query(BatchSession).filter(BatchSession.batch_id == empty.batch_id).count() == 0


def test_missing_batch_returns_typed_404(client, seed_users):
    resp = client.get("/api/batches/ffffffffffffffffffffffff", headers=auth_headers(client, "admin001"))
    assert resp.status_code == 404
    assert resp.json() == {
        "detail": "차수를 찾을 수 없습니다.",
        "code": "not_found",
        "batch_id": "ffffffffffffffffffffffff",
    }

"""수강생 배정/취소/이동과 정원 불변식, 낙관적 동시성 재시도를 검증하는 자동화 테스트입니다."""

import pytest
from sqlalchemy.orm.exc import StaleDataError

from app.models.batch import Batch
from app.models.enrollment import Enrollment
from app.services.capacity_guard import effective_capacity, ensure_seat_available, validate_capacity_change
from app.utils.concurrency import run_with_optimistic_retry
from app.utils.errors import CapacityExceeded, ConcurrencyConflict, ValidationError
from tests.conftest import auth_headers, make_batch


def _students_url(batch):
    return f"/api/batches/{batch.batch_id}/students"


def _enrolled(db, batch_id):
    db.expire_all()
    return db.get(Batch, batch_id).enrolled_students


def test_effective_capacity():
    assert effective_capacity("individual", 30) == 1
    assert effective_capacity("group", 30) == 30
    assert effective_capacity("group", None) == 0


def test_ensure_seat_available():
    group = Batch(batch_id="g" * 24, batch_type="group", capacity=2)
    ensure_seat_available(group, 1)
    with pytest.raises(CapacityExceeded) as exc_info:
        ensure_seat_available(group, 2)
    assert exc_info.value.context == {"batch_id": "g" * 24, "capacity": 2, "occupancy": 2}

    individual = Batch(batch_id="i" * 24, batch_type="individual", capacity=5)
    ensure_seat_available(individual, 0)
    with pytest.raises(CapacityExceeded):
        ensure_seat_available(individual, 1)


def test_validate_capacity_change():
    assert validate_capacity_change("group", 10, 3) == 10
    assert validate_capacity_change("individual", 10, 1) == 1
    with pytest.raises(CapacityExceeded):
        validate_capacity_change("group", 2, 3)
    with pytest.raises(CapacityExceeded):
        validate_capacity_change("individual", None, 2)
    with pytest.raises(ValidationError):
        validate_capacity_change("group", 0, 0)
    with pytest.raises(ValidationError):
        validate_capacity_change("cohort", 5, 0)


def test_group_batch_fills_then_rejects(client, db, seed_users, seed_batch):
    headers = auth_headers(client, "admin001")
    url = _students_url(seed_batch)

    for key in ("student", "student2"):
        resp = client.post(url, json={"student_id": seed_users[key].user_id}, headers=headers)
        assert resp.status_code == 201, resp.text
        assert resp.json()["status"] == "active"

    full = client.post(url, json={"student_id": seed_users["student3"].user_id}, headers=headers)
    assert full.status_code == 409
    body = full.json()
    assert body["code"] == "capacity_exceeded"
    assert body["capacity"] == 2 and body["occupancy"] == 2

    assert _enrolled(db, seed_batch.batch_id) == 2
    assert db.query(Enrollment).filter(Enrollment.batch_id == seed_batch.batch_id).count() == 2


def test_individual_batch_accepts_single_student(client, db, seed_users, seed_course):
    batch = make_batch(db, seed_course, seed_users["admin"], batch_type="individual", capacity=1)
    headers = auth_headers(client, "admin001")
    url = _students_url(batch)

    assert client.post(url, json={"student_id": seed_users["student"].user_id}, headers=headers).status_code == 201
    second = client.post(url, json={"student_id": seed_users["student2"].user_id}, headers=headers)
    assert second.status_code == 409
    assert second.json()["capacity"] == 1


def test_add_student_rejects_duplicates_and_non_students(client, seed_users, seed_batch):
    headers = auth_headers(client, "admin001")
    url = _students_url(seed_batch)
    student_id = seed_users["student"].user_id

    assert client.post(url, json={"student_id": student_id}, headers=headers).status_code == 201
    duplicate = client.post(url, json={"student_id": student_id}, headers=headers)
    assert duplicate.status_code == 400

    instructor = client.post(url, json={"student_id": seed_users["instructor"].user_id}, headers=headers)
    assert instructor.status_code == 404


def test_add_student_rejected_on_closed_batch(client, db, seed_users, seed_batch):
    seed_batch.status = "Cancelled"
    db.commit()
    resp = client.post(
        _students_url(seed_batch),
        json={"student_id": seed_users["student"].user_id},
        headers=auth_headers(client, "admin001"),
    )
    assert resp.status_code == 400
    assert resp.json()["status"] == "Cancelled"


def test_remove_frees_seat_and_readd_reactivates(client, db, seed_users, seed_batch):
    headers = auth_headers(client, "admin001")
    url = _students_url(seed_batch)
    first = client.post(url, json={"student_id": seed_users["student"].user_id}, headers=headers).json()
    client.post(url, json={"student_id": seed_users["student2"].user_id}, headers=headers)

    removed = client.delete(f"{url}/{seed_users['student'].user_id}", headers=headers)
    assert removed.status_code == 200
    assert removed.json()["status"] == "cancelled"
    assert _enrolled(db, seed_batch.batch_id) == 1

    # 두 번째 취소는 변화가 없습니다.
    again = client.delete(f"{url}/{seed_users['student'].user_id}", headers=headers)
    assert again.status_code == 200
    assert _enrolled(db, seed_batch.batch_id) == 1

    readded = client.post(url, json={"student_id": seed_users["student"].user_id}, headers=headers)
    assert readded.status_code == 201
    assert readded.json()["enrollment_id"] == first["enrollment_id"]
    assert _enrolled(db, seed_batch.batch_id) == 2

    missing = client.delete(f"{url}/{seed_users['student3'].user_id}", headers=headers)
    assert missing.status_code == 404


def test_list_students_filters_by_status(client, db, seed_users, seed_batch):
    headers = auth_headers(client, "admin001")
    url = _students_url(seed_batch)
    client.post(url, json={"student_id": seed_users["student"].user_id}, headers=headers)
    client.post(url, json={"student_id": seed_users["student2"].user_id}, headers=headers)
    client.delete(f"{url}/{seed_users['student2'].user_id}", headers=headers)

    staff = auth_headers(client, "inst001")
    everyone = client.get(url, headers=staff).json()
    assert [row["student"]["name"] for row in everyone] == ["Student", "Student 2"]
    active = client.get(f"{url}?status=active", headers=staff).json()
    assert [row["student_id"] for row in active] == [seed_users["student"].user_id]

    assert client.get(url, headers=auth_headers(client, "stud001")).status_code == 403


def test_transfer_moves_seat_between_batches(client, db, seed_users, seed_course, seed_batch):
    target = make_batch(db, seed_course, seed_users["admin"], batch_name="target", capacity=1)
    headers = auth_headers(client, "admin001")
    student_id = seed_users["student"].user_id
    client.post(_students_url(seed_batch), json={"student_id": student_id}, headers=headers)

    resp = client.post(
        f"{_students_url(seed_batch)}/{student_id}/transfer",
        json={"target_batch_id": target.batch_id},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["batch_id"] == target.batch_id
    assert resp.json()["status"] == "active"

    db.expire_all()
    source_row = (
        db.query(Enrollment)
        .filter(Enrollment.batch_id == seed_batch.batch_id, Enrollment.student_id == student_id)
        .one()
    )
    assert source_row.status == "transferred"
    assert db.get(Batch, seed_batch.batch_id).enrolled_students == 0
    assert db.get(Batch, target.batch_id).enrolled_students == 1


def test_transfer_into_full_batch_leaves_source_untouched(client, db, seed_users, seed_course, seed_batch):
    target = make_batch(db, seed_course, seed_users["admin"], batch_name="full", capacity=1)
    headers = auth_headers(client, "admin001")
    client.post(_students_url(target), json={"student_id": seed_users["student2"].user_id}, headers=headers)
    student_id = seed_users["student"].user_id
    client.post(_students_url(seed_batch), json={"student_id": student_id}, headers=headers)

    resp = client.post(
        f"{_students_url(seed_batch)}/{student_id}/transfer",
        json={"target_batch_id": target.batch_id},
        headers=headers,
    )
    assert resp.status_code == 409
    db.expire_all()
    row = (
        db.query(Enrollment)
        .filter(Enrollment.batch_id == seed_batch.batch_id, Enrollment.student_id == student_id)
        .one()
    )
    assert row.status == "active"
    assert db.get(Batch, seed_batch.batch_id).enrolled_students == 1


def test_transfer_requires_same_course(client, db, seed_users, seed_batch):
    from app.models.course import Course

    other_course = Course(course_title="Data Science", slug="data-science")
    db.add(other_course)
    db.commit()
    target = make_batch(db, other_course, seed_users["admin"], batch_name="ds")
    headers = auth_headers(client, "admin001")
    student_id = seed_users["student"].user_id
    client.post(_students_url(seed_batch), json={"student_id": student_id}, headers=headers)

    resp = client.post(
        f"{_students_url(seed_batch)}/{student_id}/transfer",
        json={"target_batch_id": target.batch_id},
        headers=headers,
    )
    assert resp.status_code == 400


def test_status_update_rechecks_capacity(client, db, seed_users, seed_batch):
    headers = auth_headers(client, "admin001")
    url = _students_url(seed_batch)
    for key in ("student", "student2"):
        client.post(url, json={"student_id": seed_users[key].user_id}, headers=headers)

    hold = client.put(f"{url}/{seed_users['student'].user_id}/status", json={"status": "on_hold"}, headers=headers)
    assert hold.status_code == 200
    assert _enrolled(db, seed_batch.batch_id) == 1

    client.post(url, json={"student_id": seed_users["student3"].user_id}, headers=headers)
    back = client.put(f"{url}/{seed_users['student'].user_id}/status", json={"status": "active"}, headers=headers)
    assert back.status_code == 409
    assert _enrolled(db, seed_batch.batch_id) == 2

    unknown = client.put(f"{url}/{seed_users['student'].user_id}/status", json={"status": "graduated"}, headers=headers)
    assert unknown.status_code == 422


def test_optimistic_retry_recovers_then_gives_up(db):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise StaleDataError("version mismatch")
        return "ok"

    assert run_with_optimistic_retry(db, flaky, attempts=3) == "ok"
    assert len(calls) == 2

    def always_stale():
        raise StaleDataError("version mismatch")

    with pytest.raises(ConcurrencyConflict):
        run_with_optimistic_retry(db, always_stale, attempts=2)


def test_version_column_detects_lost_update(db, seed_users, seed_batch):
    from tests.conftest import TestingSession

    other = TestingSession()
    try:
        stale = other.get(Batch, seed_batch.batch_id)
        seed_batch.enrolled_students = 1
        db.commit()

        stale.enrolled_students = 2
        with pytest.raises(StaleDataError):
            other.commit()
        other.rollback()
    finally:
        other.close()

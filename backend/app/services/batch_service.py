"""Batch Service 도메인 서비스 레이어입니다. 비즈니스 규칙과 데이터 접근 흐름을 캡슐화합니다."""

import logging
import time
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.batch import Batch
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.session import BatchSession
from app.models.user import User
from app.schemas.batch import BatchCreate, BatchUpdate
from app.services.capacity_guard import effective_capacity, validate_capacity_change
from app.utils.concurrency import run_with_optimistic_retry
from app.utils.errors import NotFound, OutOfRange, ValidationError
from app.utils.helpers import normalize_page
from app.utils.permissions import INSTRUCTOR

logger = logging.getLogger(__name__)


def get_batch_or_404(db: Session, batch_id: str) -> Batch:
    batch = db.query(Batch).filter(Batch.batch_id == str(batch_id)).first()
    if not batch:
        raise NotFound("차수를 찾을 수 없습니다.", batch_id=batch_id)
    return batch


def count_active_enrollments(db: Session, batch_id: str) -> int:
    return (
        db.query(func.count(Enrollment.enrollment_id))
        .filter(Enrollment.batch_id == batch_id, Enrollment.status == "active")
        .scalar()
        or 0
    )


def _active_counts(db: Session, batch_ids: list[str]) -> dict[str, int]:
    if not batch_ids:
        return {}
    rows = (
        db.query(Enrollment.batch_id, func.count(Enrollment.enrollment_id))
        .filter(Enrollment.batch_id.in_(batch_ids), Enrollment.status == "active")
        .group_by(Enrollment.batch_id)
        .all()
    )
    return {str(batch_id): int(count) for batch_id, count in rows}


def _session_counts(db: Session, batch_ids: list[str]) -> dict[str, int]:
    if not batch_ids:
        return {}
    rows = (
        db.query(BatchSession.batch_id, func.count(BatchSession.session_id))
        .filter(BatchSession.batch_id.in_(batch_ids))
        .group_by(BatchSession.batch_id)
        .all()
    )
    return {str(batch_id): int(count) for batch_id, count in rows}


def _attach_stats(batch: Batch, session_count: int) -> Batch:
    setattr(batch, "session_count", int(session_count))
    return batch


def reconcile_enrolled_students(db: Session, batches: list[Batch]) -> list[Batch]:
    """캐시된 enrolled_students 를 active 수강 기록 수와 맞춥니다."""
    counts = _active_counts(db, [b.batch_id for b in batches])
    drifted = False
    for batch in batches:
        actual = counts.get(batch.batch_id, 0)
        if int(batch.enrolled_students or 0) != actual:
            logger.warning(
                "[batch] enrolled_students drift on %s: cached=%s actual=%s",
                batch.batch_id,
                batch.enrolled_students,
                actual,
            )
            batch.enrolled_students = actual
            drifted = True
    if drifted:
        db.commit()
        for batch in batches:
            db.refresh(batch)
    return batches


def get_batch(db: Session, batch_id: str) -> Batch:
    batch = get_batch_or_404(db, batch_id)
    reconcile_enrolled_students(db, [batch])
    return _attach_stats(batch, len(batch.sessions))


def list_batches(
    db: Session,
    *,
    course_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int | None = None,
    page_size: int | None = None,
) -> dict:
    page_value, size_value = normalize_page(page, page_size)
    query = db.query(Batch)
    if course_id is not None:
        query = query.filter(Batch.course_id == int(course_id))
    if status:
        query = query.filter(Batch.status == status)
    total = query.count()
    rows = (
        query.order_by(Batch.start_date.desc(), Batch.created_at.desc())
        .offset((page_value - 1) * size_value)
        .limit(size_value)
        .all()
    )
    reconcile_enrolled_students(db, rows)
    session_counts = _session_counts(db, [row.batch_id for row in rows])
    return {
        "items": [_attach_stats(row, session_counts.get(row.batch_id, 0)) for row in rows],
        "total_count": total,
        "page": page_value,
        "page_size": size_value,
    }


def _generate_batch_code(db: Session, course: Course) -> str:
    prefix = "".join(word[0] for word in (course.course_title or "").split() if word).upper() or "B"
    base = f"{prefix}-{str(int(time.time() * 1000))[-6:]}"
    code = base
    suffix = 1
    while db.query(Batch.batch_id).filter(Batch.batch_code == code).first():
        suffix += 1
        code = f"{base}-{suffix}"
    return code


def _ensure_instructor(db: Session, instructor_id: int) -> User:
    instructor = (
        db.query(User)
        .filter(User.user_id == int(instructor_id), User.role == INSTRUCTOR, User.is_active == True)  # noqa: E712
        .first()
    )
    if not instructor:
        raise NotFound("강사를 찾을 수 없습니다.", instructor_id=instructor_id)
    return instructor


def _validate_date_window(start_date, end_date) -> None:
    if start_date and end_date and end_date <= start_date:
        raise ValidationError("차수 종료일은 시작일 이후여야 합니다.", start_date=str(start_date), end_date=str(end_date))


def create_batch(db: Session, data: BatchCreate, current_user: User) -> Batch:
    course = db.query(Course).filter(Course.course_id == data.course_id).first()
    if not course:
        raise NotFound("과정을 찾을 수 없습니다.", course_id=data.course_id)
    _validate_date_window(data.start_date, data.end_date)

    payload = data.model_dump(exclude={"course_id"})
    if payload.get("assigned_instructor_id") is not None:
        _ensure_instructor(db, payload["assigned_instructor_id"])
    code = (payload.pop("batch_code", None) or "").strip()
    if code:
        if db.query(Batch.batch_id).filter(Batch.batch_code == code).first():
            raise ValidationError("이미 사용 중인 차수 코드입니다.", batch_code=code)
    else:
        code = _generate_batch_code(db, course)
    payload["capacity"] = effective_capacity(payload["batch_type"], payload["capacity"])

    batch = Batch(
        **payload,
        batch_code=code,
        course_id=course.course_id,
        status="Upcoming",
        enrolled_students=0,
        created_by=current_user.user_id,
    )
    db.add(batch)
    db.commit()
    db.refresh(batch)
    logger.info("[batch] created %s (%s) for course %s", batch.batch_id, batch.batch_code, course.course_id)
    return _attach_stats(batch, 0)


def update_batch(db: Session, batch_id: str, data: BatchUpdate, current_user: User) -> Batch:
    payload = data.model_dump(exclude_none=True)

    def _operation() -> Batch:
        batch = get_batch_or_404(db, batch_id)
        next_start = payload.get("start_date", batch.start_date)
        next_end = payload.get("end_date", batch.end_date)
        _validate_date_window(next_start, next_end)
        if "start_date" in payload or "end_date" in payload:
            outside = [
                s for s in batch.sessions
                if (next_start and s.session_date < next_start) or (next_end and s.session_date > next_end)
            ]
            if outside:
                raise OutOfRange(
                    "변경할 기간 밖에 이미 등록된 세션이 있습니다.",
                    session_ids=[s.session_id for s in outside],
                )

        if "batch_type" in payload or "capacity" in payload:
            next_type = payload.get("batch_type", batch.batch_type)
            occupancy = count_active_enrollments(db, batch.batch_id)
            payload["capacity"] = validate_capacity_change(
                next_type,
                payload.get("capacity", batch.capacity),
                occupancy,
            )
            batch.enrolled_students = occupancy

        for key, value in payload.items():
            setattr(batch, key, value)
        batch.updated_by = current_user.user_id
        db.commit()
        db.refresh(batch)
        return batch

    batch = run_with_optimistic_retry(db, _operation)
    return _attach_stats(batch, len(batch.sessions))


def assign_instructor(db: Session, batch_id: str, instructor_id: int, current_user: User) -> Batch:
    batch = get_batch_or_404(db, batch_id)
    instructor = _ensure_instructor(db, instructor_id)
    batch.assigned_instructor_id = instructor.user_id
    batch.updated_by = current_user.user_id
    db.commit()
    db.refresh(batch)
    logger.info("[batch] instructor %s assigned to %s", instructor.user_id, batch.batch_id)
    return _attach_stats(batch, len(batch.sessions))


def delete_batch(db: Session, batch_id: str):
    batch = get_batch_or_404(db, batch_id)
    has_enrollments = db.query(Enrollment.enrollment_id).filter(Enrollment.batch_id == batch.batch_id).first()
    if has_enrollments:
        raise ValidationError(
            "수강 기록이 있는 차수는 삭제할 수 없습니다. Cancelled 상태로 전환해 주세요.",
            batch_id=batch.batch_id,
        )
    db.delete(batch)
    db.commit()
    logger.info("[batch] deleted %s", batch_id)

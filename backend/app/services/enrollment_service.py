"""Enrollment Service 도메인 서비스 레이어입니다. 비즈니스 규칙과 데이터 접근 흐름을 캡슐화합니다.

모든 인원 변경은 active 수강 기록 수를 다시 세어 정원 검증을 통과한 뒤에만 커밋되며,
enrolled_students 캐시는 같은 트랜잭션에서 함께 갱신됩니다.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.batch import Batch
from app.models.enrollment import ENROLLMENT_STATUSES, Enrollment
from app.models.user import User
from app.services.batch_service import count_active_enrollments, get_batch_or_404
from app.services.batch_status_service import CLOSED_STATUSES
from app.services.capacity_guard import ensure_seat_available
from app.utils.concurrency import run_with_optimistic_retry
from app.utils.errors import NotFound, ValidationError
from app.utils.permissions import STUDENT

logger = logging.getLogger(__name__)


def _get_student(db: Session, student_id: int) -> User:
    student = (
        db.query(User)
        .filter(User.user_id == int(student_id), User.role == STUDENT, User.is_active == True)  # noqa: E712
        .first()
    )
    if not student:
        raise NotFound("학생을 찾을 수 없습니다.", student_id=student_id)
    return student


def _find_enrollment(db: Session, batch_id: str, student_id: int) -> Optional[Enrollment]:
    return (
        db.query(Enrollment)
        .filter(Enrollment.batch_id == batch_id, Enrollment.student_id == int(student_id))
        .first()
    )


def _get_enrollment_or_404(db: Session, batch_id: str, student_id: int) -> Enrollment:
    row = _find_enrollment(db, batch_id, student_id)
    if not row:
        raise NotFound("해당 차수의 수강 기록을 찾을 수 없습니다.", batch_id=batch_id, student_id=student_id)
    return row


def _ensure_open(batch: Batch) -> None:
    if batch.status in CLOSED_STATUSES:
        raise ValidationError(
            f"{batch.status} 상태의 차수에는 수강생을 배정할 수 없습니다.",
            batch_id=batch.batch_id,
            status=batch.status,
        )


def _seat_student(db: Session, batch: Batch, student: User, current_user: User) -> Enrollment:
    """정원 검증 후 학생을 active 로 배정합니다. 커밋은 호출자가 합니다."""
    _ensure_open(batch)
    existing = _find_enrollment(db, batch.batch_id, student.user_id)
    if existing and existing.status == "active":
        raise ValidationError("이미 이 차수에 배정된 학생입니다.", batch_id=batch.batch_id, student_id=student.user_id)
    occupancy = count_active_enrollments(db, batch.batch_id)
    ensure_seat_available(batch, occupancy)
    if existing:
        existing.status = "active"
        existing.enrolled_by = current_user.user_id
        row = existing
    else:
        row = Enrollment(
            student_id=student.user_id,
            course_id=batch.course_id,
            batch_id=batch.batch_id,
            status="active",
            enrolled_by=current_user.user_id,
        )
        db.add(row)
    batch.enrolled_students = occupancy + 1
    batch.updated_by = current_user.user_id
    return row


def list_batch_students(db: Session, batch_id: str, status: Optional[str] = None) -> list[Enrollment]:
    batch = get_batch_or_404(db, batch_id)
    query = db.query(Enrollment).filter(Enrollment.batch_id == batch.batch_id)
    if status:
        query = query.filter(Enrollment.status == status)
    return query.order_by(Enrollment.enrollment_id.asc()).all()


def add_student(db: Session, batch_id: str, student_id: int, current_user: User) -> Enrollment:
    student = _get_student(db, student_id)

    def _operation() -> Enrollment:
        batch = get_batch_or_404(db, batch_id)
        row = _seat_student(db, batch, student, current_user)
        db.commit()
        db.refresh(row)
        return row

    row = run_with_optimistic_retry(db, _operation)
    logger.info("[enrollment] student %s added to batch %s", student.user_id, batch_id)
    return row


def remove_student(db: Session, batch_id: str, student_id: int, current_user: User) -> Enrollment:
    def _operation() -> Enrollment:
        batch = get_batch_or_404(db, batch_id)
        row = _get_enrollment_or_404(db, batch.batch_id, student_id)
        if row.status == "cancelled":
            return row
        row.status = "cancelled"
        db.flush()
        batch.enrolled_students = count_active_enrollments(db, batch.batch_id)
        batch.updated_by = current_user.user_id
        db.commit()
        db.refresh(row)
        return row

    row = run_with_optimistic_retry(db, _operation)
    logger.info("[enrollment] student %s removed from batch %s", student_id, batch_id)
    return row


def transfer_student(
    db: Session,
    batch_id: str,
    student_id: int,
    target_batch_id: str,
    current_user: User,
) -> Enrollment:
    """원 차수 기록을 transferred 로 남기고 대상 차수에 정원 검증 후 배정합니다."""
    if str(batch_id) == str(target_batch_id):
        raise ValidationError("같은 차수로는 이동할 수 없습니다.", batch_id=batch_id)
    student = _get_student(db, student_id)

    def _operation() -> Enrollment:
        source = get_batch_or_404(db, batch_id)
        target = get_batch_or_404(db, target_batch_id)
        if target.course_id != source.course_id:
            raise ValidationError("같은 과정의 차수로만 이동할 수 있습니다.", target_batch_id=target.batch_id)
        current = _get_enrollment_or_404(db, source.batch_id, student.user_id)
        if current.status != "active":
            raise ValidationError("active 상태의 수강생만 이동할 수 있습니다.", status=current.status)

        moved = _seat_student(db, target, student, current_user)
        current.status = "transferred"
        db.flush()
        source.enrolled_students = count_active_enrollments(db, source.batch_id)
        source.updated_by = current_user.user_id
        db.commit()
        db.refresh(moved)
        return moved

    row = run_with_optimistic_retry(db, _operation)
    logger.info("[enrollment] student %s transferred %s -> %s", student.user_id, batch_id, target_batch_id)
    return row


def update_student_status(
    db: Session,
    batch_id: str,
    student_id: int,
    new_status: str,
    current_user: User,
) -> Enrollment:
    if new_status not in ENROLLMENT_STATUSES:
        raise ValidationError(f"알 수 없는 수강 상태입니다: {new_status}", status=new_status)

    def _operation() -> Enrollment:
        batch = get_batch_or_404(db, batch_id)
        row = _get_enrollment_or_404(db, batch.batch_id, student_id)
        if row.status == new_status:
            return row
        if new_status == "active":
            # 다시 자리를 차지하므로 정원 검증을 거칩니다.
            _ensure_open(batch)
            occupancy = count_active_enrollments(db, batch.batch_id)
            ensure_seat_available(batch, occupancy)
        row.status = new_status
        db.flush()
        batch.enrolled_students = count_active_enrollments(db, batch.batch_id)
        batch.updated_by = current_user.user_id
        db.commit()
        db.refresh(row)
        return row

    return run_with_optimistic_retry(db, _operation)


def student_batch_ids(db: Session, student_id: int) -> list[str]:
    """학생이 수강했거나 수강 중인 차수 id (취소 제외)."""
    rows = (
        db.query(Enrollment.batch_id)
        .filter(Enrollment.student_id == int(student_id), Enrollment.status != "cancelled")
        .order_by(Enrollment.enrollment_id.asc())
        .all()
    )
    return [str(batch_id) for (batch_id,) in rows]

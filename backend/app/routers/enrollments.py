"""차수 수강생 배정 API 라우터입니다. 정원 검증은 서비스 레이어에서 수행합니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from app.database import get_db
from app.schemas.enrollment import (
    AddStudentRequest, EnrollmentOut, EnrollmentStatus, StudentStatusUpdate, TransferStudentRequest,
)
from app.services import enrollment_service
from app.middleware.auth_middleware import require_roles
from app.models.user import User
from app.utils.permissions import ADMIN_ROLES, STAFF_ROLES

router = APIRouter(prefix="/api/batches/{batch_id}/students", tags=["enrollments"])


@router.get("", response_model=List[EnrollmentOut])
def list_students(
    batch_id: str,
    status: Optional[EnrollmentStatus] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return enrollment_service.list_batch_students(db, batch_id, status)


@router.post("", response_model=EnrollmentOut, status_code=201)
def add_student(
    batch_id: str,
    data: AddStudentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    return enrollment_service.add_student(db, batch_id, data.student_id, current_user)


@router.delete("/{student_id}", response_model=EnrollmentOut)
def remove_student(
    batch_id: str,
    student_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    return enrollment_service.remove_student(db, batch_id, student_id, current_user)


@router.post("/{student_id}/transfer", response_model=EnrollmentOut)
def transfer_student(
    batch_id: str,
    student_id: int,
    data: TransferStudentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    return enrollment_service.transfer_student(db, batch_id, student_id, data.target_batch_id, current_user)


@router.put("/{student_id}/status", response_model=EnrollmentOut)
def update_student_status(
    batch_id: str,
    student_id: int,
    data: StudentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    return enrollment_service.update_student_status(db, batch_id, student_id, data.status, current_user)

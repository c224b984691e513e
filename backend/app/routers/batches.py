"""Batches 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from app.database import get_db
from app.schemas.batch import (
    BatchCreate, BatchUpdate, BatchOut, BatchInstructorAssign, BatchStatus, BatchStatusUpdate, BatchStatusHistoryOut,
)
from app.schemas.common import Page
from app.services import batch_service, batch_status_service
from app.middleware.auth_middleware import get_current_user, require_roles
from app.models.user import User
from app.utils.permissions import ADMIN_ROLES

router = APIRouter(prefix="/api/batches", tags=["batches"])


@router.get("", response_model=Page[BatchOut])
def list_batches(
    course_id: Optional[int] = Query(None),
    status: Optional[BatchStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return batch_service.list_batches(db, course_id=course_id, status=status, page=page, page_size=page_size)


@router.post("", response_model=BatchOut, status_code=201)
def create_batch(
    data: BatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    return batch_service.create_batch(db, data, current_user)


@router.get("/{batch_id}", response_model=BatchOut)
def get_batch(batch_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return batch_service.get_batch(db, batch_id)


@router.put("/{batch_id}", response_model=BatchOut)
def update_batch(
    batch_id: str,
    data: BatchUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    return batch_service.update_batch(db, batch_id, data, current_user)


@router.delete("/{batch_id}")
def delete_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    batch_service.delete_batch(db, batch_id)
    return {"message": "삭제되었습니다."}


@router.put("/{batch_id}/instructor", response_model=BatchOut)
def assign_instructor(
    batch_id: str,
    data: BatchInstructorAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    return batch_service.assign_instructor(db, batch_id, data.instructor_id, current_user)


@router.put("/{batch_id}/status", response_model=BatchOut)
def change_status(
    batch_id: str,
    data: BatchStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    batch_status_service.change_batch_status(db, batch_id, data.status, current_user, data.reason)
    return batch_service.get_batch(db, batch_id)


@router.get("/{batch_id}/status-history", response_model=List[BatchStatusHistoryOut])
def status_history(batch_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return batch_status_service.get_status_history(db, batch_id)

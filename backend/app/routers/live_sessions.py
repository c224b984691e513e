"""라이브 수업 기록(회차 번호 기반) API 라우터입니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from app.database import get_db
from app.schemas.recording import LiveSessionCreate, LiveSessionOut
from app.services import live_session_service
from app.middleware.auth_middleware import require_roles
from app.models.user import User
from app.utils.permissions import STAFF_ROLES

router = APIRouter(prefix="/api/live-sessions", tags=["live-sessions"])


@router.get("", response_model=List[LiveSessionOut])
def list_live_sessions(
    batch_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return live_session_service.list_live_sessions(db, batch_id)


@router.post("", response_model=LiveSessionOut, status_code=201)
def create_live_session(
    data: LiveSessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return live_session_service.create_live_session(db, data, current_user)


@router.delete("/{live_session_id}")
def delete_live_session(
    live_session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    live_session_service.delete_live_session(db, live_session_id)
    return {"message": "삭제되었습니다."}

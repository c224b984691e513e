"""차수 일정(세션), 미팅, 녹화 강의 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.schemas.session import (
    MeetingInfoOut, RecordedLessonCreate, RecordedLessonOut, ScheduledSessionCreate, SessionOut,
)
from app.services import meeting_service, schedule_service
from app.services.zoom_client import ZoomClient, get_zoom_client
from app.middleware.auth_middleware import get_current_user, require_roles
from app.models.user import User
from app.utils.permissions import ADMIN_ROLES, STAFF_ROLES

router = APIRouter(prefix="/api/batches/{batch_id}/sessions", tags=["sessions"])


@router.get("", response_model=List[SessionOut])
def list_sessions(batch_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return schedule_service.list_sessions(db, batch_id)


@router.post("", response_model=SessionOut, status_code=201)
def add_session(
    batch_id: str,
    data: ScheduledSessionCreate,
    db: Session = Depends(get_db),
    zoom: ZoomClient = Depends(get_zoom_client),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return schedule_service.add_session(db, batch_id, data, current_user, meeting_client=zoom)


@router.delete("/{session_id}")
def remove_session(
    batch_id: str,
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
):
    schedule_service.remove_session(db, batch_id, session_id, current_user)
    return {"message": "삭제되었습니다."}


@router.post("/{session_id}/meeting", response_model=SessionOut)
def create_meeting(
    batch_id: str,
    session_id: str,
    db: Session = Depends(get_db),
    zoom: ZoomClient = Depends(get_zoom_client),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return meeting_service.ensure_session_meeting(db, zoom, batch_id, session_id)


@router.post("/{session_id}/meeting/companion", response_model=MeetingInfoOut)
def enable_companion(
    batch_id: str,
    session_id: str,
    db: Session = Depends(get_db),
    zoom: ZoomClient = Depends(get_zoom_client),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return meeting_service.repair_session_companion(db, zoom, batch_id, session_id)


@router.get("/{session_id}/lessons", response_model=List[RecordedLessonOut])
def list_lessons(
    batch_id: str,
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return schedule_service.list_recorded_lessons(db, batch_id, session_id)


@router.post("/{session_id}/lessons", response_model=RecordedLessonOut, status_code=201)
def add_lesson(
    batch_id: str,
    session_id: str,
    data: RecordedLessonCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return schedule_service.add_recorded_lesson(db, batch_id, session_id, data, current_user)


@router.delete("/{session_id}/lessons/{lesson_id}")
def remove_lesson(
    batch_id: str,
    session_id: str,
    lesson_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    schedule_service.remove_recorded_lesson(db, batch_id, session_id, lesson_id)
    return {"message": "삭제되었습니다."}

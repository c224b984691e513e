"""녹화 동기화와 녹화 목록 API 라우터입니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from app.database import get_db
from app.schemas.recording import RecordingListOut, SyncQueuedOut, SyncStatusOut
from app.schemas.session import SessionOut
from app.services import recording_service, recording_sync_service
from app.services.batch_service import get_batch_or_404
from app.services.recording_sync_service import RecordingSyncDispatcher, get_sync_dispatcher
from app.services.storage_client import S3StorageClient, get_storage_client
from app.services.zoom_client import ZoomClient, get_zoom_client
from app.middleware.auth_middleware import get_current_user, require_roles
from app.models.user import User
from app.utils.permissions import STAFF_ROLES, ensure_can_view_student

router = APIRouter(prefix="/api/recordings", tags=["recordings"])


@router.post("/batches/{batch_id}/sync", response_model=SyncQueuedOut, status_code=202)
def trigger_sync(
    batch_id: str,
    db: Session = Depends(get_db),
    dispatcher: RecordingSyncDispatcher = Depends(get_sync_dispatcher),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    batch = get_batch_or_404(db, batch_id)
    queued = dispatcher.enqueue(batch.batch_id)
    return SyncQueuedOut(
        batch_id=batch.batch_id,
        queued=queued,
        in_progress=dispatcher.is_running(batch.batch_id),
        message="녹화 동기화를 시작했습니다." if queued else "이미 녹화 동기화가 진행 중입니다.",
    )


@router.get("/batches/{batch_id}/sync-status", response_model=SyncStatusOut)
def sync_status(
    batch_id: str,
    db: Session = Depends(get_db),
    dispatcher: RecordingSyncDispatcher = Depends(get_sync_dispatcher),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return recording_sync_service.get_sync_status(db, batch_id, in_progress=dispatcher.is_running(batch_id))


@router.post("/batches/{batch_id}/sessions/{session_id}/retry", response_model=SessionOut)
def retry_sync(
    batch_id: str,
    session_id: str,
    db: Session = Depends(get_db),
    zoom: ZoomClient = Depends(get_zoom_client),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return recording_sync_service.retry_session_sync(db, zoom, batch_id, session_id)


@router.get("/batches/{batch_id}", response_model=RecordingListOut)
def batch_recordings(
    batch_id: str,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    ttl_seconds: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    storage: S3StorageClient = Depends(get_storage_client),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return recording_service.list_batch_recordings(
        db, storage, batch_id, page=page, page_size=page_size, ttl_seconds=ttl_seconds,
    )


@router.get("/students/{student_id}", response_model=RecordingListOut)
def student_recordings(
    student_id: int,
    batch_id: Optional[str] = Query(None),
    personal_page: int = Query(1, ge=1),
    scheduled_page: int = Query(1, ge=1),
    batch_page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    ttl_seconds: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    storage: S3StorageClient = Depends(get_storage_client),
    current_user: User = Depends(get_current_user),
):
    ensure_can_view_student(current_user, student_id)
    return recording_service.list_student_recordings(
        db,
        storage,
        student_id,
        batch_id=batch_id,
        personal_page=personal_page,
        scheduled_page=scheduled_page,
        batch_page=batch_page,
        page_size=page_size,
        ttl_seconds=ttl_seconds,
    )

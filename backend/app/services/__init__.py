"""서비스 레이어 패키지 초기화 모듈입니다."""

from app.services import (
    auth_service,
    batch_service,
    batch_status_service,
    enrollment_service,
    meeting_service,
    schedule_service,
    recording_sync_service,
    recording_service,
    live_session_service,
)

"""Meeting Service 세션별 온라인 미팅 생성/조회/설정 보정 레이어입니다."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.config import settings
from app.models.batch import Batch
from app.models.session import BatchSession, MeetingInfo
from app.services.zoom_client import ZoomClient
from app.utils.errors import NotFound, ProviderError
from app.utils.helpers import combine_date_time, parse_time_of_day

logger = logging.getLogger(__name__)

SCHEDULED_MEETING = 2

# 호스트 없이도 입장 및 AI Companion 요약/질문이 시작되도록 하는 설정
COMPANION_SETTINGS: dict[str, Any] = {
    "join_before_host": True,
    "jbh_time": 0,
    "waiting_room": False,
    "ai_companion_auto_start": True,
    "auto_start_meeting_summary": True,
    "auto_start_ai_companion_questions": True,
}

MEETING_SETTINGS: dict[str, Any] = {
    "host_video": True,
    "participant_video": False,
    "mute_upon_entry": True,
    "auto_recording": "cloud",
    **COMPANION_SETTINGS,
}


def meeting_topic(batch: Batch, session: BatchSession) -> str:
    course_title = batch.course.course_title if batch.course else batch.batch_name
    return f"{course_title} - {session.title or 'Live Session'}"


def meeting_duration_minutes(session: BatchSession) -> int:
    scheduled = parse_time_of_day(session.end_time, "end_time") - parse_time_of_day(session.start_time, "start_time")
    return max(settings.MEETING_MIN_DURATION_MINUTES, scheduled)


def build_meeting_request(batch: Batch, session: BatchSession) -> dict[str, Any]:
    start = combine_date_time(session.session_date, session.start_time)
    payload: dict[str, Any] = {
        "topic": meeting_topic(batch, session),
        "type": SCHEDULED_MEETING,
        "start_time": start.strftime("%Y-%m-%dT%H:%M:%S"),
        "duration": meeting_duration_minutes(session),
        "timezone": settings.ORG_TIMEZONE,
        "settings": dict(MEETING_SETTINGS),
    }
    if session.description:
        payload["agenda"] = session.description
    return payload


def _empty_meeting(error: str | None = None) -> MeetingInfo:
    return MeetingInfo(
        meeting_id=None,
        join_url=None,
        host_url=None,
        password=None,
        topic=None,
        recording_synced=False,
        sync_attempts=0,
        last_sync_error=error,
        next_retry_at=None,
        last_sync_at=None,
    )


def create_meeting_for_session(client: ZoomClient, batch: Batch, session: BatchSession) -> MeetingInfo:
    """미팅을 생성합니다. 제공자 오류는 세션 생성을 막지 않도록 last_sync_error 로만 남깁니다."""
    payload = build_meeting_request(batch, session)
    try:
        body = client.create_meeting(payload)
    except ProviderError as exc:
        logger.warning("[zoom] create failed for batch %s (%s): %s", batch.batch_id, payload["topic"], exc.message)
        return _empty_meeting(exc.message)
    return MeetingInfo(
        meeting_id=str(body["id"]),
        join_url=body.get("join_url"),
        host_url=body.get("start_url"),
        password=body.get("password"),
        topic=body.get("topic") or payload["topic"],
        recording_synced=False,
        sync_attempts=0,
        last_sync_error=None,
        next_retry_at=None,
        last_sync_at=None,
    )


def apply_meeting_info(session: BatchSession, info: MeetingInfo) -> None:
    session.meeting_id = info.meeting_id
    session.meeting_join_url = info.join_url
    session.meeting_host_url = info.host_url
    session.meeting_password = info.password
    session.meeting_topic = info.topic
    session.recording_synced = info.recording_synced
    session.sync_attempts = info.sync_attempts
    session.last_sync_error = info.last_sync_error
    session.next_retry_at = info.next_retry_at
    session.last_sync_at = info.last_sync_at


def get_session_or_404(db: Session, batch_id: str, session_id: str) -> BatchSession:
    session = (
        db.query(BatchSession)
        .filter(BatchSession.batch_id == str(batch_id), BatchSession.session_id == str(session_id))
        .first()
    )
    if not session:
        raise NotFound("세션을 찾을 수 없습니다.", batch_id=batch_id, session_id=session_id)
    return session


def ensure_session_meeting(db: Session, client: ZoomClient, batch_id: str, session_id: str) -> BatchSession:
    """기존 세션에 미팅을 명시적으로 생성합니다. 이미 있으면 그대로 반환합니다."""
    session = get_session_or_404(db, batch_id, session_id)
    if session.meeting_id:
        return session
    info = create_meeting_for_session(client, session.batch, session)
    apply_meeting_info(session, info)
    db.commit()
    db.refresh(session)
    if not info.meeting_id:
        raise ProviderError(
            f"미팅 생성에 실패했습니다: {info.last_sync_error}",
            session_id=session.session_id,
        )
    return session


def enable_companion_without_host(client: ZoomClient, session: BatchSession) -> MeetingInfo:
    """세션 미팅에 호스트 없는 입장과 AI Companion 자동 시작(요약/질문)을 적용합니다."""
    client.update_meeting(session.meeting_id, {"settings": dict(COMPANION_SETTINGS)})
    return session.meeting


def repair_session_companion(db: Session, client: ZoomClient, batch_id: str, session_id: str) -> MeetingInfo:
    session = get_session_or_404(db, batch_id, session_id)
    if not session.meeting_id:
        raise NotFound("이 세션에는 연결된 미팅이 없습니다.", session_id=session.session_id)
    info = enable_companion_without_host(client, session)
    logger.info("[zoom] companion auto-start enabled for meeting %s", info.meeting_id)
    return info

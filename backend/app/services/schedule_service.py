"""Schedule Service 차수 내 수업 세션 일정과 녹화 강의를 관리합니다.

같은 날짜의 세션 시간은 [start, end) 반열린 구간으로 비교하므로 끝과 시작이 맞닿는 세션은
허용됩니다. 일정 추가는 batch version 을 올려 동시 추가 시 충돌을 감지하고 재검증합니다.
"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.batch import Batch
from app.models.session import BatchSession, MeetingInfo, RecordedLesson
from app.models.user import User
from app.schemas.session import RecordedLessonCreate, ScheduledSessionCreate
from app.services import meeting_service
from app.services.batch_service import get_batch_or_404
from app.services.batch_status_service import CLOSED_STATUSES
from app.services.zoom_client import ZoomClient
from app.utils.concurrency import run_with_optimistic_retry
from app.utils.errors import MissingDateRange, NotFound, OutOfRange, SchedulingConflict, ValidationError
from app.utils.helpers import parse_time_of_day, utc_now

logger = logging.getLogger(__name__)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def find_conflict(
    sessions: Iterable[BatchSession],
    session_date: date,
    start_minutes: int,
    end_minutes: int,
) -> Optional[BatchSession]:
    for existing in sessions:
        if existing.session_date != session_date:
            continue
        if intervals_overlap(
            start_minutes,
            end_minutes,
            parse_time_of_day(existing.start_time),
            parse_time_of_day(existing.end_time),
        ):
            return existing
    return None


def sorted_sessions(batch: Batch) -> list[BatchSession]:
    return sorted(batch.sessions, key=lambda s: (s.session_date, parse_time_of_day(s.start_time)))


def _validate_new_session(batch: Batch, data: ScheduledSessionCreate, start_minutes: int, end_minutes: int) -> None:
    if batch.status in CLOSED_STATUSES:
        raise ValidationError(
            f"{batch.status} 상태의 차수에는 일정을 추가할 수 없습니다.",
            batch_id=batch.batch_id,
            status=batch.status,
        )
    if not batch.start_date or not batch.end_date:
        raise MissingDateRange(batch.batch_id)
    if not (batch.start_date <= data.session_date <= batch.end_date):
        raise OutOfRange(
            f"세션 날짜는 차수 기간({batch.start_date} ~ {batch.end_date}) 안이어야 합니다.",
            session_date=str(data.session_date),
            start_date=str(batch.start_date),
            end_date=str(batch.end_date),
        )
    conflict = find_conflict(batch.sessions, data.session_date, start_minutes, end_minutes)
    if conflict:
        raise SchedulingConflict(conflict.session_id, conflict.start_time, conflict.end_time, conflict.title)


def add_session(
    db: Session,
    batch_id: str,
    data: ScheduledSessionCreate,
    current_user: User,
    meeting_client: Optional[ZoomClient] = None,
) -> BatchSession:
    start_minutes = parse_time_of_day(data.start_time, "start_time")
    end_minutes = parse_time_of_day(data.end_time, "end_time")
    if end_minutes <= start_minutes:
        raise ValidationError("종료 시간은 시작 시간보다 늦어야 합니다.", start_time=data.start_time, end_time=data.end_time)

    # 재시도 중에도 제공자 미팅은 한 번만 생성합니다.
    created_meeting: list[MeetingInfo] = []

    def _operation() -> BatchSession:
        batch = get_batch_or_404(db, batch_id)
        _validate_new_session(batch, data, start_minutes, end_minutes)
        session = BatchSession(
            batch_id=batch.batch_id,
            session_date=data.session_date,
            start_time=data.start_time.strip(),
            end_time=data.end_time.strip(),
            title=(data.title or "").strip() or None,
            description=(data.description or "").strip() or None,
            created_by=current_user.user_id,
        )
        if data.create_meeting and meeting_client is not None:
            if not created_meeting:
                created_meeting.append(meeting_service.create_meeting_for_session(meeting_client, batch, session))
            meeting_service.apply_meeting_info(session, created_meeting[0])
        batch.sessions.append(session)
        batch.updated_by = current_user.user_id
        batch.updated_at = utc_now()
        db.commit()
        db.refresh(session)
        return session

    session = run_with_optimistic_retry(db, _operation)
    logger.info(
        "[schedule] session %s added to batch %s on %s %s-%s (meeting=%s)",
        session.session_id,
        batch_id,
        session.session_date,
        session.start_time,
        session.end_time,
        session.meeting_id or "-",
    )
    return session


def list_sessions(db: Session, batch_id: str) -> list[BatchSession]:
    batch = get_batch_or_404(db, batch_id)
    return sorted_sessions(batch)


def remove_session(db: Session, batch_id: str, session_id: str, current_user: User) -> None:
    def _operation() -> None:
        batch = get_batch_or_404(db, batch_id)
        session = next((s for s in batch.sessions if s.session_id == str(session_id)), None)
        if not session:
            raise NotFound("세션을 찾을 수 없습니다.", batch_id=batch_id, session_id=session_id)
        batch.sessions.remove(session)
        batch.updated_by = current_user.user_id
        batch.updated_at = utc_now()
        db.commit()

    run_with_optimistic_retry(db, _operation)


def add_recorded_lesson(
    db: Session,
    batch_id: str,
    session_id: str,
    data: RecordedLessonCreate,
    current_user: User,
) -> RecordedLesson:
    session = meeting_service.get_session_or_404(db, batch_id, session_id)
    url = (data.url or "").strip() or None
    storage_key = (data.storage_key or "").strip() or None
    if not url and not storage_key:
        raise ValidationError("녹화 강의에는 url 또는 storage_key 가 필요합니다.")
    if data.source == "external_link" and not url:
        raise ValidationError("external_link 녹화 강의에는 url 이 필요합니다.")
    lesson = RecordedLesson(
        session_id=session.session_id,
        title=data.title.strip(),
        url=url,
        storage_key=storage_key,
        recorded_at=data.recorded_at or utc_now(),
        source=data.source,
        created_by=current_user.user_id,
    )
    db.add(lesson)
    db.commit()
    db.refresh(lesson)
    return lesson


def list_recorded_lessons(db: Session, batch_id: str, session_id: str) -> list[RecordedLesson]:
    session = meeting_service.get_session_or_404(db, batch_id, session_id)
    return list(session.recorded_lessons)


def remove_recorded_lesson(db: Session, batch_id: str, session_id: str, lesson_id: int) -> None:
    session = meeting_service.get_session_or_404(db, batch_id, session_id)
    lesson = next((row for row in session.recorded_lessons if row.lesson_id == int(lesson_id)), None)
    if not lesson:
        raise NotFound("녹화 강의를 찾을 수 없습니다.", lesson_id=lesson_id)
    session.recorded_lessons.remove(lesson)
    db.commit()

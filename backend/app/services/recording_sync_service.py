"""Recording Sync Service 종료된 미팅의 클라우드 녹화를 세션 녹화 강의로 가져옵니다.

동기화 대상 세션:
    - 미팅이 연결되어 있고 아직 동기화되지 않음
    - 예정 종료 시각 + 버퍼(MEETING_END_BUFFER_MINUTES)가 지남
    - next_retry_at 이 비어 있거나 이미 지남
    - 시도 횟수가 RECORDING_SYNC_MAX_ATTEMPTS 미만

실패 시 시도 횟수를 늘리고 min(base * 2^(n-1), max) 분 뒤로 재시도를 예약합니다.
최대 횟수에 도달하면 자동 재시도를 멈추고 수동 재시도만 가능합니다.
"""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.models.batch import Batch
from app.models.session import BatchSession, RecordedLesson
from app.services.batch_service import get_batch_or_404
from app.services.meeting_service import get_session_or_404
from app.services.schedule_service import sorted_sessions
from app.services.zoom_client import ZoomClient, get_zoom_client
from app.utils.errors import ProviderError, ValidationError
from app.utils.helpers import combine_date_time, org_local_to_utc, utc_now

logger = logging.getLogger(__name__)

NO_RECORDINGS_MESSAGE = "No recordings found"


def compute_backoff(attempts: int) -> timedelta:
    exponent = max(0, int(attempts) - 1)
    minutes = settings.RECORDING_SYNC_BACKOFF_BASE_MINUTES * (2 ** exponent)
    return timedelta(minutes=min(minutes, settings.RECORDING_SYNC_BACKOFF_MAX_MINUTES))


def session_end_utc(session: BatchSession) -> datetime:
    return org_local_to_utc(session.session_date, session.end_time)


def is_sync_due(session: BatchSession, now: datetime) -> bool:
    if not session.meeting_id or session.recording_synced:
        return False
    if int(session.sync_attempts or 0) >= settings.RECORDING_SYNC_MAX_ATTEMPTS:
        return False
    if session.next_retry_at and session.next_retry_at > now:
        return False
    return session_end_utc(session) + timedelta(minutes=settings.MEETING_END_BUFFER_MINUTES) <= now


def _parse_recorded_at(value, session: BatchSession) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
    return combine_date_time(session.session_date, session.start_time)


def _record_failure(session: BatchSession, message: str, now: datetime) -> None:
    session.sync_attempts = int(session.sync_attempts or 0) + 1
    session.last_sync_error = message
    session.last_sync_at = now
    if session.sync_attempts >= settings.RECORDING_SYNC_MAX_ATTEMPTS:
        session.next_retry_at = None
    else:
        session.next_retry_at = now + compute_backoff(session.sync_attempts)


def _record_success(batch: Batch, session: BatchSession, artifacts: list[dict], now: datetime) -> int:
    known = {lesson.provider_file_id for lesson in session.recorded_lessons if lesson.provider_file_id}
    added = 0
    for artifact in artifacts:
        file_id = str(artifact.get("id") or artifact.get("url"))
        if file_id in known:
            continue
        known.add(file_id)
        file_type = artifact.get("file_type")
        label = f" ({file_type})" if file_type else ""
        session.recorded_lessons.append(
            RecordedLesson(
                title=f"Zoom Recording - {session.title or session.session_date.isoformat()}{label}",
                url=artifact["url"],
                recorded_at=_parse_recorded_at(artifact.get("recorded_at"), session),
                source="zoom_auto_sync",
                created_by=batch.assigned_instructor_id,
                provider_file_id=file_id,
                file_type=file_type,
                file_size=artifact.get("size"),
            )
        )
        added += 1
    session.recording_synced = True
    session.sync_attempts = 0
    session.last_sync_error = None
    session.next_retry_at = None
    session.last_sync_at = now
    return added


def _sync_one(client: ZoomClient, batch: Batch, session: BatchSession, now: datetime) -> int:
    """세션 하나를 동기화합니다. 실패하면 ProviderError 를 그대로 올립니다."""
    try:
        artifacts = client.get_meeting_recordings(session.meeting_id)
    except ProviderError as exc:
        _record_failure(session, exc.message, now)
        raise
    if not artifacts:
        _record_failure(session, NO_RECORDINGS_MESSAGE, now)
        raise ProviderError(NO_RECORDINGS_MESSAGE, session_id=session.session_id)
    return _record_success(batch, session, artifacts, now)


def sync_batch(db: Session, batch_id: str, client: ZoomClient, now: Optional[datetime] = None) -> dict:
    """대상 세션을 순서대로 동기화합니다. 세션별 실패는 상태에만 기록하고 다음 세션으로 넘어갑니다."""
    batch = get_batch_or_404(db, batch_id)
    current = now or utc_now()
    summary = {"batch_id": batch.batch_id, "checked": 0, "synced": 0, "failed": 0, "recordings_added": 0}
    for session in sorted_sessions(batch):
        if not is_sync_due(session, current):
            continue
        summary["checked"] += 1
        try:
            summary["recordings_added"] += _sync_one(client, batch, session, current)
            summary["synced"] += 1
        except ProviderError as exc:
            summary["failed"] += 1
            logger.warning(
                "[zoom-sync] session %s (meeting %s) attempt %s failed: %s",
                session.session_id,
                session.meeting_id,
                session.sync_attempts,
                exc.message,
            )
        db.commit()
    logger.info("[zoom-sync] batch %s done: %s", batch.batch_id, summary)
    return summary


def retry_session_sync(db: Session, client: ZoomClient, batch_id: str, session_id: str) -> BatchSession:
    """관리자 수동 재시도. 대기 시간/최대 횟수와 무관하게 즉시 시도하고 실패는 그대로 전파합니다."""
    session = get_session_or_404(db, batch_id, session_id)
    if not session.meeting_id:
        raise ValidationError("미팅이 없는 세션은 녹화를 동기화할 수 없습니다.", session_id=session.session_id)
    if session.recording_synced:
        return session
    now = utc_now()
    try:
        _sync_one(client, session.batch, session, now)
    finally:
        db.commit()
    db.refresh(session)
    return session


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_sync_status(db: Session, batch_id: str, in_progress: bool = False) -> dict:
    batch = get_batch_or_404(db, batch_id)
    sessions = sorted_sessions(batch)
    with_meeting = [s for s in sessions if s.meeting_id]
    synced = [s for s in with_meeting if s.recording_synced]
    failed = [s for s in with_meeting if not s.recording_synced and int(s.sync_attempts or 0) > 0]
    percentage = _round_half_up(len(synced) * 100 / len(with_meeting)) if with_meeting else 0
    return {
        "batch_id": batch.batch_id,
        "in_progress": in_progress,
        "total_sessions": len(sessions),
        "sessions_with_meeting": len(with_meeting),
        "synced_sessions": len(synced),
        "pending_sessions": len(with_meeting) - len(synced),
        "failed_sessions": len(failed),
        "sync_percentage": percentage,
        "sessions": [
            {
                "session_id": s.session_id,
                "session_date": s.session_date,
                "start_time": s.start_time,
                "end_time": s.end_time,
                "title": s.title,
                "meeting_id": s.meeting_id,
                "recording_synced": bool(s.recording_synced),
                "sync_attempts": int(s.sync_attempts or 0),
                "last_sync_error": s.last_sync_error,
                "next_retry_at": s.next_retry_at,
                "last_sync_at": s.last_sync_at,
                "recordings_count": len(s.recorded_lessons),
            }
            for s in sessions
        ],
    }


def batches_with_pending_recordings(db: Session) -> list[str]:
    rows = (
        db.query(BatchSession.batch_id)
        .filter(BatchSession.meeting_id.isnot(None), BatchSession.recording_synced == False)  # noqa: E712
        .distinct()
        .all()
    )
    return sorted(str(batch_id) for (batch_id,) in rows)


class RecordingSyncDispatcher:
    """차수 단위 백그라운드 동기화 실행기. 같은 차수의 동기화는 동시에 하나만 돕니다."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        client_factory: Callable[[], ZoomClient] = get_zoom_client,
        runner: Optional[Callable[[Callable[[], None]], None]] = None,
    ):
        self._session_factory = session_factory
        self._client_factory = client_factory
        self._runner = runner or self._submit
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    def _submit(self, job: Callable[[], None]) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=settings.RECORDING_SYNC_WORKERS,
                    thread_name_prefix="recording-sync",
                )
            executor = self._executor
        executor.submit(job)

    def is_running(self, batch_id: str) -> bool:
        with self._lock:
            return str(batch_id) in self._in_flight

    def enqueue(self, batch_id: str) -> bool:
        """동기화를 예약합니다. 이미 진행 중이면 False 를 반환합니다."""
        key = str(batch_id)
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
        try:
            self._runner(lambda: self._run(key))
        except RuntimeError:
            with self._lock:
                self._in_flight.discard(key)
            raise
        return True

    def _run(self, batch_id: str) -> None:
        db = self._session_factory()
        try:
            sync_batch(db, batch_id, self._client_factory())
        except Exception:
            # 백그라운드 작업 실패는 호출자에게 전파되지 않으며 세션 상태와 로그로만 확인합니다.
            db.rollback()
            logger.exception("[zoom-sync] batch %s sync aborted", batch_id)
        finally:
            db.close()
            with self._lock:
                self._in_flight.discard(batch_id)

    def enqueue_pending(self, db: Session) -> list[str]:
        queued = []
        for batch_id in batches_with_pending_recordings(db):
            if self.enqueue(batch_id):
                queued.append(batch_id)
        return queued

    def shutdown(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)


_dispatcher: Optional[RecordingSyncDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_sync_dispatcher() -> RecordingSyncDispatcher:
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = RecordingSyncDispatcher()
        return _dispatcher


def sync_all_batches(db: Session, dispatcher: Optional[RecordingSyncDispatcher] = None) -> list[str]:
    """미동기화 미팅이 있는 모든 차수를 예약합니다. 주기 실행(cron) 진입점입니다."""
    queued = (dispatcher or get_sync_dispatcher()).enqueue_pending(db)
    logger.info("[zoom-sync] queued %s batch(es): %s", len(queued), queued)
    return queued

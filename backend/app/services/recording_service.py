"""Recording Service 스토리지 녹화 파일과 수업 기록을 연결해 녹화 목록을 구성합니다.

세 가지 목록은 서로 겹치지 않습니다.
    personal        추적 중인 차수로 연결되지 않는 파일 (videos/student/{id}/ 등)
    scheduled       일정 세션에 직접 등록된 녹화 강의
    batch_organized 경로의 차수 id/회차 번호로 묶은 파일

모든 스토리지 파일 URL 은 만료 시간이 있는 서명 URL 로만 반환됩니다.
"""

import logging
import os
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models.batch import Batch
from app.models.live_session import LiveClassSession
from app.models.session import BatchSession, RecordedLesson
from app.services.batch_service import get_batch_or_404
from app.services.enrollment_service import student_batch_ids
from app.services.storage_client import S3StorageClient, StorageObject
from app.utils.duration_estimators import (
    DurationInput,
    default_duration,
    estimate_duration_minutes,
    from_provider_size,
    from_session_record,
)
from app.utils.errors import PermissionDenied
from app.utils.helpers import paginate, parse_time_of_day
from app.utils.recording_keys import (
    extract_batch_id,
    is_folder_marker,
    parse_recording_key,
    parse_session_no,
    session_lookup_key,
)

logger = logging.getLogger(__name__)

SCHEDULED_ESTIMATORS = (from_session_record, from_provider_size, default_duration)


def _activity_key(value: Optional[datetime]) -> datetime:
    return value or datetime.min


def batch_prefix(batch_id: str) -> str:
    return f"{settings.RECORDING_PREFIX}/{batch_id}/"


def student_prefix(student_id: int) -> str:
    return f"{settings.RECORDING_PREFIX}/student/{student_id}/"


def build_session_index(records: Iterable[LiveClassSession]) -> dict[str, LiveClassSession]:
    """{batchId}_{회차} 키로 라이브 세션 기록을 찾습니다. 같은 키는 먼저 등록된 기록을 사용합니다."""
    index: dict[str, LiveClassSession] = {}
    for record in records:
        number = parse_session_no(record.session_no)
        if number is None:
            continue
        index.setdefault(session_lookup_key(record.batch_id, number), record)
    return index


def correlate_recordings(
    objects: Iterable[StorageObject],
    index: dict[str, LiveClassSession],
    batch_names: Optional[dict[str, str]] = None,
) -> list[dict]:
    """파일을 차수 > 회차 > 파트 순으로 묶습니다. url 은 서명 전이라 비어 있습니다."""
    names = batch_names or {}
    batches: "OrderedDict[str, dict]" = OrderedDict()
    for obj in objects:
        parsed = parse_recording_key(obj.key)
        if parsed is None:
            continue
        group = batches.setdefault(
            parsed.batch_id,
            {
                "batch_id": parsed.batch_id,
                "batch_name": names.get(parsed.batch_id),
                "latest_activity": None,
                "sessions": OrderedDict(),
            },
        )
        if obj.last_modified and _activity_key(obj.last_modified) > _activity_key(group["latest_activity"]):
            group["latest_activity"] = obj.last_modified

        record = index.get(parsed.session_key)
        title = record.session_title if record else f"Session {parsed.session_number}"
        session = group["sessions"].setdefault(
            parsed.session_key,
            {
                "session_key": parsed.session_key,
                "session_number": parsed.session_number,
                "title": title,
                "instructor_id": record.instructor_id if record else None,
                "duration_minutes": record.duration_minutes if record else None,
                "matched": record is not None,
                "recordings": [],
            },
        )
        part = len(session["recordings"]) + 1
        session["recordings"].append(
            {
                "title": title if part == 1 else f"{title} - Part {part}",
                "url": "",
                "storage_key": obj.key,
                "size_bytes": obj.size,
                "last_modified": obj.last_modified,
                "duration_minutes": estimate_duration_minutes(
                    DurationInput(
                        session_minutes=record.duration_minutes if record else None,
                        object_size_bytes=obj.size,
                    )
                ),
                "part": part,
                "source": "storage",
            }
        )

    groups = []
    for group in batches.values():
        group["sessions"] = sorted(group["sessions"].values(), key=lambda s: s["session_number"])
        groups.append(group)
    groups.sort(key=lambda g: _activity_key(g["latest_activity"]), reverse=True)
    return groups


def _personal_item(obj: StorageObject) -> dict:
    return {
        "title": os.path.basename(obj.key) or obj.key,
        "url": "",
        "storage_key": obj.key,
        "size_bytes": obj.size,
        "last_modified": obj.last_modified,
        "duration_minutes": estimate_duration_minutes(DurationInput(object_size_bytes=obj.size)),
        "part": 1,
        "source": "storage",
    }


def _list_unique(storage: S3StorageClient, prefixes: list[str]) -> list[StorageObject]:
    seen: set[str] = set()
    objects = []
    for prefix in prefixes:
        for obj in storage.list_objects(prefix):
            if is_folder_marker(obj.key) or obj.key in seen:
                continue
            seen.add(obj.key)
            objects.append(obj)
    return objects


def _lesson_storage_key(storage: S3StorageClient, lesson: RecordedLesson) -> Optional[str]:
    return lesson.storage_key or storage.key_from_url(lesson.url)


def _scheduled_lessons(db: Session, batch_ids: list[str]) -> list[tuple[RecordedLesson, BatchSession]]:
    if not batch_ids:
        return []
    return (
        db.query(RecordedLesson, BatchSession)
        .join(BatchSession, RecordedLesson.session_id == BatchSession.session_id)
        .filter(BatchSession.batch_id.in_(batch_ids))
        .all()
    )


def _scheduled_item(lesson: RecordedLesson, session: BatchSession) -> dict:
    scheduled = parse_time_of_day(session.end_time) - parse_time_of_day(session.start_time)
    return {
        "lesson_id": lesson.lesson_id,
        "batch_id": session.batch_id,
        "session_id": session.session_id,
        "session_date": session.session_date,
        "title": lesson.title,
        "url": lesson.url or "",
        "storage_key": lesson.storage_key,
        "source": lesson.source,
        "recorded_at": lesson.recorded_at,
        "duration_minutes": estimate_duration_minutes(
            DurationInput(session_minutes=scheduled, provider_size_bytes=lesson.file_size),
            SCHEDULED_ESTIMATORS,
        ),
    }


def _signer(storage: S3StorageClient, ttl_seconds: Optional[int]) -> Callable[[str], str]:
    def sign(key: str) -> str:
        return storage.sign(key, ttl_seconds)
    return sign


def _sign_scheduled(storage: S3StorageClient, sign: Callable[[str], str], items: list[dict]) -> None:
    for item in items:
        key = item.pop("storage_key", None) or storage.key_from_url(item["url"])
        if key:
            item["url"] = sign(key)


def _sign_groups(sign: Callable[[str], str], groups: list[dict]) -> None:
    for group in groups:
        for session in group["sessions"]:
            for item in session["recordings"]:
                item["url"] = sign(item["storage_key"])


def _empty_page(page_size: int | None) -> dict:
    return paginate([], 1, page_size)


def _batch_names(db: Session, batch_ids: Iterable[str]) -> dict[str, str]:
    ids = list(batch_ids)
    if not ids:
        return {}
    rows = db.query(Batch.batch_id, Batch.batch_name).filter(Batch.batch_id.in_(ids)).all()
    return {str(batch_id): name for batch_id, name in rows}


def _session_index(db: Session, batch_ids: list[str]) -> dict[str, LiveClassSession]:
    if not batch_ids:
        return {}
    records = (
        db.query(LiveClassSession)
        .filter(LiveClassSession.batch_id.in_(batch_ids))
        .order_by(LiveClassSession.live_session_id.asc())
        .all()
    )
    return build_session_index(records)


def list_batch_recordings(
    db: Session,
    storage: S3StorageClient,
    batch_id: str,
    *,
    page: int | None = None,
    page_size: int | None = None,
    ttl_seconds: Optional[int] = None,
) -> dict:
    """단일 차수 목록. personal/scheduled 는 중복 방지를 위해 비워 둡니다."""
    batch = get_batch_or_404(db, batch_id)
    objects = _list_unique(storage, [batch_prefix(batch.batch_id)])
    objects = [obj for obj in objects if extract_batch_id(obj.key) == batch.batch_id]
    groups = correlate_recordings(objects, _session_index(db, [batch.batch_id]), {batch.batch_id: batch.batch_name})
    batch_page = paginate(groups, page, page_size)
    _sign_groups(_signer(storage, ttl_seconds), batch_page["items"])
    logger.info("[recordings] batch %s: %s object(s), %s session group(s)", batch.batch_id, len(objects), len(groups))
    return {
        "personal": _empty_page(page_size),
        "scheduled": _empty_page(page_size),
        "batch_organized": batch_page,
    }


def list_student_recordings(
    db: Session,
    storage: S3StorageClient,
    student_id: int,
    *,
    batch_id: Optional[str] = None,
    personal_page: int | None = None,
    scheduled_page: int | None = None,
    batch_page: int | None = None,
    page_size: int | None = None,
    ttl_seconds: Optional[int] = None,
) -> dict:
    tracked = student_batch_ids(db, student_id)
    if batch_id is not None:
        if str(batch_id) not in tracked:
            raise PermissionDenied("수강 중인 차수의 녹화만 조회할 수 있습니다.", batch_id=batch_id)
        return list_batch_recordings(
            db, storage, batch_id, page=batch_page, page_size=page_size, ttl_seconds=ttl_seconds
        )

    tracked_set = set(tracked)
    prefixes = [batch_prefix(b) for b in tracked] + [student_prefix(student_id)]
    objects = _list_unique(storage, prefixes)

    lessons = _scheduled_lessons(db, tracked)
    referenced = {key for key in (_lesson_storage_key(storage, lesson) for lesson, _ in lessons) if key}
    remaining = [obj for obj in objects if obj.key not in referenced]

    personal = [_personal_item(obj) for obj in remaining if extract_batch_id(obj.key) not in tracked_set]
    correlated = [obj for obj in remaining if extract_batch_id(obj.key) in tracked_set]
    personal.sort(key=lambda item: _activity_key(item["last_modified"]), reverse=True)

    scheduled = [_scheduled_item(lesson, session) for lesson, session in lessons]
    scheduled.sort(key=lambda item: _activity_key(item["recorded_at"]), reverse=True)

    groups = correlate_recordings(correlated, _session_index(db, tracked), _batch_names(db, tracked))

    sign = _signer(storage, ttl_seconds)
    personal_result = paginate(personal, personal_page, page_size)
    for item in personal_result["items"]:
        item["url"] = sign(item["storage_key"])
    scheduled_result = paginate(scheduled, scheduled_page, page_size)
    _sign_scheduled(storage, sign, scheduled_result["items"])
    batch_result = paginate(groups, batch_page, page_size)
    _sign_groups(sign, batch_result["items"])

    logger.info(
        "[recordings] student %s: personal=%s scheduled=%s batches=%s",
        student_id,
        len(personal),
        len(scheduled),
        len(groups),
    )
    return {
        "personal": personal_result,
        "scheduled": scheduled_result,
        "batch_organized": batch_result,
    }

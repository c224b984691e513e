"""녹화 동기화 상태와 녹화 목록 응답 스키마입니다."""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from app.schemas.common import Page


class SyncQueuedOut(BaseModel):
    batch_id: str
    queued: bool
    in_progress: bool
    message: str


class SessionSyncStatus(BaseModel):
    session_id: str
    session_date: date
    start_time: str
    end_time: str
    title: Optional[str] = None
    meeting_id: Optional[str] = None
    recording_synced: bool
    sync_attempts: int
    last_sync_error: Optional[str] = None
    next_retry_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None
    recordings_count: int


class SyncStatusOut(BaseModel):
    batch_id: str
    in_progress: bool
    total_sessions: int
    sessions_with_meeting: int
    synced_sessions: int
    pending_sessions: int
    failed_sessions: int
    sync_percentage: int
    sessions: List[SessionSyncStatus]


class RecordingItemOut(BaseModel):
    title: str
    url: str
    storage_key: Optional[str] = None
    size_bytes: Optional[int] = None
    last_modified: Optional[datetime] = None
    duration_minutes: int
    part: int = 1
    source: str


class RecordingSessionGroupOut(BaseModel):
    session_key: str
    session_number: int
    title: str
    instructor_id: Optional[int] = None
    duration_minutes: Optional[int] = None
    matched: bool
    recordings: List[RecordingItemOut]


class RecordingBatchGroupOut(BaseModel):
    batch_id: str
    batch_name: Optional[str] = None
    latest_activity: Optional[datetime] = None
    sessions: List[RecordingSessionGroupOut]


class ScheduledRecordingOut(BaseModel):
    lesson_id: int
    batch_id: str
    session_id: str
    session_date: date
    title: str
    url: str
    source: str
    recorded_at: datetime
    duration_minutes: int


class RecordingListOut(BaseModel):
    personal: Page[RecordingItemOut]
    scheduled: Page[ScheduledRecordingOut]
    batch_organized: Page[RecordingBatchGroupOut]


class LiveSessionCreate(BaseModel):
    batch_id: str
    session_no: str = Field(min_length=1, max_length=50)
    session_title: str = Field(min_length=1, max_length=200)
    instructor_id: Optional[int] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    session_date: Optional[date] = None


class LiveSessionOut(LiveSessionCreate):
    live_session_id: int
    status: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

"""Session/녹화 강의 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import date, datetime


class MeetingInfoOut(BaseModel):
    meeting_id: Optional[str] = None
    join_url: Optional[str] = None
    host_url: Optional[str] = None
    password: Optional[str] = None
    topic: Optional[str] = None
    recording_synced: bool = False
    sync_attempts: int = 0
    last_sync_error: Optional[str] = None
    next_retry_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RecordedLessonCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    url: Optional[str] = None
    storage_key: Optional[str] = None
    source: Literal["manual_upload", "external_link"] = "manual_upload"
    recorded_at: Optional[datetime] = None


class RecordedLessonOut(BaseModel):
    lesson_id: int
    session_id: str
    title: str
    url: Optional[str] = None
    storage_key: Optional[str] = None
    recorded_at: datetime
    source: str
    created_by: Optional[int] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"from_attributes": True}


class ScheduledSessionCreate(BaseModel):
    session_date: date
    start_time: str
    end_time: str
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    create_meeting: bool = False


class SessionOut(BaseModel):
    session_id: str
    batch_id: str
    session_date: date
    start_time: str
    end_time: str
    title: Optional[str] = None
    description: Optional[str] = None
    meeting: MeetingInfoOut
    recorded_lessons: List[RecordedLessonOut] = []
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

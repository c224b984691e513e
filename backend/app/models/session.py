"""Batch에 종속된 수업 세션/녹화 강의 SQLAlchemy 모델입니다."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, BigInteger
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


RECORDING_SOURCES = ("manual_upload", "zoom_auto_sync", "external_link")


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class MeetingInfo:
    meeting_id: Optional[str]
    join_url: Optional[str]
    host_url: Optional[str]
    password: Optional[str]
    topic: Optional[str]
    recording_synced: bool
    sync_attempts: int
    last_sync_error: Optional[str]
    next_retry_at: Optional[datetime]
    last_sync_at: Optional[datetime]


class BatchSession(Base):
    __tablename__ = "batch_session"

    session_id = Column(String(32), primary_key=True, default=new_session_id)
    batch_id = Column(String(24), ForeignKey("batch.batch_id", ondelete="CASCADE"), nullable=False)
    session_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)    # HH:MM
    title = Column(String(200))
    description = Column(String(500))

    # 외부 미팅(Zoom) 상태
    meeting_id = Column(String(64), nullable=True)
    meeting_join_url = Column(Text, nullable=True)
    meeting_host_url = Column(Text, nullable=True)
    meeting_password = Column(String(64), nullable=True)
    meeting_topic = Column(String(300), nullable=True)
    recording_synced = Column(Boolean, nullable=False, default=False)
    sync_attempts = Column(Integer, nullable=False, default=0)
    last_sync_error = Column(Text, nullable=True)
    next_retry_at = Column(DateTime, nullable=True)
    last_sync_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    batch = relationship("Batch", back_populates="sessions")
    recorded_lessons = relationship(
        "RecordedLesson",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="RecordedLesson.lesson_id",
    )

    __table_args__ = (
        Index("idx_batch_session_date", "batch_id", "session_date"),
    )

    @property
    def meeting(self) -> MeetingInfo:
        return MeetingInfo(
            meeting_id=self.meeting_id,
            join_url=self.meeting_join_url,
            host_url=self.meeting_host_url,
            password=self.meeting_password,
            topic=self.meeting_topic,
            recording_synced=bool(self.recording_synced),
            sync_attempts=int(self.sync_attempts or 0),
            last_sync_error=self.last_sync_error,
            next_retry_at=self.next_retry_at,
            last_sync_at=self.last_sync_at,
        )


class RecordedLesson(Base):
    __tablename__ = "recorded_lesson"

    lesson_id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(32), ForeignKey("batch_session.session_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(300), nullable=False)
    url = Column(Text, nullable=True)
    storage_key = Column(String(1024), nullable=True)
    recorded_at = Column(DateTime, nullable=False)
    source = Column(String(30), nullable=False, default="manual_upload")
    created_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    provider_file_id = Column(String(128), nullable=True)
    file_type = Column(String(20), nullable=True)
    file_size = Column(BigInteger, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    session = relationship("BatchSession", back_populates="recorded_lessons")

    __table_args__ = (
        Index("idx_recorded_lesson_provider_file", "session_id", "provider_file_id"),
    )

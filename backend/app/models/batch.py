"""Batch 도메인의 SQLAlchemy 모델 정의입니다."""

import secrets

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


BATCH_TYPES = ("group", "individual")
BATCH_STATUSES = ("Upcoming", "Active", "Completed", "Cancelled")


def new_batch_id() -> str:
    # 스토리지 경로(videos/{batchId}/...)와 대응되는 24자리 hex 식별자
    return secrets.token_hex(12)


class Batch(Base):
    __tablename__ = "batch"

    batch_id = Column(String(24), primary_key=True, default=new_batch_id)
    batch_name = Column(String(200), nullable=False)
    batch_code = Column(String(50), unique=True, nullable=False)
    course_id = Column(Integer, ForeignKey("course.course_id"), nullable=False)
    batch_type = Column(String(20), nullable=False, default="group")  # group/individual
    capacity = Column(Integer, nullable=False, default=1)
    enrolled_students = Column(Integer, nullable=False, default=0)
    assigned_instructor_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    status = Column(String(20), nullable=False, default="Upcoming")
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    batch_notes = Column(Text)
    created_by = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    updated_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    version = Column(Integer, nullable=False)

    course = relationship("Course", back_populates="batches")
    assigned_instructor = relationship(
        "User",
        foreign_keys=[assigned_instructor_id],
        back_populates="instructed_batches",
    )
    sessions = relationship(
        "BatchSession",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="BatchSession.session_date",
    )
    status_history = relationship(
        "BatchStatusHistory",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="BatchStatusHistory.history_id",
    )
    enrollments = relationship("Enrollment", back_populates="batch")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_batch_course_status", "course_id", "status"),
    )


class BatchStatusHistory(Base):
    __tablename__ = "batch_status_history"

    history_id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(String(24), ForeignKey("batch.batch_id", ondelete="CASCADE"), nullable=False)
    previous_status = Column(String(20), nullable=False)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    changed_at = Column(DateTime, nullable=False)
    reason = Column(Text, nullable=False)

    batch = relationship("Batch", back_populates="status_history")

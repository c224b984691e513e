"""Enrollment 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


ENROLLMENT_STATUSES = ("active", "completed", "cancelled", "on_hold", "transferred")


class Enrollment(Base):
    __tablename__ = "enrollment"

    enrollment_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    course_id = Column(Integer, ForeignKey("course.course_id"), nullable=False)
    batch_id = Column(String(24), ForeignKey("batch.batch_id"), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    enrolled_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    enrolled_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    student = relationship("User", foreign_keys=[student_id], back_populates="enrollments")
    batch = relationship("Batch", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("student_id", "batch_id", name="uq_enrollment_student_batch"),
        Index("idx_enrollment_batch_status", "batch_id", "status"),
    )

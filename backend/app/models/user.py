"""User 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    login_id = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(200))
    role = Column(String(20), nullable=False)  # admin/super-admin/instructor/student
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    instructed_batches = relationship(
        "Batch",
        foreign_keys="Batch.assigned_instructor_id",
        back_populates="assigned_instructor",
    )
    enrollments = relationship("Enrollment", foreign_keys="Enrollment.student_id", back_populates="student")

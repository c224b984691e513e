"""외부에서 기록된 라이브 수업 세션(회차 번호 기반) 모델입니다."""

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from app.database import Base


class LiveClassSession(Base):
    __tablename__ = "live_class_session"

    live_session_id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(String(24), ForeignKey("batch.batch_id", ondelete="CASCADE"), nullable=False)
    session_no = Column(String(50), nullable=False)  # 제공자 회차 표기, 예: "3", "03-A"
    session_title = Column(String(200), nullable=False)
    instructor_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    session_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled/live/completed/cancelled
    created_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_live_session_batch", "batch_id", "session_no"),
    )

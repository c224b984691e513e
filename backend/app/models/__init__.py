"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from app.models.user import User
from app.models.course import Course
from app.models.batch import Batch, BatchStatusHistory
from app.models.session import BatchSession, RecordedLesson
from app.models.enrollment import Enrollment
from app.models.live_session import LiveClassSession

__all__ = [
    "User",
    "Course",
    "Batch", "BatchStatusHistory",
    "BatchSession", "RecordedLesson",
    "Enrollment",
    "LiveClassSession",
]

"""Enrollment 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime

from app.schemas.user import UserBrief


EnrollmentStatus = Literal["active", "completed", "cancelled", "on_hold", "transferred"]


class AddStudentRequest(BaseModel):
    student_id: int


class TransferStudentRequest(BaseModel):
    target_batch_id: str


class StudentStatusUpdate(BaseModel):
    status: EnrollmentStatus


class EnrollmentOut(BaseModel):
    enrollment_id: int
    student_id: int
    course_id: int
    batch_id: str
    status: str
    enrolled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    student: Optional[UserBrief] = None

    model_config = {"from_attributes": True}

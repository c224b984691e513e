"""Batch 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import date, datetime

from app.schemas.user import UserBrief


BatchType = Literal["group", "individual"]
BatchStatus = Literal["Upcoming", "Active", "Completed", "Cancelled"]


class BatchBase(BaseModel):
    batch_name: str = Field(min_length=1, max_length=200)
    batch_type: BatchType = "group"
    capacity: int = Field(default=1, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    batch_notes: Optional[str] = None


class BatchCreate(BatchBase):
    course_id: int
    batch_code: Optional[str] = Field(default=None, max_length=50)
    assigned_instructor_id: Optional[int] = None


class BatchUpdate(BaseModel):
    batch_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    batch_type: Optional[BatchType] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    batch_notes: Optional[str] = None


class BatchOut(BaseModel):
    batch_id: str
    batch_name: str
    batch_code: str
    course_id: int
    batch_type: str
    capacity: int
    enrolled_students: int
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    batch_notes: Optional[str] = None
    assigned_instructor_id: Optional[int] = None
    assigned_instructor: Optional[UserBrief] = None
    session_count: int = 0
    created_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BatchInstructorAssign(BaseModel):
    instructor_id: int


class BatchStatusUpdate(BaseModel):
    status: BatchStatus
    reason: Optional[str] = Field(default=None, max_length=500)


class BatchStatusHistoryOut(BaseModel):
    history_id: int
    batch_id: str
    previous_status: str
    new_status: str
    changed_by: int
    changed_at: datetime
    reason: str

    model_config = {"from_attributes": True}

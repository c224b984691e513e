"""사용자/로그인 응답 스키마입니다. 강사/수강생 요약은 차수·수강 응답에 포함됩니다."""

from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import datetime


Role = Literal["admin", "super-admin", "instructor", "student"]


class UserOut(BaseModel):
    user_id: int
    login_id: str
    name: str
    email: Optional[str] = None
    role: Role
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserBrief(BaseModel):
    user_id: int
    login_id: str
    name: str
    role: Role

    model_config = {"from_attributes": True}


class LoginRequest(BaseModel):
    login_id: str = Field(min_length=1, max_length=50)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut

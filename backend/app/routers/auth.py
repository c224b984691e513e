"""로그인/현재 사용자 API 라우터입니다. 차수 관리 API 호출에 쓰는 Bearer 토큰을 발급합니다."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.user import LoginRequest, TokenResponse, UserOut
from app.services.auth_service import create_access_token, login_with_id
from app.middleware.auth_middleware import get_current_user
from app.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = login_with_id(db, request.login_id.strip())
    logger.info("[auth] %s (%s) logged in", user.login_id, user.role)
    return TokenResponse(access_token=create_access_token(user), user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    # 토큰은 서버에 저장하지 않으므로 클라이언트가 폐기합니다.
    return {"message": "로그아웃 되었습니다."}

"""Auth Service 로그인 ID 기반 인증과 JWT 발급/검증을 담당합니다.

토큰 payload 는 ``sub``(user_id), ``role``, ``exp`` 로 구성됩니다. 역할은 발급 시점 값이며
권한 판정은 매 요청마다 DB 의 현재 역할로 다시 수행합니다.
"""

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User
from app.utils.errors import Unauthenticated

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def create_access_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": str(user.user_id), "role": user.role, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> int:
    """토큰을 검증하고 user_id 를 반환합니다."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise Unauthenticated("유효하지 않거나 만료된 토큰입니다.") from exc
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise Unauthenticated("토큰에 사용자 정보가 없습니다.")
    return int(subject)


def get_active_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.user_id == int(user_id), User.is_active == True).first()  # noqa: E712
    if not user:
        raise Unauthenticated("사용자를 찾을 수 없거나 비활성화된 계정입니다.", user_id=user_id)
    return user


def login_with_id(db: Session, login_id: str) -> User:
    user = db.query(User).filter(User.login_id == login_id, User.is_active == True).first()  # noqa: E712
    if not user:
        logger.info("[auth] login rejected for %s", login_id)
        raise Unauthenticated(f"로그인 ID '{login_id}'에 해당하는 활성 사용자를 찾을 수 없습니다.")
    return user

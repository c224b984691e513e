"""Bearer 토큰 인증과 역할 검사 FastAPI 의존성입니다."""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.services.auth_service import decode_access_token, get_active_user
from app.utils.errors import PermissionDenied

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    user_id = decode_access_token(credentials.credentials)
    return get_active_user(db, user_id)


def require_roles(*roles: str):
    """현재 사용자의 역할이 roles 중 하나가 아니면 403(permission_denied)."""
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise PermissionDenied(
                "이 작업을 수행할 권한이 없습니다.",
                required_roles=list(roles),
                role=current_user.role,
            )
        return current_user
    return checker

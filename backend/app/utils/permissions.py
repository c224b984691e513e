"""Permissions 관련 공용 유틸리티 헬퍼입니다."""

from app.models.user import User
from app.utils.errors import PermissionDenied


ADMIN = "admin"
SUPER_ADMIN = "super-admin"
INSTRUCTOR = "instructor"
STUDENT = "student"

ADMIN_ROLES = (ADMIN, SUPER_ADMIN)
STAFF_ROLES = (*ADMIN_ROLES, INSTRUCTOR)


def is_student(user: User) -> bool:
    return user.role == STUDENT


def is_staff(user: User) -> bool:
    return user.role in STAFF_ROLES


def ensure_can_view_student(user: User, student_id: int) -> None:
    if is_staff(user):
        return
    if is_student(user) and int(user.user_id) == int(student_id):
        return
    raise PermissionDenied("본인 녹화 강의만 조회할 수 있습니다.")

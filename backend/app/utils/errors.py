"""배치/세션 도메인의 타입별 오류 정의입니다.

서비스 레이어는 기존과 동일하게 HTTPException 계열을 raise 하고, 라우터는 그대로 전달합니다.
각 오류는 고정된 HTTP 상태와 ``code`` 를 가지며 ``context`` 는 응답 본문에 함께 실립니다.
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status


class DomainError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "domain_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.context}


class ValidationError(DomainError):
    code = "validation_error"


class MissingDateRange(DomainError):
    code = "missing_date_range"

    def __init__(self, batch_id: str):
        super().__init__("차수 시작일/종료일이 설정되지 않아 일정을 추가할 수 없습니다.", batch_id=batch_id)


class OutOfRange(DomainError):
    code = "out_of_range"


class SchedulingConflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "scheduling_conflict"

    def __init__(self, conflicting_session_id: str, start_time: str, end_time: str, title: Optional[str] = None):
        label = f"'{title}' " if title else ""
        super().__init__(
            f"같은 날짜의 기존 세션 {label}({start_time}-{end_time})과 시간이 겹칩니다.",
            conflicting_session_id=conflicting_session_id,
            conflicting_start_time=start_time,
            conflicting_end_time=end_time,
        )


class InvalidTransition(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"

    def __init__(self, current: str, requested: str, allowed: Iterable[str]):
        allowed_list = sorted(allowed)
        allowed_text = ", ".join(allowed_list) if allowed_list else "없음"
        super().__init__(
            f"'{current}' 상태에서 '{requested}' 상태로 변경할 수 없습니다. 허용: {allowed_text}",
            current_status=current,
            requested_status=requested,
            allowed_statuses=allowed_list,
        )


class ActivationPrecondition(DomainError):
    code = "activation_precondition"

    def __init__(self, missing: list[str]):
        super().__init__(
            "차수를 Active로 전환하려면 강사 배정과 1개 이상의 일정이 필요합니다.",
            missing=missing,
        )


class CapacityExceeded(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "capacity_exceeded"


class ProviderError(DomainError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "provider_error"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConcurrencyConflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "concurrency_conflict"


class PermissionDenied(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"


class Unauthenticated(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"

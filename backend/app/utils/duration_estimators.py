"""녹화 길이(분) 추정 체인입니다. 앞선 추정기가 값을 내지 못하면 다음 추정기를 씁니다."""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from app.config import settings

MEGABYTE = 1024 * 1024
# 제공자(Zoom) 녹화 파일은 분당 약 1.5MB
PROVIDER_MB_PER_MINUTE = 1.5


@dataclass(frozen=True)
class DurationInput:
    session_minutes: Optional[int] = None
    provider_size_bytes: Optional[int] = None
    object_size_bytes: Optional[int] = None


Estimator = Callable[[DurationInput], Optional[int]]


def from_session_record(data: DurationInput) -> Optional[int]:
    if data.session_minutes and data.session_minutes > 0:
        return int(data.session_minutes)
    return None


def from_provider_size(data: DurationInput) -> Optional[int]:
    if not data.provider_size_bytes or data.provider_size_bytes <= 0:
        return None
    return max(1, round(data.provider_size_bytes / MEGABYTE / PROVIDER_MB_PER_MINUTE))


def from_object_size(data: DurationInput) -> Optional[int]:
    if not data.object_size_bytes or data.object_size_bytes <= 0:
        return None
    megabytes = data.object_size_bytes / MEGABYTE
    if megabytes > 100:
        rate = 0.5
    elif megabytes >= 10:
        rate = 0.7
    else:
        rate = 1.0
    return max(1, round(megabytes * rate))


def default_duration(data: DurationInput) -> Optional[int]:
    return settings.DEFAULT_RECORDING_DURATION_MINUTES


DEFAULT_ESTIMATORS: tuple[Estimator, ...] = (
    from_session_record,
    from_provider_size,
    from_object_size,
    default_duration,
)


def estimate_duration_minutes(data: DurationInput, estimators: Sequence[Estimator] = DEFAULT_ESTIMATORS) -> int:
    for estimator in estimators:
        minutes = estimator(data)
        if minutes is not None:
            return minutes
    return settings.DEFAULT_RECORDING_DURATION_MINUTES

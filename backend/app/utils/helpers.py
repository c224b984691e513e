"""Helpers 관련 공용 유틸리티 헬퍼입니다."""

import re
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo
from typing import Sequence, TypeVar

from app.config import settings
from app.utils.errors import ValidationError

T = TypeVar("T")

TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_time_of_day(value: str, field: str = "time") -> int:
    """HH:MM 문자열을 자정 기준 분으로 변환합니다."""
    text = (value or "").strip()
    matched = TIME_OF_DAY_RE.match(text)
    if not matched:
        raise ValidationError(f"{field} 값은 HH:MM(24시간) 형식이어야 합니다.", field=field, value=value)
    return int(matched.group(1)) * 60 + int(matched.group(2))


def combine_date_time(day: date, time_of_day: str) -> datetime:
    minutes = parse_time_of_day(time_of_day)
    return datetime(day.year, day.month, day.day, minutes // 60, minutes % 60)


def normalize_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    page_value = max(1, int(page or 1))
    size_value = int(page_size or settings.DEFAULT_PAGE_SIZE)
    size_value = max(1, min(size_value, settings.MAX_PAGE_SIZE))
    return page_value, size_value


def paginate(rows: Sequence[T], page: int | None, page_size: int | None) -> dict:
    page_value, size_value = normalize_page(page, page_size)
    start = (page_value - 1) * size_value
    return {
        "items": list(rows[start:start + size_value]),
        "total_count": len(rows),
        "page": page_value,
        "page_size": size_value,
    }


def utc_now() -> datetime:
    """DB 저장용 naive UTC 시각입니다."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def org_local_to_utc(day: date, time_of_day: str) -> datetime:
    """조직 시간대의 날짜/시각을 naive UTC 로 변환합니다."""
    local = combine_date_time(day, time_of_day).replace(tzinfo=ZoneInfo(settings.ORG_TIMEZONE))
    return local.astimezone(timezone.utc).replace(tzinfo=None)

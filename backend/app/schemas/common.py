"""목록 응답 공통 스키마입니다."""

from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T]
    total_count: int
    page: int
    page_size: int

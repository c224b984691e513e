"""batch 행의 version 컬럼을 이용한 낙관적 동시성 재시도 헬퍼입니다."""

import logging
from typing import Callable, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.utils.errors import ConcurrencyConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_optimistic_retry(db: Session, operation: Callable[[], T], attempts: int | None = None) -> T:
    """읽기-검증-쓰기 작업을 실행하고 커밋 시점 충돌이면 롤백 후 다시 검증합니다.

    ``operation`` 은 매 시도마다 최신 상태를 다시 읽고 불변식을 검증한 뒤 ``db.commit()`` 까지
    수행해야 합니다. 도메인 오류는 그대로 전파됩니다.
    """
    max_attempts = max(1, int(attempts or settings.OPTIMISTIC_RETRY_ATTEMPTS))
    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except StaleDataError as exc:
            db.rollback()
            db.expire_all()
            logger.warning("[batch] concurrent update detected (attempt %s/%s): %s", attempt, max_attempts, exc)
    raise ConcurrencyConflict("다른 요청이 동시에 차수를 수정했습니다. 잠시 후 다시 시도해 주세요.")

"""차수 상태 전이 규칙과 변경 이력을 관리합니다.

허용 전이:
    Upcoming  -> Active, Cancelled
    Active    -> Completed, Cancelled
    Completed -> (없음, 종료 상태)
    Cancelled -> Upcoming, Active (재개)

Active 진입은 강사 배정과 1개 이상의 일정이 있어야 합니다. 상태 변경과 이력 기록은
한 트랜잭션으로 커밋되며, 동시 변경은 batch version 충돌로 감지해 재검증합니다.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.batch import BATCH_STATUSES, Batch, BatchStatusHistory
from app.models.user import User
from app.services.batch_service import get_batch_or_404
from app.utils.concurrency import run_with_optimistic_retry
from app.utils.errors import ActivationPrecondition, InvalidTransition, ValidationError
from app.utils.helpers import utc_now

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "Upcoming": frozenset({"Active", "Cancelled"}),
    "Active": frozenset({"Completed", "Cancelled"}),
    "Completed": frozenset(),
    "Cancelled": frozenset({"Upcoming", "Active"}),
}

CLOSED_STATUSES = frozenset({"Completed", "Cancelled"})


def allowed_transitions(current: str) -> frozenset[str]:
    return ALLOWED_TRANSITIONS.get(current, frozenset())


def check_transition(batch: Batch, new_status: str) -> None:
    if new_status not in BATCH_STATUSES:
        raise ValidationError(f"알 수 없는 차수 상태입니다: {new_status}", status=new_status)
    allowed = allowed_transitions(batch.status)
    if new_status not in allowed:
        raise InvalidTransition(batch.status, new_status, allowed)
    if new_status == "Active":
        missing = []
        if not batch.assigned_instructor_id:
            missing.append("assigned_instructor")
        if not batch.sessions:
            missing.append("schedule")
        if missing:
            raise ActivationPrecondition(missing)


def change_batch_status(
    db: Session,
    batch_id: str,
    new_status: str,
    current_user: User,
    reason: Optional[str] = None,
) -> Batch:
    note = (reason or "").strip() or f"Status changed to {new_status}"

    def _operation() -> Batch:
        batch = get_batch_or_404(db, batch_id)
        previous = batch.status
        check_transition(batch, new_status)
        batch.status = new_status
        batch.updated_by = current_user.user_id
        batch.status_history.append(
            BatchStatusHistory(
                previous_status=previous,
                new_status=new_status,
                changed_by=current_user.user_id,
                changed_at=utc_now(),
                reason=note,
            )
        )
        db.commit()
        db.refresh(batch)
        logger.info("[batch] status %s -> %s on %s by user %s", previous, new_status, batch.batch_id, current_user.user_id)
        return batch

    return run_with_optimistic_retry(db, _operation)


def get_status_history(db: Session, batch_id: str) -> list[BatchStatusHistory]:
    batch = get_batch_or_404(db, batch_id)
    return list(batch.status_history)

"""차수 유형별 정원 불변식(individual=1명, group=정원 이하)을 검증합니다."""

from app.models.batch import Batch
from app.utils.errors import CapacityExceeded, ValidationError


def effective_capacity(batch_type: str, capacity: int | None) -> int:
    if batch_type == "individual":
        return 1
    return int(capacity or 0)


def ensure_seat_available(batch: Batch, occupancy: int) -> None:
    """학생 1명을 추가하기 전 호출합니다. occupancy 는 현재 active 수강 인원입니다."""
    if batch.batch_type == "individual":
        if occupancy >= 1:
            raise CapacityExceeded(
                "1:1(individual) 차수에는 이미 수강생이 배정되어 있습니다.",
                batch_id=batch.batch_id,
                capacity=1,
                occupancy=occupancy,
            )
        return
    capacity = effective_capacity(batch.batch_type, batch.capacity)
    if occupancy >= capacity:
        raise CapacityExceeded(
            f"차수 정원({capacity}명)이 모두 찼습니다.",
            batch_id=batch.batch_id,
            capacity=capacity,
            occupancy=occupancy,
        )


def validate_capacity_change(batch_type: str, capacity: int | None, occupancy: int) -> int:
    """관리자 정원/유형 변경 시 현재 인원 기준으로 재검증하고 적용할 정원을 반환합니다."""
    if batch_type not in ("group", "individual"):
        raise ValidationError(f"알 수 없는 차수 유형입니다: {batch_type}", batch_type=batch_type)
    new_capacity = effective_capacity(batch_type, capacity)
    if new_capacity < 1:
        raise ValidationError("차수 정원은 1명 이상이어야 합니다.", capacity=capacity)
    if occupancy > new_capacity:
        raise CapacityExceeded(
            f"현재 수강 인원({occupancy}명)보다 작은 정원({new_capacity}명)으로 변경할 수 없습니다.",
            capacity=new_capacity,
            occupancy=occupancy,
        )
    return new_capacity

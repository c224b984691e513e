"""Live Session Service 회차 번호 기반 라이브 수업 기록을 등록/조회합니다."""

from typing import Optional

from sqlalchemy.orm import Session

from app.models.live_session import LiveClassSession
from app.models.user import User
from app.schemas.recording import LiveSessionCreate
from app.services.batch_service import get_batch_or_404
from app.utils.errors import NotFound, ValidationError
from app.utils.recording_keys import parse_session_no


def create_live_session(db: Session, data: LiveSessionCreate, current_user: User) -> LiveClassSession:
    batch = get_batch_or_404(db, data.batch_id)
    if parse_session_no(data.session_no) is None:
        raise ValidationError("session_no 는 회차 번호(숫자)로 시작해야 합니다.", session_no=data.session_no)
    row = LiveClassSession(
        batch_id=batch.batch_id,
        session_no=data.session_no.strip(),
        session_title=data.session_title.strip(),
        instructor_id=data.instructor_id or batch.assigned_instructor_id,
        duration_minutes=data.duration_minutes,
        session_date=data.session_date,
        created_by=current_user.user_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_live_sessions(db: Session, batch_id: Optional[str] = None) -> list[LiveClassSession]:
    query = db.query(LiveClassSession)
    if batch_id:
        query = query.filter(LiveClassSession.batch_id == str(batch_id))
    return query.order_by(LiveClassSession.batch_id.asc(), LiveClassSession.live_session_id.asc()).all()


def delete_live_session(db: Session, live_session_id: int) -> None:
    row = db.query(LiveClassSession).filter(LiveClassSession.live_session_id == int(live_session_id)).first()
    if not row:
        raise NotFound("라이브 세션 기록을 찾을 수 없습니다.", live_session_id=live_session_id)
    db.delete(row)
    db.commit()

"""SQLAlchemy 엔진/세션 팩토리와 FastAPI DB 의존성을 정의합니다."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.config import settings

engine_kwargs: dict = {"echo": False}

if settings.DATABASE_URL.startswith("sqlite"):
    # FastAPI 스레드풀/백그라운드 작업에서 같은 파일 DB를 공유한다.
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_size"] = 10
    engine_kwargs["max_overflow"] = 20
    engine_kwargs["pool_pre_ping"] = True

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

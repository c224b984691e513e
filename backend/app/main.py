"""FastAPI 애플리케이션 진입점. 미들웨어, API 라우터, 도메인 오류 처리기를 등록합니다."""

import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.database import Base, engine
import app.models  # noqa: F401 - 모델 import로 metadata 등록
from app.routers import auth, batches, enrollments, live_sessions, recordings, sessions
from app.utils.errors import DomainError
from app.utils.schema_sync import sync_missing_schema_objects

logging.basicConfig(
    level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="LMS 차수/수업 관리 시스템",
    description="차수 일정, Zoom 미팅, 녹화 동기화와 수강 정원을 관리하는 시스템",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
def handle_domain_error(request: Request, exc: DomainError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# Register all routers
app.include_router(auth.router)
app.include_router(batches.router)
app.include_router(sessions.router)
app.include_router(enrollments.router)
app.include_router(recordings.router)
app.include_router(live_sessions.router)


@app.on_event("startup")
def ensure_schema():
    # 신규 기능 배포 시 누락된 테이블/컬럼을 자동 생성합니다.
    Base.metadata.create_all(bind=engine)
    sync_missing_schema_objects(engine, Base.metadata)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "LMS 차수/수업 관리 시스템"}

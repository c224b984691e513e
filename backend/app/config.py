"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./lms_batches.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 운영 타임존 (미팅 생성/종료 판정 기준)
    ORG_TIMEZONE: str = "Asia/Kolkata"

    # Zoom (server-to-server OAuth)
    ZOOM_ACCOUNT_ID: str = ""
    ZOOM_CLIENT_ID: str = ""
    ZOOM_CLIENT_SECRET: str = ""
    ZOOM_API_BASE_URL: str = "https://api.zoom.us/v2"
    ZOOM_OAUTH_URL: str = "https://zoom.us/oauth/token"
    ZOOM_TIMEOUT_SECONDS: float = 15.0
    MEETING_MIN_DURATION_MINUTES: int = 30
    MEETING_END_BUFFER_MINUTES: int = 5

    # Recording sync
    RECORDING_SYNC_MAX_ATTEMPTS: int = 5
    RECORDING_SYNC_BACKOFF_BASE_MINUTES: int = 30
    RECORDING_SYNC_BACKOFF_MAX_MINUTES: int = 24 * 60
    RECORDING_SYNC_WORKERS: int = 2

    # Object storage (S3)
    AWS_REGION: str = "ap-south-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_S3_BUCKET_NAME: str = ""
    RECORDING_PREFIX: str = "videos"
    SIGNED_URL_TTL_SECONDS: int = 3600
    SIGNED_URL_MAX_TTL_SECONDS: int = 12 * 3600
    DEFAULT_RECORDING_DURATION_MINUTES: int = 30

    # Concurrency / pagination
    OPTIMISTIC_RETRY_ATTEMPTS: int = 3
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    def zoom_configured(self) -> bool:
        return bool(
            str(self.ZOOM_ACCOUNT_ID or "").strip()
            and str(self.ZOOM_CLIENT_ID or "").strip()
            and str(self.ZOOM_CLIENT_SECRET or "").strip()
        )

    def clamp_signed_url_ttl(self, ttl_seconds: int | None = None) -> int:
        ttl = int(ttl_seconds or self.SIGNED_URL_TTL_SECONDS)
        return max(60, min(ttl, int(self.SIGNED_URL_MAX_TTL_SECONDS)))

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()

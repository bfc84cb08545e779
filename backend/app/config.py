"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./notes.db"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Database pool (sqlite 에서는 무시된다)
    DB_POOL_SIZE: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # JWT
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    REFRESH_SECRET_KEY: str = "change-me-to-another-random-secret-key"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 15

    # Cache (redis)
    CACHE_ENABLED: bool = True
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT_SEC: float = 1.0
    CACHE_TTL_SECONDS: int = 5 * 60

    # File upload
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50 MB
    ALLOWED_ATTACHMENT_TYPES: List[str] = ["image/jpeg", "image/png", "video/mp4"]
    UPLOAD_DIR: str = "uploads"

    # Search
    SEARCH_MAX_LENGTH: int = 100

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()

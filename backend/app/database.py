"""SQLAlchemy 엔진/세션 팩토리와 요청 단위 세션 의존성을 정의합니다."""

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import settings
from app.exceptions import StoreUnavailableError


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def enable_sqlite_foreign_keys(engine) -> None:
    """sqlite 는 연결마다 FK 제약(ON DELETE CASCADE)을 켜야 한다."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_errors():
    # 연결 재시도는 드라이버/풀 정책에 맡기고 여기서는 분류만 한다.
    try:
        yield
    except OperationalError as exc:
        raise StoreUnavailableError() from exc

"""FastAPI 애플리케이션 진입점. 미들웨어, API 라우터, 캐시/DB 수명주기를 등록합니다."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.database import Base, engine
from app.exceptions import NoteError
from app.services.note_cache import NoteCache
import app.models  # noqa: F401 - 모델 import로 metadata 등록
from app.routers import auth, notes

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    Base.metadata.create_all(bind=engine)
    application.state.note_cache = NoteCache.from_settings()
    logger.info("[startup] database schema ready, cache enabled=%s", application.state.note_cache.enabled)
    yield
    application.state.note_cache.close()
    engine.dispose()
    logger.info("[shutdown] cache closed, engine disposed")


app = FastAPI(
    lifespan=lifespan,
    title="Notes API",
    description="버전 이력과 낙관적 잠금을 지원하는 노트 백엔드",
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

app.include_router(auth.router)
app.include_router(notes.router)


@app.exception_handler(NoteError)
def handle_note_error(request: Request, exc: NoteError):
    if exc.status_code >= 500:
        logger.error("[api] %s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("[api] internal server error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
def health():
    return {"ok": True}



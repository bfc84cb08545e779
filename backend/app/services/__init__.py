"""서비스 레이어 패키지 초기화 모듈입니다."""

from app.services import (
    version_store,
    concurrency_guard,
    note_cache,
    revert_service,
    note_service,
    auth_service,
)

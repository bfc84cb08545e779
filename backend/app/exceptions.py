"""노트 도메인 예외 계층입니다. 라우터 밖에서 발생하고 main 의 핸들러가 HTTP 응답으로 변환합니다."""

from typing import Any, Dict, Optional


class NoteError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        return {"detail": self.message}


class NotFoundError(NoteError):
    status_code = 404
    default_message = "Note not found"


class ConflictError(NoteError):
    status_code = 409
    default_message = "Conflict: Note was modified"

    def __init__(self, note_id: int, expected_version: Optional[int], current_version: int):
        self.note_id = note_id
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Note {note_id} was modified: expected version {expected_version}, "
            f"current version is {current_version}"
        )

    def to_response(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "note_id": self.note_id,
            "expected_version": self.expected_version,
            "current_version": self.current_version,
        }


class ValidationError(NoteError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(NoteError):
    status_code = 401
    default_message = "Invalid credentials"


class StoreUnavailableError(NoteError):
    status_code = 503
    default_message = "Database temporarily unavailable"


class CacheUnavailableError(NoteError):
    """캐시 계층 내부에서만 사용되며 호출자에게 전파되지 않는다."""

    status_code = 503
    default_message = "Cache unavailable"

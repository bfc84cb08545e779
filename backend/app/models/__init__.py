"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from app.models.user import User, RefreshToken
from app.models.note import Note, NoteVersion
from app.models.attachment import Attachment

__all__ = [
    "User", "RefreshToken",
    "Note", "NoteVersion",
    "Attachment",
]

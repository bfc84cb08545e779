"""Note 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import Optional, List, Union
from datetime import datetime


class NoteCreate(BaseModel):
    title: str = Field(..., max_length=255)
    content: str


class NoteUpdate(BaseModel):
    version: int
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = None
    # 형식 검증은 행 잠금 이후 서비스 레이어에서 수행한다.
    attachments_to_delete: Optional[List[Union[int, str]]] = None


class NoteRevert(BaseModel):
    target_version: int
    current_version: int


class NoteSearchRequest(BaseModel):
    keywords: Optional[str] = None


class NoteVersionOut(BaseModel):
    id: int
    note_id: int
    version: int
    title: str
    content: str
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class AttachmentOut(BaseModel):
    id: int
    note_id: int
    user_id: int
    filename: str
    original_filename: Optional[str] = None
    mime_type: str
    size_bytes: int
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class NoteOut(BaseModel):
    id: int
    user_id: int
    title: str
    content: str
    version: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    versions: List[NoteVersionOut] = []
    attachments: List[AttachmentOut] = []

    model_config = {"from_attributes": True}


class ConflictOut(BaseModel):
    detail: str
    note_id: int
    expected_version: Optional[int]
    current_version: int

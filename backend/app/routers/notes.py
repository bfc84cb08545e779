"""Notes 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.auth_middleware import get_current_user
from app.models.user import User
from app.schemas.note import (
    ConflictOut, NoteCreate, NoteOut, NoteRevert, NoteSearchRequest, NoteUpdate, NoteVersionOut,
)
from app.services import note_service
from app.services.note_cache import NoteCache, get_note_cache
from app.utils.helpers import parse_positive_id, remove_stored_file, save_attachment

router = APIRouter(prefix="/api/notes", tags=["notes"])

CONFLICT_RESPONSE = {409: {"model": ConflictOut, "description": "Note was modified since it was read"}}


@router.post("", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def create_note(
    data: NoteCreate,
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    return note_service.create_note(db, cache, current_user.user_id, data)


@router.get("", response_model=List[NoteOut])
def list_notes(
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    return note_service.list_notes(db, cache, current_user.user_id)


@router.post("/search", response_model=List[NoteOut])
def search_notes(
    data: NoteSearchRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return note_service.search_notes(db, current_user.user_id, data.keywords)


@router.get("/{note_id}", response_model=NoteOut)
def get_note(
    note_id: str,
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    return note_service.get_note(db, cache, parse_positive_id(note_id), current_user.user_id)


@router.put("/{note_id}", response_model=NoteOut, responses=CONFLICT_RESPONSE)
def update_note(
    note_id: str,
    data: NoteUpdate,
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    return note_service.update_note(db, cache, parse_positive_id(note_id), current_user.user_id, data)


@router.put("/{note_id}/revert", response_model=NoteOut, responses=CONFLICT_RESPONSE)
def revert_note(
    note_id: str,
    data: NoteRevert,
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    return note_service.revert_note(db, cache, parse_positive_id(note_id), current_user.user_id, data)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    note_id: str,
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    note_service.delete_note(db, cache, parse_positive_id(note_id), current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{note_id}/versions", response_model=List[NoteVersionOut])
def list_note_versions(
    note_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return note_service.list_note_versions(db, parse_positive_id(note_id), current_user.user_id)


@router.post(
    "/{note_id}/attachments",
    response_model=NoteOut,
    status_code=status.HTTP_201_CREATED,
    responses=CONFLICT_RESPONSE,
)
async def add_attachments(
    note_id: str,
    attachments: List[UploadFile] = File(...),
    version: Optional[int] = Form(None),
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    parsed_id = parse_positive_id(note_id)
    # 파일 기록은 행 잠금 밖에서 끝낸다.
    saved = []
    try:
        for upload in attachments:
            saved.append(await save_attachment(upload))
    except Exception:
        for info in saved:
            remove_stored_file(info["storage_path"])
        raise
    # 노트 잠금 대기는 이벤트 루프 밖에서 한다.
    return await run_in_threadpool(
        note_service.attach_files, db, cache, parsed_id, current_user.user_id, saved, version
    )


@router.get("/{note_id}/attachments/{attachment_id}")
def get_attachment(
    note_id: str,
    attachment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    row = note_service.get_attachment(
        db,
        parse_positive_id(note_id, "noteId"),
        parse_positive_id(attachment_id, "attachmentId"),
        current_user.user_id,
    )
    display_name = row.filename
    return FileResponse(
        row.storage_path,
        media_type=row.mime_type,
        headers={
            "Content-Disposition": f'inline; filename="{display_name}"',
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.delete("/{note_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attachment(
    note_id: str,
    attachment_id: str,
    db: Session = Depends(get_db),
    cache: NoteCache = Depends(get_note_cache),
    current_user: User = Depends(get_current_user),
):
    note_service.delete_attachment(
        db,
        cache,
        parse_positive_id(note_id, "noteId"),
        parse_positive_id(attachment_id, "attachmentId"),
        current_user.user_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

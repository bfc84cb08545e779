"""Note 도메인 서비스 레이어입니다. 저장소/잠금/캐시 흐름을 하나의 요청 단위로 묶습니다."""

import logging
import os
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.database import store_errors
from app.exceptions import NotFoundError, ValidationError
from app.models.attachment import Attachment
from app.models.note import Note
from app.schemas.note import NoteCreate, NoteOut, NoteRevert, NoteUpdate, NoteVersionOut
from app.services import revert_service, version_store
from app.services.concurrency_guard import guarded_note
from app.services.note_cache import NoteCache
from app.utils.helpers import parse_id_list, remove_stored_file

logger = logging.getLogger(__name__)


def note_snapshot(note: Note) -> Dict[str, Any]:
    """캐시/응답에 쓰는 노트 전체 스냅샷 (버전 내림차순, 첨부 포함)."""
    out = NoteOut.model_validate(note)
    out.versions = [NoteVersionOut.model_validate(v) for v in note.versions if v.deleted_at is None]
    return out.model_dump(mode="json")


def _load_snapshot(db: Session, note_id: int, user_id: int) -> Dict[str, Any]:
    with store_errors():
        note = version_store.get_note_with_history(db, note_id, user_id)
    if note is None:
        raise NotFoundError()
    return note_snapshot(note)


def create_note(db: Session, cache: NoteCache, user_id: int, data: NoteCreate) -> Dict[str, Any]:
    with store_errors():
        note = version_store.create_note(db, user_id, data.title, data.content)
    cache.invalidate(user_id)
    return _load_snapshot(db, note.id, user_id)


def list_notes(db: Session, cache: NoteCache, user_id: int) -> List[Dict[str, Any]]:
    cached = cache.get_note_list(user_id)
    if cached is not None:
        return cached
    generation = cache.note_list_generation(user_id)
    with store_errors():
        notes = version_store.list_notes_for_user(db, user_id)
    snapshots = [note_snapshot(n) for n in notes]
    cache.put_note_list(user_id, snapshots, generation)
    return snapshots


def get_note(db: Session, cache: NoteCache, note_id: int, user_id: int) -> Dict[str, Any]:
    cached = cache.get_note(note_id)
    if cached is not None:
        if cached.get("user_id") != user_id:
            raise NotFoundError()
        return cached
    generation = cache.note_generation(note_id)
    snapshot = _load_snapshot(db, note_id, user_id)
    cache.put_note(note_id, snapshot, generation)
    return snapshot


def update_note(db: Session, cache: NoteCache, note_id: int, user_id: int, data: NoteUpdate) -> Dict[str, Any]:
    removed_paths: List[str] = []
    with guarded_note(db, note_id, user_id, data.version) as note:
        if data.attachments_to_delete:
            ids = parse_id_list(data.attachments_to_delete, "attachment id")
            rows = (
                db.query(Attachment)
                .filter(Attachment.id.in_(ids), Attachment.note_id == note.id)
                .all()
            )
            if len(rows) != len(set(ids)):
                raise ValidationError("attachments_to_delete contains attachments not on this note")
            for row in rows:
                removed_paths.append(row.storage_path)
                db.delete(row)
        title = data.title if data.title is not None else note.title
        content = data.content if data.content is not None else note.content
        version_store.append_version(db, note, title, content, data.version)

    for path in removed_paths:
        remove_stored_file(path)
    cache.invalidate(user_id, note_id)
    return _load_snapshot(db, note_id, user_id)


def revert_note(db: Session, cache: NoteCache, note_id: int, user_id: int, data: NoteRevert) -> Dict[str, Any]:
    revert_service.revert_note(db, cache, note_id, user_id, data.target_version, data.current_version)
    return _load_snapshot(db, note_id, user_id)


def delete_note(db: Session, cache: NoteCache, note_id: int, user_id: int) -> None:
    with guarded_note(db, note_id, user_id) as note:
        version_store.soft_delete_note(db, note)
    cache.invalidate(user_id, note_id)


def search_notes(db: Session, user_id: int, keywords: Optional[str]) -> List[Dict[str, Any]]:
    if not keywords:
        raise ValidationError("missing keywords query parameter")
    terms = version_store.normalize_search_terms(keywords, settings.SEARCH_MAX_LENGTH)
    if not terms:
        return []
    with store_errors():
        notes = version_store.search_notes(db, user_id, terms)
    return [note_snapshot(n) for n in notes]


def list_note_versions(db: Session, note_id: int, user_id: int) -> List[Any]:
    with store_errors():
        note = version_store.get_note_with_history(db, note_id, user_id)
        if note is None:
            raise NotFoundError()
        return version_store.list_versions(db, note_id)


def attach_files(
    db: Session,
    cache: NoteCache,
    note_id: int,
    user_id: int,
    saved_files: List[Dict[str, Any]],
    expected_version: Optional[int] = None,
) -> Dict[str, Any]:
    """이미 디스크에 기록된 파일들의 메타데이터 행만 잠금 안에서 추가한다.

    첨부는 노트 버전을 올리지 않는다. 트랜잭션이 실패하면 기록된 파일을 지운다.
    """
    try:
        with guarded_note(db, note_id, user_id, expected_version) as note:
            db.add_all(
                [Attachment(note_id=note.id, user_id=user_id, **info) for info in saved_files]
            )
            db.flush()
    except Exception:
        for info in saved_files:
            remove_stored_file(info["storage_path"])
        raise
    cache.invalidate(user_id, note_id)
    return _load_snapshot(db, note_id, user_id)


def get_attachment(db: Session, note_id: int, attachment_id: int, user_id: int) -> Attachment:
    with store_errors():
        row = (
            db.query(Attachment)
            .join(Note, Note.id == Attachment.note_id)
            .filter(
                Attachment.id == attachment_id,
                Attachment.note_id == note_id,
                Attachment.user_id == user_id,
                Note.deleted_at.is_(None),
            )
            .first()
        )
    if row is None or not os.path.isfile(row.storage_path):
        raise NotFoundError("File not found")
    return row


def delete_attachment(db: Session, cache: NoteCache, note_id: int, attachment_id: int, user_id: int) -> None:
    with guarded_note(db, note_id, user_id) as note:
        row = (
            db.query(Attachment)
            .filter(
                Attachment.id == attachment_id,
                Attachment.note_id == note.id,
                Attachment.user_id == user_id,
            )
            .first()
        )
        if row is None:
            raise NotFoundError("Attachment not found")
        path = row.storage_path
        db.delete(row)

    # 파일 삭제는 commit 이후에만 한다.
    if not remove_stored_file(path):
        logger.warning("[attachments] stored file already missing: %s", path)
    cache.invalidate(user_id, note_id)

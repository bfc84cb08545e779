"""노트와 불변 버전 이력을 저장/조회하는 도메인 서비스입니다.

버전 번호의 연속성(1부터 빈틈/중복 없이 증가)은 concurrency_guard 의 잠금과
append_version 의 compare-and-swap 이 함께 보장한다. 이 모듈 자체는 동시
호출자를 직렬화하지 않는다.
"""

import re
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_, text
from sqlalchemy.orm import Session, selectinload

from app.exceptions import ConflictError
from app.models.note import Note, NoteVersion

SEARCH_STRIP_PATTERN = re.compile(r"[<>*~]")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _with_history(query):
    return query.options(selectinload(Note.versions), selectinload(Note.attachments))


def create_note(db: Session, user_id: int, title: str, content: str) -> Note:
    """버전 1의 노트와 NoteVersion(1)을 하나의 트랜잭션으로 생성한다."""
    note = Note(user_id=user_id, title=title, content=content, version=1)
    try:
        db.add(note)
        db.flush()
        db.add(NoteVersion(note_id=note.id, version=1, title=title, content=content))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(note)
    return note


def lock_note(db: Session, note_id: int, user_id: Optional[int] = None) -> Optional[Note]:
    """현재 노트 행을 배타 잠금(SELECT ... FOR UPDATE)으로 읽는다."""
    query = (
        db.query(Note)
        .filter(Note.id == note_id, Note.deleted_at.is_(None))
        .with_for_update()
        .populate_existing()
    )
    if user_id is not None:
        query = query.filter(Note.user_id == user_id)
    return query.first()


def append_version(
    db: Session,
    note: Note,
    title: str,
    content: str,
    expected_prior_version: int,
) -> NoteVersion:
    """version = expected_prior_version + 1 인 NoteVersion 을 추가하고 노트 행을 같은 값으로 맞춘다.

    호출자의 트랜잭션 안에서 실행되며 commit 하지 않는다. 노트 행 갱신은
    ``WHERE version = expected_prior_version`` 조건의 명시적 compare-and-swap 이다.
    """
    new_version = expected_prior_version + 1
    updated = (
        db.query(Note)
        .filter(Note.id == note.id, Note.version == expected_prior_version)
        .update(
            {
                Note.title: title,
                Note.content: content,
                Note.version: new_version,
                Note.updated_at: _utc_now(),
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        current = db.query(Note.version).filter(Note.id == note.id).scalar()
        raise ConflictError(note.id, expected_prior_version, current if current is not None else note.version)

    row = NoteVersion(note_id=note.id, version=new_version, title=title, content=content)
    db.add(row)
    db.flush()
    db.refresh(note)
    return row


def get_note_with_history(db: Session, note_id: int, user_id: Optional[int] = None) -> Optional[Note]:
    query = _with_history(db.query(Note)).filter(Note.id == note_id, Note.deleted_at.is_(None))
    if user_id is not None:
        query = query.filter(Note.user_id == user_id)
    return query.first()


def list_notes_for_user(db: Session, user_id: int) -> List[Note]:
    return (
        _with_history(db.query(Note))
        .filter(Note.user_id == user_id, Note.deleted_at.is_(None))
        .order_by(Note.created_at.desc(), Note.id.desc())
        .all()
    )


def get_version(db: Session, note_id: int, version: int) -> Optional[NoteVersion]:
    return (
        db.query(NoteVersion)
        .filter(
            NoteVersion.note_id == note_id,
            NoteVersion.version == version,
            NoteVersion.deleted_at.is_(None),
        )
        .first()
    )


def list_versions(db: Session, note_id: int) -> List[NoteVersion]:
    return (
        db.query(NoteVersion)
        .filter(NoteVersion.note_id == note_id, NoteVersion.deleted_at.is_(None))
        .order_by(NoteVersion.version.desc())
        .all()
    )


def soft_delete_note(db: Session, note: Note) -> Note:
    """잠금을 잡은 노트에 deleted_at 을 기록한다. commit 은 호출자가 한다.

    삭제된 노트는 lock_note 가 찾지 못하므로 두 번째 삭제는 NotFoundError 가 된다.
    """
    note.deleted_at = _utc_now()
    db.flush()
    return note


def normalize_search_terms(keywords: str, max_length: int) -> str:
    return SEARCH_STRIP_PATTERN.sub("", keywords[:max_length]).strip()


def search_notes(db: Session, user_id: int, terms: str) -> List[Note]:
    """title + content 전문 검색. MySQL 은 FULLTEXT, 그 외 dialect 는 LIKE 로 대체한다."""
    query = _with_history(db.query(Note)).filter(Note.user_id == user_id, Note.deleted_at.is_(None))
    if db.get_bind().dialect.name == "mysql":
        match = "MATCH(notes.title, notes.content) AGAINST(:terms)"
        return query.filter(text(match)).order_by(text(f"{match} DESC")).params(terms=terms).all()

    words = [w for w in terms.split() if w]
    if not words:
        return []
    conditions = []
    for word in words:
        pattern = f"%{word}%"
        conditions.append(or_(Note.title.ilike(pattern), Note.content.ilike(pattern)))
    return query.filter(or_(*conditions)).order_by(Note.updated_at.desc(), Note.id.desc()).all()

"""과거 버전의 내용으로 새 버전을 만드는 되돌리기 서비스입니다."""

import logging

from sqlalchemy.orm import Session

from app.database import store_errors
from app.exceptions import NotFoundError
from app.models.note import Note
from app.services import version_store
from app.services.concurrency_guard import guarded_note
from app.services.note_cache import NoteCache

logger = logging.getLogger(__name__)


def revert_note(
    db: Session,
    cache: NoteCache,
    note_id: int,
    user_id: int,
    target_version: int,
    expected_current_version: int,
) -> Note:
    """target_version 의 title/content 로 새 버전(current + 1)을 추가한다.

    이력은 절대 잘라내거나 고쳐 쓰지 않는다. 현재 버전으로 되돌리는 것도
    허용되며 같은 내용의 새 버전이 생긴다.
    """
    with store_errors():
        target = version_store.get_version(db, note_id, target_version)
    if target is None:
        raise NotFoundError("Target version not found")
    title, content = target.title, target.content

    with guarded_note(db, note_id, user_id, expected_current_version) as note:
        version_store.append_version(db, note, title, content, expected_current_version)

    cache.invalidate(user_id, note_id)
    logger.info(
        "[revert] note %s reverted to version %s as version %s",
        note_id, target_version, expected_current_version + 1,
    )
    return note

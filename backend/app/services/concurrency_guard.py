"""노트 변경 요청에 적용되는 잠금 + 버전 비교(optimistic lock) 프로토콜입니다.

모든 변경(수정, 되돌리기, 첨부 추가/삭제, 삭제)은 ``guarded_note`` 안에서 수행된다.

1. 프로세스 내부 노트별 mutex 획득 (sqlite 처럼 FOR UPDATE 가 없는 저장소 대비)
2. 노트 행을 배타 잠금으로 조회
3. 없거나 삭제됐거나 소유자가 다르면 NotFoundError
4. expected_version 이 주어졌고 현재 version 과 다르면 ConflictError
5. 변경 본문 실행
6. commit
7. 1 이후의 어떤 실패든 rollback 후 다시 raise

캐시 무효화는 with 블록이 정상 종료된 뒤(= commit 이후) 호출자가 수행한다.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.exceptions import ConflictError, NotFoundError, StoreUnavailableError
from app.models.note import Note
from app.services import version_store

logger = logging.getLogger(__name__)


class NoteLockRegistry:
    """노트 id 별 단일 writer mutex. 아무도 잡고 있지 않은 lock 은 GC 된다."""

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def get(self, note_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(note_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[note_id] = lock
            return lock

    @contextmanager
    def hold(self, note_id: int) -> Iterator[None]:
        lock = self.get(note_id)
        with lock:
            yield


note_locks = NoteLockRegistry()


def check_version(note: Note, expected_version: Optional[int]) -> None:
    if expected_version is not None and note.version != expected_version:
        raise ConflictError(note.id, expected_version, note.version)


@contextmanager
def guarded_note(
    db: Session,
    note_id: int,
    user_id: int,
    expected_version: Optional[int] = None,
) -> Iterator[Note]:
    """잠긴 노트를 yield 하고 블록이 끝나면 commit 한다. 실패 시 rollback 후 예외를 그대로 전달한다."""
    with note_locks.hold(note_id):
        try:
            note = version_store.lock_note(db, note_id, user_id)
            if note is None:
                raise NotFoundError()
            check_version(note, expected_version)
            yield note
            db.commit()
        except OperationalError as exc:
            db.rollback()
            logger.error("[guard] store failure on note %s: %s", note_id, exc)
            raise StoreUnavailableError() from exc
        except ConflictError as exc:
            db.rollback()
            logger.info(
                "[guard] version conflict on note %s: expected=%s current=%s",
                note_id, exc.expected_version, exc.current_version,
            )
            raise
        except Exception:
            db.rollback()
            raise

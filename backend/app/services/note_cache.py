"""노트 조회용 read-through 캐시(redis)입니다.

캐시는 항상 best-effort 다. redis 장애나 직렬화 실패는 WARNING 로그만 남기고
삼키며, 읽기는 저장소 조회로, 쓰기는 성공으로 처리된다. 엔트리는 노트 전체
스냅샷(버전 이력, 첨부 포함)이며 부분 갱신하지 않고 변경 시 통째로 지운다.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import redis
from fastapi import Request

from app.config import settings
from app.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


def note_key(note_id: int) -> str:
    return f"note:{note_id}"


def note_list_key(user_id: int) -> str:
    return f"user:{user_id}:notes"


def generation_key(key: str) -> str:
    return f"gen:{key}"


class NoteCache:
    def __init__(self, client: Optional[redis.Redis], ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls) -> "NoteCache":
        if not settings.CACHE_ENABLED:
            logger.info("[cache] disabled by configuration")
            return cls(None, settings.CACHE_TTL_SECONDS)
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
        )
        return cls(client, settings.CACHE_TTL_SECONDS)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def close(self) -> None:
        if self.client is None:
            return
        try:
            self.client.close()
        except redis.RedisError as exc:
            logger.warning("[cache] close failed: %s", exc)

    # -- raw operations --------------------------------------------------

    def _call(self, op: str, key: str, *args, **kwargs) -> Any:
        try:
            return getattr(self.client, op)(key, *args, **kwargs)
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"{op.upper()} {key} failed: {exc}") from exc

    def _get(self, key: str) -> Optional[Any]:
        if self.client is None:
            return None
        try:
            raw = self._call("get", key)
            return json.loads(raw) if raw is not None else None
        except CacheUnavailableError as exc:
            logger.warning("[cache] read skipped: %s", exc.message)
        except (TypeError, ValueError) as exc:
            logger.warning("[cache] corrupted entry %s: %s", key, exc)
        return None

    def _set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if self.client is None:
            return
        try:
            payload = json.dumps(value, ensure_ascii=False, default=str)
            self._call("set", key, payload, ex=ttl or self.ttl_seconds)
        except CacheUnavailableError as exc:
            logger.warning("[cache] write skipped: %s", exc.message)
        except (TypeError, ValueError) as exc:
            logger.warning("[cache] snapshot for %s is not serializable: %s", key, exc)

    def _delete(self, key: str) -> None:
        if self.client is None:
            return
        try:
            # 세대를 먼저 올려 진행 중인 read-through 적재가 버려지게 한다.
            self._call("incr", generation_key(key))
            self._call("expire", generation_key(key), self.ttl_seconds * 2)
            self._call("delete", key)
        except CacheUnavailableError as exc:
            # 무효화 실패는 TTL 로 staleness 가 제한된다.
            logger.warning("[cache] invalidation failed: %s", exc.message)

    def _generation(self, key: str) -> Optional[int]:
        if self.client is None:
            return None
        try:
            raw = self._call("get", generation_key(key))
            return int(raw) if raw is not None else 0
        except CacheUnavailableError as exc:
            logger.warning("[cache] generation read skipped: %s", exc.message)
        except (TypeError, ValueError) as exc:
            logger.warning("[cache] corrupted generation for %s: %s", key, exc)
        return None

    def _put_if_unchanged(self, key: str, value: Any, generation: Optional[int]) -> None:
        """저장소 조회 시작 시점의 세대가 그대로일 때만 적재한다.

        SET 직후 세대를 한 번 더 확인해 그 사이에 끼어든 무효화를 되돌린다.
        """
        if generation is None:
            return
        if self._generation(key) != generation:
            logger.debug("[cache] %s invalidated during load, skip write", key)
            return
        self._set(key, value)
        if self._generation(key) != generation:
            logger.debug("[cache] %s invalidated during write, dropping entry", key)
            self._delete(key)

    # -- note snapshots --------------------------------------------------

    def note_generation(self, note_id: int) -> Optional[int]:
        """저장소 조회 전에 받아 두었다가 put_note 에 넘긴다."""
        return self._generation(note_key(note_id))

    def get_note(self, note_id: int) -> Optional[Dict[str, Any]]:
        return self._get(note_key(note_id))

    def put_note(self, note_id: int, snapshot: Dict[str, Any], generation: Optional[int]) -> None:
        self._put_if_unchanged(note_key(note_id), snapshot, generation)

    def invalidate_note(self, note_id: int) -> None:
        self._delete(note_key(note_id))

    def note_list_generation(self, user_id: int) -> Optional[int]:
        return self._generation(note_list_key(user_id))

    def get_note_list(self, user_id: int) -> Optional[List[Dict[str, Any]]]:
        return self._get(note_list_key(user_id))

    def put_note_list(self, user_id: int, snapshot: List[Dict[str, Any]], generation: Optional[int]) -> None:
        self._put_if_unchanged(note_list_key(user_id), snapshot, generation)

    def invalidate_note_list(self, user_id: int) -> None:
        self._delete(note_list_key(user_id))

    def invalidate(self, user_id: int, note_id: Optional[int] = None) -> None:
        """commit 이후에만 호출한다."""
        self.invalidate_note_list(user_id)
        if note_id is not None:
            self.invalidate_note(note_id)


def get_note_cache(request: Request) -> NoteCache:
    cache = getattr(request.app.state, "note_cache", None)
    if cache is None:
        # lifespan 없이 앱이 구동된 경우(예: 스크립트) 캐시 없이 동작한다.
        return NoteCache(None)
    return cache

"""테스트용 in-memory redis 대역입니다. NoteCache 가 사용하는 GET/SET/INCR/EXPIRE/DELETE 만 흉내 냅니다."""

import time

import redis


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}
        self.fail = False
        self.calls = []

    def _check(self, op, key):
        self.calls.append((op, key))
        if self.fail:
            raise redis.exceptions.ConnectionError("fake redis is down")

    def _expired(self, key):
        deadline = self.expiry.get(key)
        return deadline is not None and deadline <= time.monotonic()

    def get(self, key):
        self._check("get", key)
        if self._expired(key):
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self._check("set", key)
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = time.monotonic() + ex
        return True

    def incr(self, key):
        self._check("incr", key)
        if self._expired(key):
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    def expire(self, key, seconds):
        self._check("expire", key)
        if key not in self.store:
            return False
        self.expiry[key] = time.monotonic() + seconds
        return True

    def delete(self, key):
        self._check("delete", key)
        self.expiry.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    def close(self):
        pass

"""TtlCache 実装"""

from __future__ import annotations

import threading
import time
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class _CacheEntry(Generic[T]):
    __slots__ = ("value", "inserted_at")

    def __init__(self, value: T, inserted_at: float) -> None:
        self.value = value
        self.inserted_at = inserted_at


class TtlCache(Generic[T]):
    """挿入時刻ベースの有効期限付きインメモリキャッシュ。

    期限切れエントリは get / has でアクセスされた時点、または cleanup() で削除される。
    size() と keys() は未削除の期限切れエントリも含めた生の件数を返す。
    """

    def __init__(
        self,
        ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._ttl = float(ttl)
        self._clock = clock
        self._store: dict[str, _CacheEntry[T]] = {}
        self._lock = threading.RLock()

    @property
    def ttl(self) -> float:
        """有効期限（秒）。"""
        return self._ttl

    def _is_expired(self, entry: _CacheEntry[T], now: float) -> bool:
        return now - entry.inserted_at > self._ttl

    def set(self, key: str, value: T) -> None:
        """値を保存する。既存エントリは破棄され、有効期限は現在時刻から数え直す。"""
        with self._lock:
            self._store[key] = _CacheEntry(value, self._clock())

    def get(self, key: str) -> T | None:
        """有効な値を返す。存在しない、または期限切れなら None。"""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                del self._store[key]
                return None
            return entry.value

    def has(self, key: str) -> bool:
        """有効な値が存在するか確認する。期限切れは False。"""
        return self.get(key) is not None

    def invalidate(self, key: str) -> None:
        """期限に関係なくキーを削除する。"""
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def cleanup(self) -> None:
        """期限切れエントリをすべて削除する。"""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._store.items() if self._is_expired(e, now)]
            for key in expired:
                del self._store[key]

    def size(self) -> int:
        """保存件数（未削除の期限切れエントリを含む）。"""
        with self._lock:
            return len(self._store)

    def keys(self) -> list[str]:
        """保存キー一覧（未削除の期限切れエントリを含む）。"""
        with self._lock:
            return list(self._store)

"""
Key-value cache collaborators.
The simulation handler only depends on the CacheService contract; the backend is chosen by configuration.
"""
import heapq
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from simu.cache.models import CacheEntry
from simu.core.config import settings
from simu.core.database import SessionLocal
from simu.core.logger import logger


class CacheService(ABC):
    """Async string cache with per-entry expiration."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Returns the stored value, or None when the key is absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: timedelta) -> None:
        """Stores value under key for ttl, replacing any previous value."""


class InMemoryCacheService(CacheService):
    """
    Process-local cache.
    Expired entries are dropped on read and swept on every write, so memory is
    bounded by the keys still alive at the latest write.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        # (expires_at, key) min-heap; stale pairs are skipped when the key was rewritten
        self._expirations: List[Tuple[float, str]] = []

    @property
    def size(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl: timedelta) -> None:
        now = self._clock()
        self._sweep(now)

        expires_at = now + ttl.total_seconds()
        self._entries[key] = (value, expires_at)
        heapq.heappush(self._expirations, (expires_at, key))

    def _sweep(self, now: float) -> None:
        while self._expirations and self._expirations[0][0] <= now:
            expires_at, key = heapq.heappop(self._expirations)
            entry = self._entries.get(key)
            if entry is not None and entry[1] == expires_at:
                del self._entries[key]


class DatabaseCacheService(CacheService):
    """
    Cache persisted in the cache_entries table.
    Blocking ORM calls run in Starlette's threadpool to keep the event loop free.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        return await run_in_threadpool(self._get, key)

    async def set(self, key: str, value: str, ttl: timedelta) -> None:
        await run_in_threadpool(self._set, key, value, ttl)

    def _get(self, key: str) -> Optional[str]:
        db = self._session_factory()
        try:
            entry = db.get(CacheEntry, key)
            if entry is None:
                return None

            expires_at = entry.expires_at
            # SQLite drops tzinfo on the way back
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)

            if expires_at <= datetime.now(timezone.utc):
                db.delete(entry)
                db.commit()
                logger.info(f"Cache entry expired: key={key}")
                return None

            return entry.value
        finally:
            db.close()

    def _set(self, key: str, value: str, ttl: timedelta) -> None:
        db = self._session_factory()
        values = {"key": key, "value": value, "expires_at": datetime.now(timezone.utc) + ttl}
        try:
            statement = _upsert_statement(db.get_bind().dialect.name, values)
            if statement is not None:
                db.execute(statement)
                db.commit()
                return

            try:
                db.merge(CacheEntry(**values))
                db.commit()
            except IntegrityError:
                # Another writer inserted the key between our SELECT and INSERT; last writer wins
                db.rollback()
                db.merge(CacheEntry(**values))
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def _upsert_statement(dialect_name: str, values: Dict[str, Any]) -> Optional[Any]:
    """INSERT ... ON CONFLICT (key) DO UPDATE for dialects that support it, else None."""
    if dialect_name == "sqlite":
        statement = sqlite_insert(CacheEntry).values(**values)
    elif dialect_name == "postgresql":
        statement = postgresql_insert(CacheEntry).values(**values)
    else:
        return None

    return statement.on_conflict_do_update(
        index_elements=[CacheEntry.key],
        set_={"value": statement.excluded.value, "expires_at": statement.excluded.expires_at}
    )


def build_cache_service(backend: str) -> CacheService:
    if backend == "memory":
        return InMemoryCacheService()
    if backend == "database":
        return DatabaseCacheService()
    raise ValueError(f"Unknown cache backend: {backend!r}")


# Singleton cache instance
cache_service = build_cache_service(settings.CACHE_BACKEND)


def get_cache_service() -> CacheService:
    """FastAPI dependency returning the configured cache backend."""
    return cache_service

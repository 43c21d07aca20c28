"""TTL cache for provider answers, backed by a pluggable storage medium."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import ONE_DAY_SECONDS
from ..db_models import CacheEntryRecord
from .errors import CacheError, CacheQuotaExceeded

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "anime_cache"


@dataclass(slots=True)
class CachedEntry:
    """A stored value together with its write time in epoch milliseconds."""

    value: Any
    written_at: int


class CacheMedium(Protocol):
    """Storage boundary used by :class:`CacheStore`."""

    async def read(self, key: str) -> CachedEntry | None: ...

    async def write(self, key: str, value: Any, written_at: int) -> None: ...

    async def prune(self, before: int) -> int: ...


class MemoryCacheMedium:
    """Process-local medium that stores values as serialized JSON."""

    def __init__(self, max_entries: int = 0) -> None:
        self._entries: dict[str, tuple[str, int]] = {}
        self._max_entries = max_entries

    def __len__(self) -> int:
        return len(self._entries)

    async def read(self, key: str) -> CachedEntry | None:
        stored = self._entries.get(key)
        if stored is None:
            return None
        raw, written_at = stored
        return CachedEntry(value=json.loads(raw), written_at=written_at)

    async def write(self, key: str, value: Any, written_at: int) -> None:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise CacheError(f"Value for {key} is not JSON serializable") from exc
        if (
            self._max_entries
            and key not in self._entries
            and len(self._entries) >= self._max_entries
        ):
            raise CacheQuotaExceeded(f"Cache is full ({self._max_entries} entries)")
        self._entries[key] = (raw, written_at)

    async def prune(self, before: int) -> int:
        stale = [key for key, (_, written_at) in self._entries.items() if written_at < before]
        for key in stale:
            del self._entries[key]
        return len(stale)


class DatabaseCacheMedium:
    """Persistent medium storing entries in the ``cache_entries`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        max_entries: int = 0,
    ) -> None:
        self._session_factory = session_factory
        self._max_entries = max_entries

    async def read(self, key: str) -> CachedEntry | None:
        try:
            async with self._session_factory() as session:
                record = await session.get(CacheEntryRecord, key)
                if record is None:
                    return None
                return CachedEntry(value=record.payload, written_at=record.written_at)
        except SQLAlchemyError as exc:
            raise CacheError(f"Failed to read cache entry {key}") from exc

    async def write(self, key: str, value: Any, written_at: int) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise CacheError(f"Value for {key} is not JSON serializable") from exc

        try:
            async with self._session_factory() as session:
                record = await session.get(CacheEntryRecord, key)
                if record is None:
                    if self._max_entries:
                        count = await session.scalar(
                            select(func.count()).select_from(CacheEntryRecord)
                        )
                        if (count or 0) >= self._max_entries:
                            raise CacheQuotaExceeded(
                                f"Cache is full ({self._max_entries} entries)"
                            )
                    session.add(
                        CacheEntryRecord(key=key, payload=value, written_at=written_at)
                    )
                else:
                    record.payload = value
                    record.written_at = written_at
                await session.commit()
        except SQLAlchemyError as exc:
            raise CacheError(f"Failed to write cache entry {key}") from exc

    async def prune(self, before: int) -> int:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(CacheEntryRecord).where(CacheEntryRecord.written_at < before)
                )
                await session.commit()
                return int(result.rowcount or 0)
        except SQLAlchemyError as exc:
            raise CacheError("Failed to prune cache entries") from exc


class CacheStore:
    """Key/value cache whose entries expire after ``ttl_seconds``.

    Caching is an optimisation only: every medium failure is logged and
    swallowed, a failed read behaves like a miss and a failed write is dropped.
    ``None`` is never stored, so a ``None`` from :meth:`get` always means absent.

    Values must be JSON-native (dicts, lists, strings, numbers, booleans); they
    are stored serialized, so a tuple comes back as a list.
    """

    def __init__(
        self,
        medium: CacheMedium,
        *,
        ttl_seconds: int = ONE_DAY_SECONDS,
        clock: Callable[[], float] = time.time,
        namespace: str = CACHE_NAMESPACE,
    ) -> None:
        self._medium = medium
        self._ttl_millis = ttl_seconds * 1000
        self._clock = clock
        self._namespace = namespace

    def _namespaced(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def _now_millis(self) -> int:
        return int(self._clock() * 1000)

    async def get(self, key: str) -> Any | None:
        namespaced = self._namespaced(key)
        try:
            entry = await self._medium.read(namespaced)
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", namespaced, exc)
            return None
        if entry is None:
            logger.debug("Cache miss for %s", namespaced)
            return None
        if self._now_millis() - entry.written_at > self._ttl_millis:
            logger.debug("Cache entry for %s expired", namespaced)
            return None
        logger.debug("Cache hit for %s", namespaced)
        return entry.value

    async def put(self, key: str, value: Any) -> None:
        if value is None:
            return
        namespaced = self._namespaced(key)
        now = self._now_millis()
        try:
            await self._medium.write(namespaced, value, now)
        except CacheQuotaExceeded:
            await self._retry_after_prune(namespaced, value, now)
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", namespaced, exc)

    async def _retry_after_prune(self, key: str, value: Any, now: int) -> None:
        try:
            removed = await self._medium.prune(now - self._ttl_millis)
            if not removed:
                logger.info("Cache is full, skipping write for %s", key)
                return
            logger.info("Pruned %s expired cache entries", removed)
            await self._medium.write(key, value, now)
        except Exception as exc:
            logger.warning("Cache write failed for %s after pruning: %s", key, exc)

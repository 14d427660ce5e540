"""Per-project commit locks.

This module provides:
- LocalProjectLock: asyncio locks for a single-process deployment
- RedisProjectLock: distributed locks (SET NX EX) shared across workers
- Non-blocking acquisition: a commit that finds the lock held loses the race
  instead of queueing behind the winner
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, datetime
from typing import Protocol

import redis.asyncio as redis
import structlog
from redis.exceptions import WatchError

logger = structlog.get_logger(__name__)


class ProjectLock(Protocol):
    def hold(self, project_id: str, owner: str | None = None) -> AbstractAsyncContextManager[bool]:
        ...


class LocalProjectLock:
    """In-process per-project locks backed by asyncio.Lock."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[project_id] = lock
        return lock

    def is_locked(self, project_id: str) -> bool:
        lock = self._locks.get(project_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, project_id: str, owner: str | None = None) -> AsyncGenerator[bool, None]:
        """Yield True if the project lock was free and is now held, False otherwise."""
        lock = self._lock_for(project_id)
        if lock.locked():
            yield False
            return

        await lock.acquire()
        try:
            yield True
        finally:
            lock.release()


class RedisProjectLock:
    """Manages distributed per-project locks using Redis."""

    LOCK_PREFIX = "stagegate:lock:"
    DEFAULT_TTL = 30

    def __init__(self, client: redis.Redis, ttl: int | None = None):
        self.redis = client
        self.ttl = ttl or self.DEFAULT_TTL

    def _lock_key(self, project_id: str) -> str:
        return f"{self.LOCK_PREFIX}{project_id}"

    async def acquire(self, project_id: str, owner: str, ttl: int | None = None) -> bool:
        """Attempt to acquire the commit lock for a project.

        Args:
            project_id: Project identifier
            owner: Identifier of the lock owner (one per commit attempt)
            ttl: Lock time-to-live in seconds; bounds how long a crashed
                 worker can keep the project locked

        Returns:
            True if lock acquired, False if held by another owner
        """
        key = self._lock_key(project_id)
        lock_value = f"{owner}|{datetime.now(UTC).isoformat()}"
        result = await self.redis.set(key, lock_value, nx=True, ex=ttl or self.ttl)
        return bool(result)

    async def release(self, project_id: str, owner: str) -> bool:
        """Release the lock if this owner still holds it.

        Returns:
            True if released, False if not owned by this owner
        """
        key = self._lock_key(project_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            try:
                # WATCH aborts the DEL if the key changes hands after the GET
                await pipe.watch(key)
                current = await pipe.get(key)
                if not (current and current.startswith(f"{owner}|")):
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.delete(key)
                await pipe.execute()
                return True
            except WatchError:
                logger.warning("project_lock_release_raced", project_id=project_id, owner=owner)
                return False

    async def is_locked(self, project_id: str) -> dict | None:
        """Return lock info if the project is locked, None otherwise."""
        key = self._lock_key(project_id)
        current = await self.redis.get(key)
        if not current:
            return None

        owner, _, locked_at = current.partition("|")
        return {
            "project_id": project_id,
            "owner": owner,
            "locked_at": locked_at or None,
            "expires_in": await self.redis.ttl(key),
        }

    @asynccontextmanager
    async def hold(self, project_id: str, owner: str | None = None) -> AsyncGenerator[bool, None]:
        """Context manager for commit locking.

        Yields:
            True if lock acquired

        Example:
            async with project_lock.hold("proj-1") as acquired:
                if acquired:
                    # Apply the transition
                    pass
        """
        owner = owner or uuid.uuid4().hex
        acquired = False
        try:
            acquired = await self.acquire(project_id, owner)
            yield acquired
        finally:
            if acquired:
                await self.release(project_id, owner)

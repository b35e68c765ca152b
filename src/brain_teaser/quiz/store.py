"""
Session stores

Hold at most one live QuizSession per subscriber. Every store offers a
per-subscriber critical section, `locked()`, which callers wrap around the
whole read-check-mutate-write sequence so two messages from the same
subscriber can never interleave.

Backends:
- InMemorySessionStore: dict in the process (default)
- RedisSessionStore: JSON in Redis, for restarts and multiple workers
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .schema import QuizSession, StoreError
from ..config import StoreConfig, config

logger = logging.getLogger(__name__)


@dataclass
class _KeyLock:
    """A lock plus the number of tasks holding or waiting on it."""
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class SessionStore(ABC):
    """
    Abstract key-value store for quiz sessions, keyed by subscriber id.

    get() returns a detached copy; changes only land through set().
    """

    def __init__(self):
        self._locks: dict[str, _KeyLock] = {}

    @asynccontextmanager
    async def locked(self, subscriber: str) -> AsyncIterator[None]:
        """
        Serialize all work on one subscriber's session.

        Different subscribers never block each other. Lock entries are
        dropped once nobody holds or waits on them.
        """
        entry = self._locks.get(subscriber)
        if entry is None:
            entry = self._locks[subscriber] = _KeyLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(subscriber, None)

    @abstractmethod
    async def get(self, subscriber: str) -> Optional[QuizSession]:
        """Session for a subscriber, or None."""
        pass

    @abstractmethod
    async def set(self, session: QuizSession) -> None:
        """Insert or overwrite the subscriber's session."""
        pass

    @abstractmethod
    async def clear(self, subscriber: str) -> None:
        """Remove the subscriber's session if present."""
        pass

    async def aclose(self) -> None:
        """Release backend resources. No-op by default."""
        return None


class InMemorySessionStore(SessionStore):
    """Sessions in a process-local dict."""

    def __init__(self):
        super().__init__()
        self._sessions: dict[str, QuizSession] = {}

    async def get(self, subscriber: str) -> Optional[QuizSession]:
        session = self._sessions.get(subscriber)
        if session is None:
            return None
        return replace(session, questions=list(session.questions))

    async def set(self, session: QuizSession) -> None:
        self._sessions[session.subscriber] = replace(session, questions=list(session.questions))

    async def clear(self, subscriber: str) -> None:
        self._sessions.pop(subscriber, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, subscriber: str) -> bool:
        return subscriber in self._sessions


class RedisSessionStore(SessionStore):
    """
    Sessions serialized as JSON in Redis.

    locked() takes the in-process lock first and then a Redis lock, so
    workers in other processes are serialized as well.
    """

    KEY_PREFIX = "quiz:session:"

    def __init__(
        self,
        client: "redis.Redis",
        ttl_seconds: Optional[int] = None,
        lock_timeout_seconds: float = 30.0,
    ):
        """
        Initialize Redis store.

        Args:
            client: redis.asyncio client (decode_responses=True)
            ttl_seconds: Expiry for abandoned sessions; None keeps them forever
            lock_timeout_seconds: Auto-release for a lock whose holder died
        """
        super().__init__()
        self._client = client
        self.ttl_seconds = ttl_seconds
        self.lock_timeout_seconds = lock_timeout_seconds

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisSessionStore":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, **kwargs)

    def _key(self, subscriber: str) -> str:
        return f"{self.KEY_PREFIX}{subscriber}"

    @asynccontextmanager
    async def locked(self, subscriber: str) -> AsyncIterator[None]:
        async with super().locked(subscriber):
            lock = self._client.lock(
                f"{self.KEY_PREFIX}lock:{subscriber}",
                timeout=self.lock_timeout_seconds,
                blocking_timeout=self.lock_timeout_seconds,
            )
            try:
                acquired = await lock.acquire()
            except RedisError as e:
                raise StoreError(f"Could not lock session for {subscriber}: {e}") from e
            if not acquired:
                raise StoreError(f"Timed out waiting for session lock for {subscriber}")
            try:
                yield
            finally:
                try:
                    await lock.release()
                except RedisError as e:
                    # Lock already expired; the write it guarded has completed
                    logger.warning(f"Session lock for {subscriber} expired before release: {e}")

    async def get(self, subscriber: str) -> Optional[QuizSession]:
        try:
            raw = await self._client.get(self._key(subscriber))
        except RedisError as e:
            raise StoreError(f"Session read failed for {subscriber}: {e}") from e
        if raw is None:
            return None
        return QuizSession.from_json(raw)

    async def set(self, session: QuizSession) -> None:
        try:
            await self._client.set(self._key(session.subscriber), session.to_json(), ex=self.ttl_seconds)
        except RedisError as e:
            raise StoreError(f"Session write failed for {session.subscriber}: {e}") from e

    async def clear(self, subscriber: str) -> None:
        try:
            await self._client.delete(self._key(subscriber))
        except RedisError as e:
            raise StoreError(f"Session delete failed for {subscriber}: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()


def get_session_store(settings: Optional[StoreConfig] = None) -> SessionStore:
    """
    Build the session store selected by configuration.

    Args:
        settings: Store settings (defaults to global config)

    Raises:
        ValueError: If the backend name is unknown
    """
    settings = settings or config.store

    if settings.backend == "memory":
        return InMemorySessionStore()
    if settings.backend == "redis":
        logger.info(f"Using Redis session store at {settings.redis_url}")
        return RedisSessionStore.from_url(
            settings.redis_url,
            ttl_seconds=settings.session_ttl_seconds or None,
            lock_timeout_seconds=settings.lock_timeout_seconds,
        )

    raise ValueError(f"Unknown session backend: {settings.backend}. Valid options: ['memory', 'redis']")

"""
Dialog Session Store for Takeaway Bot
=====================================

This module keeps one DialogSession per caller id in memory.

Architecture Overview:
----------------------
- Sessions are created on first contact and saved after every turn.
- Idle sessions expire after DIALOG_SESSION_TTL_SECONDS. Expiry is lazy: an
  expired entry is dropped on the next access to it, and a full sweep runs
  opportunistically (~1% of accesses) to bound memory.
- Sessions are logically independent, so the only shared structure is the
  cache dictionary itself.

Thread Safety:
--------------
All cache operations are protected by a threading.Lock, since FastAPI may
call into the store from its thread pool and from the event loop.

Per-session Serialization:
--------------------------
Two overlapping requests for the same caller would race on the session's
slots. ``lock_for(caller_id)`` hands out one asyncio.Lock per caller; the
voice dialog service holds it for the whole turn.

Usage:
------
    store = InMemorySessionStore(clock=SystemClock())

    async with store.lock_for(caller_id):
        session = store.get_or_create(caller_id)
        ...
        store.save(session)

Production Considerations:
--------------------------
For multi-worker deployments, sessions would need a shared store (e.g.
Redis) plus sticky routing or a distributed lock per caller.
"""

import asyncio
import logging
import random
import threading
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Dict, Optional

from ..clock import Clock, SystemClock
from ..config import DIALOG_SESSION_TTL_SECONDS
from ..dialog.context import DialogSession
from ..dialog.models import DialogState


logger = logging.getLogger(__name__)


class SessionStore(ABC):
    @abstractmethod
    def get_or_create(self, caller_id: str) -> DialogSession:
        ...

    @abstractmethod
    def save(self, session: DialogSession) -> None:
        ...

    @abstractmethod
    def remove(self, caller_id: str) -> None:
        ...

    @abstractmethod
    def lock_for(self, caller_id: str) -> asyncio.Lock:
        ...


class InMemorySessionStore(SessionStore):
    def __init__(
        self,
        ttl_seconds: int = DIALOG_SESSION_TTL_SECONDS,
        clock: Optional[Clock] = None,
        cleanup_probability: float = 0.01,
    ):
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()
        self._cleanup_probability = cleanup_probability
        self._sessions: Dict[str, DialogSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._cache_lock = threading.Lock()

    # =========================================================================
    # Cache Maintenance
    # =========================================================================

    def _is_expired(self, session: DialogSession, now) -> bool:
        return now - session.updated_at > self._ttl

    def cleanup_expired(self) -> int:
        """
        Remove expired sessions from the cache.

        Returns:
            int: Number of sessions removed
        """
        now = self._clock.now()
        with self._cache_lock:
            expired = [
                caller_id for caller_id, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for caller_id in expired:
                self._drop(caller_id)
            orphaned = [
                caller_id for caller_id, lock in self._locks.items()
                if caller_id not in self._sessions and not lock.locked()
            ]
            for caller_id in orphaned:
                del self._locks[caller_id]

        if expired:
            logger.info("Evicted %d idle dialog sessions", len(expired))
        return len(expired)

    def _drop(self, caller_id: str) -> None:
        """Remove a session; caller must hold _cache_lock."""
        self._sessions.pop(caller_id, None)
        lock = self._locks.get(caller_id)
        if lock is not None and not lock.locked():
            del self._locks[caller_id]

    def _maybe_cleanup(self) -> None:
        if random.random() < self._cleanup_probability:
            self.cleanup_expired()

    # =========================================================================
    # Session Operations
    # =========================================================================

    def get(self, caller_id: str) -> Optional[DialogSession]:
        """Return the live session for a caller, or None if missing or expired."""
        now = self._clock.now()
        with self._cache_lock:
            session = self._sessions.get(caller_id)
            if session is not None and self._is_expired(session, now):
                logger.debug("Session for %s expired", caller_id)
                self._drop(caller_id)
                session = None
        return session

    def get_or_create(self, caller_id: str) -> DialogSession:
        """
        Return the caller's session, starting a fresh one if none is live.

        Args:
            caller_id: Phone number or other stable caller identity

        Returns:
            The cached DialogSession (same object until saved/removed/expired)
        """
        self._maybe_cleanup()
        now = self._clock.now()
        with self._cache_lock:
            session = self._sessions.get(caller_id)
            if session is not None and self._is_expired(session, now):
                logger.debug("Session for %s expired, starting over", caller_id)
                self._drop(caller_id)
                session = None
            if session is None:
                session = DialogSession(
                    caller_id=caller_id,
                    state=DialogState.START,
                    updated_at=now,
                )
                self._sessions[caller_id] = session
                logger.debug("Created dialog session for %s", caller_id)
        return session

    def save(self, session: DialogSession) -> None:
        session.touch(self._clock.now())
        with self._cache_lock:
            self._sessions[session.caller_id] = session

    def remove(self, caller_id: str) -> None:
        """End a caller's session. Also called while the caller's turn lock is held."""
        with self._cache_lock:
            self._sessions.pop(caller_id, None)
            # Holders of the lock keep their own reference
            self._locks.pop(caller_id, None)

    def lock_for(self, caller_id: str) -> asyncio.Lock:
        with self._cache_lock:
            lock = self._locks.get(caller_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[caller_id] = lock
        return lock

    def clear(self) -> None:
        """Drop every session. Primarily for tests."""
        with self._cache_lock:
            self._sessions.clear()
            self._locks.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        with self._cache_lock:
            states: Dict[str, int] = {}
            for session in self._sessions.values():
                states[session.state.value] = states.get(session.state.value, 0) + 1
            return {
                "cached_sessions": len(self._sessions),
                "caller_locks": len(self._locks),
                "ttl_seconds": int(self._ttl.total_seconds()),
                "sessions_by_state": states,
            }

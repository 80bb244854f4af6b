"""
In-memory session registry.

Sessions are created lazily on first use and live for the process lifetime
unless evicted by age. Work on one session is serialized through a
per-session ``asyncio.Lock``; distinct sessions proceed concurrently.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional

from procurement_agent.models import Session, utcnow

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return uuid.uuid4().hex


class SessionStore:
    """Registry of conversation sessions keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> Optional[Session]:
        """Get a session without creating it."""
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> Session:
        """
        Get an existing session or create a new one.

        Args:
            session_id: Opaque conversation identifier

        Returns:
            The single Session for this id
        """
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id)
            self._sessions[session_id] = session
            logger.info(f"Created new session: {session_id}")
        return session

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        # No await between lookup and insert, so one lock per id
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    @asynccontextmanager
    async def session(self, session_id: str) -> AsyncIterator[Session]:
        """
        Hold the session lock for the duration of the block.

        Overlapping requests on the same id queue here in arrival order.
        """
        lock = self._lock_for(session_id)
        async with lock:
            yield self.get_or_create(session_id)

    def reset(self, session_id: str) -> bool:
        """Forget a session's history and context. Returns True if it existed."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info(f"Reset session: {session_id}")
        return True

    def evict_idle(self, max_age: timedelta, now: Optional[datetime] = None) -> list[str]:
        """
        Remove sessions whose last activity is older than ``max_age``.

        Sessions whose lock is currently held are skipped.

        Returns:
            The evicted session ids
        """
        now = now or utcnow()
        evicted = []
        for session_id, session in list(self._sessions.items()):
            lock = self._locks.get(session_id)
            if lock is not None and lock.locked():
                continue
            if now - session.last_activity > max_age:
                del self._sessions[session_id]
                self._locks.pop(session_id, None)
                evicted.append(session_id)

        if evicted:
            logger.info(f"Evicted {len(evicted)} idle session(s)")
        return evicted

    def list_sessions(self) -> list[str]:
        return list(self._sessions.keys())

"""
Session stores.

``SessionStore`` is the lookup contract the HTTP layer depends on;
``InMemorySessionStore`` keeps sessions in process memory, so a restart
logs everybody out and several workers do not share sessions.
"""

import secrets
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ..logger import logger
from ..models import Session

SESSION_EXPIRY_SECONDS = 24 * 60 * 60


class SessionStore(ABC):
    @abstractmethod
    def create(self, username: str) -> str:
        """Create a session and return its id."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[Session]:
        """Return a live session and extend it, or None."""

    @abstractmethod
    def destroy(self, session_id: str) -> None: ...

    @abstractmethod
    def cleanup_expired(self) -> int:
        """Evict expired sessions, returning how many were removed."""


class InMemorySessionStore(SessionStore):
    def __init__(
        self,
        expiry_seconds: float = SESSION_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.expiry_seconds = expiry_seconds
        self._clock = clock
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.last_activity > self.expiry_seconds

    def create(self, username: str) -> str:
        session_id = secrets.token_hex(32)  # 256 bits
        now = self._clock()
        self._sessions[session_id] = Session(
            id=session_id, username=username, created_at=now, last_activity=now
        )
        logger.info(f"Session created for {username}")
        return session_id

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None

        now = self._clock()
        if self._is_expired(session, now):
            del self._sessions[session_id]
            logger.info(f"Session for {session.username} expired")
            return None

        # Sliding expiry
        session.last_activity = now
        return session

    def destroy(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info(f"Session destroyed for {session.username}")

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if self._is_expired(session, now)
        ]
        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

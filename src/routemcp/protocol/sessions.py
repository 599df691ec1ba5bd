"""In-memory session store. Sessions live until the process exits."""

from __future__ import annotations

import logging

from routemcp._rwlock import ReadWriteLock
from routemcp.models import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """Creates and validates client sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = ReadWriteLock()

    def create(self) -> Session:
        session = Session()
        with self._lock.write():
            self._sessions[session.id] = session
        logger.debug("Created session %s", session.id)
        return session

    def get(self, session_id: str) -> Session | None:
        with self._lock.read():
            return self._sessions.get(session_id)

    def exists(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._sessions)

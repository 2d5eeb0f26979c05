from __future__ import annotations

import threading
from typing import Dict, Optional

from .errors import SessionNotFoundError
from .types import PlannerSession


class SessionStore:
    """In-memory session records plus one lock per session id.

    Holding ``lock(session_id)`` around a turn keeps two requests for the same
    session from interleaving; different sessions never contend.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, PlannerSession] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock

    def find(self, session_id: str) -> Optional[PlannerSession]:
        return self._sessions.get(session_id)

    def get(self, session_id: str) -> PlannerSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def save(self, session: PlannerSession) -> PlannerSession:
        self._sessions[session.id] = session
        return session

"""
Map Session Registry
Keeps one MapSession per browser map view, keyed by session id
"""

import logging
import time
from typing import Callable, Dict, Optional

from mapguide.core.config import settings
from mapguide.core.logger import logs
from mapguide.services.map_session import MapSession


class MapSessionRegistry:
    """
    Owns the live map sessions of this process.
    Sessions are created lazily on their first event; they are dropped
    explicitly or once they have been idle for ``idle_seconds``.
    """

    def __init__(
        self,
        session_factory: Callable[[str], MapSession],
        idle_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory
        self.idle_seconds = settings.SESSION_IDLE_SECONDS if idle_seconds is None else idle_seconds
        self.clock = clock
        self._sessions: Dict[str, MapSession] = {}
        self._last_seen: Dict[str, float] = {}

    def get(self, session_id: str) -> Optional[MapSession]:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> MapSession:
        self.prune()
        session = self._sessions.get(session_id)
        if session is None:
            session = self.session_factory(session_id)
            self._sessions[session_id] = session
            logs.log(logging.INFO, f"Map session opened: {session_id}", {"open_sessions": len(self._sessions)})
        self._last_seen[session_id] = self.clock()
        return session

    def prune(self) -> int:
        """Drop every session idle for longer than ``idle_seconds``"""
        now = self.clock()
        expired = [sid for sid, seen in self._last_seen.items() if now - seen > self.idle_seconds]
        for session_id in expired:
            logs.log(logging.INFO, f"Map session expired: {session_id}")
            self.drop(session_id)
        return len(expired)

    def drop(self, session_id: str) -> bool:
        """Cancel everything the session has pending and forget it"""
        self._last_seen.pop(session_id, None)
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logs.log(logging.INFO, f"Map session closed: {session_id}")
        return True

    def close_all(self):
        for session_id in list(self._sessions):
            self.drop(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

"""
In-memory session store.

Sessions live in a plain dict keyed by session id, for the lifetime of the
process. Each request only touches its own key.
"""

import secrets
from datetime import datetime, timezone
from typing import Optional

from models.session import Session


class SessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @staticmethod
    def generate_id() -> str:
        return secrets.token_urlsafe(24)

    def create(self) -> Session:
        session = Session(session_id=self.generate_id())
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen = datetime.now(timezone.utc)
        return session

    def save(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    def destroy(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def clear(self) -> None:
        self._sessions.clear()

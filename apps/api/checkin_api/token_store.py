"""Client-side session persistence.

One file holds the current access token and its absolute expiry. Every read
goes back to the file, so separate ``TokenStore`` objects pointed at the same
path (separate views of the app) agree on whether a session exists. Sign-out
additionally notifies every subscriber registered for that path.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlsplit, urlunsplit

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600

Listener = Callable[[Optional["StoredSession"]], None]

_listeners: Dict[Path, List[Listener]] = {}


class StoredSession(BaseModel):
    access_token: str
    token_type: str = "bearer"
    issued_at: float
    expires_at: float
    user_id: Optional[str] = None

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TokenStore:
    def __init__(self, path: Union[str, Path], *, clock: Callable[[], float] = time.time) -> None:
        self.path = Path(path).expanduser().resolve()
        self._clock = clock

    def load(self) -> Optional[StoredSession]:
        """Return the persisted session if it exists and has not expired."""
        if not self.path.exists():
            return None
        try:
            session = StoredSession.model_validate_json(self.path.read_text())
        except (OSError, ValidationError) as exc:
            logger.warning("ignoring unreadable session file %s: %s", self.path, exc)
            return None
        if not session.is_valid(self._clock()):
            return None
        return session

    def get_access_token(self) -> Optional[str]:
        session = self.load()
        return session.access_token if session else None

    def save(
        self,
        access_token: str,
        expires_in: Optional[int] = None,
        *,
        token_type: str = "bearer",
        user_id: Optional[str] = None,
    ) -> StoredSession:
        now = self._clock()
        session = StoredSession(
            access_token=access_token,
            token_type=token_type,
            issued_at=now,
            expires_at=now + (expires_in or DEFAULT_EXPIRES_IN),
            user_id=user_id,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json())
        self._notify(session)
        return session

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        self._notify(None)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for session changes on this path; returns an unsubscribe callable."""
        listeners = _listeners.setdefault(self.path, [])
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)
            if not listeners and _listeners.get(self.path) is listeners:
                del _listeners[self.path]

        return unsubscribe

    def consume_fragment(self, url: str) -> str:
        """Persist a token delivered in a URL fragment and return the URL without it.

        URLs whose fragment carries no ``access_token`` come back unchanged.
        """
        parts = urlsplit(url)
        values = parse_qs(parts.fragment)
        access_token = (values.get("access_token") or [None])[0]
        if not access_token:
            return url
        token_type = (values.get("token_type") or ["bearer"])[0]
        try:
            expires_in = int((values.get("expires_in") or [DEFAULT_EXPIRES_IN])[0])
        except ValueError:
            expires_in = DEFAULT_EXPIRES_IN
        self.save(access_token, expires_in, token_type=token_type)
        return urlunsplit(parts._replace(fragment=""))

    def _notify(self, session: Optional[StoredSession]) -> None:
        for listener in list(_listeners.get(self.path, [])):
            listener(session)

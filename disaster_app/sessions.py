"""
Server-side session store.

The browser only holds a signed, timestamped token in the ``session`` cookie;
the values live here, keyed by that token.
"""

import logging
import secrets
import threading
import time
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from . import config

logger = logging.getLogger(__name__)

USER_EMAIL = "UserEmail"
USER_ROLE = "UserRole"
USER_ID = "UserId"
USER_NAME = "UserName"

serializer = URLSafeTimedSerializer(config.SECRET_KEY, salt="session")


class SessionStore:
    def __init__(self, max_age: int = config.SESSION_MAX_AGE) -> None:
        self.max_age = max_age
        self._sessions: dict = {}
        self._lock = threading.Lock()

    def create(self, values: dict) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._purge_expired()
            self._sessions[token] = {"values": dict(values), "created": time.monotonic()}
        return token

    def _purge_expired(self) -> None:
        # Caller holds the lock
        now = time.monotonic()
        expired = [t for t, entry in self._sessions.items() if now - entry["created"] > self.max_age]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug("Purged %d expired sessions", len(expired))

    def get(self, token: str) -> Optional[dict]:
        """Return a copy of the session values, or None if unknown/expired."""
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return None
            if time.monotonic() - entry["created"] > self.max_age:
                del self._sessions[token]
                return None
            return dict(entry["values"])

    def update(self, token: str, **values) -> None:
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                raise KeyError(token)
            entry["values"].update(values)

    def delete(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


session_store = SessionStore()


def create_session_token(token: str) -> str:
    """Sign a store token for the cookie."""
    return serializer.dumps(token)


def verify_session_token(signed: str, max_age_seconds: int = config.SESSION_MAX_AGE) -> Optional[str]:
    """
    Returns the store token if the signature is valid and fresh,
    or None if the cookie is tampered with or expired.
    """
    try:
        return serializer.loads(signed, max_age=max_age_seconds)
    except BadSignature:
        logger.debug("Rejected session cookie with a bad or expired signature")
        return None

import logging
import secrets
import threading
import time
from typing import Callable, Dict, Tuple

from src.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class TokenStore:
    """In-memory bearer tokens issued by /login. Expired tokens are dropped on each login."""

    def __init__(self, username: str, password: str, ttl_seconds: int = 3600,
                 clock: Callable[[], float] = time.monotonic):
        self._username = username
        self._password = password
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._tokens: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._tokens)

    def login(self, username: str, password: str) -> str:
        user_ok = secrets.compare_digest(username, self._username)
        pass_ok = secrets.compare_digest(password, self._password)
        if not (user_ok and pass_ok):
            logger.warning("Rejected login for user %r", username)
            raise AuthenticationError("Invalid username or password")

        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            expired = [t for t, (_, expires_at) in self._tokens.items() if now >= expires_at]
            for t in expired:
                del self._tokens[t]
            self._tokens[token] = (username, now + self.ttl_seconds)
        return token

    def authenticate(self, token: str) -> str:
        with self._lock:
            found = self._tokens.get(token)
            if found is None:
                raise AuthenticationError("Unknown token")
            username, expires_at = found
            if self._clock() >= expires_at:
                self._tokens.pop(token, None)
                raise AuthenticationError("Token expired")
        return username

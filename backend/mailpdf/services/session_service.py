"""
Session management service.

This module handles:
1. Issuing opaque bearer tokens for delegated Google credentials
2. Resolving tokens on authenticated requests (with lazy expiry)
3. Sweeping abandoned sessions on a fixed interval

Security: Sessions are stored in-memory. Tokens are 48 random bytes
rendered as 96 hex characters; they are never logged.
"""
import asyncio
import secrets
import threading
import time
from typing import Callable, Optional

from mailpdf.models.session import OAuthTokens, Session
from mailpdf.utils.logger import get_logger

logger = get_logger(__name__)

SESSION_TOKEN_BYTES = 48
SESSION_TOKEN_LENGTH = SESSION_TOKEN_BYTES * 2


class SessionStore:
    """
    In-memory map from bearer tokens to delegated credentials.

    Usage:
        store = SessionStore(ttl_seconds=86400)
        token = store.create(credentials)
        credentials = store.resolve(token)
        store.invalidate(token)

    Every operation holds the lock, so request handlers running in the
    thread pool and the sweeper task can interleave safely.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.created_at > self.ttl_seconds

    def create(self, credentials: OAuthTokens) -> str:
        """
        Store credentials under a new random token.

        Returns:
            96-character hex session token
        """
        token = secrets.token_hex(SESSION_TOKEN_BYTES)
        session = Session(token=token, credentials=credentials, created_at=self._clock())

        with self._lock:
            self._sessions[token] = session

        logger.info("Created session")
        return token

    def resolve(self, token: str) -> Optional[OAuthTokens]:
        """
        Look up the credentials for a token.

        An expired session is deleted as a side effect.

        Returns:
            OAuthTokens, or None if the token is unknown or expired
        """
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None

            if self._is_expired(session, self._clock()):
                self._sessions.pop(token, None)
                logger.info("Session expired on lookup")
                return None

            return session.credentials

    def invalidate(self, token: str) -> None:
        """Remove a session; unknown tokens are ignored."""
        with self._lock:
            removed = self._sessions.pop(token, None)

        if removed is not None:
            logger.info("Session invalidated")

    def sweep(self) -> int:
        """
        Delete every expired session.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                token for token, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for token in expired:
                self._sessions.pop(token, None)

        if expired:
            logger.info(f"Swept {len(expired)} expired sessions")
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Call sweep() every interval until cancelled."""
        logger.info(f"Session sweeper started (every {interval_seconds}s)")
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

"""
SnipShare Backend: Server-Held Session Store
==============================================

What:  In-memory map of opaque session id → {user id, flash notices, expiry}.
How:   A dict guarded by a threading.Lock. Ids come from
       secrets.token_urlsafe so they cannot be guessed. Expiry is sliding:
       every successful lookup pushes it forward by the configured TTL.
Who:   SessionMiddleware (cookie ↔ id), IdentityService (user binding),
       page routes (flash notices), /health (active session count).

Limitations:
    Sessions live in one process. Running several workers would need a
    shared backend (Redis, database table) behind the same interface.
"""

import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

Flash = Tuple[str, str]  # (category, message)


@dataclass
class SessionRecord:
    user_id: Optional[int] = None
    flashes: List[Flash] = field(default_factory=list)
    expires_at: float = 0.0


class SessionStore:
    """
    Thread-safe session registry with idle expiry.

    Every public method takes the lock, so concurrent requests never see a
    half-updated record. Methods that receive an unknown or expired id are
    no-ops (or return None/False) rather than raising.
    """

    def __init__(self, ttl_seconds: int = 86_400):
        self.ttl_seconds = ttl_seconds
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def create(self) -> str:
        """Start an empty session and return its id."""
        session_id = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_id] = SessionRecord(expires_at=self._deadline())
        logger.debug("Session created (active=%d)", len(self._sessions))
        return session_id

    def rotate(self, session_id: Optional[str]) -> Optional[str]:
        """
        Move a live session to a fresh id and drop the old one.

        The user binding and pending flashes travel with it. Returns None
        when `session_id` is unknown or expired.
        """
        with self._lock:
            record = self._live_record(session_id)
            if record is None:
                return None
            del self._sessions[session_id]
            new_id = secrets.token_urlsafe(32)
            self._sessions[new_id] = record
        logger.debug("Session id rotated")
        return new_id

    def exists(self, session_id: Optional[str]) -> bool:
        with self._lock:
            return self._live_record(session_id) is not None

    def destroy(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop every expired record; returns how many were removed."""
        now = time.monotonic()
        with self._lock:
            expired = [sid for sid, rec in self._sessions.items() if rec.expires_at <= now]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.debug("Purged %d expired sessions", len(expired))
        return len(expired)

    @property
    def active_count(self) -> int:
        now = time.monotonic()
        with self._lock:
            return sum(1 for rec in self._sessions.values() if rec.expires_at > now)

    # ── Identity binding ──────────────────────────────────────────────────

    def get_user_id(self, session_id: Optional[str]) -> Optional[int]:
        with self._lock:
            record = self._live_record(session_id)
            return record.user_id if record else None

    def bind_user(self, session_id: str, user_id: int) -> bool:
        """Attach a user to the session, replacing any previous one."""
        with self._lock:
            record = self._live_record(session_id)
            if record is None:
                return False
            record.user_id = user_id
            return True

    def unbind_user(self, session_id: Optional[str]) -> None:
        with self._lock:
            record = self._live_record(session_id)
            if record is not None:
                record.user_id = None

    # ── Flash notices ─────────────────────────────────────────────────────

    def add_flash(self, session_id: Optional[str], message: str, category: str = "info") -> None:
        with self._lock:
            record = self._live_record(session_id)
            if record is not None:
                record.flashes.append((category, message))

    def pop_flashes(self, session_id: Optional[str]) -> List[Flash]:
        """Return pending notices and clear them (each is shown once)."""
        with self._lock:
            record = self._live_record(session_id)
            if record is None:
                return []
            flashes, record.flashes = record.flashes, []
            return flashes

    # ── Internals (caller holds the lock) ─────────────────────────────────

    def _deadline(self) -> float:
        return time.monotonic() + self.ttl_seconds

    def _live_record(self, session_id: Optional[str]) -> Optional[SessionRecord]:
        if not session_id:
            return None
        record = self._sessions.get(session_id)
        if record is None:
            return None
        if record.expires_at <= time.monotonic():
            del self._sessions[session_id]
            return None
        record.expires_at = self._deadline()
        return record

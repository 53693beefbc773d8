"""
Pending custom-sell store.

Holds, per user, the one mint that is waiting for a typed amount. This is the
only sell-flow state that survives between two messages.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .models import AwaitingAmount, InputExpectation, NoExpectation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingSession:
    mint: str
    created_at: float


class PendingActionStore:
    """
    Single-slot-per-user conversation continuation.

    Setting a new mint for a user replaces the old one (last write wins).
    Entries older than `ttl_sec` read as absent and are dropped, so an
    abandoned flow does not grab the user's next message hours later.

    Usage:
        store = PendingActionStore(ttl_sec=600)
        store.set_pending("42", mint)
        expectation = store.expectation("42")   # AwaitingAmount(mint)
    """

    def __init__(self, ttl_sec: float = 600.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_sec = ttl_sec
        self._clock = clock
        self._sessions: Dict[str, PendingSession] = {}
        self._lock = threading.Lock()

    def set_pending(self, user_id: str, mint: str) -> None:
        with self._lock:
            previous = self._sessions.get(user_id)
            self._sessions[user_id] = PendingSession(mint=mint, created_at=self._clock())
        if previous and previous.mint != mint:
            logger.debug(f"Pending sell for {user_id} replaced: {previous.mint[:8]}... -> {mint[:8]}...")

    def get_pending(self, user_id: str) -> Optional[str]:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None
            if self._is_expired(session):
                del self._sessions[user_id]
                logger.info(f"Pending sell for {user_id} expired ({session.mint[:8]}...)")
                return None
            return session.mint

    def clear_pending(self, user_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(user_id, None) is not None

    def expectation(self, user_id: str) -> InputExpectation:
        mint = self.get_pending(user_id)
        if mint is None:
            return NoExpectation()
        return AwaitingAmount(mint=mint)

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            expired = [uid for uid, s in self._sessions.items() if self._is_expired(s)]
            for uid in expired:
                del self._sessions[uid]
        if expired:
            logger.info(f"Purged {len(expired)} expired pending sells")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, session: PendingSession) -> bool:
        return self.ttl_sec > 0 and self._clock() - session.created_at >= self.ttl_sec

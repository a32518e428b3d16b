"""
Pending-action sessions.

A session binds a batch of proposed FileActions to a single confirm/cancel
decision. Sessions live in memory only and expire after a fixed TTL.

Lifecycle: proposed -> confirmed | cancelled | expired. All three are
terminal. A confirmed batch is parked until the executor reports results
for it, so the undo history can be built from the original actions.
"""

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from mane.config import SESSION_TTL_SECONDS
from mane.tools.base import FileAction
from mane.utils.logging import logger


@dataclass
class PendingActions:
    """A batch of proposed actions awaiting confirmation."""

    session_id: str
    actions: list[FileAction]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "actions": [a.to_dict() for a in self.actions],
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }


class SessionStore:
    """
    In-memory map of session id -> PendingActions.

    Expired sessions are swept whenever a new session is stored; readers
    always re-check expiry themselves rather than relying on the sweep.
    """

    def __init__(
        self,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._pending: dict[str, PendingActions] = {}
        # Confirmed batches awaiting results, keyed by session id
        self._confirmed: dict[str, PendingActions] = {}
        self._lock = threading.Lock()

    def store(self, actions: list[FileAction]) -> str:
        """Store a batch of proposed actions and return its session id."""
        if not actions:
            raise ValueError("Cannot create a session without actions")

        now = self._clock()
        session_id = f"session_{uuid.uuid4().hex}"

        with self._lock:
            self._sweep(now)
            self._pending[session_id] = PendingActions(
                session_id=session_id,
                actions=list(actions),
                created_at=now,
                expires_at=now + self.ttl,
            )

        logger.info(f"Stored {len(actions)} pending actions in session {session_id}")
        return session_id

    def get(self, session_id: str) -> Optional[PendingActions]:
        """Get a live session; expired sessions are treated as absent."""
        with self._lock:
            pending = self._pending.get(session_id)
            if pending and not pending.is_expired(self._clock()):
                return pending
        return None

    def confirm(self, session_id: str) -> Optional[list[FileAction]]:
        """
        Confirm a session and hand its actions to the caller.

        Exactly once: the session is removed, so a second confirm returns
        None.
        """
        now = self._clock()
        with self._lock:
            pending = self._pending.get(session_id)
            if not pending or pending.is_expired(now):
                return None

            del self._pending[session_id]
            # Keep the batch around for result reporting
            self._confirmed[session_id] = PendingActions(
                session_id=session_id,
                actions=pending.actions,
                created_at=now,
                expires_at=now + self.ttl,
            )

        logger.info(f"Confirmed session {session_id} ({len(pending.actions)} actions)")
        return list(pending.actions)

    def cancel(self, session_id: str) -> bool:
        """Discard a pending session. Returns False if it did not exist."""
        with self._lock:
            pending = self._pending.pop(session_id, None)

        if pending is None:
            return False

        logger.info(f"Cancelled session {session_id}")
        return True

    def take_for_results(self, session_id: str) -> Optional[list[FileAction]]:
        """
        Claim the batch that execution results are being reported for.

        Prefers a confirmed batch; falls back to a live pending session,
        which is consumed since its actions have now been executed.
        """
        now = self._clock()
        with self._lock:
            confirmed = self._confirmed.pop(session_id, None)
            if confirmed and not confirmed.is_expired(now):
                return list(confirmed.actions)

            pending = self._pending.get(session_id)
            if pending and not pending.is_expired(now):
                del self._pending[session_id]
                return list(pending.actions)

        return None

    def _sweep(self, now: datetime) -> None:
        """Drop expired entries. Caller holds the lock."""
        for store in (self._pending, self._confirmed):
            expired = [sid for sid, p in store.items() if p.is_expired(now)]
            for sid in expired:
                del store[sid]
                logger.info(f"Cleaned up expired session: {sid}")

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for p in self._pending.values() if not p.is_expired(now))

"""
Dict-backed, lock-guarded storage. Used by tests and by
``storage_backend = "memory"``. Everything round-trips through to_dict() so
callers never share mutable objects with the store.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from ..blocking.models import BlockList
from ..challenges.models import ChallengeAttempt
from ..focus.models import FocusSession, UserStats
from .base import Storage


class MemoryStorage(Storage):

    def __init__(self):
        self._lock = threading.RLock()
        self._block_lists: Dict[str, dict] = {}
        self._active: Dict[str, dict] = {}
        self._history: Dict[str, List[dict]] = {}
        self._attempts: Dict[str, List[dict]] = {}
        self._settings: Dict[str, dict] = {}
        self._stats: Dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Block lists
    # ------------------------------------------------------------------

    def load_block_list(self, owner_id: str) -> Optional[BlockList]:
        with self._lock:
            data = self._block_lists.get(owner_id)
        return BlockList.from_dict(data) if data else None

    def save_block_list(self, block_list: BlockList) -> None:
        with self._lock:
            self._block_lists[block_list.owner_id] = block_list.to_dict()

    # ------------------------------------------------------------------
    # Focus sessions
    # ------------------------------------------------------------------

    def load_active_session(self, owner_id: str) -> Optional[FocusSession]:
        with self._lock:
            data = self._active.get(owner_id)
        return FocusSession.from_dict(data) if data else None

    def claim_active_session(self, session: FocusSession) -> bool:
        with self._lock:
            if session.owner_id in self._active:
                return False
            self._active[session.owner_id] = session.to_dict()
            return True

    def save_active_session(self, session: FocusSession) -> None:
        with self._lock:
            self._active[session.owner_id] = session.to_dict()

    def clear_active_session(self, owner_id: str, session_id: str) -> bool:
        with self._lock:
            current = self._active.get(owner_id)
            if current is None or current["id"] != session_id:
                return False
            del self._active[owner_id]
            return True

    def append_to_history(self, session: FocusSession) -> None:
        with self._lock:
            self._history.setdefault(session.owner_id, []).append(session.to_dict())

    def load_history(self, owner_id: str, limit: int = 50, offset: int = 0) -> List[FocusSession]:
        with self._lock:
            rows = list(self._history.get(owner_id, []))
        rows.sort(key=lambda s: s["start_time"], reverse=True)
        return [FocusSession.from_dict(s) for s in rows[offset:offset + limit]]

    # ------------------------------------------------------------------
    # Challenge attempts
    # ------------------------------------------------------------------

    def append_challenge_attempt(self, attempt: ChallengeAttempt) -> None:
        with self._lock:
            self._attempts.setdefault(attempt.owner_id, []).append(attempt.to_dict())

    def load_challenge_attempts(
        self,
        owner_id: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ChallengeAttempt]:
        with self._lock:
            rows = list(self._attempts.get(owner_id, []))
        if since is not None:
            rows = [a for a in rows if a["attempted_at"] >= since]
        if limit is not None:
            rows = rows[-limit:] if limit > 0 else []
        return [ChallengeAttempt.from_dict(a) for a in rows]

    def prune_challenge_attempts(self, owner_id: str, keep: int) -> int:
        with self._lock:
            rows = self._attempts.get(owner_id, [])
            excess = max(0, len(rows) - keep)
            if excess:
                self._attempts[owner_id] = rows[excess:]
            return excess

    # ------------------------------------------------------------------
    # Settings and stats
    # ------------------------------------------------------------------

    def load_settings(self, owner_id: str) -> Dict[str, Any]:
        with self._lock:
            return dict(self._settings.get(owner_id, {}))

    def save_settings(self, owner_id: str, settings: Dict[str, Any]) -> None:
        with self._lock:
            self._settings[owner_id] = dict(settings)

    def load_user_stats(self, owner_id: str) -> UserStats:
        with self._lock:
            data = self._stats.get(owner_id)
        return UserStats.from_dict(data) if data else UserStats()

    def save_user_stats(self, owner_id: str, stats: UserStats) -> None:
        with self._lock:
            self._stats[owner_id] = stats.to_dict()

"""
Persistence contract the core depends on. Implementations raise
StorageError for any failure; callers must not assume durability beyond
a successful return.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..blocking.models import BlockList
from ..challenges.models import ChallengeAttempt
from ..focus.models import FocusSession, UserStats


class Storage(ABC):

    # ── Block lists ────────────────────────────────────────────────────────

    @abstractmethod
    def load_block_list(self, owner_id: str) -> Optional[BlockList]: ...

    @abstractmethod
    def save_block_list(self, block_list: BlockList) -> None: ...

    # ── Focus sessions ─────────────────────────────────────────────────────

    @abstractmethod
    def load_active_session(self, owner_id: str) -> Optional[FocusSession]: ...

    @abstractmethod
    def claim_active_session(self, session: FocusSession) -> bool:
        """Store *session* as the owner's active one unless another exists.

        Must be atomic: returns False (and stores nothing) if the owner
        already has an active session.
        """

    @abstractmethod
    def save_active_session(self, session: FocusSession) -> None: ...

    @abstractmethod
    def clear_active_session(self, owner_id: str, session_id: str) -> bool:
        """Remove the active session if it is *session_id*; True if removed."""

    @abstractmethod
    def append_to_history(self, session: FocusSession) -> None: ...

    @abstractmethod
    def load_history(self, owner_id: str, limit: int = 50, offset: int = 0) -> List[FocusSession]:
        """Ended sessions, newest first."""

    # ── Challenge attempts ─────────────────────────────────────────────────

    @abstractmethod
    def append_challenge_attempt(self, attempt: ChallengeAttempt) -> None: ...

    @abstractmethod
    def load_challenge_attempts(
        self,
        owner_id: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ChallengeAttempt]:
        """Attempts oldest first; *limit* keeps the most recent ones."""

    @abstractmethod
    def prune_challenge_attempts(self, owner_id: str, keep: int) -> int:
        """Drop all but the newest *keep* attempts; returns the number removed."""

    # ── Per-owner settings and stats ──────────────────────────────────────

    @abstractmethod
    def load_settings(self, owner_id: str) -> Dict[str, Any]: ...

    @abstractmethod
    def save_settings(self, owner_id: str, settings: Dict[str, Any]) -> None: ...

    @abstractmethod
    def load_user_stats(self, owner_id: str) -> UserStats: ...

    @abstractmethod
    def save_user_stats(self, owner_id: str, stats: UserStats) -> None: ...

    def close(self) -> None:
        """Release any held resources."""

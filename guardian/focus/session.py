"""
Focus Session Engine — start / pause / resume / end for one owner.

Progress is recomputed from the wall clock on every read rather than
accumulated by a timer, so missed ticks and restarts cannot skew it. A
break shifts the deadline forward by its own length when it ends.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import List, Optional

from ..blocking.models import SessionContext
from ..clock import Clock, now_ms
from ..config import config
from ..errors import (
    AlreadyActiveError,
    InvalidDurationError,
    NotActiveError,
    NotFoundError,
    StateConflictError,
)
from ..storage.base import Storage
from .models import Break, FocusSession

logger = logging.getLogger(__name__)


def progress(session: FocusSession, now: int) -> int:
    """
    Percentage of the session's duration elapsed at *now*, clamped to 0..100.
    Frozen at the start of an open break so it never runs backwards when
    the break is folded into the duration on resume.
    """
    if session.duration <= 0:
        return 100
    open_break = session.open_break
    at = open_break.start_time if open_break else now
    pct = round(100 * (at - session.start_time) / session.duration)
    return max(0, min(100, pct))


class FocusSessionEngine:

    def __init__(
        self,
        owner_id: str,
        storage: Storage,
        clock: Clock = now_ms,
        min_duration_ms: int = config.min_session_ms,
        max_duration_ms: int = config.max_session_ms,
    ):
        self.owner_id = owner_id
        self._storage = storage
        self._clock = clock
        self.min_duration_ms = min_duration_ms
        self.max_duration_ms = max_duration_ms

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, duration_ms: int) -> FocusSession:
        if not self.min_duration_ms <= duration_ms <= self.max_duration_ms:
            raise InvalidDurationError(
                f"Session duration must be between {self.min_duration_ms // 60000} "
                f"and {self.max_duration_ms // 60000} minutes"
            )

        now = self._clock()
        session = FocusSession(
            id=uuid.uuid4().hex,
            owner_id=self.owner_id,
            start_time=now,
            end_time=now + duration_ms,
            duration=duration_ms,
        )
        # compare-and-swap on the owner's active slot
        if not self._storage.claim_active_session(session):
            raise AlreadyActiveError("A focus session is already active")

        logger.info("Focus session %s started for %s (%d ms)", session.id, self.owner_id, duration_ms)
        return session

    def pause(self, session_id: str, reason: Optional[str] = None) -> FocusSession:
        session = self._require_active(session_id)
        if session.is_on_break:
            raise StateConflictError("Session is already paused")

        brk = Break(id=uuid.uuid4().hex, start_time=self._clock(), reason=reason or None)
        session = replace(session, breaks=session.breaks + [brk])
        session = self._with_progress(session)
        self._storage.save_active_session(session)
        return session

    def resume(self, session_id: str) -> FocusSession:
        session = self._require_active(session_id)
        open_break = session.open_break
        if open_break is None:
            return self._with_progress(session)

        now = self._clock()
        break_ms = now - open_break.start_time
        closed = replace(open_break, end_time=now)
        session = replace(
            session,
            breaks=session.breaks[:-1] + [closed],
            end_time=session.end_time + break_ms,
            duration=session.duration + break_ms,
        )
        session = self._with_progress(session)
        self._storage.save_active_session(session)
        return session

    def end(self, session_id: str, completed_percentage: Optional[int] = None) -> FocusSession:
        session = self._require_active(session_id)
        now = self._clock()

        final_pct = progress(session, now) if completed_percentage is None else completed_percentage
        breaks = session.breaks
        if session.is_on_break:
            breaks = breaks[:-1] + [replace(breaks[-1], end_time=now)]

        ended = replace(
            session,
            is_active=False,
            end_time=now,
            breaks=breaks,
            completed_percentage=max(0, min(100, int(final_pct))),
        )
        if self._storage.clear_active_session(self.owner_id, session.id):
            self._storage.append_to_history(ended)
        logger.info(
            "Focus session %s ended for %s at %d%%", ended.id, self.owner_id, ended.completed_percentage
        )
        return ended

    def tick(self) -> Optional[FocusSession]:
        """
        Periodic progress update, driven by an external scheduler. Ends the
        session once its deadline passes (unless on break) and returns the
        ended session; otherwise returns the refreshed active session.
        """
        session = self._storage.load_active_session(self.owner_id)
        if session is None:
            return None

        now = self._clock()
        if now >= session.end_time and not session.is_on_break:
            return self.end(session.id, completed_percentage=100)

        refreshed = self._with_progress(session)
        if refreshed.completed_percentage != session.completed_percentage:
            self._storage.save_active_session(refreshed)
        return refreshed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active(self) -> Optional[FocusSession]:
        session = self._storage.load_active_session(self.owner_id)
        return self._with_progress(session) if session else None

    def history(self, limit: int = 50, offset: int = 0) -> List[FocusSession]:
        return self._storage.load_history(self.owner_id, limit=limit, offset=offset)

    def context(self) -> SessionContext:
        session = self._storage.load_active_session(self.owner_id)
        if session is None:
            return SessionContext()
        return SessionContext(has_active_session=True, is_on_break=session.is_on_break)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_active(self, session_id: str) -> FocusSession:
        session = self._storage.load_active_session(self.owner_id)
        if session is None:
            raise NotFoundError("No active session found")
        if session.id != session_id:
            raise NotFoundError(f"Session {session_id} not found")
        if not session.is_active:
            raise NotActiveError("Session is not active")
        return session

    def _with_progress(self, session: FocusSession) -> FocusSession:
        return replace(session, completed_percentage=progress(session, self._clock()))

"""
Unlock Orchestrator — the challenge-gated path from "permanently blocked" to
a temporary unlock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..blocking.block_list import BlockListEngine
from ..blocking.models import BlockReason
from ..blocking.unlocks import TemporaryUnlockStore
from ..blocking.url_matcher import normalize
from ..clock import MINUTE_MS, Clock, now_ms
from ..errors import NotPermanentlyBlockedError, RateLimitError, ValidationError
from .engine import ChallengeEngine
from .models import Answer, Challenge

logger = logging.getLogger(__name__)

DEFAULT_UNLOCK_MS = 10 * MINUTE_MS


@dataclass
class UnlockResult:
    is_correct: bool
    unlock_until: Optional[int] = None


class UnlockOrchestrator:

    def __init__(
        self,
        block_list: BlockListEngine,
        challenges: ChallengeEngine,
        unlocks: TemporaryUnlockStore,
        clock: Clock = now_ms,
        unlock_duration_ms: Callable[[], int] = lambda: DEFAULT_UNLOCK_MS,
    ):
        self._block_list = block_list
        self._challenges = challenges
        self._unlocks = unlocks
        self._clock = clock
        self._unlock_duration_ms = unlock_duration_ms
        self._lock = threading.Lock()
        self._pending: Dict[str, str] = {}      # challenge id -> normalized url

    def request_challenge(self, url: str) -> Challenge:
        with self._lock:
            check = self._block_list.is_blocked(url)
            if check.reason != BlockReason.PERMANENT:
                raise NotPermanentlyBlockedError(
                    "Challenges are only available for permanently blocked sites"
                )
            if not self._challenges.can_attempt():
                raise RateLimitError("Too many challenge attempts in the last hour")

            challenge = self._challenges.generate(self._challenges.recommended_difficulty())
            # generate() drops stale instances; forget their sites too
            self._pending = {
                cid: site for cid, site in self._pending.items()
                if self._challenges.get_issued(cid) is not None
            }
            self._pending[challenge.id] = normalize(url)
        return challenge

    def submit_answer(self, challenge_id: str, url: str, answer: Answer) -> UnlockResult:
        with self._lock:
            requested_for = self._pending.get(challenge_id)
            if requested_for is not None and requested_for != normalize(url):
                raise ValidationError("This challenge was issued for a different site")

            is_correct = self._challenges.validate(challenge_id, answer)
            unlock_until = None
            try:
                if is_correct:
                    unlock_until = self._clock() + self._unlock_duration_ms()
                    self._unlocks.grant(url, unlock_until)
            finally:
                self._challenges.track_attempt(challenge_id, is_correct)
                self._pending.pop(challenge_id, None)

        logger.info(
            "Challenge %s for %s answered %s",
            challenge_id, normalize(url), "correctly" if is_correct else "incorrectly",
        )
        return UnlockResult(is_correct=is_correct, unlock_until=unlock_until)

    def skip(self, challenge_id: str) -> None:
        """Give up on an outstanding challenge; counts as a failed attempt."""
        with self._lock:
            self._challenges.track_attempt(challenge_id, False)
            self._pending.pop(challenge_id, None)
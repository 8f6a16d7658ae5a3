"""
Challenge Engine — issues challenges from the question bank, checks answers
against the exact instance that was issued, and tracks attempts for
adaptive difficulty and hourly rate limiting.
"""

from __future__ import annotations

import logging
import random
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from ..clock import HOUR_MS, Clock, now_ms
from ..config import config
from ..errors import CooldownError, NotFoundError
from ..storage.base import Storage
from .bank import QUESTION_BANK
from .models import Answer, Challenge, ChallengeAttempt, Difficulty

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY = Difficulty.MEDIUM


@dataclass
class IssuedChallenge:
    challenge: Challenge
    template_id: str
    issued_at: int

    def is_expired(self, now: int) -> bool:
        limit = self.challenge.time_limit_seconds
        return limit is not None and now - self.issued_at > limit * 1000


@dataclass
class DifficultyStats:
    total: int = 0
    successful: int = 0
    success_rate: float = 0.0


@dataclass
class ChallengeStats:
    total_attempts: int
    successful_attempts: int
    success_rate: float                     # percent
    by_difficulty: Dict[str, DifficultyStats]


def answers_match(expected: Answer, given: Answer) -> bool:
    """Numeric answers compare numerically; everything else as trimmed,
    case-insensitive text."""
    if isinstance(expected, (int, float)) and not isinstance(expected, bool):
        try:
            return float(str(given).strip()) == float(expected)
        except ValueError:
            return False
    return str(expected).strip().lower() == str(given).strip().lower()


class ChallengeEngine:

    def __init__(
        self,
        owner_id: str,
        storage: Storage,
        clock: Clock = now_ms,
        rng: Optional[random.Random] = None,
        bank: Sequence[Challenge] = QUESTION_BANK,
        cooldown_ms: int = config.challenge_cooldown_ms,
        max_attempts_per_hour: int = config.max_attempts_per_hour,
        retention: int = config.attempt_retention,
        issued_ttl_ms: int = config.challenge_ttl_ms,
    ):
        self.owner_id = owner_id
        self._storage = storage
        self._clock = clock
        self._rng = rng or random.Random()
        self._bank = list(bank)
        self.cooldown_ms = cooldown_ms
        self.max_attempts_per_hour = max_attempts_per_hour
        self.retention = retention
        self.issued_ttl_ms = issued_ttl_ms

        self._lock = threading.RLock()
        self._issued: Dict[str, IssuedChallenge] = {}
        self._last_generated_at: Optional[int] = None
        self._failures: Dict[str, int] = {}       # template id -> failures in a row

    # ------------------------------------------------------------------
    # Issuing and validation
    # ------------------------------------------------------------------

    def generate(self, difficulty: Difficulty = DEFAULT_DIFFICULTY) -> Challenge:
        with self._lock:
            now = self._clock()
            if self._last_generated_at is not None:
                waited = now - self._last_generated_at
                if waited < self.cooldown_ms:
                    raise CooldownError(
                        "Please wait before requesting another challenge",
                        retry_after_ms=self.cooldown_ms - waited,
                    )
            self._evict_stale(now)

            candidates = [c for c in self._bank if c.difficulty == Difficulty(difficulty)]
            template = self._rng.choice(candidates or self._bank)
            challenge = replace(template, id=uuid.uuid4().hex)

            self._issued[challenge.id] = IssuedChallenge(
                challenge=challenge, template_id=template.id, issued_at=now
            )
            self._last_generated_at = now
        logger.debug("Issued challenge %s (%s) to %s", challenge.id, template.id, self.owner_id)
        return challenge

    def validate(self, challenge_id: str, answer: Answer) -> bool:
        issued = self._require_issued(challenge_id)
        if issued.is_expired(self._clock()):
            logger.info("Challenge %s answered after its time limit", challenge_id)
            return False
        return answers_match(issued.challenge.correct_answer, answer)

    def get_issued(self, challenge_id: str) -> Optional[Challenge]:
        with self._lock:
            issued = self._issued.get(challenge_id)
        return issued.challenge if issued else None

    # ------------------------------------------------------------------
    # Attempt tracking
    # ------------------------------------------------------------------

    def track_attempt(self, challenge_id: str, was_successful: bool) -> ChallengeAttempt:
        """Log an attempt and retire the issued instance.

        Only challenges that are still outstanding can be attempted; anything
        else raises NotFoundError and records nothing.
        """
        with self._lock:
            issued = self._require_issued(challenge_id)
            attempt = ChallengeAttempt(
                owner_id=self.owner_id,
                challenge_id=challenge_id,
                challenge=issued.challenge,
                was_successful=was_successful,
                attempted_at=self._clock(),
            )
            self._storage.append_challenge_attempt(attempt)
            del self._issued[challenge_id]
            self._storage.prune_challenge_attempts(self.owner_id, keep=self.retention)

            if was_successful:
                self._failures.pop(issued.template_id, None)
            else:
                self._failures[issued.template_id] = self._failures.get(issued.template_id, 0) + 1
        return attempt

    def consecutive_failures(self, template_id: str) -> int:
        """Failed attempts in a row on the bank question *template_id*."""
        return self._failures.get(template_id, 0)

    def can_attempt(self) -> bool:
        since = self._clock() - HOUR_MS
        recent = self._storage.load_challenge_attempts(self.owner_id, since=since)
        return len(recent) < self.max_attempts_per_hour

    def recommended_difficulty(self) -> Difficulty:
        attempts = self._recent_attempts()
        if not attempts:
            return DEFAULT_DIFFICULTY
        rate = 100 * sum(1 for a in attempts if a.was_successful) / len(attempts)
        if rate > 80:
            return Difficulty.HARD
        if rate < 40:
            return Difficulty.EASY
        return Difficulty.MEDIUM

    def stats(self) -> ChallengeStats:
        attempts = self._recent_attempts()
        by_difficulty = {d.value: DifficultyStats() for d in Difficulty}
        for a in attempts:
            bucket = by_difficulty[a.challenge.difficulty.value]
            bucket.total += 1
            bucket.successful += int(a.was_successful)
        for bucket in by_difficulty.values():
            bucket.success_rate = _rate(bucket.successful, bucket.total)

        successful = sum(1 for a in attempts if a.was_successful)
        return ChallengeStats(
            total_attempts=len(attempts),
            successful_attempts=successful,
            success_rate=_rate(successful, len(attempts)),
            by_difficulty=by_difficulty,
        )

    def _recent_attempts(self) -> List[ChallengeAttempt]:
        return self._storage.load_challenge_attempts(self.owner_id, limit=self.retention)

    def _require_issued(self, challenge_id: str) -> IssuedChallenge:
        with self._lock:
            issued = self._issued.get(challenge_id)
        if issued is None:
            raise NotFoundError("Challenge not found or already answered")
        return issued

    def _evict_stale(self, now: int) -> None:
        stale = [
            cid for cid, issued in self._issued.items()
            if issued.is_expired(now) or now - issued.issued_at > self.issued_ttl_ms
        ]
        for cid in stale:
            del self._issued[cid]
        if stale:
            logger.debug("Dropped %d unanswered challenges for %s", len(stale), self.owner_id)


def _rate(part: int, total: int) -> float:
    return round(100 * part / total, 1) if total else 0.0

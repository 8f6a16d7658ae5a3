"""
Pydantic schemas for the FastAPI service.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from ..blocking.models import BlockCheck, BlockEntry, BlockStats
from ..challenges.engine import ChallengeStats
from ..challenges.models import Challenge
from ..focus.models import FocusSession, UserStats

# ── Block list ─────────────────────────────────────────────────────────────

class BlockEntryIn(BaseModel):
    url: str = Field(..., description="URL or bare domain to block")
    is_permanent: bool = False
    category: Optional[str] = None
    pattern: Optional[str] = Field(None, description="Optional * glob overriding the default")


class BlockEntryOut(BaseModel):
    id: str
    url: str
    pattern: str
    is_permanent: bool
    category: Optional[str]
    created_at: int
    last_accessed: Optional[int]

    @classmethod
    def from_entry(cls, entry: BlockEntry) -> "BlockEntryOut":
        return cls(**entry.to_dict())


class CategoryIn(BaseModel):
    category: Optional[str] = None


class BlockCheckOut(BaseModel):
    url: str
    is_blocked: bool
    reason: str = Field(..., description="permanent | session | none")
    entry: Optional[BlockEntryOut] = None
    can_unlock: bool

    @classmethod
    def from_check(cls, url: str, check: BlockCheck) -> "BlockCheckOut":
        return cls(
            url=url,
            is_blocked=check.is_blocked,
            reason=check.reason.value,
            entry=BlockEntryOut.from_entry(check.entry) if check.entry else None,
            can_unlock=check.reason.value == "permanent",
        )


class BlockStatsOut(BaseModel):
    total: int
    permanent: int
    temporary: int
    categorized: int
    recently_accessed: int

    @classmethod
    def from_stats(cls, stats: BlockStats) -> "BlockStatsOut":
        return cls(**stats.__dict__)


class ImportOut(BaseModel):
    imported: int
    errors: List[str]


class UnlockOut(BaseModel):
    url: str
    unlock_until: int


# ── Focus sessions ─────────────────────────────────────────────────────────

class SessionStartIn(BaseModel):
    duration_minutes: Optional[float] = Field(
        None, gt=0, description="Defaults to the owner's default_session_minutes"
    )


class PauseIn(BaseModel):
    reason: Optional[str] = None


class EndIn(BaseModel):
    completed_percentage: Optional[int] = Field(None, ge=0, le=100)


class BreakOut(BaseModel):
    id: str
    start_time: int
    end_time: Optional[int]
    reason: Optional[str]


class FocusSessionOut(BaseModel):
    id: str
    start_time: int
    end_time: int
    duration: int
    is_active: bool
    is_on_break: bool
    remaining_ms: int
    completed_percentage: int
    breaks: List[BreakOut]

    @classmethod
    def from_session(cls, session: FocusSession, now: int) -> "FocusSessionOut":
        return cls(
            id=session.id,
            start_time=session.start_time,
            end_time=session.end_time,
            duration=session.duration,
            is_active=session.is_active,
            is_on_break=session.is_on_break,
            remaining_ms=session.remaining_ms(now),
            completed_percentage=session.completed_percentage,
            breaks=[BreakOut(**b.__dict__) for b in session.breaks],
        )


class SessionContextOut(BaseModel):
    has_active_session: bool
    is_on_break: bool
    session_time_remaining_ms: int


# ── Challenges ─────────────────────────────────────────────────────────────

class ChallengeRequestIn(BaseModel):
    url: str


class ChallengeOut(BaseModel):
    """Issued challenge as shown to the user. Never includes the answer."""
    id: str
    type: str
    question: str
    options: Optional[List[str]] = None
    difficulty: str
    time_limit_seconds: Optional[int] = None

    @classmethod
    def from_challenge(cls, challenge: Challenge) -> "ChallengeOut":
        return cls(
            id=challenge.id,
            type=challenge.type.value,
            question=challenge.question,
            options=list(challenge.options) if challenge.options else None,
            difficulty=challenge.difficulty.value,
            time_limit_seconds=challenge.time_limit_seconds,
        )


class AnswerIn(BaseModel):
    url: str
    answer: Union[int, float, str]


class AnswerOut(BaseModel):
    is_correct: bool
    unlock_until: Optional[int] = None


class DifficultyOut(BaseModel):
    difficulty: str


class DifficultyStatsOut(BaseModel):
    total: int
    successful: int
    success_rate: float


class ChallengeStatsOut(BaseModel):
    total_attempts: int
    successful_attempts: int
    success_rate: float
    by_difficulty: Dict[str, DifficultyStatsOut]
    can_attempt: bool

    @classmethod
    def from_stats(cls, stats: ChallengeStats, can_attempt: bool) -> "ChallengeStatsOut":
        return cls(
            total_attempts=stats.total_attempts,
            successful_attempts=stats.successful_attempts,
            success_rate=stats.success_rate,
            by_difficulty={k: DifficultyStatsOut(**v.__dict__) for k, v in stats.by_difficulty.items()},
            can_attempt=can_attempt,
        )


# ── Users ──────────────────────────────────────────────────────────────────

class UserStatsOut(BaseModel):
    total_focus_time: int
    sessions_completed: int
    challenges_completed: int

    @classmethod
    def from_stats(cls, stats: UserStats) -> "UserStatsOut":
        return cls(**stats.to_dict())


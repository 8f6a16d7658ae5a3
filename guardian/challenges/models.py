"""
Challenge data model.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

Answer = Union[str, int, float]


class ChallengeType(str, Enum):
    PUZZLE = "puzzle"
    RIDDLE = "riddle"
    MATH = "math"
    SCIENCE = "science"
    GAME = "game"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class Challenge:
    id: str
    type: ChallengeType
    question: str
    correct_answer: Answer
    difficulty: Difficulty
    options: Optional[Tuple[str, ...]] = None
    time_limit_seconds: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["difficulty"] = self.difficulty.value
        data["options"] = list(self.options) if self.options else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Challenge":
        options = data.get("options")
        return cls(
            id=str(data["id"]),
            type=ChallengeType(data.get("type", "puzzle")),
            question=str(data.get("question", "")),
            correct_answer=data.get("correct_answer", ""),
            difficulty=Difficulty(data.get("difficulty", "medium")),
            options=tuple(options) if options else None,
            time_limit_seconds=data.get("time_limit_seconds"),
        )


@dataclass(frozen=True)
class ChallengeAttempt:
    owner_id: str
    challenge_id: str
    challenge: Challenge
    was_successful: bool
    attempted_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "challenge_id": self.challenge_id,
            "challenge": self.challenge.to_dict(),
            "was_successful": self.was_successful,
            "attempted_at": self.attempted_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChallengeAttempt":
        return cls(
            owner_id=str(data["owner_id"]),
            challenge_id=str(data["challenge_id"]),
            challenge=Challenge.from_dict(data["challenge"]),
            was_successful=bool(data.get("was_successful", False)),
            attempted_at=int(data.get("attempted_at", 0)),
        )

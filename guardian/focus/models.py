"""
Focus session data model.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Break:
    id: str
    start_time: int
    end_time: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Break":
        return cls(
            id=str(data["id"]),
            start_time=int(data["start_time"]),
            end_time=data.get("end_time"),
            reason=data.get("reason"),
        )


@dataclass
class FocusSession:
    id: str
    owner_id: str
    start_time: int
    end_time: int
    duration: int                       # ms; grows by each finished break
    is_active: bool = True
    breaks: List[Break] = field(default_factory=list)
    completed_percentage: int = 0

    @property
    def open_break(self) -> Optional[Break]:
        """The current break, if paused. Only ever the last element."""
        if self.breaks and self.breaks[-1].is_open:
            return self.breaks[-1]
        return None

    @property
    def is_on_break(self) -> bool:
        return self.open_break is not None

    def remaining_ms(self, now: int) -> int:
        if not self.is_active:
            return 0
        return max(0, self.end_time - now)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FocusSession":
        return cls(
            id=str(data["id"]),
            owner_id=str(data["owner_id"]),
            start_time=int(data["start_time"]),
            end_time=int(data["end_time"]),
            duration=int(data["duration"]),
            is_active=bool(data.get("is_active", True)),
            breaks=[Break.from_dict(b) for b in data.get("breaks", [])],
            completed_percentage=int(data.get("completed_percentage", 0)),
        )


@dataclass
class UserStats:
    """Aggregate per-owner counters, maintained by the API layer."""
    total_focus_time: int = 0           # ms
    sessions_completed: int = 0
    challenges_completed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserStats":
        return cls(
            total_focus_time=int(data.get("total_focus_time", 0)),
            sessions_completed=int(data.get("sessions_completed", 0)),
            challenges_completed=int(data.get("challenges_completed", 0)),
        )

"""
Block-list data model: entries, the per-owner list, and check results.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class BlockReason(str, Enum):
    PERMANENT = "permanent"
    SESSION = "session"
    NONE = "none"


@dataclass
class BlockEntry:
    id: str
    url: str                      # normalized
    pattern: str
    is_permanent: bool = False
    category: Optional[str] = None
    created_at: int = 0
    last_accessed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockEntry":
        return cls(
            id=str(data["id"]),
            url=str(data["url"]),
            pattern=str(data.get("pattern") or ""),
            is_permanent=bool(data.get("is_permanent", False)),
            category=data.get("category") or None,
            created_at=int(data.get("created_at") or 0),
            last_accessed=data.get("last_accessed"),
        )


@dataclass
class BlockList:
    owner_id: str
    entries: List[BlockEntry] = field(default_factory=list)
    last_updated: int = 0

    def find_by_id(self, entry_id: str) -> Optional[BlockEntry]:
        return next((e for e in self.entries if e.id == entry_id), None)

    def find_by_url(self, url: str) -> Optional[BlockEntry]:
        return next((e for e in self.entries if e.url == url), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "entries": [e.to_dict() for e in self.entries],
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockList":
        return cls(
            owner_id=str(data["owner_id"]),
            entries=[BlockEntry.from_dict(e) for e in data.get("entries", [])],
            last_updated=int(data.get("last_updated") or 0),
        )


@dataclass(frozen=True)
class SessionContext:
    """What the block engine needs to know about the owner's focus session."""
    has_active_session: bool = False
    is_on_break: bool = False

    @property
    def enforces_session_blocks(self) -> bool:
        return self.has_active_session and not self.is_on_break


@dataclass
class BlockCheck:
    is_blocked: bool
    entry: Optional[BlockEntry] = None
    reason: BlockReason = BlockReason.NONE

    @classmethod
    def allowed(cls, entry: Optional[BlockEntry] = None) -> "BlockCheck":
        return cls(is_blocked=False, entry=entry, reason=BlockReason.NONE)


@dataclass
class BlockStats:
    total: int = 0
    permanent: int = 0
    temporary: int = 0
    categorized: int = 0
    recently_accessed: int = 0    # accessed within the last 24h


@dataclass
class ImportResult:
    imported: int = 0
    errors: List[str] = field(default_factory=list)

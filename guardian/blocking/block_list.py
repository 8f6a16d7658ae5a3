"""
Block List Engine — owns one owner's block entries and answers
"is this URL blocked right now?".

Every mutation is computed on a copy, saved through storage, and only then
committed to the in-memory list. Match results are cached per normalized URL
in a bounded LRU that is cleared whenever the list changes.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..clock import DAY_MS, Clock, now_ms
from ..config import config
from ..errors import CapacityError, DuplicateError, NotFoundError, ValidationError
from ..storage.base import Storage
from .models import (
    BlockCheck,
    BlockEntry,
    BlockList,
    BlockReason,
    BlockStats,
    ImportResult,
    SessionContext,
)
from .unlocks import TemporaryUnlockStore
from .url_matcher import create_pattern, is_valid_domain, is_valid_url, matches, normalize

logger = logging.getLogger(__name__)

_NO_MATCH = object()


class MatchCache:
    """Bounded LRU of normalized URL -> matching entry id (or None)."""

    def __init__(self, max_size: int):
        self.max_size = max_size
        self._items: "OrderedDict[str, Optional[str]]" = OrderedDict()

    def get(self, key: str) -> Any:
        if key not in self._items:
            return _NO_MATCH
        self._items.move_to_end(key)
        return self._items[key]

    def put(self, key: str, entry_id: Optional[str]) -> None:
        self._items[key] = entry_id
        self._items.move_to_end(key)
        while len(self._items) > self.max_size:
            self._items.popitem(last=False)

    def invalidate(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class BlockListEngine:

    def __init__(
        self,
        owner_id: str,
        storage: Storage,
        unlocks: TemporaryUnlockStore,
        session_context: Optional[Callable[[], SessionContext]] = None,
        clock: Clock = now_ms,
        max_entries: int = config.max_block_entries,
        cache_size: int = config.match_cache_size,
    ):
        self.owner_id = owner_id
        self._storage = storage
        self._unlocks = unlocks
        self._session_context = session_context
        self._clock = clock
        self.max_entries = max_entries
        self._block_list: Optional[BlockList] = None
        self._cache = MatchCache(cache_size)
        self._blocked_attempts: Dict[str, int] = {}

        unlocks.register_listener(self._cache.invalidate)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        url: str,
        is_permanent: bool = False,
        category: Optional[str] = None,
        pattern: Optional[str] = None,
    ) -> BlockEntry:
        normalized = _validate_url(url)
        block_list = self._load()

        if block_list.find_by_url(normalized):
            raise DuplicateError("This URL is already in your block list")
        if len(block_list.entries) >= self.max_entries:
            raise CapacityError(
                f"Block list is full. Maximum {self.max_entries} items allowed."
            )

        entry = BlockEntry(
            id=uuid.uuid4().hex,
            url=normalized,
            pattern=(pattern or "").strip() or create_pattern(normalized),
            is_permanent=is_permanent,
            category=_clean_category(category),
            created_at=self._clock(),
        )
        self._commit(block_list.entries + [entry])
        logger.info("Blocked %s for %s (permanent=%s)", normalized, self.owner_id, is_permanent)
        return entry

    def remove(self, entry_id: str) -> None:
        block_list = self._load()
        self._require(block_list, entry_id)
        self._commit([e for e in block_list.entries if e.id != entry_id])

    def toggle_permanent(self, entry_id: str) -> BlockEntry:
        entry = self._require(self._load(), entry_id)
        return self._update(replace(entry, is_permanent=not entry.is_permanent))

    def update_category(self, entry_id: str, category: Optional[str]) -> BlockEntry:
        entry = self._require(self._load(), entry_id)
        return self._update(replace(entry, category=_clean_category(category)))

    def touch(self, entry_id: str) -> BlockEntry:
        """Record that the blocked site behind *entry_id* was just accessed."""
        entry = self._require(self._load(), entry_id)
        return self._update(replace(entry, last_accessed=self._clock()))

    def clear(self) -> None:
        self._commit([])

    def import_entries(self, items: Iterable[Dict[str, Any]]) -> ImportResult:
        """
        Append entries from exported dicts. Invalid items and duplicates are
        skipped with an error message; import stops at capacity. Saves once.
        """
        block_list = self._load()
        entries = list(block_list.entries)
        seen = {e.url for e in entries}
        ids = {e.id for e in entries}
        result = ImportResult()

        for item in items:
            raw_url = item.get("url") if isinstance(item, dict) else None
            try:
                entry = self._entry_from_item(item)
            except ValidationError as exc:
                result.errors.append(f"Invalid item {raw_url!r}: {exc.message}")
                continue
            if entry.url in seen:
                result.errors.append(f"Item {entry.url} already exists")
                continue
            if len(entries) >= self.max_entries:
                result.errors.append(f"Block list size limit reached ({self.max_entries} items)")
                break

            if entry.id in ids:
                entry = replace(entry, id=uuid.uuid4().hex)
            entries.append(entry)
            seen.add(entry.url)
            ids.add(entry.id)
            result.imported += 1

        if result.imported:
            self._commit(entries)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entries(self) -> List[BlockEntry]:
        return list(self._load().entries)

    def get(self, entry_id: str) -> BlockEntry:
        return self._require(self._load(), entry_id)

    @property
    def last_updated(self) -> int:
        return self._load().last_updated

    def find_match(self, url: str) -> Optional[BlockEntry]:
        """First entry (insertion order) matching *url*, or None."""
        key = normalize(url)
        if not key:
            return None
        block_list = self._load()

        cached = self._cache.get(key)
        if cached is not _NO_MATCH:
            return block_list.find_by_id(cached) if cached else None

        entry = next((e for e in block_list.entries if matches(url, e)), None)
        self._cache.put(key, entry.id if entry else None)
        return entry

    def is_blocked(self, url: str, context: Optional[SessionContext] = None) -> BlockCheck:
        """
        Decide whether *url* is blocked right now. Fails open: any internal
        error is logged and reported as not blocked.
        """
        try:
            if not normalize(url):
                return BlockCheck.allowed()
            if self._unlocks.is_unlocked(url):
                return BlockCheck.allowed()

            entry = self.find_match(url)
            if entry is None:
                return BlockCheck.allowed()

            if entry.is_permanent:
                self._record_attempt(url)
                return BlockCheck(is_blocked=True, entry=entry, reason=BlockReason.PERMANENT)

            if context is None:
                context = self._session_context() if self._session_context else SessionContext()
            if context.enforces_session_blocks:
                self._record_attempt(url)
                return BlockCheck(is_blocked=True, entry=entry, reason=BlockReason.SESSION)

            return BlockCheck.allowed(entry)
        except Exception:
            logger.exception("Block check failed for %r; allowing", url)
            return BlockCheck.allowed()

    def stats(self) -> BlockStats:
        try:
            entries = self._load().entries
            day_ago = self._clock() - DAY_MS
            return BlockStats(
                total=len(entries),
                permanent=sum(1 for e in entries if e.is_permanent),
                temporary=sum(1 for e in entries if not e.is_permanent),
                categorized=sum(1 for e in entries if e.category),
                recently_accessed=sum(
                    1 for e in entries if e.last_accessed and e.last_accessed > day_ago
                ),
            )
        except Exception:
            logger.exception("Could not compute block stats for %s", self.owner_id)
            return BlockStats()

    def search(self, query: str) -> List[BlockEntry]:
        term = (query or "").strip().lower()
        if not term:
            return []
        return [
            e for e in self._load().entries
            if term in e.url or (e.category and term in e.category.lower())
        ]

    def filter_by_category(self, category: Optional[str]) -> List[BlockEntry]:
        """Entries in *category*; a missing category selects uncategorized entries."""
        wanted = _clean_category(category)
        return [e for e in self._load().entries if e.category == wanted]

    def categories(self) -> List[str]:
        return sorted({e.category for e in self._load().entries if e.category})

    def blocked_attempts(self) -> Dict[str, int]:
        return dict(self._blocked_attempts)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self) -> BlockList:
        if self._block_list is None:
            stored = self._storage.load_block_list(self.owner_id)
            self._block_list = stored or BlockList(owner_id=self.owner_id, last_updated=self._clock())
            self._cache.clear()
        return self._block_list

    def _commit(self, entries: List[BlockEntry]) -> BlockList:
        updated = BlockList(owner_id=self.owner_id, entries=entries, last_updated=self._clock())
        self._storage.save_block_list(updated)
        self._block_list = updated
        self._cache.clear()
        return updated

    def _entry_from_item(self, item: Any) -> BlockEntry:
        """Build an entry from an exported dict, rejecting mistyped fields."""
        if not isinstance(item, dict):
            raise ValidationError("Item must be an object")
        normalized = _validate_url(item.get("url"))

        is_permanent = item.get("is_permanent", False)
        if is_permanent is None:
            is_permanent = False
        if not isinstance(is_permanent, bool):
            raise ValidationError("is_permanent must be true or false")

        entry_id = item.get("id")
        if entry_id is not None and not (isinstance(entry_id, str) and entry_id.strip()):
            raise ValidationError("id must be a non-empty string")

        pattern = item.get("pattern")
        if pattern is not None and not isinstance(pattern, str):
            raise ValidationError("pattern must be a string")

        category = item.get("category")
        if category is not None and not isinstance(category, str):
            raise ValidationError("category must be a string")

        created_at = _optional_timestamp(item, "created_at")
        return BlockEntry(
            id=entry_id.strip() if entry_id else uuid.uuid4().hex,
            url=normalized,
            pattern=(pattern or "").strip() or create_pattern(normalized),
            is_permanent=is_permanent,
            category=_clean_category(category),
            created_at=created_at if created_at is not None else self._clock(),
            last_accessed=_optional_timestamp(item, "last_accessed"),
        )

    def _update(self, entry: BlockEntry) -> BlockEntry:
        block_list = self._load()
        self._commit([entry if e.id == entry.id else e for e in block_list.entries])
        return entry

    @staticmethod
    def _require(block_list: BlockList, entry_id: str) -> BlockEntry:
        entry = block_list.find_by_id(entry_id) if entry_id else None
        if entry is None:
            raise NotFoundError("Block item not found")
        return entry

    def _record_attempt(self, url: str) -> None:
        key = normalize(url)
        self._blocked_attempts[key] = self._blocked_attempts.get(key, 0) + 1


def _validate_url(url: Any) -> str:
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("URL is required and must be a non-empty string")
    trimmed = url.strip()
    if not is_valid_url(trimmed) and not is_valid_domain(trimmed):
        raise ValidationError(
            "Please enter a valid URL or domain (e.g., example.com or https://example.com)"
        )
    normalized = normalize(trimmed)
    if not normalized:
        raise ValidationError("URL cannot be empty")
    return normalized


def _clean_category(category: Any) -> Optional[str]:
    if not isinstance(category, str):
        return None
    return category.strip() or None


def _optional_timestamp(item: Dict[str, Any], key: str) -> Optional[int]:
    value = item.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{key} must be a non-negative integer timestamp")
    return value

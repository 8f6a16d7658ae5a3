"""
Temporary Unlock Store — time-boxed exemptions from blocking, keyed by
normalized URL. Expiry is evaluated lazily on read; expired grants are
evicted opportunistically whenever the store is swept.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..clock import Clock, now_ms
from ..errors import ValidationError
from .url_matcher import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemporaryUnlock:
    url: str
    unlock_until: int


class TemporaryUnlockStore:
    """
    At most one grant per URL; a later grant overwrites an earlier one.
    A grant for ``example.com`` also covers ``example.com/any/path``.
    """

    def __init__(self, clock: Clock = now_ms):
        self._clock = clock
        self._unlocks: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._listeners: list[Callable[[str], None]] = []

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def grant(self, url: str, unlock_until: int) -> TemporaryUnlock:
        key = normalize(url)
        if not key:
            raise ValidationError("A URL is required to grant an unlock")
        if unlock_until <= self._clock():
            raise ValidationError("Unlock expiry must be in the future")
        with self._lock:
            self._unlocks[key] = int(unlock_until)
        logger.info("Unlocked %s until %d", key, unlock_until)
        self._notify(key)
        self._sweep()
        return TemporaryUnlock(url=key, unlock_until=int(unlock_until))

    def revoke(self, url: str) -> bool:
        key = normalize(url)
        with self._lock:
            removed = self._unlocks.pop(key, None) is not None
        if removed:
            self._notify(key)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_unlocked(self, url: str) -> bool:
        return self.unlock_until(url) is not None

    def unlock_until(self, url: str) -> Optional[int]:
        """Expiry of the grant covering *url*, or None when not unlocked."""
        key = normalize(url)
        if not key:
            return None
        for candidate in _covering_keys(key):
            until = self._active_expiry(candidate)
            if until is not None:
                return until
        return None

    def list_active(self) -> List[TemporaryUnlock]:
        self._sweep()
        with self._lock:
            return [TemporaryUnlock(url=k, unlock_until=v) for k, v in self._unlocks.items()]

    def register_listener(self, fn: Callable[[str], None]) -> None:
        """Register a callback(normalized_url) fired on grant, revoke and expiry."""
        self._listeners.append(fn)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _active_expiry(self, key: str) -> Optional[int]:
        with self._lock:
            until = self._unlocks.get(key)
            if until is None:
                return None
            if self._clock() < until:
                return until
            del self._unlocks[key]
        self._notify(key)
        return None

    def _sweep(self) -> None:
        now = self._clock()
        with self._lock:
            expired = [k for k, until in self._unlocks.items() if now >= until]
            for k in expired:
                del self._unlocks[k]
        for k in expired:
            self._notify(k)

    def _notify(self, key: str) -> None:
        for listener in self._listeners:
            try:
                listener(key)
            except Exception:
                logger.exception("Unlock listener failed for %s", key)


def _covering_keys(key: str) -> List[str]:
    """``a.com/b/c`` -> [``a.com/b/c``, ``a.com/b``, ``a.com``]"""
    parts = key.split("/")
    return ["/".join(parts[:i]) for i in range(len(parts), 0, -1)]

"""
Per-owner wiring. Each owner gets an independent bundle of engines sharing
one storage backend and one clock; nothing is global.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from .blocking.block_list import BlockListEngine
from .blocking.unlocks import TemporaryUnlockStore
from .challenges.engine import ChallengeEngine
from .challenges.orchestrator import UnlockOrchestrator
from .clock import Clock, now_ms
from .config import Config, config
from .focus.models import FocusSession, UserStats
from .focus.session import FocusSessionEngine
from .settings import apply_patch, resolve_settings, unlock_duration_ms
from .storage.base import Storage
from .storage.memory import MemoryStorage
from .storage.sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


def create_storage(cfg: Config = config) -> Storage:
    if cfg.storage_backend == "memory":
        return MemoryStorage()
    if cfg.storage_backend == "sqlite":
        return SQLiteStorage(cfg.db_path)
    raise ValueError(f"Unknown storage backend: {cfg.storage_backend!r}")


@dataclass
class OwnerServices:
    owner_id: str
    unlocks: TemporaryUnlockStore
    sessions: FocusSessionEngine
    block_list: BlockListEngine
    challenges: ChallengeEngine
    orchestrator: UnlockOrchestrator


class ServiceRegistry:

    def __init__(
        self,
        storage: Storage,
        clock: Clock = now_ms,
        cfg: Config = config,
        rng: Optional[random.Random] = None,
    ):
        self.storage = storage
        self._clock = clock
        self._cfg = cfg
        self._rng = rng
        self._owners: Dict[str, OwnerServices] = {}
        self._lock = threading.Lock()
        self._stats_lock = threading.Lock()

    def for_owner(self, owner_id: str) -> OwnerServices:
        with self._lock:
            services = self._owners.get(owner_id)
            if services is None:
                services = self._build(owner_id)
                self._owners[owner_id] = services
            return services

    def owners(self) -> List[str]:
        with self._lock:
            return list(self._owners)

    def tick(self) -> List[FocusSession]:
        """Advance every known owner's session; returns sessions that ended."""
        ended = []
        for owner_id in self.owners():
            session = self.for_owner(owner_id).sessions.tick()
            if session is not None and not session.is_active:
                self.record_completion(session)
                ended.append(session)
        return ended

    def settings_for(self, owner_id: str) -> dict:
        return resolve_settings(self.storage.load_settings(owner_id))

    def update_settings(self, owner_id: str, patch: dict) -> dict:
        updated = apply_patch(self.settings_for(owner_id), patch)
        self.storage.save_settings(owner_id, updated)
        return updated

    # Aggregate stats are owned here, not by the engines.

    def record_completion(self, session: FocusSession) -> Optional[UserStats]:
        """Roll a fully completed session into the owner's stats."""
        if session.is_active or session.completed_percentage < 100:
            return None
        with self._stats_lock:
            stats = self.storage.load_user_stats(session.owner_id)
            stats.total_focus_time += session.duration
            stats.sessions_completed += 1
            self.storage.save_user_stats(session.owner_id, stats)
        return stats

    def record_challenge_success(self, owner_id: str) -> UserStats:
        with self._stats_lock:
            stats = self.storage.load_user_stats(owner_id)
            stats.challenges_completed += 1
            self.storage.save_user_stats(owner_id, stats)
        return stats

    def _build(self, owner_id: str) -> OwnerServices:
        cfg = self._cfg
        unlocks = TemporaryUnlockStore(clock=self._clock)
        sessions = FocusSessionEngine(
            owner_id,
            self.storage,
            clock=self._clock,
            min_duration_ms=cfg.min_session_ms,
            max_duration_ms=cfg.max_session_ms,
        )
        block_list = BlockListEngine(
            owner_id,
            self.storage,
            unlocks,
            session_context=sessions.context,
            clock=self._clock,
            max_entries=cfg.max_block_entries,
            cache_size=cfg.match_cache_size,
        )
        challenges = ChallengeEngine(
            owner_id,
            self.storage,
            clock=self._clock,
            rng=self._rng,
            cooldown_ms=cfg.challenge_cooldown_ms,
            max_attempts_per_hour=cfg.max_attempts_per_hour,
            retention=cfg.attempt_retention,
            issued_ttl_ms=cfg.challenge_ttl_ms,
        )
        orchestrator = UnlockOrchestrator(
            block_list,
            challenges,
            unlocks,
            clock=self._clock,
            unlock_duration_ms=lambda: unlock_duration_ms(self.settings_for(owner_id)),
        )
        logger.debug("Built services for owner %s", owner_id)
        return OwnerServices(
            owner_id=owner_id,
            unlocks=unlocks,
            sessions=sessions,
            block_list=block_list,
            challenges=challenges,
            orchestrator=orchestrator,
        )

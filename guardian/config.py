"""
Central configuration for the FocusGuardian service.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765
    log_level: str = "info"

    # Storage
    data_dir: Path = field(default_factory=lambda: _ROOT / "data")
    db_file: str = "guardian.db"
    storage_backend: str = "sqlite"          # sqlite | memory

    # Session ticks
    tick_interval_ms: int = 1000             # how often active sessions are re-evaluated

    # Block list
    max_block_entries: int = 1000
    match_cache_size: int = 1000

    # Focus sessions
    min_session_ms: int = 60 * 1000          # 1 minute
    max_session_ms: int = 8 * 60 * 60 * 1000  # 8 hours

    # Challenges
    challenge_cooldown_ms: int = 30 * 1000
    challenge_ttl_ms: int = 60 * 60 * 1000    # unanswered challenges are dropped after this
    max_attempts_per_hour: int = 10
    attempt_retention: int = 100             # attempts kept per owner

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_file

    @classmethod
    def load(cls) -> "Config":
        cfg = cls()
        if _CONFIG_FILE.exists():
            overrides = json.loads(_CONFIG_FILE.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (FG_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"FG_{k.upper()}"
            if env_key in os.environ:
                setattr(cfg, k, type(getattr(cfg, k))(os.environ[env_key]))
        cfg.data_dir = Path(cfg.data_dir)
        return cfg


# Module-level singleton
config = Config.load()

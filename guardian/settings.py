"""
Per-owner tunable settings, persisted through the storage contract.

DEFAULTS lists every known key; saved values are coerced to the type of the
default and unknown keys are dropped.
"""

from __future__ import annotations

import logging
from typing import Any

from .clock import MINUTE_MS

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "temporary_unlock_minutes": 10,   # window granted by a solved challenge
    "default_session_minutes":  25,   # Pomodoro
    "default_break_minutes":    5,
}


def resolve_settings(saved: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *saved* over the defaults, skipping anything malformed."""
    current = dict(DEFAULTS)
    for k, v in (saved or {}).items():
        if k not in DEFAULTS:
            continue
        try:
            current[k] = type(DEFAULTS[k])(v)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed setting %s=%r", k, v)
    return current


def apply_patch(current: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Return *current* with *patch* applied (unknown keys ignored)."""
    updated = dict(current)
    for k, v in patch.items():
        if k in DEFAULTS:
            updated[k] = type(DEFAULTS[k])(v)
    return updated


def unlock_duration_ms(settings: dict[str, Any]) -> int:
    return int(settings["temporary_unlock_minutes"]) * MINUTE_MS


def default_session_ms(settings: dict[str, Any]) -> int:
    return int(settings["default_session_minutes"]) * MINUTE_MS

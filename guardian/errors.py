"""
Typed failures surfaced by the core. Each carries a stable ``kind`` string for
programmatic branching plus a human-readable message for display.
"""

from __future__ import annotations

from typing import Optional


class GuardianError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GuardianError):
    kind = "validation"


class InvalidDurationError(ValidationError):
    kind = "invalid_duration"


class DuplicateError(GuardianError):
    kind = "duplicate"


class NotFoundError(GuardianError):
    kind = "not_found"


class StateConflictError(GuardianError):
    kind = "state_conflict"


class AlreadyActiveError(StateConflictError):
    kind = "already_active"


class NotActiveError(StateConflictError):
    kind = "not_active"


class NotPermanentlyBlockedError(StateConflictError):
    kind = "not_permanently_blocked"


class CapacityError(GuardianError):
    kind = "capacity"


class CooldownError(GuardianError):
    kind = "cooldown"

    def __init__(self, message: str, retry_after_ms: Optional[int] = None):
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class RateLimitError(GuardianError):
    kind = "rate_limit"


class StorageError(GuardianError):
    kind = "storage"

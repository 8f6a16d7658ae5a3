"""
Wall-clock helpers. Every engine takes a ``clock`` callable returning epoch
milliseconds so tests can drive time explicitly.
"""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def now_ms() -> int:
    return int(time.time() * 1000)

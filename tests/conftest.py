"""
Shared pytest fixtures and configuration.
"""

import random
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from guardian.api.app import create_app
from guardian.blocking.block_list import BlockListEngine
from guardian.blocking.unlocks import TemporaryUnlockStore
from guardian.challenges.engine import ChallengeEngine
from guardian.focus.session import FocusSessionEngine
from guardian.storage.memory import MemoryStorage

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def storage():
    return MemoryStorage()


@pytest.fixture()
def owner_id():
    return f"user-{uuid.uuid4().hex[:8]}"


@pytest.fixture()
def unlocks(clock):
    return TemporaryUnlockStore(clock=clock)


@pytest.fixture()
def sessions(owner_id, storage, clock):
    return FocusSessionEngine(owner_id, storage, clock=clock)


@pytest.fixture()
def block_list(owner_id, storage, unlocks, sessions, clock):
    return BlockListEngine(
        owner_id, storage, unlocks, session_context=sessions.context, clock=clock
    )


@pytest.fixture()
def challenges(owner_id, storage, clock):
    return ChallengeEngine(owner_id, storage, clock=clock, rng=random.Random(7))


@pytest.fixture()
def app(clock):
    """Create a fresh app instance per test, backed by memory storage."""
    return create_app(storage=MemoryStorage(), clock=clock, run_ticker=False)


@pytest_asyncio.fixture()
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac

"""
FastAPI application — FocusGuardian blocking / focus / challenge API.
Runs on http://127.0.0.1:8765 by default.

Per-app state (storage, the per-owner service registry) lives on app.state
so that each call to create_app() produces a fully independent instance
with no shared module-level globals. This makes test isolation
straightforward.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..clock import Clock, now_ms
from ..config import config
from ..errors import CooldownError, GuardianError
from ..services import ServiceRegistry, create_storage
from ..storage.base import Storage

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    "validation": 400,
    "invalid_duration": 400,
    "duplicate": 409,
    "not_found": 404,
    "state_conflict": 409,
    "already_active": 409,
    "not_active": 409,
    "not_permanently_blocked": 409,
    "capacity": 409,
    "cooldown": 429,
    "rate_limit": 429,
    "storage": 503,
}


# ---------------------------------------------------------------------------
# Background session ticker
# ---------------------------------------------------------------------------

async def _tick_loop(registry: ServiceRegistry, interval_ms: int) -> None:
    while True:
        await asyncio.sleep(interval_ms / 1000.0)
        try:
            loop = asyncio.get_running_loop()
            ended = await loop.run_in_executor(None, registry.tick)
            for session in ended:
                logger.info("Session %s for %s reached its deadline", session.id, session.owner_id)
        except Exception:
            logger.exception("Session tick failed")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    storage: Optional[Storage] = None,
    clock: Clock = now_ms,
    run_ticker: bool = True,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.storage = storage or create_storage()
        app.state.clock = clock
        app.state.registry = ServiceRegistry(app.state.storage, clock=clock)

        tick_task = None
        if run_ticker:
            tick_task = asyncio.create_task(
                _tick_loop(app.state.registry, config.tick_interval_ms)
            )

        yield

        if tick_task is not None:
            tick_task.cancel()
            try:
                await tick_task
            except asyncio.CancelledError:
                pass
        app.state.storage.close()

    app = FastAPI(
        title="FocusGuardian",
        description="Site blocking, focus sessions and challenge-gated unlocks",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "null"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GuardianError)
    async def guardian_error_handler(request: Request, exc: GuardianError):
        status = _STATUS_BY_KIND.get(exc.kind, 400)
        body = {"error": exc.kind, "detail": exc.message}
        headers = None
        if isinstance(exc, CooldownError) and exc.retry_after_ms is not None:
            body["retry_after_ms"] = exc.retry_after_ms
            headers = {"Retry-After": str(max(1, exc.retry_after_ms // 1000))}
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content=body, headers=headers)

    from .routers import blocks, challenges, sessions, users

    app.include_router(blocks.router)
    app.include_router(sessions.router)
    app.include_router(challenges.router)
    app.include_router(users.router)

    @app.get("/health")
    def health(request: Request):
        registry = getattr(request.app.state, "registry", None)
        owners = len(registry.owners()) if registry else 0
        return {"status": "ok", "version": "0.1.0", "owners": owners}

    return app


app = create_app()

"""
/users/{owner_id}/sessions: focus session lifecycle.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ...api.schemas import EndIn, FocusSessionOut, PauseIn, SessionContextOut, SessionStartIn
from ...clock import MINUTE_MS
from ...settings import default_session_ms

router = APIRouter(prefix="/users/{owner_id}/sessions", tags=["sessions"])


def _get_registry(request: Request):
    return request.app.state.registry


def _get_services(owner_id: str, request: Request):
    return request.app.state.registry.for_owner(owner_id)


def _now(request: Request) -> int:
    return request.app.state.clock()


@router.post("", response_model=FocusSessionOut, status_code=201)
def start_session(
    owner_id: str,
    body: SessionStartIn,
    request: Request,
    registry=Depends(_get_registry),
    services=Depends(_get_services),
):
    if body.duration_minutes is not None:
        duration_ms = int(body.duration_minutes * MINUTE_MS)
    else:
        duration_ms = default_session_ms(registry.settings_for(owner_id))
    session = services.sessions.start(duration_ms)
    return FocusSessionOut.from_session(session, _now(request))


@router.get("/active", response_model=Optional[FocusSessionOut])
def get_active(request: Request, services=Depends(_get_services)):
    session = services.sessions.get_active()
    return FocusSessionOut.from_session(session, _now(request)) if session else None


@router.get("/context", response_model=SessionContextOut)
def get_context(request: Request, services=Depends(_get_services)):
    """What the blocker currently sees: active session, break state, time left."""
    session = services.sessions.get_active()
    return SessionContextOut(
        has_active_session=session is not None,
        is_on_break=session.is_on_break if session else False,
        session_time_remaining_ms=session.remaining_ms(_now(request)) if session else 0,
    )


@router.get("/history", response_model=List[FocusSessionOut])
def get_history(
    request: Request,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    services=Depends(_get_services),
):
    now = _now(request)
    return [FocusSessionOut.from_session(s, now) for s in services.sessions.history(limit, offset)]


@router.post("/{session_id}/pause", response_model=FocusSessionOut)
def pause_session(
    session_id: str,
    request: Request,
    body: Optional[PauseIn] = None,
    services=Depends(_get_services),
):
    session = services.sessions.pause(session_id, reason=body.reason if body else None)
    return FocusSessionOut.from_session(session, _now(request))


@router.post("/{session_id}/resume", response_model=FocusSessionOut)
def resume_session(session_id: str, request: Request, services=Depends(_get_services)):
    session = services.sessions.resume(session_id)
    return FocusSessionOut.from_session(session, _now(request))


@router.post("/{session_id}/end", response_model=FocusSessionOut)
def end_session(
    session_id: str,
    request: Request,
    body: Optional[EndIn] = None,
    registry=Depends(_get_registry),
    services=Depends(_get_services),
):
    session = services.sessions.end(
        session_id, completed_percentage=body.completed_percentage if body else None
    )
    registry.record_completion(session)
    return FocusSessionOut.from_session(session, _now(request))

"""
/users/{owner_id}/settings and /users/{owner_id}/stats: per-owner tunables
and aggregate counters.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from ...api.schemas import UserStatsOut
from ...settings import DEFAULTS

router = APIRouter(prefix="/users/{owner_id}", tags=["users"])


def _get_registry(request: Request):
    return request.app.state.registry


class SettingsPatch(BaseModel):
    temporary_unlock_minutes: Optional[int] = Field(None, ge=1,  le=120)
    default_session_minutes:  Optional[int] = Field(None, ge=1,  le=480)
    default_break_minutes:    Optional[int] = Field(None, ge=1,  le=60)


@router.get("/settings")
def read_settings(owner_id: str, registry=Depends(_get_registry)):
    """Return current settings with their defaults for reference."""
    return {"settings": registry.settings_for(owner_id), "defaults": DEFAULTS}


@router.put("/settings")
def write_settings(owner_id: str, patch: SettingsPatch, registry=Depends(_get_registry)):
    """Apply a partial update; unset keys are left alone."""
    data = {k: v for k, v in patch.model_dump().items() if v is not None}
    return {"settings": registry.update_settings(owner_id, data)}


@router.get("/stats", response_model=UserStatsOut)
def read_stats(owner_id: str, registry=Depends(_get_registry)):
    return UserStatsOut.from_stats(registry.storage.load_user_stats(owner_id))

"""
Tests for per-owner settings (guardian/settings.py), Config env overrides,
and the /users/{owner_id}/settings endpoints.
"""

from __future__ import annotations

import logging
from pathlib import Path

from guardian.clock import MINUTE_MS
from guardian.config import Config
from guardian.settings import (
    DEFAULTS,
    apply_patch,
    default_session_ms,
    resolve_settings,
    unlock_duration_ms,
)


# ── Unit tests: settings resolution ──────────────────────────────────────────

class TestResolveSettings:
    def test_defaults_when_nothing_saved(self):
        assert resolve_settings(None) == DEFAULTS
        assert resolve_settings({}) == DEFAULTS

    def test_returns_copy(self):
        s = resolve_settings(None)
        s["temporary_unlock_minutes"] = 999
        assert DEFAULTS["temporary_unlock_minutes"] == 10

    def test_saved_values_are_coerced(self):
        s = resolve_settings({"temporary_unlock_minutes": "15"})
        assert s["temporary_unlock_minutes"] == 15

    def test_unknown_keys_dropped(self):
        assert "bogus" not in resolve_settings({"bogus": 1})

    def test_malformed_value_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="guardian.settings"):
            s = resolve_settings({"default_session_minutes": "soon"})
        assert s["default_session_minutes"] == 25
        assert "default_session_minutes" in caplog.text


class TestApplyPatch:
    def test_patch(self):
        updated = apply_patch(DEFAULTS, {"default_break_minutes": 10, "nope": 1})
        assert updated["default_break_minutes"] == 10
        assert "nope" not in updated
        assert DEFAULTS["default_break_minutes"] == 5

    def test_durations(self):
        s = apply_patch(DEFAULTS, {"temporary_unlock_minutes": 3, "default_session_minutes": 50})
        assert unlock_duration_ms(s) == 3 * MINUTE_MS
        assert default_session_ms(s) == 50 * MINUTE_MS


class TestConfig:
    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FG_API_PORT", "9999")
        monkeypatch.setenv("FG_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("FG_DATA_DIR", str(tmp_path))
        cfg = Config.load()
        assert cfg.api_port == 9999
        assert cfg.storage_backend == "memory"
        assert cfg.db_path == Path(tmp_path) / "guardian.db"


# ── Integration tests: /users/{owner_id}/settings ────────────────────────────

class TestSettingsEndpoints:
    async def test_get_returns_defaults(self, client):
        r = await client.get("/users/alice/settings")
        assert r.status_code == 200
        body = r.json()
        assert body["settings"] == DEFAULTS
        assert body["defaults"] == DEFAULTS

    async def test_partial_update(self, client):
        r = await client.put("/users/alice/settings", json={"temporary_unlock_minutes": 20})
        assert r.status_code == 200
        assert r.json()["settings"]["temporary_unlock_minutes"] == 20
        assert r.json()["settings"]["default_session_minutes"] == 25

        r = await client.get("/users/alice/settings")
        assert r.json()["settings"]["temporary_unlock_minutes"] == 20

    async def test_owners_are_independent(self, client):
        await client.put("/users/alice/settings", json={"default_break_minutes": 15})
        r = await client.get("/users/bob/settings")
        assert r.json()["settings"]["default_break_minutes"] == 5

    async def test_out_of_range_rejected(self, client):
        r = await client.put("/users/alice/settings", json={"temporary_unlock_minutes": 0})
        assert r.status_code == 422

"""Tests for the focus session engine."""

import pytest

from guardian.clock import HOUR_MS, MINUTE_MS
from guardian.errors import (
    AlreadyActiveError,
    InvalidDurationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from guardian.focus.models import FocusSession
from guardian.focus.session import progress

POMODORO = 25 * MINUTE_MS


class TestStart:
    def test_start(self, sessions, clock):
        session = sessions.start(POMODORO)
        assert session.is_active
        assert session.start_time == clock()
        assert session.end_time == clock() + POMODORO
        assert session.completed_percentage == 0
        assert session.breaks == []
        assert sessions.get_active().id == session.id

    @pytest.mark.parametrize("duration", [0, MINUTE_MS - 1, 8 * HOUR_MS + 1])
    def test_invalid_duration(self, sessions, duration):
        with pytest.raises(InvalidDurationError) as exc:
            sessions.start(duration)
        assert isinstance(exc.value, ValidationError)
        assert sessions.get_active() is None

    def test_only_one_active_session(self, sessions):
        first = sessions.start(POMODORO)
        with pytest.raises(AlreadyActiveError) as exc:
            sessions.start(POMODORO)
        assert isinstance(exc.value, StateConflictError)
        assert sessions.get_active().id == first.id

    def test_restart_after_end(self, sessions):
        first = sessions.start(POMODORO)
        sessions.end(first.id)
        second = sessions.start(POMODORO)
        assert second.id != first.id


class TestPauseResume:
    def test_break_extends_deadline(self, sessions, clock):
        session = sessions.start(POMODORO)
        clock.advance(5 * MINUTE_MS)

        paused = sessions.pause(session.id, reason="coffee")
        assert paused.is_on_break
        assert paused.completed_percentage == 20
        assert paused.breaks[0].reason == "coffee"

        clock.advance(3 * MINUTE_MS)
        assert sessions.get_active().completed_percentage == 20

        resumed = sessions.resume(session.id)
        assert not resumed.is_on_break
        assert resumed.end_time == session.end_time + 3 * MINUTE_MS
        assert resumed.duration == POMODORO + 3 * MINUTE_MS
        assert resumed.breaks[0].end_time == clock()
        assert resumed.completed_percentage >= 20

    def test_progress_is_monotonic_across_breaks(self, sessions, clock):
        session = sessions.start(POMODORO)
        seen = []
        for _ in range(3):
            clock.advance(4 * MINUTE_MS)
            sessions.pause(session.id)
            seen.append(sessions.get_active().completed_percentage)
            clock.advance(2 * MINUTE_MS)
            seen.append(sessions.get_active().completed_percentage)
            sessions.resume(session.id)
            seen.append(sessions.get_active().completed_percentage)
        assert seen == sorted(seen)

    def test_pause_twice(self, sessions):
        session = sessions.start(POMODORO)
        sessions.pause(session.id)
        with pytest.raises(StateConflictError):
            sessions.pause(session.id)

    def test_resume_without_break_is_noop(self, sessions):
        session = sessions.start(POMODORO)
        resumed = sessions.resume(session.id)
        assert resumed.end_time == session.end_time
        assert resumed.breaks == []

    def test_unknown_session(self, sessions):
        with pytest.raises(NotFoundError):
            sessions.pause("nope")
        sessions.start(POMODORO)
        with pytest.raises(NotFoundError):
            sessions.pause("nope")
        with pytest.raises(NotFoundError):
            sessions.resume("nope")


class TestEnd:
    def test_end_computes_percentage(self, sessions, clock):
        session = sessions.start(POMODORO)
        clock.advance(POMODORO // 2)
        ended = sessions.end(session.id)
        assert not ended.is_active
        assert ended.completed_percentage == 50
        assert ended.end_time == clock()
        assert sessions.get_active() is None

    def test_end_with_override(self, sessions):
        session = sessions.start(POMODORO)
        assert sessions.end(session.id, completed_percentage=100).completed_percentage == 100

    def test_end_closes_open_break(self, sessions, clock):
        session = sessions.start(POMODORO)
        sessions.pause(session.id)
        clock.advance(MINUTE_MS)
        ended = sessions.end(session.id)
        assert not ended.is_on_break
        assert ended.breaks[0].end_time == clock()

    def test_history_records_once(self, sessions):
        session = sessions.start(POMODORO)
        sessions.end(session.id)
        with pytest.raises(NotFoundError):
            sessions.end(session.id)
        assert [s.id for s in sessions.history()] == [session.id]

    def test_history_newest_first(self, sessions, clock):
        ids = []
        for _ in range(3):
            ids.append(sessions.start(POMODORO).id)
            clock.advance(MINUTE_MS)
            sessions.end(ids[-1])
        assert [s.id for s in sessions.history()] == ids[::-1]
        assert [s.id for s in sessions.history(limit=1, offset=1)] == [ids[1]]


class TestTick:
    def test_progress_recomputed_on_read(self, sessions, clock):
        sessions.start(POMODORO)
        clock.advance(10 * MINUTE_MS)
        assert sessions.get_active().completed_percentage == 40

    def test_tick_refreshes_progress(self, sessions, clock):
        sessions.start(POMODORO)
        clock.advance(5 * MINUTE_MS)
        assert sessions.tick().completed_percentage == 20

    def test_tick_ends_session_at_deadline(self, sessions, clock):
        session = sessions.start(POMODORO)
        clock.advance(POMODORO)
        ended = sessions.tick()
        assert ended.id == session.id
        assert not ended.is_active
        assert ended.completed_percentage == 100
        assert sessions.get_active() is None
        assert len(sessions.history()) == 1
        assert sessions.tick() is None

    def test_tick_does_not_end_during_break(self, sessions, clock):
        session = sessions.start(POMODORO)
        sessions.pause(session.id)
        clock.advance(POMODORO + MINUTE_MS)
        assert sessions.tick().is_active

    def test_context(self, sessions):
        assert not sessions.context().has_active_session
        session = sessions.start(POMODORO)
        assert sessions.context().enforces_session_blocks
        sessions.pause(session.id)
        assert sessions.context().is_on_break
        assert not sessions.context().enforces_session_blocks


class TestProgress:
    def test_zero_duration_is_complete(self):
        session = FocusSession(id="s", owner_id="o", start_time=0, end_time=0, duration=0)
        assert progress(session, 10) == 100

    def test_clamped(self):
        session = FocusSession(id="s", owner_id="o", start_time=100, end_time=200, duration=100)
        assert progress(session, 50) == 0
        assert progress(session, 500) == 100

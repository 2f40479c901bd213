import pytest

from keepalive_backend.core.events import CONFIG_CHANGED, STATE_CHANGED
from keepalive_backend.core.scheduler import MAX_INTERVAL_MS

from .conftest import MINUTE_MS


class TestSessionLifecycle:
    """Starting, stopping and the duration budget"""

    @pytest.fixture
    async def ready(self, session, timers):
        await session.initialize()
        return session

    async def test_initialize_with_permission(self, ready, permissions, guidance):
        assert ready.has_permission
        assert permissions.is_watching
        guidance.assert_not_awaited()

    async def test_end_at_from_duration(self, ready, store, timers):
        store.set("duration_minutes", 30)
        started_at = timers.now()

        assert ready.start_session() is True

        state = ready.get_state()
        assert state.is_active
        assert state.end_at == started_at + 30 * MINUTE_MS
        assert state.remaining_seconds == 30 * 60
        assert store.get("enabled") is True

    async def test_start_publishes_config_and_state(self, ready, received):
        ready.start_session()

        names = [name for name, _ in received]
        assert CONFIG_CHANGED in names
        assert names[-1] == STATE_CHANGED
        _, payload = received[-1]
        assert payload["isActive"] is True
        assert payload["nextMoveAt"] > 0

    async def test_thirty_minute_session_stops_after_31_minutes(
        self, ready, store, timers, scheduler, received
    ):
        store.set("duration_minutes", 30)
        ready.start_session()

        await timers.advance(31 * MINUTE_MS)

        state = ready.get_state()
        assert not state.is_active
        assert state.end_at == 0
        assert state.remaining_seconds == 0
        assert not scheduler.is_running
        assert store.get("enabled") is False
        assert received[-1][1]["isActive"] is False

    async def test_unbounded_session_keeps_running(self, ready, store, timers, backend):
        store.set("duration_minutes", 0)
        ready.start_session()

        await timers.advance(10 * 60 * MINUTE_MS)

        state = ready.get_state()
        assert state.is_active
        assert state.end_at == 0
        assert state.remaining_seconds == 0
        assert len(backend.writes) >= 2 * (10 * 60 * MINUTE_MS // MAX_INTERVAL_MS)

    async def test_double_stop_is_idempotent(self, ready, timers):
        ready.start_session()
        ready.stop_session()
        first = ready.get_state()

        ready.stop_session()

        assert ready.get_state() == first
        assert not first.is_active
        assert timers.pending() == 1  # only the permission poll remains

    async def test_toggle(self, ready):
        assert ready.toggle_session() is True
        assert ready.toggle_session() is False

    async def test_duration_change_restarts_active_session(self, ready, store, timers):
        store.set("duration_minutes", 30)
        ready.start_session()
        timers.jump(5 * MINUTE_MS)

        config = ready.update_config({"duration_minutes": 120})

        state = ready.get_state()
        assert config.duration_minutes == 120
        assert state.is_active
        assert state.end_at == timers.now() + 120 * MINUTE_MS

    async def test_update_config_while_inactive_does_not_start(self, ready, received):
        config = ready.update_config({"duration_minutes": 240})

        assert config.duration_minutes == 240
        assert not ready.is_active
        assert received[-1][0] == CONFIG_CHANGED
        assert received[-1][1]["durationMinutes"] == 240


class TestSessionPermissionGate:
    """Permission gating, revocation and re-grant"""

    async def test_start_without_permission_shows_guidance(
        self, session, trust, guidance, timers, scheduler
    ):
        trust.granted = False
        await session.initialize()
        await timers.settle()
        assert guidance.await_count == 1

        assert session.start_session() is False
        await timers.settle()

        assert not scheduler.is_running
        assert not session.is_active
        assert guidance.await_count == 2

    async def test_revoke_while_active_stops_within_one_poll(
        self, session, trust, timers, store, scheduler, backend
    ):
        await session.initialize()
        session.start_session()

        trust.granted = False
        await timers.advance(2000)

        assert not session.is_active
        assert not session.has_permission
        assert not scheduler.is_running
        # Kept so a re-grant picks the session back up
        assert store.get("enabled") is True

        writes = len(backend.writes)
        await timers.advance(10 * MINUTE_MS)
        assert len(backend.writes) == writes

    async def test_regrant_resumes_enabled_session(self, session, trust, timers):
        await session.initialize()
        session.start_session()
        trust.granted = False
        await timers.advance(2000)

        trust.granted = True
        await timers.advance(2000)

        assert session.has_permission
        assert session.is_active

    async def test_grant_after_denied_start(self, session, trust, timers, store):
        trust.granted = False
        await session.initialize()
        store.set("enabled", True)

        trust.granted = True
        await timers.advance(2000)

        assert session.has_permission
        assert session.is_active

    async def test_grant_without_enabled_does_not_start(self, session, trust, timers):
        trust.granted = False
        await session.initialize()

        trust.granted = True
        await timers.advance(2000)

        assert session.has_permission
        assert not session.is_active


class TestSessionResume:
    """Reconciliation after system sleep"""

    @pytest.fixture
    async def active(self, session, store):
        await session.initialize()
        store.set("duration_minutes", 30)
        session.start_session()
        return session

    async def test_resume_after_end_at_stops(self, active, timers, store):
        timers.jump(45 * MINUTE_MS)

        active.handle_system_resume()

        assert not active.is_active
        assert store.get("enabled") is False

    async def test_resume_before_end_at_keeps_budget(self, active, timers, scheduler):
        end_at = active.get_state().end_at
        timers.jump(10 * MINUTE_MS)

        active.handle_system_resume()

        assert active.is_active
        assert scheduler.is_running
        assert scheduler.get_state().next_move_at > timers.now()
        assert active.get_state().end_at == end_at
        assert active.get_state().remaining_seconds == 20 * 60

        await timers.advance(20 * MINUTE_MS)
        assert not active.is_active

    async def test_resume_unbounded_reschedules_overdue_move(
        self, session, store, timers, scheduler
    ):
        await session.initialize()
        store.set("duration_minutes", 0)
        session.start_session()
        timers.jump(2 * MAX_INTERVAL_MS)

        session.handle_system_resume()

        assert session.is_active
        assert scheduler.get_state().next_move_at > timers.now()

    async def test_resume_when_inactive_is_noop(self, session, timers, scheduler):
        await session.initialize()

        session.handle_system_resume()

        assert not session.is_active
        assert not scheduler.is_running

    async def test_sleep_does_not_change_state(self, active):
        before = active.get_state()

        active.handle_system_sleep()

        assert active.get_state() == before

    async def test_shutdown_keeps_persisted_flag(self, active, store, permissions, timers):
        active.shutdown()

        assert store.get("enabled") is True
        assert not permissions.is_watching
        assert timers.pending() == 0

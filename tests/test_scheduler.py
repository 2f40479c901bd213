import random

import pytest

from keepalive_backend.core.scheduler import (
    MAX_INTERVAL_MS,
    MIN_INTERVAL_MS,
    KeepAliveScheduler,
)
from keepalive_backend.models import DEFAULT_MOUSE_POSITION

from .conftest import MINUTE_MS


async def run_next_move(scheduler, timers):
    """Advance the clock exactly to the pending move"""
    await timers.advance(scheduler.get_state().next_move_at - timers.now())


class TestKeepAliveScheduler:
    """Keep-alive scheduler timing and move behaviour"""

    @pytest.fixture
    def states(self, scheduler):
        records = []
        scheduler.set_on_state_change(records.append)
        return records

    def test_start_schedules_within_interval(self, scheduler, timers, states):
        scheduler.start()

        delay = scheduler.get_state().next_move_at - timers.now()
        assert MIN_INTERVAL_MS <= delay <= MAX_INTERVAL_MS
        assert scheduler.is_running
        assert timers.pending() == 1
        assert states[-1].is_running is True

    def test_start_is_idempotent(self, scheduler, timers):
        scheduler.start()
        next_move_at = scheduler.get_state().next_move_at

        scheduler.start()

        assert timers.pending() == 1
        assert scheduler.get_state().next_move_at == next_move_at

    def test_double_stop_is_idempotent(self, scheduler, timers, states):
        scheduler.start()
        scheduler.stop()
        notified = len(states)

        scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.get_state().next_move_at == 0
        assert scheduler.get_countdown_seconds() == 0
        assert timers.pending() == 0
        assert len(states) == notified

    def test_stop_before_start_is_noop(self, scheduler, states):
        scheduler.stop()

        assert states == []
        assert scheduler.get_countdown_seconds() == 0

    async def test_move_returns_cursor_to_origin(self, scheduler, timers, backend):
        scheduler.start()

        await run_next_move(scheduler, timers)

        assert len(backend.writes) == 2
        (tx, ty), (ox, oy) = backend.writes
        assert (ox, oy) == (100, 200)
        assert abs(tx - ox) + abs(ty - oy) == 1
        assert scheduler.get_state().last_move_at is not None
        assert scheduler.stats["moves"] == 1

    async def test_next_move_at_strictly_increases(self, backend, timers):
        scheduler = KeepAliveScheduler(backend, timers, rng=random.Random(7))
        seen = []
        scheduler.set_on_state_change(
            lambda state: seen.append(state.next_move_at)
            if state.is_running and state.next_move_at
            else None
        )

        scheduler.start()
        await timers.advance(20 * MINUTE_MS)

        assert len(seen) > 10
        assert all(b > a for a, b in zip(seen, seen[1:]))
        assert all(
            MIN_INTERVAL_MS <= b - a <= MAX_INTERVAL_MS for a, b in zip(seen, seen[1:])
        )

    async def test_countdown_never_negative(self, scheduler, timers):
        scheduler.start()
        next_move_at = scheduler.get_state().next_move_at

        # Clock passes the due time without the timer firing (suspended machine)
        timers.jump(next_move_at - timers.now() + 5000)

        assert scheduler.get_countdown_seconds() == 0

    async def test_countdown_rounds_up(self, scheduler, timers):
        scheduler.start()
        remaining_ms = scheduler.get_state().next_move_at - timers.now()

        timers.jump(remaining_ms - 1500)

        assert scheduler.get_countdown_seconds() == 2

    async def test_write_failure_self_heals(self, scheduler, timers, backend):
        backend.fail_set = True
        scheduler.start()

        await run_next_move(scheduler, timers)

        assert scheduler.is_running
        assert scheduler.stats["failed_moves"] == 1
        assert backend.key_presses == 1
        assert scheduler.get_state().next_move_at > timers.now()

        backend.fail_set = False
        await run_next_move(scheduler, timers)

        assert scheduler.stats["moves"] == 1
        assert len(backend.writes) == 2

    async def test_read_failure_uses_default_position(self, scheduler, timers, backend):
        backend.fail_get = True
        scheduler.start()

        await run_next_move(scheduler, timers)

        assert backend.writes[-1] == (DEFAULT_MOUSE_POSITION.x, DEFAULT_MOUSE_POSITION.y)
        assert scheduler.stats["moves"] == 1

    async def test_stop_during_read_skips_writes(self, scheduler, timers, backend):
        backend.on_get = scheduler.stop
        scheduler.start()

        await timers.advance(MAX_INTERVAL_MS)

        assert backend.writes == []
        assert not scheduler.is_running
        assert timers.pending() == 0

    async def test_stale_move_does_not_reschedule_new_run(self, scheduler, timers, backend):
        def restart():
            backend.on_get = None
            scheduler.stop()
            scheduler.start()

        backend.on_get = restart
        scheduler.start()

        await timers.advance(MAX_INTERVAL_MS)

        assert scheduler.is_running
        assert timers.pending() == 1

    async def test_stop_cancels_pending_move(self, scheduler, timers, backend):
        scheduler.start()
        scheduler.stop()

        await timers.advance(10 * MINUTE_MS)

        assert backend.writes == []

    async def test_reschedule_if_overdue(self, scheduler, timers):
        scheduler.start()
        assert scheduler.reschedule_if_overdue() is False

        timers.jump(2 * MAX_INTERVAL_MS)
        assert scheduler.reschedule_if_overdue() is True

        assert scheduler.get_state().next_move_at > timers.now()
        assert timers.pending() == 1

    async def test_resume_during_move_keeps_single_timer(self, scheduler, timers, backend):
        results = []

        def resume_once():
            backend.on_get = None
            results.append(scheduler.reschedule_if_overdue())

        backend.on_get = resume_once
        scheduler.start()

        await run_next_move(scheduler, timers)

        assert results == [False]
        assert timers.pending() == 1
        assert scheduler.stats["moves"] == 1

        await timers.advance(10 * MINUTE_MS)

        # One chain of moves, never more than one per minimum interval
        assert scheduler.stats["moves"] <= 10 * MINUTE_MS // MIN_INTERVAL_MS + 1
        assert timers.pending() == 1

    def test_reschedule_if_overdue_when_stopped(self, scheduler):
        assert scheduler.reschedule_if_overdue() is False

    def test_invalid_interval_range(self, backend, timers):
        with pytest.raises(ValueError):
            KeepAliveScheduler(backend, timers, min_interval_ms=5000, max_interval_ms=1000)
        with pytest.raises(ValueError):
            KeepAliveScheduler(backend, timers, min_interval_ms=0, max_interval_ms=1000)

    def test_observer_failure_is_contained(self, scheduler):
        def broken(state):
            raise RuntimeError("observer broke")

        scheduler.set_on_state_change(broken)
        scheduler.start()

        assert scheduler.is_running

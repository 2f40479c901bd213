"""
Keep-alive scheduler
Nudges the cursor one pixel and back after a random delay, forever, until stopped

State machine: stopped -> running -> stopped; while running it cycles
scheduled(next_move_at) -> moving -> scheduled(next_move_at')
"""

import math
import random
from typing import Callable, Optional

from keepalive_backend.core.errors import BackendError
from keepalive_backend.core.logger import get_logger
from keepalive_backend.core.timers import TimerHandle, TimerService
from keepalive_backend.input_control.base import BaseMouseBackend
from keepalive_backend.models import DEFAULT_MOUSE_POSITION, MousePosition, SchedulerState

logger = get_logger(__name__)

MIN_INTERVAL_MS = 30_000
MAX_INTERVAL_MS = 90_000
MOVE_OFFSET_PX = 1

# (name, dx, dy)
DIRECTIONS = (
    ("up", 0, -1),
    ("down", 0, 1),
    ("left", -1, 0),
    ("right", 1, 0),
)

StateCallback = Callable[[SchedulerState], None]


class KeepAliveScheduler:
    """Keep-alive scheduler

    In-flight moves: stop() cancels the pending timer before returning. A move that
    is already running finishes its position read, then skips both writes if it sees
    the scheduler stopped; once the offset write happened the cursor is always put
    back. A finished move only reschedules if the run it belongs to is still active,
    and resume reconciliation leaves a running move alone.
    """

    def __init__(
        self,
        backend: BaseMouseBackend,
        timers: TimerService,
        min_interval_ms: int = MIN_INTERVAL_MS,
        max_interval_ms: int = MAX_INTERVAL_MS,
        move_offset_px: int = MOVE_OFFSET_PX,
        rng: Optional[random.Random] = None,
    ):
        if min_interval_ms <= 0 or max_interval_ms < min_interval_ms:
            raise ValueError(
                f"Invalid move interval range: {min_interval_ms}-{max_interval_ms}ms"
            )
        self.backend = backend
        self.min_interval_ms = min_interval_ms
        self.max_interval_ms = max_interval_ms
        self.move_offset_px = move_offset_px
        self._timers = timers
        self._rng = rng or random.Random()

        self._is_running = False
        self._timer: Optional[TimerHandle] = None
        self._moving_run: Optional[int] = None
        self._next_move_at = 0
        self._last_move_at: Optional[int] = None
        # Bumped on every start() so moves from an earlier run never reschedule
        self._run_id = 0
        self._on_state_change: Optional[StateCallback] = None

        self.stats = {"moves": 0, "failed_moves": 0}

    @property
    def is_running(self) -> bool:
        return self._is_running

    def set_on_state_change(self, callback: Optional[StateCallback]) -> None:
        """Register the state observer (replaces any previous one)"""
        self._on_state_change = callback

    def start(self) -> None:
        """Start keep-alive moves (no-op if already running)"""
        if self._is_running:
            return

        self._is_running = True
        self._run_id += 1
        self._schedule_next_move()
        logger.info("[KeepAlive] Service started")

    def stop(self) -> None:
        """Stop keep-alive moves (no-op if already stopped)"""
        if not self._is_running:
            return

        self._is_running = False
        self._cancel_timer()
        self._next_move_at = 0
        self._notify_state_change()
        logger.info("[KeepAlive] Service stopped")

    def reschedule_if_overdue(self) -> bool:
        """Replace a pending move whose due time already passed (e.g. after system sleep)

        A move that is already running schedules its own successor, so this is a
        no-op until it finishes.
        """
        if not self._is_running or self._moving_run == self._run_id:
            return False
        if self._next_move_at > self._timers.now():
            return False

        logger.info("[KeepAlive] Pending move is overdue, rescheduling")
        self._schedule_next_move()
        return True

    def get_state(self) -> SchedulerState:
        return SchedulerState(
            is_running=self._is_running,
            next_move_at=self._next_move_at,
            last_move_at=self._last_move_at,
            countdown=self.get_countdown_seconds(),
        )

    def get_countdown_seconds(self) -> int:
        """Seconds until the next move, never negative, 0 when stopped"""
        if not self._is_running or self._next_move_at == 0:
            return 0
        remaining = max(0, self._next_move_at - self._timers.now())
        return math.ceil(remaining / 1000)

    def _random_interval(self) -> int:
        return self._rng.randint(self.min_interval_ms, self.max_interval_ms)

    def _schedule_next_move(self) -> None:
        if not self._is_running:
            return

        # At most one pending move timer
        self._cancel_timer()
        delay = self._random_interval()
        self._next_move_at = self._timers.now() + delay
        run_id = self._run_id
        self._timer = self._timers.call_later(delay, lambda: self._perform_move(run_id))
        logger.debug(f"[KeepAlive] Next move in {delay}ms")
        self._notify_state_change()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _perform_move(self, run_id: int) -> None:
        if not self._is_current(run_id):
            return
        self._timer = None
        self._moving_run = run_id

        try:
            await self._move_once(run_id)
        finally:
            if self._moving_run == run_id:
                self._moving_run = None

        if self._is_current(run_id):
            self._schedule_next_move()

    async def _move_once(self, run_id: int) -> None:
        try:
            origin = await self._read_position()

            if not self._is_current(run_id):
                logger.debug("[KeepAlive] Stopped during position read, skipping move")
                return

            name, dx, dy = self._rng.choice(DIRECTIONS)
            target = MousePosition(
                x=origin.x + dx * self.move_offset_px,
                y=origin.y + dy * self.move_offset_px,
            )

            await self.backend.set_position(target.x, target.y)
            # Put the cursor back so the net displacement is zero
            await self.backend.set_position(origin.x, origin.y)

            self._last_move_at = self._timers.now()
            self.stats["moves"] += 1
            logger.info(f"[KeepAlive] Mouse moved - direction: {name}")

        except BackendError as e:
            self.stats["failed_moves"] += 1
            logger.error(f"[KeepAlive] Mouse move failed: {e}")
        except Exception as e:
            self.stats["failed_moves"] += 1
            logger.error(f"[KeepAlive] Mouse move failed unexpectedly: {e}", exc_info=True)

    async def _read_position(self) -> MousePosition:
        try:
            position = await self.backend.get_position()
            logger.debug(f"[KeepAlive] Mouse position: ({position.x}, {position.y})")
            return position
        except BackendError as e:
            logger.warning(f"[KeepAlive] {e}, using default position")
            return DEFAULT_MOUSE_POSITION

    def _is_current(self, run_id: int) -> bool:
        return self._is_running and run_id == self._run_id

    def _notify_state_change(self) -> None:
        if self._on_state_change:
            try:
                self._on_state_change(self.get_state())
            except Exception as e:
                logger.error(f"[KeepAlive] State observer failed: {e}", exc_info=True)

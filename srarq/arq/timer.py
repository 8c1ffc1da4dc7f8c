"""
Scheduling and Timer Management for Selective Repeat ARQ

This module provides the single-threaded event scheduler that serializes
every protocol state change, and the per-packet retransmission timers that
run on top of it.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Callable
import heapq
import itertools
import time as _time


@dataclass(order=True)
class ScheduledCall:
    """
    A cancellable callback in the scheduler's queue.

    Ordered by due time, then by insertion order so that callbacks due at
    the same instant run first-in first-out.
    """
    when: float
    order: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self):
        """Make this call inert. Safe to call any number of times."""
        self.cancelled = True


class EventScheduler:
    """
    Discrete-event scheduler over a virtual clock.

    Callbacks run one at a time, in due-time order, on the caller's thread,
    so no two protocol state mutations ever interleave. Time only moves when
    the scheduler is driven with ``run_until``/``advance``, or paced against
    the wall clock with ``run_realtime``.

    Attributes:
        now: Current virtual time in seconds
    """

    def __init__(self, start_time: float = 0.0):
        self.now = start_time
        self._queue: List[ScheduledCall] = []
        self._counter = itertools.count()

        # Statistics
        self.callbacks_run = 0

    def time(self) -> float:
        """Get current virtual time."""
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        """
        Schedule a callback.

        Args:
            delay: Seconds from now (negative values are treated as zero)
            callback: Zero-argument callable

        Returns:
            Handle that can cancel the call
        """
        call = ScheduledCall(
            when=self.now + max(0.0, delay),
            order=next(self._counter),
            callback=callback
        )
        heapq.heappush(self._queue, call)
        return call

    def call_at(self, when: float, callback: Callable[[], None]) -> ScheduledCall:
        """Schedule a callback at an absolute virtual time."""
        return self.call_later(when - self.now, callback)

    def next_event_time(self) -> Optional[float]:
        """
        Get the due time of the next live call.

        Returns:
            Next due time or None if nothing is scheduled
        """
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0].when if self._queue else None

    def run_until(self, end_time: float) -> int:
        """
        Run every call due at or before ``end_time``.

        Calls scheduled by callbacks are picked up in the same pass when they
        fall due before ``end_time``.

        Args:
            end_time: Virtual time to advance to

        Returns:
            Number of callbacks executed
        """
        executed = 0
        while self._queue and self._queue[0].when <= end_time:
            call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self.now = call.when
            call.callback()
            executed += 1

        self.now = max(self.now, end_time)
        self.callbacks_run += executed
        return executed

    def advance(self, delta: float) -> int:
        """Run every call due within the next ``delta`` seconds."""
        return self.run_until(self.now + delta)

    def run_until_idle(self, max_time: Optional[float] = None) -> int:
        """
        Run until no calls remain, or ``max_time`` is reached.

        Periodic callbacks reschedule themselves forever, so pass ``max_time``
        whenever one is active.
        """
        executed = 0
        while True:
            next_time = self.next_event_time()
            if next_time is None:
                break
            if max_time is not None and next_time > max_time:
                self.now = max(self.now, max_time)
                break
            executed += self.run_until(next_time)
        return executed

    def run_realtime(
        self,
        duration: float,
        clock: Callable[[], float] = _time.monotonic,
        sleep: Callable[[float], None] = _time.sleep
    ):
        """
        Pace the virtual clock against the wall clock for ``duration`` seconds.

        Args:
            duration: Wall-clock seconds to run
            clock: Monotonic time source
            sleep: Blocking sleep function
        """
        wall_start = clock()
        virtual_start = self.now
        end_time = virtual_start + duration

        while True:
            next_time = self.next_event_time()
            target = end_time if next_time is None else min(next_time, end_time)

            wait = (target - virtual_start) - (clock() - wall_start)
            if wait > 0:
                sleep(wait)

            self.run_until(target)
            if target >= end_time:
                break

    @property
    def pending_count(self) -> int:
        """Number of live scheduled calls."""
        return sum(1 for call in self._queue if not call.cancelled)

    def clear(self):
        """Drop every scheduled call."""
        for call in self._queue:
            call.cancel()
        self._queue.clear()


@dataclass
class RetransmissionTimer:
    """
    Per-packet retransmission timer.

    Attributes:
        seq_num: Sequence number of the packet
        timeout: Timeout duration in seconds
        start_time: Time when timer was last (re)started
        handle: Scheduled expiry call
        restarts: Number of restarts after expiry
    """
    seq_num: int
    timeout: float
    start_time: float
    handle: ScheduledCall
    restarts: int = 0

    def get_expiry_time(self) -> float:
        """Get the absolute expiry time."""
        return self.start_time + self.timeout

    def get_remaining_time(self, current_time: float) -> float:
        """Get remaining time until expiration (0 if already due)."""
        return max(0.0, self.get_expiry_time() - current_time)


class TimerManager:
    """
    Arena of per-packet retransmission timers, indexed by sequence number.

    ``cancel`` is the one idempotent operation shared by the acknowledgment
    path and shutdown. A cancelled timer never fires, even if its expiry was
    already queued for the current instant.

    Attributes:
        scheduler: Event scheduler the timers run on
        default_timeout: Default timeout duration
        timers: Active timers by sequence number
    """

    def __init__(
        self,
        scheduler: EventScheduler,
        default_timeout: float,
        on_timeout: Optional[Callable[[int, int], None]] = None
    ):
        """
        Initialize timer manager.

        Args:
            scheduler: Event scheduler
            default_timeout: Default timeout duration in seconds
            on_timeout: Callback when a timer expires (receives seq_num
                and the number of restarts so far)
        """
        self.scheduler = scheduler
        self.default_timeout = default_timeout
        self.on_timeout = on_timeout

        self.timers: Dict[int, RetransmissionTimer] = {}
        self.closed = False

        # Statistics
        self.total_timeouts = 0
        self.total_timers_started = 0
        self.total_restarts = 0

    def start_timer(self, seq_num: int, timeout: Optional[float] = None):
        """
        Start (or restart) the timer for a packet.

        Args:
            seq_num: Sequence number
            timeout: Custom timeout (uses default if None)
        """
        if self.closed:
            return

        timeout = timeout or self.default_timeout
        previous = self.timers.pop(seq_num, None)
        if previous is not None:
            previous.handle.cancel()

        handle = self.scheduler.call_later(
            timeout, lambda: self._expire(seq_num)
        )
        self.timers[seq_num] = RetransmissionTimer(
            seq_num=seq_num,
            timeout=timeout,
            start_time=self.scheduler.now,
            handle=handle
        )
        self.total_timers_started += 1

    def restart_timer(self, seq_num: int, restarts: int):
        """Re-arm an expired timer, carrying its restart count forward."""
        self.start_timer(seq_num)
        timer = self.timers.get(seq_num)
        if timer is not None:
            timer.restarts = restarts + 1
            self.total_restarts += 1

    def cancel_timer(self, seq_num: int):
        """
        Cancel and remove a timer. No-op if none is active.

        Args:
            seq_num: Sequence number
        """
        timer = self.timers.pop(seq_num, None)
        if timer is not None:
            timer.handle.cancel()

    def _expire(self, seq_num: int):
        """Fire a timer: remove it from the arena and notify."""
        timer = self.timers.pop(seq_num, None)
        if timer is None or self.closed:
            return

        self.total_timeouts += 1
        if self.on_timeout:
            self.on_timeout(seq_num, timer.restarts)

    def get_timer(self, seq_num: int) -> Optional[RetransmissionTimer]:
        """Get the active timer for a packet."""
        return self.timers.get(seq_num)

    def is_active(self, seq_num: int) -> bool:
        return seq_num in self.timers

    def get_next_expiry(self) -> Optional[float]:
        """
        Get the time of the next timer expiry.

        Returns:
            Next expiry time or None if no active timers
        """
        if not self.timers:
            return None
        return min(t.get_expiry_time() for t in self.timers.values())

    def cancel_all(self):
        """Cancel every active timer."""
        for timer in self.timers.values():
            timer.handle.cancel()
        self.timers.clear()

    def close(self):
        """Cancel every timer and refuse to start new ones."""
        self.cancel_all()
        self.closed = True

    def get_active_count(self) -> int:
        """Get number of active timers."""
        return len(self.timers)

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'total_timers_started': self.total_timers_started,
            'total_timeouts': self.total_timeouts,
            'total_restarts': self.total_restarts,
            'active_timers': self.get_active_count()
        }

"""
Unit tests for the event scheduler and retransmission timers.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from srarq.arq.timer import EventScheduler, TimerManager


class TestEventScheduler:
    """Tests for EventScheduler class."""

    def test_runs_in_time_order(self, scheduler):
        fired = []
        scheduler.call_later(0.3, lambda: fired.append('c'))
        scheduler.call_later(0.1, lambda: fired.append('a'))
        scheduler.call_later(0.2, lambda: fired.append('b'))

        assert scheduler.run_until(1.0) == 3
        assert fired == ['a', 'b', 'c']
        assert scheduler.now == 1.0

    def test_same_instant_is_fifo(self, scheduler):
        fired = []
        for name in ('first', 'second', 'third'):
            scheduler.call_later(0.5, lambda n=name: fired.append(n))

        scheduler.advance(0.5)
        assert fired == ['first', 'second', 'third']

    def test_cancelled_call_never_runs(self, scheduler):
        fired = []
        handle = scheduler.call_later(0.1, lambda: fired.append('x'))
        handle.cancel()
        handle.cancel()

        assert scheduler.run_until(1.0) == 0
        assert fired == []
        assert scheduler.pending_count == 0

    def test_callbacks_can_schedule(self, scheduler):
        fired = []

        def tick():
            fired.append(scheduler.now)
            if len(fired) < 3:
                scheduler.call_later(0.25, tick)

        scheduler.call_later(0.25, tick)
        scheduler.run_until(2.0)
        assert fired == [0.25, 0.5, 0.75]

    def test_call_at_and_next_event_time(self, scheduler):
        assert scheduler.next_event_time() is None
        scheduler.call_at(2.5, lambda: None)
        assert scheduler.next_event_time() == 2.5

    def test_run_until_idle_respects_limit(self, scheduler):
        def forever():
            scheduler.call_later(1.0, forever)

        scheduler.call_later(1.0, forever)
        scheduler.run_until_idle(max_time=5.5)
        assert scheduler.now == 5.5
        assert scheduler.callbacks_run == 5

    def test_run_realtime_paces_with_injected_clock(self):
        scheduler = EventScheduler()
        wall = [0.0]
        slept = []

        def sleep(seconds):
            slept.append(seconds)
            wall[0] += seconds

        fired = []
        scheduler.call_later(1.0, lambda: fired.append(scheduler.now))
        scheduler.run_realtime(2.0, clock=lambda: wall[0], sleep=sleep)

        assert fired == [1.0]
        assert scheduler.now == 2.0
        assert sum(slept) == pytest.approx(2.0)

    def test_run_realtime_default_clock(self, scheduler):
        fired = []
        scheduler.call_later(0.0, lambda: fired.append(scheduler.time()))
        scheduler.run_realtime(0.01)

        assert fired == [0.0]
        assert scheduler.now == pytest.approx(0.01)


class TestTimerManager:
    """Tests for TimerManager class."""

    def test_timer_start(self, scheduler):
        manager = TimerManager(scheduler, default_timeout=1.0)
        manager.start_timer(1)

        assert manager.is_active(1)
        assert manager.get_timer(1).get_expiry_time() == 1.0
        assert manager.get_next_expiry() == 1.0

        scheduler.advance(0.25)
        assert manager.get_timer(1).get_remaining_time(scheduler.now) == 0.75

    def test_timer_expiry(self, scheduler):
        expired = []
        manager = TimerManager(scheduler, 1.0, on_timeout=lambda s, r: expired.append((s, r)))
        manager.start_timer(3)

        scheduler.advance(0.99)
        assert expired == []

        scheduler.advance(0.01)
        assert expired == [(3, 0)]
        assert not manager.is_active(3)
        assert manager.total_timeouts == 1

    def test_restart_carries_count(self, scheduler):
        expired = []
        manager = TimerManager(scheduler, 1.0)

        def on_timeout(seq_num, restarts):
            expired.append((seq_num, restarts))
            manager.restart_timer(seq_num, restarts)

        manager.on_timeout = on_timeout
        manager.start_timer(0)
        scheduler.run_until(3.0)

        assert expired == [(0, 0), (0, 1), (0, 2)]
        assert manager.get_timer(0).restarts == 3

    def test_cancel_is_idempotent(self, scheduler):
        expired = []
        manager = TimerManager(scheduler, 1.0, on_timeout=lambda s, r: expired.append(s))
        manager.start_timer(5)

        manager.cancel_timer(5)
        manager.cancel_timer(5)
        manager.cancel_timer(99)
        scheduler.run_until(10.0)

        assert expired == []
        assert manager.get_active_count() == 0

    def test_cancel_at_expiry_instant(self, scheduler):
        """A timer cancelled by an earlier callback at the same instant never fires."""
        expired = []
        manager = TimerManager(scheduler, 1.0, on_timeout=lambda s, r: expired.append(s))
        scheduler.call_later(1.0, lambda: manager.cancel_timer(0))
        manager.start_timer(0)

        scheduler.run_until(1.0)
        assert expired == []

    def test_restart_replaces_previous(self, scheduler):
        expired = []
        manager = TimerManager(scheduler, 1.0, on_timeout=lambda s, r: expired.append(scheduler.now))
        manager.start_timer(0)
        scheduler.advance(0.5)
        manager.start_timer(0)

        scheduler.run_until(5.0)
        assert expired == [1.5]

    def test_close_makes_inert(self, scheduler):
        expired = []
        manager = TimerManager(scheduler, 1.0, on_timeout=lambda s, r: expired.append(s))
        manager.start_timer(0)
        manager.start_timer(1)

        manager.close()
        manager.start_timer(2)
        scheduler.run_until(5.0)

        assert expired == []
        assert manager.get_active_count() == 0
        assert manager.get_statistics()['total_timers_started'] == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

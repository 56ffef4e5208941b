"""
Unit tests for kernel/clock.py
"""

import asyncio

import pytest

from naascalc.kernel.clock import AsyncioClock, ManualClock


class TestManualClock:
    """Test virtual time."""

    def test_starts_at_zero(self):
        """Test initial time."""
        assert ManualClock().monotonic() == 0.0
        assert ManualClock(start=5.0).monotonic() == 5.0

    def test_callbacks_fire_in_deadline_order(self):
        """Test due callbacks run in order."""
        clock = ManualClock()
        fired = []
        clock.call_later(0.2, lambda: fired.append("late"))
        clock.call_later(0.1, lambda: fired.append("early"))

        assert clock.advance(0.15) == 1
        assert fired == ["early"]
        clock.advance(0.1)
        assert fired == ["early", "late"]

    def test_callback_sees_its_deadline(self):
        """Test time during a callback equals its deadline."""
        clock = ManualClock()
        seen = []
        clock.call_later(0.1, lambda: seen.append(clock.monotonic()))
        clock.advance(1.0)

        assert seen == [pytest.approx(0.1)]
        assert clock.monotonic() == pytest.approx(1.0)

    def test_cancel(self):
        """Test a cancelled timer never fires."""
        clock = ManualClock()
        fired = []
        handle = clock.call_later(0.1, lambda: fired.append(1))
        handle.cancel()

        assert clock.pending_timers == 0
        clock.advance(1.0)
        assert fired == []

    def test_timer_scheduled_inside_window_fires(self):
        """Test callbacks scheduled while advancing fire if due."""
        clock = ManualClock()
        fired = []

        def first():
            fired.append("first")
            clock.call_later(0.1, lambda: fired.append("second"))

        clock.call_later(0.1, first)
        clock.advance(0.5)
        assert fired == ["first", "second"]

    def test_zero_delay_fires_on_advance_zero(self):
        """Test a zero-delay timer fires without moving time."""
        clock = ManualClock()
        fired = []
        clock.call_later(0, lambda: fired.append(1))
        clock.advance(0)
        assert fired == [1]

    def test_cannot_go_backwards(self):
        """Test negative advances are rejected."""
        with pytest.raises(ValueError):
            ManualClock().advance(-1)

    def test_advance_ms(self):
        """Test millisecond helper."""
        clock = ManualClock()
        clock.advance_ms(50)
        assert clock.monotonic() == pytest.approx(0.05)


class TestAsyncioClock:
    """Test the asyncio-backed clock."""

    @pytest.mark.asyncio
    async def test_call_later_fires(self):
        """Test callbacks run on the event loop."""
        clock = AsyncioClock()
        fired = asyncio.Event()
        clock.call_later(0.01, fired.set)

        await asyncio.wait_for(fired.wait(), timeout=1.0)
        assert fired.is_set()

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test cancelling the native handle."""
        clock = AsyncioClock()
        fired = []
        handle = clock.call_later(0.01, lambda: fired.append(1))
        handle.cancel()

        await asyncio.sleep(0.03)
        assert fired == []

    @pytest.mark.asyncio
    async def test_monotonic_uses_loop_time(self):
        """Test time comes from the running loop."""
        clock = AsyncioClock()
        loop = asyncio.get_running_loop()
        assert abs(clock.monotonic() - loop.time()) < 0.5

"""
Integration tests for debouncing on a real asyncio event loop.
"""

import asyncio

import pytest

from naascalc import AsyncioClock, CalculatorConfig, QuoteStore, create_quote_calculator
from naascalc.kernel.orchestrator import CalculationOrchestrator, OrchestratorState

from tests.conftest import RecordingEngine


@pytest.fixture
def async_pipeline(graph):
    engine = RecordingEngine()
    store = QuoteStore(graph.component_types)
    orchestrator = CalculationOrchestrator(
        graph, store, engine, clock=AsyncioClock(), config=CalculatorConfig(debounce_ms=20),
    )
    return store, orchestrator, engine


class TestAsyncioDebounce:
    """Test the orchestrator driven by loop timers."""

    @pytest.mark.asyncio
    async def test_timer_drains_queue(self, async_pipeline):
        """Test a scheduled calculation runs once the window elapses."""
        store, orchestrator, engine = async_pipeline
        store.update_component("capital", {"enabled": True, "params": {"devices": 3}})
        assert orchestrator.state == OrchestratorState.DEBOUNCING

        assert await orchestrator.wait_until_idle(timeout=1.0) is True

        assert engine.computed == ["capital"]
        assert store.get_component("capital").is_fresh

    @pytest.mark.asyncio
    async def test_rapid_edits_coalesce(self, async_pipeline):
        """Test edits closer together than the window compute once."""
        store, orchestrator, engine = async_pipeline
        store.update_component("prtg", {"enabled": True})
        for sensors in range(5):
            store.update_component_params("prtg", {"sensors": sensors})
            await asyncio.sleep(0.002)

        assert await orchestrator.wait_until_idle(timeout=1.0) is True

        assert engine.computed == ["prtg"]
        assert engine.calls[0][1] == {"sensors": 4}

    @pytest.mark.asyncio
    async def test_dependents_follow(self, async_pipeline):
        """Test a dependency edit recomputes dependents in order."""
        store, orchestrator, engine = async_pipeline
        store.update_component("capital", {"enabled": True})
        store.update_component("support", {"enabled": True})

        assert await orchestrator.wait_until_idle(timeout=1.0) is True
        assert engine.computed == ["capital", "support"]

    @pytest.mark.asyncio
    async def test_concurrent_waiters(self, async_pipeline):
        """Test every waiter is released by the same pass."""
        store, orchestrator, _ = async_pipeline
        store.update_component("assessment", {"enabled": True})

        results = await asyncio.gather(
            orchestrator.wait_until_idle(timeout=1.0),
            orchestrator.wait_until_idle(timeout=1.0),
        )

        assert results == [True, True]
        assert orchestrator.get_performance_metrics()["passes"] == 1


class TestCalculatorLifecycle:
    """Test the assembled calculator on an event loop."""

    @pytest.mark.asyncio
    async def test_stop_flushes_pending(self):
        """Test stop computes work still inside its window."""
        engine = RecordingEngine()
        calc = create_quote_calculator(
            engine=engine, clock=AsyncioClock(), config=CalculatorConfig(debounce_ms=500),
        )
        await calc.start()
        calc.update_component("capital", {"enabled": True})

        await calc.stop()

        assert engine.computed == ["capital"]
        assert calc.orchestrator.get_stats()["timer_armed"] is False

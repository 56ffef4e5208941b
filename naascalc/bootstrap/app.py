"""
bootstrap/app.py - Quote calculator assembly and lifecycle

Wires graph, store, orchestrator, engine and clock into one object that
embedding applications hold instead of module-level singletons.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional
import asyncio
import logging

from naascalc.core.business_rules import BusinessRules
from naascalc.core.config import CalculatorConfig
from naascalc.core.models import Component, ProjectMetadata, StoreChange
from naascalc.core.store import QuoteStore
from naascalc.dependencies.catalog import build_default_graph
from naascalc.dependencies.graph import DependencyGraph
from naascalc.kernel.clock import Clock, ManualClock
from naascalc.kernel.engine import CalculationEngine, CalculatorRegistry
from naascalc.kernel.orchestrator import CalculationOrchestrator

logger = logging.getLogger(__name__)


class CalculatorState(Enum):
    """Calculator lifecycle states."""
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


class QuoteCalculator:
    """Graph, store and orchestrator for one quote."""

    def __init__(
        self,
        graph: DependencyGraph,
        engine: Optional[CalculationEngine] = None,
        config: Optional[CalculatorConfig] = None,
        clock: Optional[Clock] = None,
        rules: Optional[BusinessRules] = None,
    ):
        self.config = config or CalculatorConfig()
        self.graph = graph
        self.engine = engine or CalculatorRegistry()
        self.clock = clock or ManualClock()
        self.store = QuoteStore(graph.component_types, rules=rules)
        self.orchestrator = CalculationOrchestrator(
            graph, self.store, self.engine, clock=self.clock, config=self.config,
        )
        self.state = CalculatorState.CREATED
        self._shutdown_hooks: List[Callable[[], Any]] = []

        logger.info(
            f"Quote calculator built: {len(graph)} components, "
            f"debounce {self.config.debounce_ms}ms"
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        self.state = CalculatorState.RUNNING
        logger.info("Quote calculator started")

    async def stop(self, drain: bool = True, timeout: Optional[float] = None) -> None:
        """Stop the calculator, optionally letting pending calculations finish."""
        if drain and self.orchestrator.is_processing:
            if not await self.orchestrator.wait_until_idle(timeout):
                logger.warning("Pending calculations did not finish before shutdown")
        elif drain:
            self.orchestrator.process_calculation_queue()
        dropped = self.orchestrator.clear_queue()
        if dropped:
            logger.warning(f"Dropped {dropped} pending calculation(s) on shutdown")

        for hook in reversed(self._shutdown_hooks):
            try:
                result = hook()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Shutdown hook failed: {e}")

        self.state = CalculatorState.STOPPED
        logger.info("Quote calculator stopped")

    def on_shutdown(self, hook: Callable[[], Any]) -> "QuoteCalculator":
        self._shutdown_hooks.append(hook)
        return self

    # =========================================================================
    # CONVENIENCE
    # =========================================================================

    def update_project(self, partial: Mapping[str, Any]) -> ProjectMetadata:
        return self.store.update_project(partial)

    def update_component(self, component_type: str, partial: Mapping[str, Any]) -> Component:
        return self.store.update_component(component_type, partial)

    def subscribe(self, listener: Callable[[StoreChange], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def recalculate_all(self) -> None:
        """Schedule every enabled component immediately."""
        for t in self.graph.component_types:
            if t in self.store.get_enabled_types():
                self.orchestrator.schedule_calculation(t, immediate=True, source="manual")

    def get_health_status(self) -> Dict[str, Any]:
        report = self.graph.check_relationships(self.store.get_enabled_types())
        return {
            "state": self.state.value,
            "store": self.store.get_health_status(),
            "orchestrator": self.orchestrator.get_stats(),
            "relationships": {
                "valid": report.is_valid,
                "errors": list(report.errors),
                "warnings": list(report.warnings),
            },
        }


def create_quote_calculator(
    engine: Optional[CalculationEngine] = None,
    config: Optional[CalculatorConfig] = None,
    clock: Optional[Clock] = None,
    graph: Optional[DependencyGraph] = None,
) -> QuoteCalculator:
    """Build a calculator over the default component catalog and business rules."""
    return QuoteCalculator(
        graph or build_default_graph(),
        engine=engine,
        config=config,
        clock=clock,
        rules=BusinessRules.default(),
    )

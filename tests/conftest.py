"""
naascalc Test Configuration and Fixtures

Small dependency graph, virtual clock and a recording engine shared by
unit and integration tests.
"""

import pytest
from typing import Any, Dict, List, Tuple

from naascalc.core.config import CalculatorConfig
from naascalc.core.store import QuoteStore
from naascalc.dependencies.graph import DependencyGraph, WILDCARD
from naascalc.kernel.clock import ManualClock
from naascalc.kernel.engine import CalculationContext, CalculationEngine
from naascalc.kernel.orchestrator import CalculationOrchestrator


# capital <- support; combined reads every other enabled component
SMALL_GRAPH = {
    "capital": [],
    "support": ["capital"],
    "prtg": [],
    "onboarding": [],
    "assessment": [],
    "combined": [WILDCARD],
}

DEBOUNCE_S = 0.05


class RecordingEngine(CalculationEngine):
    """Engine that records every compute call and can be told to fail."""

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any], Dict[str, Any]]] = []
        self.contexts: List[CalculationContext] = []
        self.failures: Dict[str, Exception] = {}

    def compute(self, component_type, params, context):
        self.calls.append((component_type, dict(params), dict(context.dependency_results)))
        self.contexts.append(context)
        if component_type in self.failures:
            raise self.failures[component_type]
        return {
            "type": component_type,
            "params": dict(params),
            "inputs": sorted(context.dependency_results),
        }

    @property
    def computed(self) -> List[str]:
        return [c[0] for c in self.calls]

    def reset(self) -> None:
        self.calls.clear()
        self.contexts.clear()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def graph():
    return DependencyGraph.from_definitions(SMALL_GRAPH)


@pytest.fixture
def engine():
    return RecordingEngine()


@pytest.fixture
def config():
    return CalculatorConfig(debounce_ms=50, max_history=50)


@pytest.fixture
def store(graph):
    return QuoteStore(graph.component_types)


@pytest.fixture
def orchestrator(graph, store, engine, clock, config):
    return CalculationOrchestrator(graph, store, engine, clock=clock, config=config)


@pytest.fixture
def enable(store, orchestrator, engine, clock):
    """Enable components and settle their first calculation."""

    def _enable(*component_types: str, settle: bool = True) -> None:
        for t in component_types:
            store.set_component_enabled(t, True)
        if settle:
            clock.advance(DEBOUNCE_S * 2)
            engine.reset()

    return _enable

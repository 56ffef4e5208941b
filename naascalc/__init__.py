"""
naascalc - Calculation orchestration core for the NaaS pricing calculator

Dependency graph, debounced calculation orchestrator and reactive quote
store. Pricing formulas are supplied by the host as a CalculationEngine.
"""

from naascalc.bootstrap import QuoteCalculator, create_quote_calculator, setup_logging
from naascalc.core import CalculatorConfig, QuoteStore
from naascalc.dependencies import DependencyGraph, WILDCARD, build_default_graph
from naascalc.kernel import (
    AsyncioClock,
    CalculationContext,
    CalculationEngine,
    CalculationOrchestrator,
    CalculatorRegistry,
    ManualClock,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncioClock",
    "CalculationContext",
    "CalculationEngine",
    "CalculationOrchestrator",
    "CalculatorConfig",
    "CalculatorRegistry",
    "DependencyGraph",
    "ManualClock",
    "QuoteCalculator",
    "QuoteStore",
    "WILDCARD",
    "build_default_graph",
    "create_quote_calculator",
    "setup_logging",
]

"""
naascalc Bootstrap

Provides:
- QuoteCalculator: assembled graph, store, orchestrator and engine
- create_quote_calculator: calculator over the default catalog
- setup_logging: console/JSON/file logging for host applications
"""

from .app import CalculatorState, QuoteCalculator, create_quote_calculator
from .entrypoints import JSONFormatter, setup_logging

__all__ = [
    "CalculatorState",
    "QuoteCalculator",
    "create_quote_calculator",
    "JSONFormatter",
    "setup_logging",
]

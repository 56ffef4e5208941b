"""
naascalc Calculation Kernel

Provides:
- CalculationOrchestrator: debounced, deduplicated, non-reentrant executor
- CalculationEngine / CalculatorRegistry: pricing engine interface
- Clock implementations for virtual time and asyncio
"""

from .clock import AsyncioClock, Clock, ManualClock, TimerHandle
from .engine import CalculationContext, CalculationEngine, CalculatorRegistry
from .orchestrator import (
    CalculationOrchestrator,
    ComponentOutcome,
    DrainResult,
    OrchestratorState,
    OutcomeStatus,
)

__all__ = [
    # Clock
    "AsyncioClock",
    "Clock",
    "ManualClock",
    "TimerHandle",
    # Engine
    "CalculationContext",
    "CalculationEngine",
    "CalculatorRegistry",
    # Orchestrator
    "CalculationOrchestrator",
    "ComponentOutcome",
    "DrainResult",
    "OrchestratorState",
    "OutcomeStatus",
]

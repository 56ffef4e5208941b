"""
kernel/engine.py - Calculation engine interface

The orchestrator calls compute() once per component type, after every
resolved dependency has a result. Engines are pure and synchronous.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, List, Optional
import logging

from naascalc.core.models import ProjectMetadata
from naascalc.errors import CalculationError, ErrorCode

logger = logging.getLogger(__name__)


@dataclass
class CalculationContext:
    """Inputs available to one compute call beyond the component's params."""
    component_type: str
    dependency_results: Dict[str, Any] = field(default_factory=dict)
    project: ProjectMetadata = field(default_factory=ProjectMetadata)
    enabled_types: FrozenSet[str] = frozenset()
    pass_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def get_result(self, component_type: str, default: Any = None) -> Any:
        return self.dependency_results.get(component_type, default)


class CalculationEngine:
    """Base class for pricing engines."""

    def compute(self, component_type: str, params: Dict[str, Any], context: CalculationContext) -> Any:
        """
        Compute the result for one component.

        Raise CalculationError (or any exception) on failure; the
        orchestrator records it on the component and moves on.
        """
        raise NotImplementedError


Calculator = Callable[[Dict[str, Any], CalculationContext], Any]


class CalculatorRegistry(CalculationEngine):
    """Engine dispatching to one calculator callable per component type."""

    def __init__(self):
        self._calculators: Dict[str, Calculator] = {}

    def register(self, component_type: str, calculator: Calculator) -> None:
        if component_type in self._calculators:
            logger.debug(f"Replacing calculator for {component_type}")
        self._calculators[component_type] = calculator

    def unregister(self, component_type: str) -> bool:
        return self._calculators.pop(component_type, None) is not None

    def has_calculator(self, component_type: str) -> bool:
        return component_type in self._calculators

    def list_calculators(self) -> List[str]:
        return list(self._calculators)

    def compute(self, component_type: str, params: Dict[str, Any], context: CalculationContext) -> Any:
        calculator = self._calculators.get(component_type)
        if calculator is None:
            raise CalculationError(
                component_type,
                f"No calculator registered for {component_type}",
                code=ErrorCode.CALC_NO_CALCULATOR,
            )
        result = calculator(params, context)
        if result is None:
            raise CalculationError(
                component_type,
                f"Calculator for {component_type} returned no result",
                code=ErrorCode.CALC_INVALID_RESULT,
            )
        return result

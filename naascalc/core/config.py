"""
core/config.py - Calculator configuration

Plain constructor parameters; the core reads no environment variables.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict

from .constants import (
    CALCULATION_DEBOUNCE_MS,
    DEFAULT_PRIORITY,
    MAX_CALCULATION_HISTORY_SIZE,
)


@dataclass
class CalculatorConfig:
    """Orchestrator and store tuning."""

    debounce_ms: float = CALCULATION_DEBOUNCE_MS
    default_priority: int = DEFAULT_PRIORITY
    max_history: int = MAX_CALCULATION_HISTORY_SIZE

    def __post_init__(self):
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")
        if self.max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {self.max_history}")

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalculatorConfig":
        return cls(
            debounce_ms=data.get("debounce_ms", CALCULATION_DEBOUNCE_MS),
            default_priority=data.get("default_priority", DEFAULT_PRIORITY),
            max_history=data.get("max_history", MAX_CALCULATION_HISTORY_SIZE),
        )

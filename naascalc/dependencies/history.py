"""
naascalc Calculation History

Bounded record of executed calculations for performance observability.
Oldest entries are evicted once the capacity is reached.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CalculationHistoryEntry:
    """One executed compute call."""
    component_type: str
    duration_ms: float
    succeeded: bool
    timestamp: datetime = field(default_factory=_utcnow)
    pass_id: Optional[str] = None
    error_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_type": self.component_type,
            "duration_ms": round(self.duration_ms, 3),
            "succeeded": self.succeeded,
            "timestamp": self.timestamp.isoformat(),
            "pass_id": self.pass_id,
            "error_code": self.error_code,
        }


class CalculationHistory:
    """Ring buffer of CalculationHistoryEntry."""

    DEFAULT_MAX_ENTRIES = 50

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: Deque[CalculationHistoryEntry] = deque(maxlen=max_entries)
        self._total_recorded = 0

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    @property
    def total_recorded(self) -> int:
        """Entries recorded since creation, including evicted ones."""
        return self._total_recorded

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entry: CalculationHistoryEntry) -> None:
        self._entries.append(entry)
        self._total_recorded += 1

    def get_entries(
        self,
        limit: Optional[int] = None,
        component_type: Optional[str] = None,
    ) -> List[CalculationHistoryEntry]:
        """Most recent entries, oldest first."""
        entries = list(self._entries)
        if component_type is not None:
            entries = [e for e in entries if e.component_type == component_type]
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries

    def clear(self) -> None:
        self._entries.clear()

    def get_summary(self) -> Dict[str, Any]:
        """Aggregate timings over the retained entries."""
        entries = list(self._entries)
        durations = [e.duration_ms for e in entries]

        by_component: Dict[str, Dict[str, Any]] = {}
        for e in entries:
            stats = by_component.setdefault(
                e.component_type,
                {"count": 0, "failures": 0, "total_ms": 0.0},
            )
            stats["count"] += 1
            stats["total_ms"] += e.duration_ms
            if not e.succeeded:
                stats["failures"] += 1

        for stats in by_component.values():
            stats["average_ms"] = stats["total_ms"] / stats["count"]

        return {
            "entries": len(entries),
            "total_recorded": self._total_recorded,
            "succeeded": sum(1 for e in entries if e.succeeded),
            "failed": sum(1 for e in entries if not e.succeeded),
            "average_duration_ms": sum(durations) / len(durations) if durations else 0.0,
            "max_duration_ms": max(durations) if durations else 0.0,
            "by_component": by_component,
        }

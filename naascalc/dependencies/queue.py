"""
naascalc Calculation Queue

Pending calculation tasks, keyed by component type.

At most one task exists per component type: scheduling a type that is
already pending updates the existing task in place (priority, immediate flag,
request time and debounce deadline) instead of adding a duplicate. The queue
itself is unordered; execution order is computed when it is drained.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# SCHEDULED TASK
# =============================================================================

@dataclass
class ScheduledTask:
    """A pending request to recalculate one component type."""
    component_type: str
    priority: int = 0  # Higher = more urgent
    requested_at: float = 0.0  # Clock time of the most recent schedule call
    immediate: bool = False
    deadline: float = 0.0  # Clock time at which the debounce window elapses
    source: str = "user"
    sequence: int = 0  # Bumped on every coalesced re-schedule

    def __lt__(self, other: "ScheduledTask") -> bool:
        if self.priority != other.priority:
            return self.priority > other.priority
        return self.requested_at < other.requested_at

    def is_due(self, now: float) -> bool:
        return self.deadline <= now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_type": self.component_type,
            "priority": self.priority,
            "requested_at": self.requested_at,
            "immediate": self.immediate,
            "deadline": self.deadline,
            "source": self.source,
        }


# =============================================================================
# CALCULATION QUEUE
# =============================================================================

class CalculationQueue:
    """Deduplicated set of pending ScheduledTasks."""

    def __init__(self):
        self._tasks: Dict[str, ScheduledTask] = {}
        self._sequence = 0
        self._coalesced_count = 0

    def schedule(
        self,
        component_type: str,
        now: float,
        debounce: float,
        priority: int = 0,
        immediate: bool = False,
        source: str = "user",
        propagated: bool = False,
    ) -> ScheduledTask:
        """
        Create or coalesce the task for component_type.

        Args:
            component_type: Type to recalculate
            now: Current clock time
            debounce: Debounce window in clock units
            priority: Requested priority
            immediate: Skip the remaining debounce wait
            source: Who asked ("user", "dependency", "project", ...)
            propagated: Request comes from dirty propagation; it never lowers
                an existing task's priority nor clears its immediate flag

        Returns:
            The pending task (new or updated)
        """
        self._sequence += 1
        task = self._tasks.get(component_type)

        if task is None:
            task = ScheduledTask(component_type=component_type, source=source)
            self._tasks[component_type] = task
            logger.debug(f"Queued {component_type} (priority={priority}, source={source})")
        else:
            self._coalesced_count += 1
            if propagated:
                priority = max(task.priority, priority)
                immediate = task.immediate or immediate
            else:
                task.source = source
            logger.debug(f"Coalesced {component_type} (priority={priority}, source={source})")

        task.priority = priority
        task.immediate = immediate
        task.requested_at = now
        task.deadline = now if immediate else now + debounce
        task.sequence = self._sequence
        return task

    def get(self, component_type: str) -> Optional[ScheduledTask]:
        return self._tasks.get(component_type)

    def __contains__(self, component_type: object) -> bool:
        return component_type in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def is_empty(self) -> bool:
        return not self._tasks

    @property
    def pending_types(self) -> List[str]:
        return list(self._tasks)

    @property
    def coalesced_count(self) -> int:
        """Schedule calls absorbed into an already pending task."""
        return self._coalesced_count

    def get_pending(self) -> List[ScheduledTask]:
        """Pending tasks, most urgent first (without removing them)."""
        return sorted(replace(t) for t in self._tasks.values())

    def next_deadline(self) -> Optional[float]:
        if not self._tasks:
            return None
        return min(t.deadline for t in self._tasks.values())

    def snapshot(self, now: Optional[float] = None) -> Dict[str, ScheduledTask]:
        """
        Copy pending tasks for a drain pass.

        Args:
            now: If given, only tasks whose debounce window has elapsed
        """
        return {
            t.component_type: replace(t)
            for t in self._tasks.values()
            if now is None or t.is_due(now)
        }

    def consume(self, tasks: Iterable[ScheduledTask]) -> int:
        """
        Remove the given snapshot tasks.

        A task that was re-scheduled after the snapshot was taken is kept,
        so requests arriving during a pass are not lost.
        """
        count = 0
        for snap in tasks:
            current = self._tasks.get(snap.component_type)
            if current is not None and current.sequence == snap.sequence:
                del self._tasks[snap.component_type]
                count += 1
        return count

    def discard(self, component_type: str) -> bool:
        return self._tasks.pop(component_type, None) is not None

    def clear(self) -> int:
        """Clear all pending tasks. Returns count cleared."""
        count = len(self._tasks)
        self._tasks.clear()
        return count

    def get_stats(self) -> Dict[str, Any]:
        return {
            "pending_count": len(self._tasks),
            "pending_types": list(self._tasks),
            "coalesced_count": self._coalesced_count,
        }

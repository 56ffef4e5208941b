"""
kernel/orchestrator.py - Calculation orchestrator

Debounced, deduplicated, prioritized and non-reentrant recalculation of
component results.

Lifecycle of a drain cycle: IDLE -> DEBOUNCING -> PROCESSING -> IDLE.
Requests within a debounce window collapse into one task per component
type; when the window elapses a single pass computes every affected type
in dependency order and writes results back to the store.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from heapq import heappop, heappush
from typing import Any, Dict, List, Optional, Set, Tuple, TYPE_CHECKING
import asyncio
import logging
import time
import uuid

from naascalc.core.config import CalculatorConfig
from naascalc.dependencies.graph import WILDCARD
from naascalc.dependencies.history import CalculationHistory, CalculationHistoryEntry
from naascalc.dependencies.queue import CalculationQueue, ScheduledTask
from naascalc.errors import (
    CycleDetectedError,
    ErrorCategory,
    ErrorCode,
    ErrorInfo,
    UnknownComponentError,
    error_info_from_exception,
)

from .clock import Clock, ManualClock, TimerHandle
from .engine import CalculationContext, CalculationEngine, CalculatorRegistry

if TYPE_CHECKING:
    from naascalc.core.store import QuoteStore
    from naascalc.dependencies.graph import DependencyGraph

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# STATE AND RESULTS
# =============================================================================

class OrchestratorState(Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    PROCESSING = "processing"


class OutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ComponentOutcome:
    """What happened to one component type during a pass."""
    component_type: str
    status: OutcomeStatus
    duration_ms: float = 0.0
    error: Optional[ErrorInfo] = None
    skip_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_type": self.component_type,
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 3),
            "error": self.error.to_dict() if self.error else None,
            "skip_reason": self.skip_reason,
        }


@dataclass
class DrainResult:
    """Result of one processing pass."""
    pass_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None

    order: List[str] = field(default_factory=list)
    outcomes: Dict[str, ComponentOutcome] = field(default_factory=dict)
    consumed_disabled: List[str] = field(default_factory=list)

    sort_time_ms: float = 0.0
    duration_ms: float = 0.0

    def _with_status(self, status: OutcomeStatus) -> List[str]:
        return [t for t in self.order if t in self.outcomes and self.outcomes[t].status == status]

    @property
    def succeeded(self) -> List[str]:
        return self._with_status(OutcomeStatus.SUCCEEDED)

    @property
    def failed(self) -> List[str]:
        return self._with_status(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def success(self) -> bool:
        return not self.failed and not self.skipped

    def get_summary(self) -> Dict[str, Any]:
        return {
            "pass_id": self.pass_id,
            "success": self.success,
            "total": len(self.order),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "sort_time_ms": round(self.sort_time_ms, 3),
            "duration_ms": round(self.duration_ms, 3),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pass_id": self.pass_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "order": list(self.order),
            "outcomes": {t: o.to_dict() for t, o in self.outcomes.items()},
            "consumed_disabled": list(self.consumed_disabled),
            "sort_time_ms": round(self.sort_time_ms, 3),
            "duration_ms": round(self.duration_ms, 3),
        }


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class CalculationOrchestrator:
    """
    Schedules and executes component calculations.

    Timers come from the injected Clock. With the default ManualClock the
    host drives time with clock.advance() or calls
    process_calculation_queue() directly.
    """

    def __init__(
        self,
        graph: "DependencyGraph",
        store: "QuoteStore",
        engine: Optional[CalculationEngine] = None,
        clock: Optional[Clock] = None,
        config: Optional[CalculatorConfig] = None,
    ):
        graph.ensure_valid()

        self.graph = graph
        self.store = store
        self.engine = engine or CalculatorRegistry()
        self.clock = clock or ManualClock()
        self.config = config or CalculatorConfig()

        self._queue = CalculationQueue()
        self._history = CalculationHistory(self.config.max_history)

        self._processing = False
        self._timer: Optional[TimerHandle] = None
        self._timer_deadline: Optional[float] = None
        self._idle_waiters: List[asyncio.Event] = []

        # Metrics
        self._schedule_calls = 0
        self._pass_count = 0
        self._reentrant_calls = 0
        self._total_sorts = 0
        self._total_sort_time_ms = 0.0
        self._last_sort_time_ms = 0.0
        self._last_result: Optional[DrainResult] = None

        store.set_scheduler(self)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> OrchestratorState:
        if self._processing:
            return OrchestratorState.PROCESSING
        if not self._queue.is_empty:
            return OrchestratorState.DEBOUNCING
        return OrchestratorState.IDLE

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def is_idle(self) -> bool:
        return not self._processing and self._queue.is_empty

    @property
    def last_result(self) -> Optional[DrainResult]:
        return self._last_result

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def schedule_calculation(
        self,
        component_type: str,
        priority: Optional[int] = None,
        immediate: bool = False,
        source: str = "user",
    ) -> Set[str]:
        """
        Request recalculation of component_type and its enabled dependents.

        Args:
            component_type: Type whose inputs changed
            priority: Higher runs earlier among ready types (default from config)
            immediate: Drop the debounce wait for this type
            source: Who asked, recorded on the task

        Returns:
            Every type that now has a pending task because of this call
        """
        self.graph.ensure_valid()
        if component_type not in self.graph:
            raise UnknownComponentError(component_type)

        if priority is None:
            priority = self.config.default_priority
        now = self.clock.monotonic()
        debounce = self.config.debounce_seconds

        self._schedule_calls += 1
        self._queue.schedule(component_type, now, debounce, priority, immediate, source)
        scheduled = {component_type}

        enabled = self.store.get_enabled_types()
        for dependent in sorted(self.graph.get_dependents(component_type), key=self.graph.get_index):
            if dependent not in enabled:
                continue
            self._queue.schedule(
                dependent, now, debounce, priority,
                immediate=False, source="dependency", propagated=True,
            )
            scheduled.add(dependent)

        self.store.mark_dirty(scheduled)
        logger.debug(
            f"Scheduled {component_type} (priority={priority}, immediate={immediate}, "
            f"source={source}) with {len(scheduled) - 1} dependent(s)"
        )
        self._arm_timer()
        return scheduled

    def _arm_timer(self) -> None:
        # A running pass re-arms when it ends
        if self._processing:
            return

        deadline = self._queue.next_deadline()
        if deadline is None:
            self._cancel_timer()
            return
        if self._timer is not None and self._timer_deadline == deadline:
            return

        self._cancel_timer()
        delay = max(0.0, deadline - self.clock.monotonic())
        self._timer = self.clock.call_later(delay, lambda: self._on_timer(deadline))
        self._timer_deadline = deadline

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._timer_deadline = None

    def _on_timer(self, deadline: float) -> None:
        self._timer = None
        self._timer_deadline = None
        # Clock rounding must not leave the task that armed this timer undue
        self._drain(max(self.clock.monotonic(), deadline))

    # =========================================================================
    # PROCESSING
    # =========================================================================

    def process_calculation_queue(self, only_due: bool = False) -> Optional[DrainResult]:
        """
        Drain pending tasks in one pass.

        Args:
            only_due: Only take tasks whose debounce window has elapsed

        Returns:
            DrainResult, or None when a pass is already running or there
            is nothing to drain
        """
        return self._drain(self.clock.monotonic() if only_due else None)

    def _drain(self, due_at: Optional[float]) -> Optional[DrainResult]:
        if self._processing:
            self._reentrant_calls += 1
            logger.debug("Calculation pass already running, request stays queued")
            return None

        snapshot = self._queue.snapshot(due_at)
        if not snapshot:
            self._arm_timer()
            return None

        self._cancel_timer()
        # Pending tasks stay queued without a timer until the graph is fixed
        # and something is scheduled again
        self.graph.ensure_valid()

        self._processing = True
        completed = False
        try:
            result = self._run_pass(snapshot)
            completed = True
        finally:
            self._processing = False
            if completed:
                self._arm_timer()
            else:
                logger.error(f"Calculation pass aborted with {len(self._queue)} task(s) pending")
            self._signal_if_idle()
        return result

    def _build_plan(self, snapshot: Dict[str, ScheduledTask], enabled: Set[str]) -> Tuple[Set[str], List[str]]:
        """Types to compute this pass, and disabled snapshot types consumed without computing."""
        plan: Set[str] = set()
        disabled: List[str] = []

        for t in snapshot:
            if t in enabled:
                plan.add(t)
            else:
                disabled.append(t)
            plan.update(d for d in self.graph.get_dependents(t) if d in enabled)

        # Pull in upstream dependencies without a fresh result
        to_process = list(plan)
        while to_process:
            current = to_process.pop()
            for dep in self.graph.resolve_dependencies(current, enabled):
                if dep in plan or dep not in enabled:
                    continue
                if not self.store.get_component(dep).is_fresh:
                    plan.add(dep)
                    to_process.append(dep)

        disabled.sort(key=self.graph.get_index)
        return plan, disabled

    def _order_plan(
        self,
        plan: Set[str],
        enabled: Set[str],
        snapshot: Dict[str, ScheduledTask],
    ) -> List[str]:
        """Kahn's algorithm over resolved edges; ready ties by priority, then registration order."""
        deps_of = {t: self.graph.resolve_dependencies(t, enabled) & plan for t in plan}
        consumers: Dict[str, Set[str]] = {t: set() for t in plan}
        for t, deps in deps_of.items():
            for d in deps:
                consumers[d].add(t)

        def key(t: str) -> Tuple[int, int, str]:
            task = snapshot.get(t)
            priority = task.priority if task is not None else self.config.default_priority
            return (-priority, self.graph.get_index(t), t)

        in_degree = {t: len(deps) for t, deps in deps_of.items()}
        ready: List[Tuple[int, int, str]] = []
        for t, degree in in_degree.items():
            if degree == 0:
                heappush(ready, key(t))

        order: List[str] = []
        while ready:
            current = heappop(ready)[2]
            order.append(current)
            for consumer in consumers[current]:
                in_degree[consumer] -= 1
                if in_degree[consumer] == 0:
                    heappush(ready, key(consumer))

        if len(order) < len(plan):
            raise CycleDetectedError(sorted(plan - set(order), key=self.graph.get_index))
        return order

    def _run_pass(self, snapshot: Dict[str, ScheduledTask]) -> DrainResult:
        pass_id = uuid.uuid4().hex[:8]
        result = DrainResult(pass_id=pass_id, started_at=_utcnow())
        pass_start = time.perf_counter()

        pending_at_start = self._queue.snapshot()
        enabled = self.store.get_enabled_types()
        plan, disabled = self._build_plan(snapshot, enabled)
        result.consumed_disabled = disabled

        sort_start = time.perf_counter()
        order = self._order_plan(plan, enabled, snapshot)
        result.sort_time_ms = (time.perf_counter() - sort_start) * 1000
        result.order = order
        self._total_sorts += 1
        self._total_sort_time_ms += result.sort_time_ms
        self._last_sort_time_ms = result.sort_time_ms

        logger.debug(f"Pass {pass_id}: order {order}, disabled {disabled}")

        project = self.store.get_project()
        blocked: Set[str] = set()

        for t in order:
            outcome = self._execute_single(t, enabled, blocked, project, pass_id)
            result.outcomes[t] = outcome
            if outcome.status != OutcomeStatus.SUCCEEDED:
                blocked.add(t)

        # Tasks re-scheduled during the pass keep their newer sequence and survive
        self._queue.consume(
            task for t, task in pending_at_start.items()
            if t in plan or t in snapshot
        )

        result.completed_at = _utcnow()
        result.duration_ms = (time.perf_counter() - pass_start) * 1000
        self._pass_count += 1
        self._last_result = result

        logger.info(
            f"Calculation pass {pass_id} complete: "
            f"{len(result.succeeded)} succeeded, "
            f"{len(result.failed)} failed, "
            f"{len(result.skipped)} skipped in {result.duration_ms:.1f}ms"
        )
        return result

    def _skip(self, component_type: str, reason: str) -> ComponentOutcome:
        """Outcome for a type left dirty because an input has no result this pass."""
        logger.debug(f"Skipping {component_type}: {reason}")
        error = ErrorInfo(
            code=ErrorCode.DEP_MISSING_RESULT,
            category=ErrorCategory.DEPENDENCY,
            message=f"{component_type} skipped, {reason}",
            component_type=component_type,
        )
        return ComponentOutcome(component_type, OutcomeStatus.SKIPPED, error=error, skip_reason=reason)

    def _execute_single(
        self,
        component_type: str,
        enabled: Set[str],
        blocked: Set[str],
        project: Any,
        pass_id: str,
    ) -> ComponentOutcome:
        """Compute one type and write the outcome to the store."""
        static_deps = [d for d in self.graph.get_dependencies(component_type) if d != WILDCARD]
        disabled_deps = [d for d in static_deps if d not in enabled]
        if disabled_deps:
            error = ErrorInfo(
                code=ErrorCode.DEP_DISABLED,
                category=ErrorCategory.DEPENDENCY,
                message=f"{component_type} requires {', '.join(disabled_deps)} to be enabled",
                component_type=component_type,
            )
            logger.warning(error.message)
            self.store.set_error(component_type, error)
            return ComponentOutcome(component_type, OutcomeStatus.FAILED, error=error)

        resolved = sorted(self.graph.resolve_dependencies(component_type, enabled), key=self.graph.get_index)
        failed_deps = [d for d in resolved if d in blocked]
        if failed_deps:
            return self._skip(component_type, f"dependency not computed: {', '.join(failed_deps)}")

        dependency_results: Dict[str, Any] = {}
        for dep in resolved:
            value = self.store.get_result(dep)
            if value is None:
                return self._skip(component_type, f"missing result for {dep}")
            dependency_results[dep] = value

        context = CalculationContext(
            component_type=component_type,
            dependency_results=dependency_results,
            project=project,
            enabled_types=frozenset(enabled),
            pass_id=pass_id,
        )
        params = self.store.get_params(component_type)

        start = time.perf_counter()
        try:
            value = self.engine.compute(component_type, params, context)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            error = error_info_from_exception(component_type, e)
            logger.error(f"Calculation failed for {component_type}: {e}")
            self._history.record(CalculationHistoryEntry(
                component_type=component_type,
                duration_ms=duration_ms,
                succeeded=False,
                pass_id=pass_id,
                error_code=error.code.value,
            ))
            self.store.set_error(component_type, error)
            return ComponentOutcome(component_type, OutcomeStatus.FAILED, duration_ms=duration_ms, error=error)

        duration_ms = (time.perf_counter() - start) * 1000
        self._history.record(CalculationHistoryEntry(
            component_type=component_type,
            duration_ms=duration_ms,
            succeeded=True,
            pass_id=pass_id,
        ))
        self.store.set_result(component_type, value)
        return ComponentOutcome(component_type, OutcomeStatus.SUCCEEDED, duration_ms=duration_ms)

    # =========================================================================
    # CONTROL
    # =========================================================================

    def clear_queue(self) -> int:
        """Discard all pending tasks. Returns count cleared."""
        count = self._queue.clear()
        self._cancel_timer()
        if count:
            logger.info(f"Cleared {count} pending calculation(s)")
        self._signal_if_idle()
        return count

    async def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the queue is empty and no pass is running.

        Returns False if the timeout elapsed first.
        """
        if self.is_idle:
            return True

        event = asyncio.Event()
        self._idle_waiters.append(event)
        try:
            await asyncio.wait_for(event.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False
        finally:
            if event in self._idle_waiters:
                self._idle_waiters.remove(event)

    def _signal_if_idle(self) -> None:
        if self.is_idle:
            for event in self._idle_waiters:
                event.set()

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def get_pending(self) -> List[ScheduledTask]:
        return self._queue.get_pending()

    def get_calculation_history(self, limit: Optional[int] = None) -> List[CalculationHistoryEntry]:
        return self._history.get_entries(limit=limit)

    def get_performance_metrics(self) -> Dict[str, Any]:
        summary = self._history.get_summary()
        return {
            "total_calculations": self._history.total_recorded,
            "history_size": summary["entries"],
            "history_capacity": self._history.capacity,
            "succeeded": summary["succeeded"],
            "failed": summary["failed"],
            "average_calculation_ms": summary["average_duration_ms"],
            "max_calculation_ms": summary["max_duration_ms"],
            "by_component": summary["by_component"],
            "total_sorts": self._total_sorts,
            "average_sort_time_ms": (
                self._total_sort_time_ms / self._total_sorts if self._total_sorts else 0.0
            ),
            "last_sort_time_ms": self._last_sort_time_ms,
            "passes": self._pass_count,
        }

    def get_stats(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "is_processing": self._processing,
            "schedule_calls": self._schedule_calls,
            "passes": self._pass_count,
            "reentrant_calls": self._reentrant_calls,
            "timer_armed": self._timer is not None,
            "next_deadline": self._queue.next_deadline(),
            **self._queue.get_stats(),
        }

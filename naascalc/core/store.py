"""
core/store.py - Reactive quote state store

Single owner of project metadata and component state. Every committed
mutation bumps the version, schedules recalculation of the affected
component types and notifies subscribers with a post-mutation snapshot.

The orchestrator writes back only through set_result() and set_error().
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, TYPE_CHECKING
import json
import logging

from naascalc.errors import ErrorInfo, ListenerError, UnknownComponentError

from .business_rules import BusinessRules
from .constants import DATA_VERSION
from .models import ChangeKind, Component, ProjectMetadata, StoreChange, StoreSnapshot
from .updates import parse_component_update, parse_project_update

if TYPE_CHECKING:
    from naascalc.kernel.orchestrator import CalculationOrchestrator

logger = logging.getLogger(__name__)

Listener = Callable[[StoreChange], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuoteStore:
    """
    Project and component state with a mutation/notify contract.

    Mutations are synchronous and applied in call order. Listener
    failures are logged and counted, never propagated to the mutator.
    """

    def __init__(
        self,
        component_types: Iterable[str],
        rules: Optional[BusinessRules] = None,
        scheduler: Optional["CalculationOrchestrator"] = None,
    ):
        self._component_types: List[str] = list(dict.fromkeys(component_types))
        self.rules = rules or BusinessRules()
        self._scheduler = scheduler

        self._project = ProjectMetadata()
        self._components: Dict[str, Component] = {
            t: Component(component_type=t) for t in self._component_types
        }
        self._version = 0
        self._last_update: Optional[datetime] = None

        self._listeners: List[Listener] = []
        self._pending: List[StoreChange] = []
        self._notifying = False
        self._listener_errors = 0
        self._last_listener_error: Optional[ListenerError] = None

    def set_scheduler(self, scheduler: Optional["CalculationOrchestrator"]) -> None:
        self._scheduler = scheduler

    # =========================================================================
    # READ ACCESSORS
    # =========================================================================

    @property
    def version(self) -> int:
        return self._version

    @property
    def component_types(self) -> List[str]:
        return list(self._component_types)

    def has_component(self, component_type: str) -> bool:
        return component_type in self._components

    def get_project(self) -> ProjectMetadata:
        return ProjectMetadata(**self._project.to_dict())

    def get_component(self, component_type: str) -> Component:
        return self._require(component_type).copy()

    def get_all_components(self) -> Dict[str, Component]:
        return {t: c.copy() for t, c in self._components.items()}

    def get_enabled_types(self) -> Set[str]:
        return {t for t, c in self._components.items() if c.enabled}

    def get_enabled_components(self) -> Dict[str, Component]:
        return {t: c.copy() for t, c in self._components.items() if c.enabled}

    def get_params(self, component_type: str) -> Dict[str, Any]:
        return dict(self._require(component_type).params)

    def get_result(self, component_type: str) -> Optional[Any]:
        return self._require(component_type).result

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            version=self._version,
            project=self.get_project(),
            components=self.get_all_components(),
        )

    def _require(self, component_type: str) -> Component:
        comp = self._components.get(component_type)
        if comp is None:
            raise UnknownComponentError(component_type)
        return comp

    # =========================================================================
    # USER MUTATIONS
    # =========================================================================

    def update_project(self, partial: Mapping[str, Any]) -> ProjectMetadata:
        """Validate and merge project fields, then recalculate every enabled component."""
        fields = parse_project_update(partial)
        for name, value in fields.items():
            setattr(self._project, name, value)
        self._commit()

        affected = sorted(self.get_enabled_types(), key=self._component_types.index)
        self._schedule(affected, source="project")
        self._notify(ChangeKind.PROJECT, ())
        return self.get_project()

    def update_component(self, component_type: str, partial: Mapping[str, Any]) -> Component:
        """
        Validate and apply a partial component update.

        Business rules run in the same commit, so subscribers never observe
        an intermediate state where an exclusive peer is still enabled.
        """
        comp = self._require(component_type)
        fields = parse_component_update(partial)

        affected: Set[str] = {component_type}
        if "enabled" in fields:
            comp.enabled = fields["enabled"]
            affected |= self.rules.apply(component_type, comp.enabled, self._components)
        if "params" in fields:
            comp.params = fields["params"]

        ordered = sorted(affected, key=self._component_types.index)
        for t in ordered:
            # Only enabled types are recomputed
            self._components[t].dirty = self._components[t].enabled
        self._commit()

        self._schedule(ordered, source="user")
        self._notify(ChangeKind.COMPONENT, tuple(ordered))
        return comp.copy()

    def update_component_params(self, component_type: str, params: Mapping[str, Any]) -> Component:
        """Merge params into the component's existing params."""
        current = self._require(component_type).params
        return self.update_component(component_type, {"params": {**current, **dict(params)}})

    def set_component_enabled(self, component_type: str, enabled: bool) -> Component:
        return self.update_component(component_type, {"enabled": enabled})

    def reset_component(self, component_type: str) -> Component:
        """Restore one component to its defaults."""
        self._require(component_type)
        self._components[component_type] = Component(component_type=component_type)
        self._commit()

        self._schedule([component_type], source="reset")
        self._notify(ChangeKind.RESET, (component_type,))
        return self._components[component_type].copy()

    def reset(self) -> None:
        """Restore the project and every component to defaults."""
        self._project = ProjectMetadata()
        self._components = {t: Component(component_type=t) for t in self._component_types}
        self._commit()
        self._notify(ChangeKind.RESET, tuple(self._component_types))

    # =========================================================================
    # ORCHESTRATOR WRITE PATH
    # =========================================================================

    def mark_dirty(self, component_types: Iterable[str]) -> None:
        """Flag enabled types as awaiting recalculation. Disabled and unknown types are ignored."""
        for t in component_types:
            comp = self._components.get(t)
            if comp is not None and comp.enabled:
                comp.dirty = True

    def set_result(self, component_type: str, result: Any) -> None:
        comp = self._require(component_type)
        comp.result = result
        comp.error = None
        comp.dirty = False
        comp.last_computed_at = _utcnow()
        self._commit()
        self._notify(ChangeKind.RESULT, (component_type,))

    def set_error(self, component_type: str, error: ErrorInfo) -> None:
        comp = self._require(component_type)
        comp.result = None
        comp.error = error
        comp.dirty = False
        comp.last_computed_at = _utcnow()
        self._commit()
        self._notify(ChangeKind.ERROR, (component_type,))

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _commit(self) -> None:
        self._version += 1
        self._last_update = _utcnow()

    def _schedule(self, component_types: List[str], source: str) -> None:
        if self._scheduler is None:
            return
        for t in component_types:
            self._scheduler.schedule_calculation(t, source=source)

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def listener_error_count(self) -> int:
        return self._listener_errors

    @property
    def last_listener_error(self) -> Optional[ListenerError]:
        return self._last_listener_error

    def _notify(self, kind: ChangeKind, component_types: tuple) -> None:
        # Changes raised from inside a listener are delivered after the current round
        self._pending.append(StoreChange(
            kind=kind,
            component_types=component_types,
            version=self._version,
            snapshot=self.snapshot(),
        ))
        if self._notifying:
            return

        self._notifying = True
        try:
            while self._pending:
                change = self._pending.pop(0)
                for listener in list(self._listeners):
                    try:
                        listener(change)
                    except Exception as e:
                        error = ListenerError(listener, e)
                        self._listener_errors += 1
                        self._last_listener_error = error
                        logger.error(f"{error} (change={change.kind.value}, version={change.version})")
        finally:
            self._notifying = False

    # =========================================================================
    # HEALTH
    # =========================================================================

    def get_health_status(self) -> Dict[str, Any]:
        """Diagnostic summary of the store."""
        components = self._components.values()
        data = self.snapshot().to_dict()
        raw_bytes = len(json.dumps(data, default=str))
        return {
            "data_version": DATA_VERSION,
            "store_version": self._version,
            "has_data": bool(self._project.project_name) or any(c.enabled for c in components),
            "component_count": len(self._components),
            "enabled_count": sum(1 for c in components if c.enabled),
            "dirty_count": sum(1 for c in components if c.dirty),
            "error_count": sum(1 for c in components if c.error is not None),
            "listener_count": len(self._listeners),
            "listener_errors": self._listener_errors,
            "pending_notifications": len(self._pending),
            "last_update": self._last_update.isoformat() if self._last_update else None,
            "memory_usage": {
                "data_size": f"{round(raw_bytes / 1024)} KB",
                "raw_bytes": raw_bytes,
            },
        }

"""
core/models.py - Store data model

Component and project state owned by QuoteStore, plus the change
descriptors delivered to store subscribers.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import copy

from naascalc.errors import ErrorInfo

from .constants import DEFAULT_COMPLEXITY, DEFAULT_TIMELINE, DEFAULT_USER_COUNT, MIN_SITES


@dataclass
class ProjectMetadata:
    """Quote-level fields shared by every component calculation."""
    project_name: str = ""
    customer_name: str = ""
    timeline: str = DEFAULT_TIMELINE
    budget: str = ""
    sites: int = MIN_SITES
    primary_location: str = ""
    total_users: int = DEFAULT_USER_COUNT
    complexity: str = DEFAULT_COMPLEXITY

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Component:
    """State of one pricing component."""
    component_type: str
    enabled: bool = False
    params: Dict[str, Any] = field(default_factory=dict)
    result: Optional[Any] = None
    dirty: bool = False
    error: Optional[ErrorInfo] = None
    last_computed_at: Optional[datetime] = None

    @property
    def has_result(self) -> bool:
        return self.result is not None

    @property
    def is_fresh(self) -> bool:
        """Has a result that reflects the current params."""
        return self.result is not None and not self.dirty and self.error is None

    def copy(self) -> "Component":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_type": self.component_type,
            "enabled": self.enabled,
            "params": copy.deepcopy(self.params),
            "result": copy.deepcopy(self.result),
            "dirty": self.dirty,
            "error": self.error.to_dict() if self.error else None,
            "last_computed_at": self.last_computed_at.isoformat() if self.last_computed_at else None,
        }


class ChangeKind(Enum):
    """What kind of commit triggered a notification."""
    PROJECT = "project"
    COMPONENT = "component"
    RESULT = "result"
    ERROR = "error"
    RESET = "reset"


@dataclass(frozen=True)
class StoreSnapshot:
    """Post-mutation copy of the store contents."""
    version: int
    project: ProjectMetadata
    components: Dict[str, Component]

    @property
    def enabled_types(self) -> List[str]:
        return [t for t, c in self.components.items() if c.enabled]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "project": self.project.to_dict(),
            "components": {t: c.to_dict() for t, c in self.components.items()},
        }


@dataclass(frozen=True)
class StoreChange:
    """Change descriptor passed to store listeners."""
    kind: ChangeKind
    component_types: Tuple[str, ...]
    version: int
    snapshot: StoreSnapshot

"""
naascalc Dependency Engine

Provides:
- DependencyGraph: DAG of component dependencies with wildcard resolution
- CalculationQueue: Deduplicated pending calculation tasks
- CalculationHistory: Bounded record of executed calculations
- Default component catalog and business rule tables
"""

from .graph import (
    DependencyGraph,
    ComponentNode,
    DependencyEdge,
    EdgeType,
    GraphViolation,
    ViolationKind,
    RelationshipReport,
    WILDCARD,
)
from .queue import (
    CalculationQueue,
    ScheduledTask,
)
from .history import (
    CalculationHistory,
    CalculationHistoryEntry,
)
from .catalog import (
    COMPONENT_CATALOG,
    COMPONENT_DEPENDENCIES,
    EXCLUSIVE_GROUPS,
    PREREQUISITES,
    build_default_graph,
)

__all__ = [
    # Graph
    "DependencyGraph",
    "ComponentNode",
    "DependencyEdge",
    "EdgeType",
    "GraphViolation",
    "ViolationKind",
    "RelationshipReport",
    "WILDCARD",
    # Queue
    "CalculationQueue",
    "ScheduledTask",
    # History
    "CalculationHistory",
    "CalculationHistoryEntry",
    # Catalog
    "COMPONENT_CATALOG",
    "COMPONENT_DEPENDENCIES",
    "EXCLUSIVE_GROUPS",
    "PREREQUISITES",
    "build_default_graph",
]

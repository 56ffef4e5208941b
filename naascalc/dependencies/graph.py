"""
naascalc Dependency Graph

Defines the directed acyclic graph of component dependencies. A component
type may only be calculated once every component it depends on has a result.

Two kinds of dependency exist:
- DIRECT: a fixed edge to another registered component type
- WILDCARD: "every other enabled component", resolved against the live
  enabled set at drain time and never stored as static edges
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from heapq import heappush, heappop
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple
import logging

from naascalc.errors import CycleDetectedError, NaasCalcError, UnknownComponentError

logger = logging.getLogger(__name__)


WILDCARD = "*"


# =============================================================================
# EDGE AND VIOLATION TYPES
# =============================================================================

class EdgeType(Enum):
    """Type of dependency relationship."""
    DIRECT = "direct"        # Reads one named component's result
    WILDCARD = "wildcard"    # Reads every other enabled component's result


class ViolationKind(Enum):
    """Kind of structural problem found by validate()."""
    CYCLE = "cycle"
    UNKNOWN_REFERENCE = "unknown_reference"


# =============================================================================
# NODES AND EDGES
# =============================================================================

@dataclass
class ComponentNode:
    """A node in the dependency graph representing a component type."""
    component_type: str
    index: int  # Registration order, used for deterministic tie-breaking

    category: str = ""
    description: str = ""
    display_name: str = ""
    provides: List[str] = field(default_factory=list)
    requires: Dict[str, List[str]] = field(default_factory=dict)

    depends_on: Set[str] = field(default_factory=set)
    depended_by: Set[str] = field(default_factory=set)
    wildcard: bool = False

    def __hash__(self):
        return hash(self.component_type)


@dataclass(frozen=True)
class DependencyEdge:
    """An edge in the dependency graph: dependent reads dependency's result."""
    dependent: str
    dependency: str
    edge_type: EdgeType = EdgeType.DIRECT


@dataclass
class GraphViolation:
    """A structural problem reported by DependencyGraph.validate()."""
    kind: ViolationKind
    nodes: List[str]
    message: str

    def to_exception(self) -> NaasCalcError:
        if self.kind == ViolationKind.CYCLE:
            return CycleDetectedError(self.nodes)
        return UnknownComponentError(self.nodes[-1], referenced_by=self.nodes[0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "nodes": list(self.nodes),
            "message": self.message,
        }


@dataclass
class RelationshipReport:
    """Result of checking enabled components against their dependencies."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


# =============================================================================
# DEPENDENCY GRAPH
# =============================================================================

class DependencyGraph:
    """
    Directed acyclic graph of component dependencies.

    Nodes keep their registration order; it breaks ties wherever several
    components are ready at the same time, so orderings are deterministic.
    The topological order and levels are cached until the graph changes.
    """

    def __init__(self):
        self._nodes: Dict[str, ComponentNode] = {}
        self._edges: Dict[Tuple[str, str], DependencyEdge] = {}
        self._dangling: Dict[str, List[str]] = {}

        self._order: Optional[List[str]] = None
        self._levels: Dict[str, int] = {}
        self._violations: Optional[List[GraphViolation]] = None
        self._static_dependents: Dict[str, Set[str]] = {}
        self._holder_consumers: Optional[Set[str]] = None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_definitions(
        cls,
        dependencies: Mapping[str, Sequence[str]],
        components: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> "DependencyGraph":
        """
        Build a graph from declarative tables.

        Declarations are loaded without checks so that every problem can be
        reported at once by validate().

        Args:
            dependencies: component type -> list of dependencies (or WILDCARD)
            components: optional component type -> node metadata
        """
        graph = cls()

        for component_type, meta in (components or {}).items():
            graph.register_component(component_type, **dict(meta))
        for component_type in dependencies:
            graph.register_component(component_type)

        for component_type, depends_on in dependencies.items():
            graph.register_dependency(component_type, depends_on, check=False)

        violations = graph.validate()
        logger.info(
            f"Dependency graph built: {len(graph._nodes)} components, "
            f"{len(graph._edges)} edges, {len(violations)} violations"
        )
        return graph

    def register_component(
        self,
        component_type: str,
        category: str = "",
        description: str = "",
        display_name: str = "",
        provides: Iterable[str] = (),
        requires: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> ComponentNode:
        """Add a component type to the graph. Re-registering returns the existing node."""
        if component_type in self._nodes:
            return self._nodes[component_type]

        if not component_type or component_type == WILDCARD:
            raise ValueError(f"Invalid component type: {component_type!r}")

        node = ComponentNode(
            component_type=component_type,
            index=len(self._nodes),
            category=category,
            description=description,
            display_name=display_name or component_type,
            provides=list(provides),
            requires={k: list(v) for k, v in (requires or {}).items()},
        )
        self._nodes[component_type] = node
        self._invalidate()
        return node

    def register_dependency(
        self,
        component_type: str,
        depends_on: Sequence[str],
        check: bool = True,
    ) -> List[DependencyEdge]:
        """
        Declare that component_type depends on each entry of depends_on.

        Args:
            component_type: The dependent component
            depends_on: Component types (or WILDCARD) whose results it reads
            check: Reject unknown references and cycles immediately. Bulk
                loaders pass False and rely on validate().

        Raises:
            UnknownComponentError: component_type or a reference is unknown
            CycleDetectedError: an edge would close a cycle

        Returns:
            Edges added by this call
        """
        if component_type not in self._nodes:
            raise UnknownComponentError(component_type)

        node = self._nodes[component_type]
        if isinstance(depends_on, str):
            depends_on = [depends_on]

        if check:
            for dep in depends_on:
                if dep != WILDCARD and dep not in self._nodes:
                    raise UnknownComponentError(dep, referenced_by=component_type)

        added: List[DependencyEdge] = []
        try:
            for dep in depends_on:
                if dep == WILDCARD:
                    if not node.wildcard:
                        node.wildcard = True
                        added.append(DependencyEdge(component_type, WILDCARD, EdgeType.WILDCARD))
                    continue

                if dep not in self._nodes:
                    dangling = self._dangling.setdefault(component_type, [])
                    if dep not in dangling:
                        dangling.append(dep)
                    continue

                if (dep, component_type) in self._edges:
                    continue

                if check:
                    path = self._find_path(dep, component_type)
                    if path is not None:
                        raise CycleDetectedError([component_type] + path)

                edge = DependencyEdge(component_type, dep, EdgeType.DIRECT)
                self._edges[(dep, component_type)] = edge
                node.depends_on.add(dep)
                self._nodes[dep].depended_by.add(component_type)
                added.append(edge)
        except CycleDetectedError:
            self._rollback(added)
            raise
        finally:
            self._invalidate()

        return added

    def _rollback(self, edges: List[DependencyEdge]) -> None:
        for edge in edges:
            if edge.edge_type == EdgeType.WILDCARD:
                self._nodes[edge.dependent].wildcard = False
                continue
            self._edges.pop((edge.dependency, edge.dependent), None)
            self._nodes[edge.dependent].depends_on.discard(edge.dependency)
            self._nodes[edge.dependency].depended_by.discard(edge.dependent)

    def _invalidate(self) -> None:
        self._order = None
        self._levels = {}
        self._violations = None
        self._static_dependents = {}
        self._holder_consumers = None

    def _find_path(self, start: str, goal: str) -> Optional[List[str]]:
        """DFS along depends_on edges; returns the path start..goal if one exists."""
        if start == goal:
            return [start]

        stack: List[Tuple[str, List[str]]] = [(start, [start])]
        visited = {start}
        while stack:
            current, path = stack.pop()
            for dep in self._nodes[current].depends_on:
                if dep == goal:
                    return path + [dep]
                if dep not in visited:
                    visited.add(dep)
                    stack.append((dep, path + [dep]))
        return None

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> List[GraphViolation]:
        """
        Check the whole graph for cycles and dangling references.

        Never raises; callers decide whether to continue in a degraded mode.
        """
        if self._violations is not None:
            return list(self._violations)

        violations: List[GraphViolation] = []

        for component_type, refs in self._dangling.items():
            for ref in refs:
                violations.append(GraphViolation(
                    kind=ViolationKind.UNKNOWN_REFERENCE,
                    nodes=[component_type, ref],
                    message=f"{component_type} depends on unknown component type {ref}",
                ))

        for cycle in self._detect_cycles():
            violations.append(GraphViolation(
                kind=ViolationKind.CYCLE,
                nodes=cycle,
                message=f"Cyclic dependency detected: {' -> '.join(cycle)}",
            ))

        if violations:
            logger.warning(f"Dependency graph has {len(violations)} violation(s)")

        self._violations = violations
        return list(violations)

    def _detect_cycles(self) -> List[List[str]]:
        """Detect cycles using DFS, reporting each distinct cycle once."""
        cycles: List[List[str]] = []
        seen: Set[frozenset] = set()
        visited: Set[str] = set()

        def dfs(component_type: str, path: List[str], on_path: Set[str]) -> None:
            visited.add(component_type)
            path.append(component_type)
            on_path.add(component_type)

            node = self._nodes[component_type]
            for dep in sorted(node.depends_on, key=lambda t: self._nodes[t].index):
                if dep in on_path:
                    cycle = path[path.index(dep):] + [dep]
                    key = frozenset(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                elif dep not in visited:
                    dfs(dep, path, on_path)

            path.pop()
            on_path.discard(component_type)

        for component_type in self._nodes:
            if component_type not in visited:
                dfs(component_type, [], set())

        return cycles

    @property
    def is_valid(self) -> bool:
        return not self.validate()

    def ensure_valid(self) -> None:
        """Raise the first structural violation, if any."""
        violations = self.validate()
        if violations:
            raise violations[0].to_exception()

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def topological_order(self) -> List[str]:
        """
        Total order consistent with every static edge (Kahn's algorithm).

        Ties among simultaneously ready components are broken by
        registration order.

        Raises:
            CycleDetectedError: if the graph is cyclic
        """
        if self._order is not None:
            return list(self._order)

        in_degree = {t: len(n.depends_on) for t, n in self._nodes.items()}
        ready: List[Tuple[int, str]] = []
        for t, degree in in_degree.items():
            if degree == 0:
                heappush(ready, (self._nodes[t].index, t))

        order: List[str] = []
        while ready:
            _, current = heappop(ready)
            order.append(current)
            for dependent in self._nodes[current].depended_by:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heappush(ready, (self._nodes[dependent].index, dependent))

        if len(order) < len(self._nodes):
            cycles = self._detect_cycles()
            raise CycleDetectedError(cycles[0] if cycles else sorted(set(self._nodes) - set(order)))

        self._order = order
        self._levels = self._compute_levels(order)
        return list(order)

    def _compute_levels(self, order: List[str]) -> Dict[str, int]:
        levels: Dict[str, int] = {}
        for t in order:
            deps = self._nodes[t].depends_on
            levels[t] = 1 + max(levels[d] for d in deps) if deps else 0

        # Wildcard holders sit above everything they can read
        for t, node in self._nodes.items():
            if not node.wildcard:
                continue
            readable = self.resolve_wildcard(self._nodes.keys(), t)
            if readable:
                levels[t] = max(levels[t], 1 + max(levels[r] for r in readable))

        for t in order:
            deps = self._nodes[t].depends_on
            if deps:
                levels[t] = max(levels[t], 1 + max(levels[d] for d in deps))

        return levels

    def get_level(self, component_type: str) -> int:
        """Dependency level: 0 for components with no dependencies."""
        self._require(component_type)
        if self._order is None:
            self.topological_order()
        return self._levels[component_type]

    def get_levels(self) -> Dict[str, int]:
        if self._order is None:
            self.topological_order()
        return dict(self._levels)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _require(self, component_type: str) -> ComponentNode:
        node = self._nodes.get(component_type)
        if node is None:
            raise UnknownComponentError(component_type)
        return node

    def has_component(self, component_type: str) -> bool:
        return component_type in self._nodes

    def __contains__(self, component_type: object) -> bool:
        return component_type in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def component_types(self) -> List[str]:
        """All component types in registration order."""
        return list(self._nodes)

    def get_node(self, component_type: str) -> Optional[ComponentNode]:
        return self._nodes.get(component_type)

    def get_index(self, component_type: str) -> int:
        return self._require(component_type).index

    def has_wildcard(self, component_type: str) -> bool:
        return self._require(component_type).wildcard

    def get_dependencies(self, component_type: str) -> List[str]:
        """Declared dependencies in registration order, WILDCARD last if present."""
        node = self._require(component_type)
        deps = sorted(node.depends_on, key=lambda t: self._nodes[t].index)
        if node.wildcard:
            deps.append(WILDCARD)
        return deps

    def get_direct_dependents(self, component_type: str) -> Set[str]:
        return set(self._require(component_type).depended_by)

    def _get_static_dependents(self, component_type: str) -> Set[str]:
        cached = self._static_dependents.get(component_type)
        if cached is not None:
            return cached

        result: Set[str] = set()
        to_process = [component_type]
        while to_process:
            current = to_process.pop()
            for dependent in self._nodes[current].depended_by:
                if dependent not in result:
                    result.add(dependent)
                    to_process.append(dependent)

        self._static_dependents[component_type] = result
        return result

    def _get_holder_consumers(self) -> Set[str]:
        """Types that statically depend, directly or not, on any wildcard holder."""
        if self._holder_consumers is None:
            result: Set[str] = set()
            for t, node in self._nodes.items():
                if node.wildcard:
                    result |= self._get_static_dependents(t)
            self._holder_consumers = result
        return self._holder_consumers

    def _reads_via_wildcard(self, holder: str, component_type: str) -> bool:
        # Consumers of any holder stay out of every wildcard
        return (
            holder != component_type
            and not self._nodes[component_type].wildcard
            and component_type not in self._get_holder_consumers()
        )

    def get_dependents(self, component_type: str) -> Set[str]:
        """
        Direct and transitive consumers of component_type's result.

        Includes wildcard holders that would read it, and their consumers.
        """
        self._require(component_type)
        holders = [t for t, n in self._nodes.items() if n.wildcard]

        result: Set[str] = set()
        to_process = [component_type]
        while to_process:
            current = to_process.pop()
            consumers = set(self._nodes[current].depended_by)
            consumers.update(h for h in holders if self._reads_via_wildcard(h, current))
            for dependent in consumers:
                if dependent != component_type and dependent not in result:
                    result.add(dependent)
                    to_process.append(dependent)

        return result

    def get_all_dependencies(self, component_type: str) -> Set[str]:
        """All static upstream dependencies (transitive closure)."""
        self._require(component_type)
        result: Set[str] = set()
        to_process = [component_type]
        while to_process:
            current = to_process.pop()
            for dep in self._nodes[current].depends_on:
                if dep not in result:
                    result.add(dep)
                    to_process.append(dep)
        return result

    def resolve_wildcard(self, enabled_types: Iterable[str], for_type: str) -> Set[str]:
        """
        Expand for_type's wildcard against the current enabled set.

        Returns every other enabled component type except for_type itself,
        leaving out wildcard holders and everything that statically depends
        on a wildcard holder, so that resolution can never introduce a cycle.
        """
        self._require(for_type)
        return {
            t for t in enabled_types
            if t in self._nodes and self._reads_via_wildcard(for_type, t)
        }

    def resolve_dependencies(self, component_type: str, enabled_types: Iterable[str]) -> Set[str]:
        """Static dependencies plus the resolved wildcard set."""
        node = self._require(component_type)
        deps = set(node.depends_on)
        if node.wildcard:
            deps |= self.resolve_wildcard(enabled_types, component_type)
        return deps

    def check_relationships(self, enabled_types: Iterable[str]) -> RelationshipReport:
        """
        Check that every enabled component has its dependencies enabled.

        Errors for disabled static dependencies; warnings for wildcard holders
        with nothing else enabled to aggregate.
        """
        enabled = {t for t in enabled_types if t in self._nodes}
        report = RelationshipReport()

        for t in sorted(enabled, key=lambda x: self._nodes[x].index):
            node = self._nodes[t]
            for dep in sorted(node.depends_on, key=lambda x: self._nodes[x].index):
                if dep not in enabled:
                    report.errors.append(f"{t} requires {dep} to be enabled")
            if node.wildcard and not self.resolve_wildcard(enabled, t):
                report.warnings.append(f"{t} requires other components to be enabled")

        return report

    # -------------------------------------------------------------------------
    # Export and visualisation
    # -------------------------------------------------------------------------

    def get_display_name(self, component_type: str) -> str:
        node = self._nodes.get(component_type)
        return node.display_name if node else component_type

    def get_statistics(self) -> Dict[str, Any]:
        levels: Dict[str, int] = {}
        categories: Dict[str, int] = {}
        cycles = [v.nodes for v in self.validate() if v.kind == ViolationKind.CYCLE]

        if not cycles:
            for level in self.get_levels().values():
                key = f"Level {level}"
                levels[key] = levels.get(key, 0) + 1

        for node in self._nodes.values():
            category = node.category or "uncategorized"
            categories[category] = categories.get(category, 0) + 1

        return {
            "total_components": len(self._nodes),
            "total_edges": len(self._edges),
            "wildcard_components": [t for t, n in self._nodes.items() if n.wildcard],
            "level_distribution": levels,
            "category_distribution": categories,
            "max_level": max(self._levels.values()) if self._levels else 0,
            "circular_dependencies": cycles,
        }

    def to_visualization(self, enabled_types: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Nodes and edges for rendering, wildcard edges expanded against the enabled set."""
        if enabled_types is None:
            types = list(self._nodes)
            enabled = set(types)
        else:
            enabled = {t for t in enabled_types if t in self._nodes}
            types = [t for t in self._nodes if t in enabled]

        levels = self.get_levels() if self.is_valid else {}
        nodes = [
            {
                "id": t,
                "label": self._nodes[t].display_name,
                "level": levels.get(t, 0),
                "category": self._nodes[t].category,
                "description": self._nodes[t].description,
            }
            for t in types
        ]

        edges = []
        for t in types:
            node = self._nodes[t]
            for dep in sorted(node.depends_on, key=lambda x: self._nodes[x].index):
                if dep in enabled:
                    edges.append({"from": dep, "to": t, "type": EdgeType.DIRECT.value})
            if node.wildcard:
                for dep in sorted(self.resolve_wildcard(types, t), key=lambda x: self._nodes[x].index):
                    edges.append({"from": dep, "to": t, "type": EdgeType.WILDCARD.value})

        return {"nodes": nodes, "edges": edges}

    def to_mermaid(self, enabled_types: Optional[Iterable[str]] = None) -> str:
        """Render the graph as a Mermaid flowchart."""
        data = self.to_visualization(enabled_types)

        def node_id(t: str) -> str:
            return "".join(c if c.isalnum() else "_" for c in t)

        lines = ["graph TD"]
        for node in data["nodes"]:
            lines.append(f'    {node_id(node["id"])}["{node["label"]}"]')
        for edge in data["edges"]:
            arrow = "-.->|depends on all|" if edge["type"] == EdgeType.WILDCARD.value else "-->"
            lines.append(f"    {node_id(edge['from'])} {arrow} {node_id(edge['to'])}")
        for node in data["nodes"]:
            lines.append(f"    class {node_id(node['id'])} level{node['level']}")

        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize graph definition."""
        return {
            "components": {
                t: {
                    "index": n.index,
                    "category": n.category,
                    "description": n.description,
                    "display_name": n.display_name,
                    "provides": list(n.provides),
                    "depends_on": self.get_dependencies(t),
                }
                for t, n in self._nodes.items()
            },
            "edges": [
                {
                    "dependent": e.dependent,
                    "dependency": e.dependency,
                    "edge_type": e.edge_type.value,
                }
                for e in self._edges.values()
            ],
            "violations": [v.to_dict() for v in self.validate()],
        }

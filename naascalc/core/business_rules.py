"""
core/business_rules.py - Component interaction rules

Applied by the store inside the same commit as the triggering update:
- exclusive groups: enabling one member disables its enabled peers
- prerequisites: enabling a component force-enables what it requires
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Sequence, Set
import logging

from .models import Component

logger = logging.getLogger(__name__)


class BusinessRules:
    """Exclusive-group and prerequisite rules over component enablement."""

    def __init__(
        self,
        exclusive_groups: Optional[Iterable[Sequence[str]]] = None,
        prerequisites: Optional[Dict[str, Sequence[str]]] = None,
    ):
        self.exclusive_groups: List[tuple] = [tuple(g) for g in (exclusive_groups or [])]
        self.prerequisites: Dict[str, List[str]] = {
            k: list(v) for k, v in (prerequisites or {}).items()
        }

    @classmethod
    def default(cls) -> "BusinessRules":
        from naascalc.dependencies.catalog import EXCLUSIVE_GROUPS, PREREQUISITES
        return cls(EXCLUSIVE_GROUPS, PREREQUISITES)

    def peers_of(self, component_type: str) -> Set[str]:
        peers: Set[str] = set()
        for group in self.exclusive_groups:
            if component_type in group:
                peers.update(t for t in group if t != component_type)
        return peers

    def apply(self, component_type: str, enabled: bool, components: Dict[str, Component]) -> Set[str]:
        """
        Apply side effects of setting component_type's enabled flag.

        Mutates components in place and returns the types whose enabled
        flag was changed by a rule (the triggering type excluded).
        """
        if not enabled:
            return set()

        affected: Set[str] = set()

        for peer in sorted(self.peers_of(component_type)):
            comp = components.get(peer)
            if comp is not None and comp.enabled:
                logger.warning(f"Disabling {peer} as {component_type} is being enabled")
                comp.enabled = False
                affected.add(peer)

        # Prerequisites may chain, and a forced prerequisite applies its own rules
        pending = list(self.prerequisites.get(component_type, []))
        seen = {component_type}
        while pending:
            required = pending.pop(0)
            if required in seen:
                continue
            seen.add(required)
            comp = components.get(required)
            if comp is None or comp.enabled:
                continue
            logger.warning(f"{component_type} requires {required}, enabling automatically")
            comp.enabled = True
            affected.add(required)
            for peer in sorted(self.peers_of(required)):
                other = components.get(peer)
                if other is not None and other.enabled and peer != component_type:
                    logger.warning(f"Disabling {peer} as {required} is being enabled")
                    other.enabled = False
                    affected.add(peer)
            pending.extend(self.prerequisites.get(required, []))

        return affected

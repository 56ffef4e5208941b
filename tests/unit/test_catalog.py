"""
Unit tests for dependencies/catalog.py
"""

from naascalc.dependencies.catalog import (
    COMPONENT_CATALOG,
    COMPONENT_DEPENDENCIES,
    EXCLUSIVE_GROUPS,
    PREREQUISITES,
    build_default_graph,
)
from naascalc.dependencies.graph import WILDCARD


class TestCatalog:
    """Test the default component catalog."""

    def test_default_graph_is_valid(self):
        """Test the shipped declarations have no violations."""
        graph = build_default_graph()
        assert graph.validate() == []
        assert len(graph) == 15

    def test_registration_order(self):
        """Test registration follows the declaration tables."""
        graph = build_default_graph()
        assert graph.component_types == list(COMPONENT_DEPENDENCIES)

    def test_every_declared_type_has_metadata(self):
        """Test catalog and dependency tables cover the same types."""
        assert set(COMPONENT_CATALOG) == set(COMPONENT_DEPENDENCIES)

    def test_requires_match_dependencies(self):
        """Test declared field requirements only name actual dependencies."""
        for component_type, meta in COMPONENT_CATALOG.items():
            for dep in meta.get("requires", {}):
                assert dep in COMPONENT_DEPENDENCIES[component_type], (component_type, dep)

    def test_dynamics_read_everything(self):
        """Test contract terms use the wildcard."""
        graph = build_default_graph()
        for t in ("dynamics_1_year", "dynamics_3_year", "dynamics_5_year"):
            assert graph.has_wildcard(t)
            assert graph.get_dependencies(t) == [WILDCARD]

    def test_metadata_loaded(self):
        """Test node metadata comes from the catalog."""
        graph = build_default_graph()
        node = graph.get_node("capital")
        assert node.display_name == "Capital Equipment"
        assert node.category == "infrastructure"
        assert "device_count" in node.provides


class TestRuleTables:
    """Test business rule tables reference known types."""

    def test_exclusive_groups(self):
        """Test every exclusive group member exists."""
        for group in EXCLUSIVE_GROUPS:
            assert len(group) >= 2
            assert all(t in COMPONENT_CATALOG for t in group)

    def test_prerequisites(self):
        """Test prerequisites reference known types and match dependencies."""
        for component_type, required in PREREQUISITES.items():
            assert component_type in COMPONENT_CATALOG
            for t in required:
                assert t in COMPONENT_DEPENDENCIES[component_type]

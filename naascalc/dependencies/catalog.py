"""
naascalc Component Catalog

Default component types of the NaaS pricing calculator, their dependency
declarations and the business rules that tie them together.
"""

from __future__ import annotations
from typing import Any, Dict, List, Tuple

from .graph import DependencyGraph, WILDCARD


# =============================================================================
# COMPONENT DEFINITIONS
# =============================================================================

COMPONENT_CATALOG: Dict[str, Dict[str, Any]] = {
    # Independent components
    "help": {
        "category": "documentation",
        "display_name": "Help & Instructions",
        "description": "User guide and calculator instructions",
    },
    "assessment": {
        "category": "services",
        "display_name": "Platform Assessment",
        "description": "Network assessment and discovery",
    },
    "admin": {
        "category": "services",
        "display_name": "Admin Services",
        "description": "Administrative and review services",
    },
    "other_costs": {
        "category": "flexible",
        "display_name": "Other Costs",
        "description": "Additional costs and custom services",
    },

    # Base infrastructure and core services
    "prtg": {
        "category": "monitoring",
        "display_name": "PRTG Monitoring",
        "description": "PRTG network monitoring setup and licensing",
        "provides": ["sensor_count", "monitoring_locations"],
    },
    "capital": {
        "category": "infrastructure",
        "display_name": "Capital Equipment",
        "description": "Capital equipment and hardware costs",
        "provides": ["device_count", "equipment_list", "total_capital_cost"],
    },
    "onboarding": {
        "category": "services",
        "display_name": "Onboarding",
        "description": "Initial setup and implementation services",
        "provides": ["implementation_cost", "setup_complexity"],
    },
    "pbs_foundation": {
        "category": "platform",
        "display_name": "PBS Foundation",
        "description": "PBS foundation platform services",
        "provides": ["platform_cost", "user_licenses"],
    },

    # Services built on base infrastructure
    "support": {
        "category": "services",
        "display_name": "Support Services",
        "description": "24/7 support and maintenance services",
        "requires": {"capital": ["device_count"]},
        "provides": ["support_level", "support_coverage"],
    },
    "enhanced_support": {
        "category": "services",
        "display_name": "Enhanced Support",
        "description": "Premium support and monitoring services",
        "requires": {"support": ["support_level"]},
        "provides": ["enhanced_sla", "premium_features"],
    },

    # Packages
    "naas_standard": {
        "category": "packages",
        "display_name": "NaaS Standard",
        "description": "Standard NaaS service package",
        "requires": {"prtg": ["sensor_count"], "support": ["support_level", "device_count"]},
        "provides": ["standard_package_features"],
    },
    "naas_enhanced": {
        "category": "packages",
        "display_name": "NaaS Enhanced",
        "description": "Enhanced NaaS service package",
        "requires": {"naas_standard": ["standard_package_features"], "enhanced_support": ["enhanced_sla"]},
        "provides": ["enhanced_package_features"],
    },

    # Contract pricing over every active component
    "dynamics_1_year": {
        "category": "contracts",
        "display_name": "Dynamics 1 Year",
        "description": "1-year dynamic pricing options",
        "requires": {WILDCARD: ["monthly_total", "component_count"]},
    },
    "dynamics_3_year": {
        "category": "contracts",
        "display_name": "Dynamics 3 Year",
        "description": "3-year dynamic pricing options",
        "requires": {WILDCARD: ["monthly_total", "component_count", "annual_total"]},
    },
    "dynamics_5_year": {
        "category": "contracts",
        "display_name": "Dynamics 5 Year",
        "description": "5-year dynamic pricing options",
        "requires": {WILDCARD: ["monthly_total", "component_count", "annual_total"]},
    },
}


COMPONENT_DEPENDENCIES: Dict[str, List[str]] = {
    "help": [],
    "assessment": [],
    "admin": [],
    "other_costs": [],
    "prtg": [],
    "capital": [],
    "onboarding": [],
    "pbs_foundation": [],
    "support": ["capital"],
    "enhanced_support": ["support"],
    "naas_standard": ["prtg", "support"],
    "naas_enhanced": ["naas_standard", "enhanced_support"],
    "dynamics_1_year": [WILDCARD],
    "dynamics_3_year": [WILDCARD],
    "dynamics_5_year": [WILDCARD],
}


# =============================================================================
# BUSINESS RULES
# =============================================================================

# Enabling one member disables the others
EXCLUSIVE_GROUPS: List[Tuple[str, ...]] = [
    ("naas_standard", "naas_enhanced"),
    ("dynamics_1_year", "dynamics_3_year", "dynamics_5_year"),
]

# Enabling the key force-enables each listed prerequisite
PREREQUISITES: Dict[str, List[str]] = {
    "enhanced_support": ["support"],
}


def build_default_graph() -> DependencyGraph:
    """Build the dependency graph of the default component catalog."""
    return DependencyGraph.from_definitions(COMPONENT_DEPENDENCIES, COMPONENT_CATALOG)

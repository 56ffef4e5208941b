"""
naascalc Core State

Provides:
- QuoteStore: reactive store of project and component state
- Data model (Component, ProjectMetadata, StoreChange, StoreSnapshot)
- Mutation payload validation (ProjectUpdate, ComponentUpdate)
- BusinessRules: exclusive groups and prerequisites
- CalculatorConfig and constants
"""

from .config import CalculatorConfig
from .models import (
    ChangeKind,
    Component,
    ProjectMetadata,
    StoreChange,
    StoreSnapshot,
)
from .updates import (
    ComponentUpdate,
    ProjectUpdate,
    parse_component_update,
    parse_project_update,
    sanitize_params,
    sanitize_string,
    validate_positive_integer,
)
from .business_rules import BusinessRules
from .store import QuoteStore

__all__ = [
    "CalculatorConfig",
    # Models
    "ChangeKind",
    "Component",
    "ProjectMetadata",
    "StoreChange",
    "StoreSnapshot",
    # Updates
    "ComponentUpdate",
    "ProjectUpdate",
    "parse_component_update",
    "parse_project_update",
    "sanitize_params",
    "sanitize_string",
    "validate_positive_integer",
    # Store
    "BusinessRules",
    "QuoteStore",
]

"""
core/updates.py - Mutation payload validation

Partial updates for the project and for a single component are validated
and sanitised through pydantic models before the store commits them.
Out-of-range values fall back to defaults instead of failing; only
malformed payloads (non-mapping, unknown fields) are rejected.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
import math
import re

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from naascalc.errors import InvalidUpdateError

from .constants import (
    DEFAULT_COMPLEXITY,
    DEFAULT_TIMELINE,
    DEFAULT_USER_COUNT,
    MAX_ARRAY_SIZE,
    MAX_ARRAY_SIZE_SHORT,
    MAX_KEY_LENGTH,
    MAX_OBJECT_DEPTH,
    MAX_SITES,
    MAX_STRING_LENGTH,
    MAX_STRING_LENGTH_MEDIUM,
    MAX_STRING_LENGTH_SHORT,
    MAX_USERS,
    MIN_SITES,
    MIN_USERS,
    VALID_COMPLEXITY,
    VALID_TIMELINES,
)


# =============================================================================
# SANITISERS
# =============================================================================

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_SCHEME = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def sanitize_string(value: Any, max_length: int = MAX_STRING_LENGTH) -> str:
    """Strip markup that could execute when rendered, then truncate."""
    if value is None:
        return ""
    cleaned = str(value).strip()
    cleaned = _SCRIPT_TAG.sub("", cleaned)
    cleaned = _JS_SCHEME.sub("", cleaned)
    cleaned = _EVENT_HANDLER.sub("", cleaned)
    return cleaned[:max_length]


def validate_positive_integer(value: Any, minimum: int = 0, maximum: Optional[int] = None) -> Optional[int]:
    """
    Parse an integer and check its bounds.

    Strings are read up to the first non-digit and floats are truncated.
    Returns None when the value is not a number or out of range.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        number = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return None
        number = int(match.group(1))

    if number < minimum or (maximum is not None and number > maximum):
        return None
    return number


def sanitize_params(value: Any, max_depth: int = MAX_OBJECT_DEPTH) -> Dict[str, Any]:
    """
    Sanitise a component params mapping.

    Keeps strings (sanitised), finite numbers, booleans, short lists
    (truncated) and nested mappings down to max_depth. Anything else,
    including overlong keys, is dropped.
    """
    if max_depth <= 0 or not isinstance(value, Mapping):
        return {}

    sanitized: Dict[str, Any] = {}
    for key, item in value.items():
        key = str(key)
        if len(key) > MAX_KEY_LENGTH:
            continue

        if isinstance(item, str):
            sanitized[key] = sanitize_string(item)
        elif isinstance(item, bool):
            sanitized[key] = item
        elif isinstance(item, (int, float)):
            if isinstance(item, float) and not math.isfinite(item):
                continue
            sanitized[key] = item
        elif isinstance(item, (list, tuple)):
            if len(item) < MAX_ARRAY_SIZE:
                sanitized[key] = list(item[:MAX_ARRAY_SIZE_SHORT])
        elif isinstance(item, Mapping):
            sanitized[key] = sanitize_params(item, max_depth - 1)
    return sanitized


# =============================================================================
# UPDATE MODELS
# =============================================================================

class ProjectUpdate(BaseModel):
    """Partial update of the project metadata."""
    model_config = ConfigDict(extra="forbid")

    project_name: Optional[str] = None
    customer_name: Optional[str] = None
    primary_location: Optional[str] = None
    budget: Optional[str] = None
    timeline: Optional[str] = None
    complexity: Optional[str] = None
    sites: Optional[int] = None
    total_users: Optional[int] = None

    @field_validator("project_name", "customer_name", "primary_location", mode="before")
    @classmethod
    def clean_short_text(cls, v):
        return sanitize_string(v, MAX_STRING_LENGTH_SHORT)

    @field_validator("budget", mode="before")
    @classmethod
    def clean_budget(cls, v):
        return sanitize_string(v, MAX_STRING_LENGTH_MEDIUM)

    @field_validator("timeline", mode="before")
    @classmethod
    def validate_timeline(cls, v):
        return v if v in VALID_TIMELINES else DEFAULT_TIMELINE

    @field_validator("complexity", mode="before")
    @classmethod
    def validate_complexity(cls, v):
        return v if v in VALID_COMPLEXITY else DEFAULT_COMPLEXITY

    @field_validator("sites", mode="before")
    @classmethod
    def validate_sites(cls, v):
        return validate_positive_integer(v, MIN_SITES, MAX_SITES) or MIN_SITES

    @field_validator("total_users", mode="before")
    @classmethod
    def validate_total_users(cls, v):
        return validate_positive_integer(v, MIN_USERS, MAX_USERS) or DEFAULT_USER_COUNT


class ComponentUpdate(BaseModel):
    """Partial update of one component."""
    model_config = ConfigDict(extra="forbid")

    enabled: Optional[bool] = None
    params: Optional[Dict[str, Any]] = None

    @field_validator("enabled", mode="before")
    @classmethod
    def coerce_enabled(cls, v):
        return bool(v)

    @field_validator("params", mode="before")
    @classmethod
    def clean_params(cls, v):
        return sanitize_params(v)


def _errors_of(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def parse_project_update(data: Any) -> Dict[str, Any]:
    """Validate a project payload; returns only the fields it sets."""
    if not isinstance(data, Mapping):
        raise InvalidUpdateError("Project data must be a mapping")
    try:
        update = ProjectUpdate.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidUpdateError(f"Invalid project update: {e.error_count()} error(s)", _errors_of(e)) from e
    return update.model_dump(exclude_unset=True)


def parse_component_update(data: Any) -> Dict[str, Any]:
    """Validate a component payload; returns only the fields it sets."""
    if not isinstance(data, Mapping):
        raise InvalidUpdateError("Component data must be a mapping")
    try:
        update = ComponentUpdate.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidUpdateError(f"Invalid component update: {e.error_count()} error(s)", _errors_of(e)) from e
    return update.model_dump(exclude_unset=True)

"""JSON-ready payloads for engine results.

Converts the frozen result dataclasses into plain dicts/lists with ISO dates
and lower-case enum names. All functions are pure.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date
from enum import Enum

from projection_engine.models.conflicts import ConflictItem, ConflictReport
from projection_engine.models.context import TrainingContext
from projection_engine.models.projection import Microcycle, ProjectionPoint

# Read-only properties exported alongside dataclass fields
_DERIVED_FIELDS = {
    ConflictItem: ("severity",),
    ConflictReport: ("is_blocking",),
    ProjectionPoint: ("predicted_form_tsb",),
    TrainingContext: ("current_tsb",),
    Microcycle: ("days",),
}


def enum_label(value: Enum) -> str:
    """Wire name of an enum member, e.g. ``OptimizerPath.FULL_MPC`` → ``full_mpc``."""
    return value.name.lower()


def to_payload(value: object) -> object:
    """Recursively convert a result object into JSON-compatible values."""
    if isinstance(value, Enum):
        return enum_label(value)
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        payload = {f.name: to_payload(getattr(value, f.name)) for f in dataclasses.fields(value)}
        for name in _DERIVED_FIELDS.get(type(value), ()):
            payload[name] = to_payload(getattr(value, name))
        return payload
    if isinstance(value, dict):
        return {_key(k): to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    return value


def _key(key: object) -> str:
    if isinstance(key, Enum):
        return enum_label(key)
    if isinstance(key, date):
        return key.isoformat()
    return str(key)


def to_json_string(value: object, indent: int = 2) -> str:
    """Serialize any result object to a JSON string."""
    return json.dumps(to_payload(value), indent=indent)

"""Serialization module: result payloads and request parsing."""

from projection_engine.serialization.payload import enum_label, to_json_string, to_payload
from projection_engine.serialization.requests import (
    parse_activity_record,
    parse_creation_config,
    parse_effort_best,
    parse_minimal_plan,
    parse_profile,
)

__all__ = [
    "enum_label",
    "parse_activity_record",
    "parse_creation_config",
    "parse_effort_best",
    "parse_minimal_plan",
    "parse_profile",
    "to_json_string",
    "to_payload",
]

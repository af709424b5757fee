from __future__ import annotations

from typing import Any

import jsonschema

# asciicast v2 declares width/height at the top level, v3 nests them under
# "term" as cols/rows.
CAST_HEADER_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "version": {"type": "integer", "enum": [2, 3]},
        "width": {"type": "integer", "minimum": 1},
        "height": {"type": "integer", "minimum": 1},
        "timestamp": {"type": "number"},
        "idle_time_limit": {"type": ["number", "null"]},
        "command": {"type": "string"},
        "title": {"type": "string"},
        "env": {"type": "object"},
        "term": {
            "type": "object",
            "required": ["cols", "rows"],
            "properties": {
                "cols": {"type": "integer", "minimum": 1},
                "rows": {"type": "integer", "minimum": 1},
                "type": {"type": ["string", "null"]},
            },
        },
    },
    "anyOf": [
        {"required": ["width", "height"]},
        {"required": ["term"]},
    ],
}

CAST_EVENT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "array",
    "prefixItems": [
        {"type": "number", "minimum": 0},
        {"type": "string", "minLength": 1},
        {"type": "string"},
    ],
    "minItems": 3,
    "maxItems": 3,
}

_HEADER_VALIDATOR = jsonschema.Draft202012Validator(CAST_HEADER_SCHEMA)
_EVENT_VALIDATOR = jsonschema.Draft202012Validator(CAST_EVENT_SCHEMA)


def validate_header(payload: Any) -> None:
    _HEADER_VALIDATOR.validate(payload)


def validate_event(payload: Any) -> None:
    _EVENT_VALIDATOR.validate(payload)

# ABOUTME: JSON Schema inference and structural signatures for sampled values
# ABOUTME: Works on plain JSON values (None, bool, int, float, str, list, dict)

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Union

JsonValue = Union[None, bool, int, float, str, list, dict]

BINARY_PLACEHOLDER = "[Binary Data]"

_EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def to_json_value(value: Any) -> JsonValue:
    """
    Coerce an arbitrary Python value into the closed set of JSON values.

    Mappings become dicts with string keys, other iterables of items become
    lists, bytes become a binary placeholder and anything else unknown is
    rendered with str().
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BINARY_PLACEHOLDER
    if isinstance(value, Mapping):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_value(item) for item in value]
    return str(value)


def is_date_time(value: str) -> bool:
    """True for ISO-8601 timestamps that carry a date/time separator."""
    if 'T' not in value:
        return False
    candidate = value[:-1] + '+00:00' if value.endswith('Z') else value
    try:
        datetime.fromisoformat(candidate)
    except ValueError:
        return False
    return True


def is_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.match(value))


def _is_integral(value: Union[int, float]) -> bool:
    if isinstance(value, int):
        return True
    return value.is_integer()


def infer_json_schema(value: Any) -> dict:
    """
    Infer a JSON Schema from a single sampled value.

    Absent information degrades to a nullable string. Arrays are described
    from their first element only, and every non-null property of an object
    is listed as required because it was present in this observation.
    """
    value = to_json_value(value)

    if value is None:
        return {"type": "string", "nullable": True}
    elif isinstance(value, bool):
        return {"type": "boolean", "example": value}
    elif isinstance(value, (int, float)):
        return {
            "type": "integer" if _is_integral(value) else "number",
            "example": value,
        }
    elif isinstance(value, str):
        if is_date_time(value):
            return {"type": "string", "format": "date-time"}
        if is_email(value):
            return {"type": "string", "format": "email"}
        return {"type": "string"}
    elif isinstance(value, list):
        if not value:
            return {"type": "array", "items": {"type": "string"}}
        return {"type": "array", "items": infer_json_schema(value[0])}
    else:
        properties = {}
        required = []
        for key, val in value.items():
            properties[key] = infer_json_schema(val)
            if val is not None:
                required.append(key)
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema


def infer_sample(value: Any) -> JsonValue:
    """Build a compact example: arrays are cut down to their first element."""
    value = to_json_value(value)

    if isinstance(value, list):
        return [infer_sample(value[0])] if value else []
    if isinstance(value, dict):
        return {key: infer_sample(val) for key, val in value.items()}
    return value


def _primitive_kind(value: JsonValue) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def schema_signature(value: Any) -> str:
    """
    Compute a structural fingerprint of a value.

    Only key names and value kinds contribute, with keys sorted, so two
    values of the same shape always produce the same signature whatever
    their contents or key order. Nested signatures are bracketed so a key
    keeps its nesting level in the fingerprint.
    """
    value = to_json_value(value)

    if isinstance(value, list):
        if not value:
            return "array:empty"
        return f"array:[{schema_signature(value[0])}]"
    if not isinstance(value, dict):
        return "primitive"

    fragments = []
    for key in sorted(value):
        val = value[key]
        if val is None:
            fragments.append(f"{key}:null")
        elif isinstance(val, list):
            inner = f"[{schema_signature(val[0])}]" if val else "empty"
            fragments.append(f"{key}:array:{inner}")
        elif isinstance(val, dict):
            fragments.append(f"{key}:object:{{{schema_signature(val)}}}")
        else:
            fragments.append(f"{key}:{_primitive_kind(val)}")

    return '|'.join(fragments)

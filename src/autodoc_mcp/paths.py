# ABOUTME: Path templating for observed request paths
# ABOUTME: Replaces ID-like segments with placeholders and recovers their values

import re
from typing import Any
from urllib.parse import parse_qs

# Patterns that indicate a path segment is an identifier
_NUMERIC_PATTERN = re.compile(r'^\d+$')
_OBJECT_ID_PATTERN = re.compile(r'^[0-9a-f]{24}$', re.IGNORECASE)
_UUID_PATTERN = re.compile(r'^[0-9a-f-]{36}$', re.IGNORECASE)
_RESOURCE_ID_PATTERN = re.compile(r'/[^/{}]+/\d+(?=/|$)')


def _template_segment(segment: str) -> str:
    if _NUMERIC_PATTERN.match(segment):
        return "{id}"
    if _OBJECT_ID_PATTERN.match(segment):
        return "{id}"
    if _UUID_PATTERN.match(segment) and segment.count('-') == 4:
        return "{id}"
    return segment


def normalize_path(path: str) -> str:
    """
    Convert a concrete request path into its templated form.

    Examples:
        /users/42 -> /users/{id}
        /orders/507f1f77bcf86cd799439011/items -> /orders/{id}/items
        /files/550e8400-e29b-41d4-a716-446655440000?x=1 -> /files/{id}
    """
    path = path.split('?', 1)[0]
    templated = '/'.join(_template_segment(s) for s in path.split('/'))
    # Pairs the segment rules left alone
    return _RESOURCE_ID_PATTERN.sub('/{resource}/{id}', templated)


def extract_params(concrete_path: str, templated_path: str) -> dict[str, str]:
    """Bind each {name} segment of the template to the concrete value at the same index."""
    concrete_segments = concrete_path.split('?', 1)[0].split('/')
    params: dict[str, str] = {}

    for index, segment in enumerate(templated_path.split('/')):
        if not (segment.startswith('{') and segment.endswith('}')):
            continue
        if index >= len(concrete_segments) or not concrete_segments[index]:
            continue
        params[segment[1:-1]] = concrete_segments[index]

    return params


def template_names(templated_path: str) -> set[str]:
    """Names of the {name} segments in a templated path."""
    return {
        segment[1:-1]
        for segment in templated_path.split('/')
        if segment.startswith('{') and segment.endswith('}')
    }


def split_query(raw_path: str) -> tuple[str, dict[str, Any]]:
    """
    Split a raw request target into its path and query mapping.

    Keys that appear once map to a string, repeated keys map to a list.
    """
    path, _, query_string = raw_path.partition("?")
    query: dict[str, Any] = {}
    for key, values in parse_qs(query_string, keep_blank_values=True).items():
        query[key] = values[0] if len(values) == 1 else values
    return path or "/", query


def path_tag(templated_path: str) -> str:
    """First non-parameter segment of a templated path, used to group operations."""
    for segment in templated_path.split('/'):
        if segment and not segment.startswith('{'):
            return segment
    return "default"

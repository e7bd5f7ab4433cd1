"""Request matching helpers used by the embedded stub server."""

from __future__ import annotations

import json
from typing import Any

from .models import ANY_METHOD, ReceivedRequest, RequestMatcher

_MISSING = object()


def parse_json_body(raw: bytes | str) -> Any:
    """Decode a request body as JSON, returning a sentinel when it is not JSON."""

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return _MISSING
    if not raw.strip():
        return _MISSING
    try:
        return json.loads(raw)
    except ValueError:
        return _MISSING


def json_equal(expected: Any, actual: Any) -> bool:
    """Structural JSON comparison that keeps booleans distinct from numbers."""

    if isinstance(expected, bool) or isinstance(actual, bool):
        return isinstance(expected, bool) and isinstance(actual, bool) and expected == actual
    if isinstance(expected, dict):
        if not isinstance(actual, dict) or expected.keys() != actual.keys():
            return False
        return all(json_equal(value, actual[key]) for key, value in expected.items())
    if isinstance(expected, list):
        if not isinstance(actual, list) or len(expected) != len(actual):
            return False
        return all(json_equal(left, right) for left, right in zip(expected, actual))
    if isinstance(expected, (int, float)):
        return isinstance(actual, (int, float)) and expected == actual
    return type(expected) is type(actual) and expected == actual


def matches(matcher: RequestMatcher, request: ReceivedRequest) -> bool:
    if matcher.method != ANY_METHOD and matcher.method != request.method.upper():
        return False
    if matcher.url != request.url:
        return False
    if matcher.match_body:
        actual = parse_json_body(request.body)
        if actual is _MISSING:
            return False
        return json_equal(matcher.body_json, actual)
    return True

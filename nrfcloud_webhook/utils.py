import json
from typing import Any

from fastapi import Request

# JSON.stringify switches to exponent notation from here on.
_JS_EXPONENT_THRESHOLD = 1e21


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name} in JSON")


def parse_json(raw: bytes) -> Any:
    """Parse a request body as strict JSON.

    NaN, Infinity and -Infinity are rejected, as JSON.parse does.
    """
    return json.loads(raw, parse_constant=_reject_constant)


def _js_numbers(value: Any) -> Any:
    if isinstance(value, float):
        if value.is_integer() and abs(value) < _JS_EXPONENT_THRESHOLD:
            return int(value)
        return value
    if isinstance(value, dict):
        return {k: _js_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_js_numbers(v) for v in value]
    return value


def compact_json(value: Any) -> str:
    """Serialize `value` the way JavaScript's JSON.stringify does.

    No whitespace between tokens, non-ASCII characters kept as-is, object
    keys in their original order and integral floats written without a
    fraction (21.0 becomes 21).
    """
    return json.dumps(_js_numbers(value), separators=(",", ":"), ensure_ascii=False)


def client_ip(request: Request) -> str:
    # Prefer X-Forwarded-For if behind a proxy
    xff = request.headers.get("x-forwarded-for")
    if xff:
        # may contain a list
        return xff.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"

"""
Canonical JSON Serialization

Provides deterministic JSON serialization for hashing and comparison.
Based on RFC 8785 (JSON Canonicalization Scheme) principles:
- Sorted keys (lexicographic)
- No whitespace
- Literal UTF-8 (no unnecessary escapes)
- No floats: payloads carry only strings, integers, booleans and null

This ensures the same audit record always produces the same bytes,
which is what makes its integrity hash verifiable by a third party.
"""
from __future__ import annotations

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any


class CanonicalEncodingError(TypeError):
    """Raised when data cannot be canonically encoded."""


def _default_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for non-standard types.

    Handles:
    - datetime: ISO 8601 with Z suffix (UTC, millisecond precision)
    - Enum: value
    - set/frozenset: sorted list
    """
    if isinstance(obj, datetime):
        return format_timestamp(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    raise CanonicalEncodingError(
        f"Object of type {type(obj).__name__} is not canonically serializable"
    )


def validate_canonical_safe(obj: Any, path: str = "$") -> None:
    """
    Reject floats anywhere in a payload.

    Float formatting is not stable across runtimes, so a float in a hashed
    payload would make the hash unreproducible.

    Raises:
        CanonicalEncodingError: If a float is found
    """
    if isinstance(obj, float):
        raise CanonicalEncodingError(f"Float not allowed in canonical payload at {path}")
    if isinstance(obj, dict):
        for key, value in obj.items():
            if not isinstance(key, str):
                raise CanonicalEncodingError(f"Non-string key at {path}: {key!r}")
            validate_canonical_safe(value, f"{path}.{key}")
    elif isinstance(obj, (list, tuple)):
        for i, value in enumerate(obj):
            validate_canonical_safe(value, f"{path}[{i}]")


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO 8601 with millisecond precision and Z suffix."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Example:
        >>> canonical_json({"b": 1, "a": 2})
        '{"a":2,"b":1}'
    """
    validate_canonical_safe(obj)
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        default=_default_serializer,
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def content_hash(obj: Any) -> str:
    """
    Compute SHA-256 hash of canonical JSON representation.

    Returns:
        Hex-encoded SHA-256 hash string (64 characters)
    """
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()


def content_hash_short(obj: Any, length: int = 12) -> str:
    """Compute truncated SHA-256 hash for display purposes."""
    return content_hash(obj)[:length]

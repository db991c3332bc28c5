"""
Canonical JSON Serialization

Provides deterministic JSON serialization for stored artifacts.
Based on RFC 8785 (JSON Canonicalization Scheme) principles:
- Sorted keys (lexicographic)
- No whitespace
- Sets emitted as sorted lists
- UTF-8 encoding

Re-running the pipeline on an unchanged intake with unchanged rule tables
must produce byte-identical artifacts, so everything written to the store
goes through canonical_json().
"""
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable


def _default_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for non-standard types.

    Handles:
    - datetime/date: ISO 8601 format
    - Enum: value
    - dataclass: to_dict() when available, else asdict()
    - set/frozenset: sorted list
    """
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Example:
        >>> canonical_json({"b": 1, "a": 2})
        '{"a":2,"b":1}'
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        default=_default_serializer,
        ensure_ascii=False,
    )


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def pretty_json(obj: Any) -> str:
    """
    Indented, sorted-key JSON for the human-facing "technical" summaries.

    Deterministic like canonical_json(), just readable.
    """
    return json.dumps(
        obj,
        sort_keys=True,
        indent=2,
        default=_default_serializer,
        ensure_ascii=False,
    )


def sorted_codes(codes: Iterable[str]) -> list[str]:
    """Sorted, de-duplicated list of codes for serialization."""
    return sorted(set(codes))

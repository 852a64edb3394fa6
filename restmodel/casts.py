"""
Date casting between wire values and ``datetime`` objects.

Model date fields hold timezone-aware datetimes in memory and travel as
UNIX timestamps (integer seconds) on the wire.
"""

from __future__ import annotations

import datetime
import json
from typing import Any

__all__ = ["to_datetime", "to_timestamp", "encode_value", "dumps"]


def to_datetime(value: Any) -> Any:
    """
    Cast a wire value to an aware datetime.

    None passes through; strings are parsed as ISO 8601 (a trailing "Z" is
    accepted); numbers are read as UNIX timestamps. Naive results are taken
    as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        result = value
    elif isinstance(value, datetime.date):
        result = datetime.datetime(value.year, value.month, value.day)
    elif isinstance(value, bool):
        raise TypeError(f"Cannot cast {value!r} to datetime")
    elif isinstance(value, (int, float)):
        return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        result = datetime.datetime.fromisoformat(text)
    else:
        raise TypeError(f"Cannot cast {type(value).__name__} to datetime")

    if result.tzinfo is None:
        result = result.replace(tzinfo=datetime.timezone.utc)
    return result


def to_timestamp(value: datetime.datetime) -> int:
    return int(value.timestamp())


def encode_value(value: Any) -> Any:
    """``json.dumps`` default hook: datetimes become timestamps."""
    if isinstance(value, datetime.datetime):
        return to_timestamp(to_datetime(value))
    if isinstance(value, datetime.date):
        return value.isoformat()
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(value: Any) -> str:
    """Compact JSON encoding used for request bodies and query strings."""
    return json.dumps(value, separators=(",", ":"), default=encode_value)

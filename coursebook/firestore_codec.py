"""
Firestore REST value encoding (Python <-> typed JSON).

The REST API wraps every value in a single-key object naming its type:

    "abc"                -> {"stringValue": "abc"}
    12                   -> {"integerValue": "12"}     (int64 as string)
    True                 -> {"booleanValue": true}
    None                 -> {"nullValue": null}
    1.5                  -> {"doubleValue": 1.5}
    datetime             -> {"timestampValue": "2025-04-01T10:00:00.000000Z"}
    [..]                 -> {"arrayValue": {"values": [..]}}
    {..}                 -> {"mapValue": {"fields": {..}}}

Timestamps coming back may carry nanoseconds; they are truncated to
microseconds. Naive datetimes are treated as UTC on the way out.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any


_FRACTION_RE = re.compile(r"\.(\d+)")


def encode_value(value: Any) -> dict[str, Any]:
    # bool before int: bool is a subclass of int
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(raw: dict[str, Any]) -> Any:
    if "nullValue" in raw:
        return None
    if "booleanValue" in raw:
        return bool(raw["booleanValue"])
    if "integerValue" in raw:
        return int(raw["integerValue"])
    if "doubleValue" in raw:
        return float(raw["doubleValue"])
    if "stringValue" in raw:
        return raw["stringValue"]
    if "timestampValue" in raw:
        return parse_timestamp(raw["timestampValue"])
    if "arrayValue" in raw:
        return [decode_value(v) for v in (raw["arrayValue"] or {}).get("values", [])]
    if "mapValue" in raw:
        return decode_fields((raw["mapValue"] or {}).get("fields", {}))
    if "referenceValue" in raw:
        return raw["referenceValue"]
    if "bytesValue" in raw:
        return raw["bytesValue"]
    if "geoPointValue" in raw:
        return dict(raw["geoPointValue"])
    raise ValueError(f"Unknown Firestore value: {raw!r}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(text: str) -> datetime:
    """
    Parse an RFC 3339 timestamp such as '2025-04-01T01:00:00.123456789Z'.
    """
    s = text.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    # fromisoformat() accepts at most 6 fractional digits
    s = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), s, count=1)
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

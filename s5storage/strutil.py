"""Small string helpers: human-readable sizes and compact JSON."""

from __future__ import annotations

import enum
import json
from datetime import datetime, timedelta
from typing import Any

_HUMAN_DIVISORS = (
    ("K", 1 << 10),
    ("M", 1 << 20),
    ("G", 1 << 30),
    ("T", 1 << 40),
)

_HTML_ESCAPES = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
    0x2028: "\\u2028",
    0x2029: "\\u2029",
}


def humanize_bytes(b: int) -> str:
    """Return a byte count as a human-readable string."""
    suffix, div = "", 0
    for candidate_suffix, candidate_div in _HUMAN_DIVISORS:
        if b > candidate_div:
            suffix, div = candidate_suffix, candidate_div
    if not suffix:
        return str(b)
    return f"{b / div:.1f}{suffix}"


def _format_time(dt: datetime) -> str:
    text = dt.strftime("%Y-%m-%dT%H:%M:%S")
    if dt.microsecond:
        text += "." + f"{dt.microsecond:06d}".rstrip("0")
    offset = dt.utcoffset()
    if offset is None or offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset >= timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return _format_time(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def to_json(v: Any) -> str:
    """Encode a value as compact JSON with HTML-sensitive characters escaped."""
    text = json.dumps(v, separators=(",", ":"), ensure_ascii=False, default=_default)
    return text.translate(_HTML_ESCAPES)
"""
Payload normalization for admin writes.

Admin clients send timestamps as strings and keys in camelCase; entities
expect ``datetime`` values and snake_case attributes.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic.alias_generators import to_snake

DATE_LIKE_KEYS = frozenset(
    {
        "createdAt",
        "updatedAt",
        "deletedAt",
        "startedAt",
        "completedAt",
        "systemUntil",
        "validFrom",
        "validUntil",
    }
)


def is_date_like_key(key: str) -> bool:
    return key.endswith("At") or key in DATE_LIKE_KEYS


def parse_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 date or datetime string into a naive UTC datetime.

    Returns None when the string is not a date.
    """
    text = value.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed_date = date.fromisoformat(text)
        except ValueError:
            return None
        return datetime(parsed_date.year, parsed_date.month, parsed_date.day)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def sanitize_dates(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce date-like string fields of ``payload`` to datetimes.

    A key is date-like when it ends with ``At`` or is one of
    ``DATE_LIKE_KEYS``. ``None`` and non-string values are kept as they are,
    parseable strings become naive UTC datetimes and unparseable strings are
    dropped from the result. The input mapping is never modified.

    Args:
        payload: Request body with camelCase keys

    Returns:
        A shallow copy with date-like strings coerced
    """
    out = dict(payload)
    for key in list(out.keys()):
        value = out[key]
        if value is None or not isinstance(value, str) or not is_date_like_key(key):
            continue
        parsed = parse_datetime(value)
        if parsed is None:
            del out[key]
        else:
            out[key] = parsed
    return out


def to_snake_case_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase request keys to entity attribute names."""
    return {to_snake(key): value for key, value in payload.items()}

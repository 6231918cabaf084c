"""
Payload parsing helpers for ``from_mapping`` constructors.

API-layer payloads arrive as plain mappings, in either snake_case or the
camelCase used by JSON clients.  These helpers turn them into typed values
so that request dataclasses carry no untyped data past construction.

JSON numbers may arrive as floats; parse_decimal converts them through
their shortest repr so no binary-float error reaches the ledger.
"""

from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

_MISSING = object()


def camel_case(name: str) -> str:
    """snake_case -> camelCase."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def pick(data: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Value for `name` under its snake_case or camelCase key."""
    value = data.get(name, _MISSING)
    if value is _MISSING:
        value = data.get(camel_case(name), _MISSING)
    return default if value is _MISSING else value


def parse_decimal(value: Any, field: str) -> Decimal | None:
    """
    Parse a numeric payload value.

    Raises:
        ValueError: If the value is not numeric, or is NaN or infinite.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, float):
        parsed = Decimal(repr(value))
    else:
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"{field} must be numeric, got {value!r}") from exc
    if not parsed.is_finite():
        raise ValueError(f"{field} must be a finite number, got {value!r}")
    return parsed


def parse_date(value: Any, field: str) -> date | None:
    """
    Parse a date from a ``date``, ``datetime`` or ISO 8601 string.

    Raises:
        ValueError: If the string is not ISO 8601.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ValueError(f"{field} must be an ISO date, got {value!r}") from exc


def parse_datetime(value: Any, field: str) -> datetime | None:
    """
    Parse a timezone-aware datetime.  Naive values are taken as UTC and a
    bare date means midnight UTC.

    Raises:
        ValueError: If the string is not ISO 8601.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(
                f"{field} must be an ISO datetime, got {value!r}"
            ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

"""Shared utility functions."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.shared.exceptions import InvalidInputException


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalize datetime to UTC timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_timezone(name: str) -> ZoneInfo:
    """Return IANA timezone or raise InvalidInputException."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidInputException(f"Unknown timezone: {name}") from exc


def hours_between(start: datetime, end: datetime, timezone_name: str = "UTC") -> float:
    """Signed fractional hours from start to end, floored to whole minutes.

    Both instants are placed in the same IANA zone first, then compared as UTC
    instants: aware datetimes sharing one tzinfo subtract as wall-clock values,
    which would skew the result across a DST change.
    """
    zone = resolve_timezone(timezone_name)
    start_local = ensure_utc(start).astimezone(zone)
    end_local = ensure_utc(end).astimezone(zone)
    delta = end_local.astimezone(timezone.utc) - start_local.astimezone(timezone.utc)
    minutes = math.floor(delta.total_seconds() / 60)
    return minutes / 60


def format_cents(amount_cents: int, currency: str = "AUD") -> str:
    """Format integer cents as a human-readable amount."""
    amount = (Decimal(amount_cents) / 100).quantize(Decimal("0.01"))
    return f"{amount:,.2f} {currency}"

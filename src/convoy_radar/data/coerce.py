"""Coercion helpers for loosely-typed rows returned by the backend."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

from ..models.domain import Coordinate


def to_number(value: Any) -> Optional[float]:
    """Parse a finite number from a numeric value or numeric string."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def floor_int(value: Any, fallback: int) -> int:
    """Floor a numeric value to an int, returning ``fallback`` when it is not numeric."""

    number = to_number(value)
    if number is None:
        return fallback
    return math.floor(number)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp. Naive values are assumed to be UTC."""

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_coordinate(lat: Any, lng: Any) -> Optional[Coordinate]:
    """Build a coordinate when both parts are present and in range; zero is valid."""

    lat_value = to_number(lat)
    lng_value = to_number(lng)
    if lat_value is None or lng_value is None:
        return None
    if not -90.0 <= lat_value <= 90.0 or not -180.0 <= lng_value <= 180.0:
        return None
    return Coordinate(lat=lat_value, lng=lng_value)


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def timestamp_key(value: Optional[datetime]) -> float:
    """Sort key for optional timestamps; missing values sort as the epoch."""

    return value.timestamp() if value is not None else 0.0

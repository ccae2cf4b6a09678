"""Geospatial helper functions."""

from __future__ import annotations

import math

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two present coordinates.

    Symmetric in its arguments. Callers short-circuit absent coordinates before
    reaching this function.
    """
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def moved_beyond(previous: Coordinate, current: Coordinate, threshold_deg: float) -> bool:
    """True when either axis moved by more than ``threshold_deg`` degrees."""

    return (
        abs(current.lat - previous.lat) > threshold_deg
        or abs(current.lng - previous.lng) > threshold_deg
    )

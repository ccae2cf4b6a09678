"""Best-effort merchant device position providers."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Protocol

import httpx

from ...config import settings
from ...data.coerce import parse_coordinate
from ...models.domain import Coordinate
from ..geospatial import moved_beyond

logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    def current_position(self, timeout: float) -> Optional[Coordinate]:
        """Return the device position, or None when it cannot be obtained in time."""


class HttpLocationProvider:
    """Single-shot position request against an HTTP geolocation endpoint.

    The endpoint answers JSON with ``lat``/``lng`` (or ``latitude``/``longitude``).
    Timeouts, refused permission (4xx) and malformed payloads all yield None.
    """

    def __init__(
        self,
        url: str | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url or settings.geolocation_url
        if not self.url:
            raise ValueError("Geolocation URL is not configured.")
        self.headers = headers or {}
        self.transport = transport

    def current_position(self, timeout: float) -> Optional[Coordinate]:
        try:
            with httpx.Client(timeout=httpx.Timeout(timeout), transport=self.transport) as client:
                response = client.get(self.url, headers=self.headers)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"Device position unavailable: {e}")
            return None

        if not isinstance(payload, dict):
            return None
        lat = payload.get("lat", payload.get("latitude"))
        lng = payload.get("lng", payload.get("longitude"))
        return parse_coordinate(lat, lng)


class PushedLocationProvider:
    """Holds the last position pushed by the merchant's device through the API."""

    def __init__(self, initial: Coordinate | None = None) -> None:
        self._lock = threading.Lock()
        self._position = initial

    def push(self, position: Coordinate) -> None:
        with self._lock:
            self._position = position

    def current_position(self, timeout: float) -> Optional[Coordinate]:
        with self._lock:
            return self._position


class MerchantOrigin:
    """The merchant-side origin used for every distance computation.

    A failed refresh leaves the previous origin untouched. Unforced refreshes
    only move the origin when it shifted by more than the configured threshold;
    otherwise just the confirmation time advances.
    """

    def __init__(
        self,
        provider: LocationProvider,
        *,
        timeout: float | None = None,
        change_threshold_deg: float | None = None,
    ) -> None:
        self.provider = provider
        self.timeout = timeout if timeout is not None else settings.geolocation_timeout_seconds
        self.change_threshold_deg = (
            change_threshold_deg if change_threshold_deg is not None else settings.origin_change_threshold_deg
        )
        self.position: Optional[Coordinate] = None
        self.updated_at: Optional[datetime] = None
        self.attempted = False

    def refresh(self, force: bool = False) -> Optional[Coordinate]:
        self.attempted = True
        try:
            candidate = self.provider.current_position(self.timeout)
        except Exception as e:
            logger.warning(f"Location provider failed: {e}")
            candidate = None

        if candidate is None:
            return self.position

        if force or self.position is None or moved_beyond(self.position, candidate, self.change_threshold_deg):
            self.position = candidate
        self.updated_at = datetime.now(timezone.utc)
        return self.position

"""One monitor per business, created on first use."""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Callable, Optional

from supabase import Client

from ...config import settings
from ...db.supabase import require_supabase_client
from ...models.domain import Coordinate
from ..location.provider import HttpLocationProvider, LocationProvider, MerchantOrigin, PushedLocationProvider
from .monitor import ConvoyMonitor

logger = logging.getLogger(__name__)


def default_location_provider() -> LocationProvider:
    if settings.geolocation_url:
        return HttpLocationProvider()
    return PushedLocationProvider()


class MonitorRegistry:
    def __init__(
        self,
        client_factory: Callable[[], Client] = require_supabase_client,
        provider_factory: Callable[[], LocationProvider] = default_location_provider,
        *,
        start_loops: bool = True,
    ) -> None:
        self.client_factory = client_factory
        self.provider_factory = provider_factory
        self.start_loops = start_loops
        self._monitors: dict[str, ConvoyMonitor] = {}
        self._ready: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def get(self, business_id: str) -> Optional[ConvoyMonitor]:
        with self._lock:
            return self._monitors.get(business_id)

    def business_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._monitors)

    def ensure(self, business_id: str) -> ConvoyMonitor:
        """Return the business's monitor, creating it with an initial tick if needed."""
        business = (business_id or "").strip()
        if not business:
            raise ValueError("business_id is required.")

        while True:
            with self._lock:
                monitor = self._monitors.get(business)
                if monitor is None:
                    origin = MerchantOrigin(self.provider_factory())
                    monitor = ConvoyMonitor(business, self.client_factory(), origin)
                    ready = threading.Event()
                    self._monitors[business] = monitor
                    self._ready[business] = ready
                    break
                ready = self._ready[business]

            # Callers that did not create the monitor wait for its first tick.
            ready.wait()
            with self._lock:
                if self._monitors.get(business) is monitor:
                    return monitor

        logger.info(f"Starting convoy monitor for business {business}")
        try:
            monitor.tick()
        except Exception:
            with self._lock:
                if self._monitors.get(business) is monitor:
                    del self._monitors[business]
                    del self._ready[business]
            monitor.stop()
            raise
        finally:
            ready.set()

        with self._lock:
            registered = self._monitors.get(business) is monitor
        if self.start_loops and registered:
            monitor.start()
        return monitor

    def push_position(self, business_id: str, position: Coordinate) -> ConvoyMonitor:
        monitor = self.ensure(business_id)
        provider = monitor.origin.provider if monitor.origin else None
        if not isinstance(provider, PushedLocationProvider):
            raise ValueError("Device position is read from the configured geolocation endpoint.")
        provider.push(position)
        return monitor

    def stop(self, business_id: str) -> bool:
        with self._lock:
            monitor = self._monitors.pop(business_id, None)
            self._ready.pop(business_id, None)
        if monitor is None:
            return False
        monitor.stop()
        logger.info(f"Stopped convoy monitor for business {business_id}")
        return True

    def stop_all(self) -> None:
        with self._lock:
            monitors = list(self._monitors.values())
            self._monitors.clear()
            self._ready.clear()
        for monitor in monitors:
            monitor.stop()


@lru_cache()
def get_registry() -> MonitorRegistry:
    return MonitorRegistry()

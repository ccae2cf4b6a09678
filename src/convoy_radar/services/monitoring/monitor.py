"""
Polling monitor for one merchant session.

Responsibilities:
- Refresh the merchant origin (best effort) at the start of every tick.
- Load active/planned convoys, offers and coupons for the business.
- Reconcile leader positions, feed distance samples to the trend classifier
  and resolve headcounts.
- Publish an immutable Tick snapshot to subscribers.

Ticks never overlap: the loop waits for one tick to settle before the next
period starts, and a manual refresh shares the same lock.
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from supabase import Client

from ...config import settings
from ...data.convoys_repository import (
    fetch_convoy_rows,
    fetch_roster_positions,
    has_live_position_fields,
    parse_convoy_rows,
)
from ...data.offers_repository import (
    fetch_coupon_rows,
    fetch_offer_rows,
    parse_coupon_rows,
    parse_offer_rows,
)
from ...models.domain import ConvoyStatus, MemberPositionReport
from ..geospatial import distance_km
from ..location.provider import MerchantOrigin
from ..offers.lifecycle import compute_archive_set
from ..offers.service import filter_active_coupons
from ..tracking.headcount import HeadcountAggregator
from ..tracking.reconciler import reconcile_leader_positions
from ..tracking.trend import DistanceTrendClassifier
from .snapshot import Tick, frozen_mapping

logger = logging.getLogger(__name__)

Subscriber = Callable[[Tick], None]


class ConvoyMonitor:
    """Owns the mutable tracking state of one business and publishes ticks."""

    def __init__(
        self,
        business_id: str,
        client: Client,
        origin: MerchantOrigin | None = None,
        *,
        classifier: DistanceTrendClassifier | None = None,
        aggregator: HeadcountAggregator | None = None,
        period: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.business_id = business_id
        self.client = client
        self.origin = origin
        self.classifier = classifier or DistanceTrendClassifier()
        self.aggregator = aggregator or HeadcountAggregator(client)
        self.period = period if period is not None else settings.poll_interval_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._latest = Tick(business_id=business_id)
        self._subscribers: list[Subscriber] = []
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False
        self._origin_forced = False

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def latest(self) -> Tick:
        return self._latest

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a tick consumer; returns a callable that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Loop lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"convoy-monitor-{self.business_id}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop polling. An in-flight tick finishes but its result is discarded."""
        self._stopped = True
        self._stop_event.set()

    def _run(self) -> None:
        while not self._stop_event.wait(self.period):
            try:
                self.tick()
            except Exception:
                logger.exception(f"Monitor tick crashed for business {self.business_id}")

    # ------------------------------------------------------------------
    # One tick
    # ------------------------------------------------------------------

    def tick(self) -> Tick:
        with self._tick_lock:
            now = self._clock()
            origin = self._refresh_origin()

            try:
                active_rows, planned_rows, offer_rows, coupon_rows = self._load_primary()
            except Exception as e:
                logger.warning(f"Could not refresh convoy data for business {self.business_id}: {e}")
                failed = dataclasses.replace(
                    self._latest,
                    sequence=self._latest.sequence + 1,
                    generated_at=now,
                    origin=origin,
                    refresh_failed=True,
                    error=str(e),
                )
                return self._publish(failed)

            live_schema_missing = not has_live_position_fields(active_rows)
            if live_schema_missing:
                logger.info("Convoy rows carry no leader live-position columns; proximity data unavailable")

            active = parse_convoy_rows(active_rows, ConvoyStatus.ACTIVE)
            planned = parse_convoy_rows(planned_rows, ConvoyStatus.PENDING)
            active_ids = [convoy.id for convoy in active]

            merged = reconcile_leader_positions(active, self._load_roster(active_ids))

            samples: dict[str, float] = {}
            if origin is not None:
                for convoy in active:
                    leader = merged.get(convoy.id)
                    if leader is None:
                        continue
                    sample = distance_km(origin, leader.position)
                    samples[convoy.id] = sample
                    self.classifier.observe(convoy.id, sample)
            self.classifier.retain(active_ids)

            trends = {}
            for convoy_id in active_ids:
                trend = self.classifier.trend_for(convoy_id)
                if trend is not None:
                    trends[convoy_id] = trend

            headcounts = self.aggregator.resolve([*active_ids, *(convoy.id for convoy in planned)])

            offers = parse_offer_rows(offer_rows)
            archived = compute_archive_set(
                offers,
                now,
                limit=settings.offer_archive_limit,
                max_age=timedelta(days=settings.offer_archive_age_days),
            )

            snapshot = Tick(
                business_id=self.business_id,
                sequence=self._latest.sequence + 1,
                generated_at=now,
                origin=origin,
                active_convoys=active,
                planned_convoys=planned,
                offers=offers,
                coupons=tuple(filter_active_coupons(parse_coupon_rows(coupon_rows), now)),
                merged_positions=frozen_mapping(merged),
                distance_samples=frozen_mapping(samples),
                trends=frozen_mapping(trends),
                headcounts=frozen_mapping(headcounts),
                archived_offer_ids=archived,
                live_schema_missing=live_schema_missing,
            )
            return self._publish(snapshot)

    def _refresh_origin(self):
        if self.origin is None:
            return None
        force = not self._origin_forced
        self._origin_forced = True
        return self.origin.refresh(force=force)

    def _load_primary(self) -> tuple[list[dict], list[dict], list[dict], list[dict]]:
        with ThreadPoolExecutor(max_workers=4) as executor:
            active = executor.submit(fetch_convoy_rows, self.client, ConvoyStatus.ACTIVE)
            planned = executor.submit(fetch_convoy_rows, self.client, ConvoyStatus.PENDING)
            offers = executor.submit(fetch_offer_rows, self.client, self.business_id)
            coupons = executor.submit(fetch_coupon_rows, self.client, self.business_id)
            return active.result(), planned.result(), offers.result(), coupons.result()

    def _load_roster(self, active_ids: list[str]) -> list[MemberPositionReport]:
        try:
            return fetch_roster_positions(self.client, active_ids)
        except Exception as e:
            logger.warning(f"Roster positions unavailable, using convoy positions only: {e}")
            return []

    def _publish(self, snapshot: Tick) -> Tick:
        if self._stopped:
            logger.debug(f"Discarding tick {snapshot.sequence} for stopped monitor {self.business_id}")
            return self._latest

        self._latest = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning(f"Tick subscriber failed: {e}")
        return snapshot

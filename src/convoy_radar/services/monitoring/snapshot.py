"""Tick: the immutable snapshot published by the monitor after every poll."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Mapping, Optional

from ...config import settings
from ...models.domain import (
    ConvoySnapshot,
    Coordinate,
    CouponRecord,
    HeadcountStats,
    OfferRecord,
    ReconciledPosition,
    TrendEnum,
)
from ..offers.lifecycle import compute_offer_counts


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


def frozen_mapping(values: dict) -> Mapping:
    return MappingProxyType(dict(values))


@dataclasses.dataclass(frozen=True)
class Tick:
    """
    Copy-on-publish snapshot of one monitoring session.

    Always replace via dataclasses.replace() and never mutate in place.
    Readers never see the monitor's live trend state, only the copies here.
    """

    business_id: str
    sequence: int = 0
    generated_at: Optional[datetime] = None
    origin: Optional[Coordinate] = None

    active_convoys: tuple[ConvoySnapshot, ...] = ()
    planned_convoys: tuple[ConvoySnapshot, ...] = ()
    offers: tuple[OfferRecord, ...] = ()
    coupons: tuple[CouponRecord, ...] = ()

    # convoy_id -> winning leader position this tick
    merged_positions: Mapping[str, ReconciledPosition] = dataclasses.field(default_factory=_empty_mapping)
    # convoy_id -> distance (km) sampled this tick; absent means unknown
    distance_samples: Mapping[str, float] = dataclasses.field(default_factory=_empty_mapping)
    # convoy_id -> latest trend for convoys with trend state
    trends: Mapping[str, TrendEnum] = dataclasses.field(default_factory=_empty_mapping)
    # convoy_id -> resolved occupancy
    headcounts: Mapping[str, HeadcountStats] = dataclasses.field(default_factory=_empty_mapping)
    archived_offer_ids: frozenset[str] = frozenset()

    live_schema_missing: bool = False
    refresh_failed: bool = False
    error: Optional[str] = None

    def find_convoy(self, convoy_id: str) -> Optional[ConvoySnapshot]:
        for convoy in (*self.active_convoys, *self.planned_convoys):
            if convoy.id == convoy_id:
                return convoy
        return None

    def leader_updated_at(self, convoy_id: str) -> Optional[datetime]:
        merged = self.merged_positions.get(convoy_id)
        return merged.observed_at if merged is not None else None


def is_likely_live(observed_at: Optional[datetime], now: datetime, window_seconds: float | None = None) -> bool:
    if observed_at is None:
        return False
    window = settings.live_window_seconds if window_seconds is None else window_seconds
    return now - observed_at <= timedelta(seconds=window)


@dataclasses.dataclass(frozen=True, slots=True)
class MonitorKpis:
    nearest_active_distance_km: Optional[float]
    live_tracked_count: int
    active_with_distance_count: int
    active_within_radius_count: int
    pending_offer_count: int
    active_offer_count: int
    archived_offer_count: int
    has_origin: bool
    live_schema_missing: bool
    refresh_failed: bool


def compute_kpis(tick: Tick, radius_km: Optional[float] = None, now: Optional[datetime] = None) -> MonitorKpis:
    now = now or datetime.now(timezone.utc)
    distances = tick.distance_samples

    nearest: Optional[float] = None
    for distance in distances.values():
        if nearest is None or distance < nearest:
            nearest = distance

    active_ids = [convoy.id for convoy in tick.active_convoys]
    if radius_km is None:
        within = len(active_ids)
    else:
        within = sum(1 for cid in active_ids if cid in distances and distances[cid] <= radius_km)

    counts = compute_offer_counts(tick.offers, tick.archived_offer_ids)
    return MonitorKpis(
        nearest_active_distance_km=nearest,
        live_tracked_count=sum(1 for cid in active_ids if is_likely_live(tick.leader_updated_at(cid), now)),
        active_with_distance_count=sum(1 for cid in active_ids if cid in distances),
        active_within_radius_count=within,
        pending_offer_count=counts.pending,
        active_offer_count=counts.active,
        archived_offer_count=counts.archived,
        has_origin=tick.origin is not None,
        live_schema_missing=tick.live_schema_missing,
        refresh_failed=tick.refresh_failed,
    )

"""Filtered, ordered views over the latest tick."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ...models.domain import ConvoySnapshot, HeadcountStats, OfferRecord, TrendEnum
from ..monitoring.snapshot import Tick, is_likely_live
from .filters import ListFilter, filter_convoys, filter_offers, resolve_convoy_category, resolve_offer_category
from .sorting import ListKind, SortMode, resolve_sort_mode, sort_convoys, sort_offers


@dataclass(frozen=True, slots=True)
class ConvoyView:
    convoy: ConvoySnapshot
    category: str
    distance_km: Optional[float]
    trend: Optional[TrendEnum]
    headcount: Optional[HeadcountStats]
    leader_updated_at: Optional[datetime]
    is_live: bool


@dataclass(frozen=True, slots=True)
class ConvoyListView:
    items: list[ConvoyView]
    sort: SortMode
    source_count: int


@dataclass(frozen=True, slots=True)
class OfferView:
    offer: OfferRecord
    category: str
    archived: bool


@dataclass(frozen=True, slots=True)
class OfferListView:
    items: list[OfferView]
    sort: SortMode
    show_archive: bool
    source_count: int


def build_convoy_list(
    tick: Tick,
    list_kind: ListKind,
    list_filter: ListFilter,
    sort: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ConvoyListView:
    if list_kind is ListKind.OFFERS:
        raise ValueError("Use build_offer_list for offers.")

    now = now or datetime.now(timezone.utc)
    mode = resolve_sort_mode(list_kind, sort)
    is_active = list_kind is ListKind.ACTIVE
    source = tick.active_convoys if is_active else tick.planned_convoys
    distances = tick.distance_samples if is_active else {}

    rows = filter_convoys(
        source,
        list_filter,
        distances=distances,
        apply_radius=is_active and tick.origin is not None,
    )
    rows = sort_convoys(
        rows,
        mode,
        list_kind=list_kind,
        distances=distances,
        headcounts=tick.headcounts,
    )

    items = []
    for convoy in rows:
        updated_at = tick.leader_updated_at(convoy.id) if is_active else None
        items.append(
            ConvoyView(
                convoy=convoy,
                category=resolve_convoy_category(convoy),
                distance_km=distances.get(convoy.id),
                trend=(tick.trends.get(convoy.id) or TrendEnum.UNKNOWN) if is_active else None,
                headcount=tick.headcounts.get(convoy.id),
                leader_updated_at=updated_at,
                is_live=is_likely_live(updated_at, now),
            )
        )
    return ConvoyListView(items=items, sort=mode, source_count=len(source))


def build_offer_list(tick: Tick, list_filter: ListFilter, sort: Optional[str] = None) -> OfferListView:
    """Offer list for the active partition, or the archive when requested.

    Asking for the archive while nothing is archived falls back to the active view.
    """
    mode = resolve_sort_mode(ListKind.OFFERS, sort)
    archived_ids = tick.archived_offer_ids
    show_archive = list_filter.show_archive and bool(archived_ids)
    if show_archive != list_filter.show_archive:
        list_filter = ListFilter(
            category=list_filter.category,
            search=list_filter.search,
            location=list_filter.location,
            radius_km=list_filter.radius_km,
            offer_status=list_filter.offer_status,
            show_archive=show_archive,
        )

    rows = sort_offers(filter_offers(tick.offers, list_filter, archived_ids=archived_ids), mode)
    items = [
        OfferView(offer=offer, category=resolve_offer_category(offer), archived=offer.id in archived_ids)
        for offer in rows
    ]
    source_count = len(archived_ids) if show_archive else len(tick.offers) - len(archived_ids)
    return OfferListView(items=items, sort=mode, show_archive=show_archive, source_count=source_count)

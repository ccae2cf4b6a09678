"""Category, text, route, proximity and status filters for convoy and offer lists."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from ...config import settings
from ...models.domain import ConvoySnapshot, OfferRecord, OfferStatus
from ..offers.lifecycle import partition_offers
from .text import category_from_description, matches, normalize_vehicle_category, DEFAULT_CATEGORY


@dataclass(frozen=True, slots=True)
class ListFilter:
    """User-chosen filter configuration. ``None`` disables a filter."""

    category: Optional[str] = None
    search: str = ""
    location: str = ""
    radius_km: Optional[float] = None
    offer_status: Optional[OfferStatus] = None
    show_archive: bool = False


def clamp_radius(value: float | str | None) -> Optional[float]:
    """Coerce a requested radius into a usable one instead of rejecting it.

    ``None`` or a blank string keeps the filter off; non-finite or non-positive
    values fall back to the default radius and oversized ones are capped.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        radius = float(value)
    except (TypeError, ValueError):
        return settings.default_radius_km
    if not math.isfinite(radius) or radius <= 0:
        return settings.default_radius_km
    return min(radius, settings.max_radius_km)


def resolve_convoy_category(convoy: ConvoySnapshot) -> str:
    if convoy.category:
        return normalize_vehicle_category(convoy.category)
    return category_from_description(convoy.description) or DEFAULT_CATEGORY


def resolve_offer_category(offer: OfferRecord) -> str:
    return normalize_vehicle_category(offer.convoy.category if offer.convoy else None)


def _joined(*parts: Optional[str]) -> str:
    return " ".join(part or "" for part in parts)


def filter_convoys(
    convoys: Iterable[ConvoySnapshot],
    list_filter: ListFilter,
    *,
    distances: Mapping[str, float] | None = None,
    apply_radius: bool = False,
) -> list[ConvoySnapshot]:
    """Apply the filter to a convoy list, preserving input order.

    The radius filter only runs when ``apply_radius`` is set (a merchant origin
    exists and the list is the active one); convoys without a known distance
    never pass it.
    """
    distances = distances or {}
    radius = clamp_radius(list_filter.radius_km) if apply_radius else None

    rows: list[ConvoySnapshot] = []
    for convoy in convoys:
        if list_filter.category and resolve_convoy_category(convoy) != list_filter.category:
            continue
        if list_filter.search and not matches(
            _joined(convoy.name, convoy.description, convoy.leader_name), list_filter.search
        ):
            continue
        if list_filter.location and not matches(
            _joined(convoy.start_location, convoy.end_location), list_filter.location
        ):
            continue
        if radius is not None:
            distance = distances.get(convoy.id)
            if distance is None or distance > radius:
                continue
        rows.append(convoy)
    return rows


def filter_offers(
    offers: Iterable[OfferRecord],
    list_filter: ListFilter,
    *,
    archived_ids: frozenset[str] = frozenset(),
) -> list[OfferRecord]:
    """Select the archive or active partition, then apply the remaining filters."""

    active, archived = partition_offers(list(offers), archived_ids)
    rows: list[OfferRecord] = []
    for offer in archived if list_filter.show_archive else active:
        if list_filter.category and resolve_offer_category(offer) != list_filter.category:
            continue
        if list_filter.offer_status is not None and offer.status is not list_filter.offer_status:
            continue
        convoy = offer.convoy
        if list_filter.search and not matches(
            _joined(offer.title, offer.details, offer.captain_name, convoy.name if convoy else None),
            list_filter.search,
        ):
            continue
        if list_filter.location and not matches(
            _joined(
                convoy.start_location if convoy else None,
                convoy.end_location if convoy else None,
            ),
            list_filter.location,
        ):
            continue
        rows.append(offer)
    return rows

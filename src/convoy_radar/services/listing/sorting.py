"""Named sort strategies for convoy and offer lists.

Every strategy is a key function over Python's stable sort, so exact ties keep
their input order and sorting an already sorted list is a no-op.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Mapping, Optional, Sequence

from ...data.coerce import timestamp_key
from ...models.domain import ConvoySnapshot, HeadcountStats, OfferRecord
from ..offers.lifecycle import STATUS_RANK


class SortMode(str, Enum):
    SMART = "smart"
    CLOSEST = "closest"
    HEADCOUNT = "headcount"
    START_TIME = "start_time"
    RECENT = "recent"


class ListKind(str, Enum):
    ACTIVE = "active"
    PLANNED = "planned"
    OFFERS = "offers"


SORT_OPTIONS: dict[ListKind, tuple[SortMode, ...]] = {
    ListKind.ACTIVE: (
        SortMode.SMART,
        SortMode.CLOSEST,
        SortMode.START_TIME,
        SortMode.HEADCOUNT,
        SortMode.RECENT,
    ),
    ListKind.PLANNED: (
        SortMode.SMART,
        SortMode.START_TIME,
        SortMode.HEADCOUNT,
        SortMode.RECENT,
    ),
    ListKind.OFFERS: (
        SortMode.SMART,
        SortMode.RECENT,
        SortMode.START_TIME,
    ),
}


def resolve_sort_mode(list_kind: ListKind, raw: Optional[str | SortMode]) -> SortMode:
    """Return ``raw`` if the list supports it, else the list's first option."""

    options = SORT_OPTIONS[list_kind]
    try:
        mode = SortMode(raw) if raw is not None else options[0]
    except ValueError:
        return options[0]
    return mode if mode in options else options[0]


def confirmed_headcount(convoy: ConvoySnapshot, headcounts: Mapping[str, HeadcountStats]) -> int:
    stats = headcounts.get(convoy.id)
    if stats is not None:
        return stats.confirmed_headcount
    return max(1, convoy.declared_leader_party_size or 1)


def sort_convoys(
    convoys: Sequence[ConvoySnapshot],
    mode: SortMode,
    *,
    list_kind: ListKind = ListKind.ACTIVE,
    distances: Mapping[str, float] | None = None,
    headcounts: Mapping[str, HeadcountStats] | None = None,
) -> list[ConvoySnapshot]:
    distances = distances or {}
    headcounts = headcounts or {}

    def by_distance(convoy: ConvoySnapshot) -> tuple:
        distance = distances.get(convoy.id)
        start = timestamp_key(convoy.start_time)
        if distance is None:
            return (1, 0.0, start)
        return (0, distance, start)

    def by_headcount(convoy: ConvoySnapshot) -> tuple:
        return (-confirmed_headcount(convoy, headcounts), timestamp_key(convoy.start_time))

    def by_start_time(convoy: ConvoySnapshot) -> float:
        return timestamp_key(convoy.start_time)

    def by_recent(convoy: ConvoySnapshot) -> float:
        return -timestamp_key(convoy.created_at)

    key: Callable[[ConvoySnapshot], object]
    if mode is SortMode.CLOSEST:
        key = by_distance
    elif mode is SortMode.HEADCOUNT:
        key = by_headcount
    elif mode is SortMode.START_TIME:
        key = by_start_time
    elif mode is SortMode.RECENT:
        key = by_recent
    elif list_kind is ListKind.ACTIVE and any(convoy.id in distances for convoy in convoys):
        key = by_distance
    else:
        key = by_start_time

    return sorted(convoys, key=key)


def sort_offers(offers: Sequence[OfferRecord], mode: SortMode) -> list[OfferRecord]:
    def by_convoy_start(offer: OfferRecord) -> float:
        return timestamp_key(offer.convoy.start_time if offer.convoy else None)

    def by_recent(offer: OfferRecord) -> float:
        return -timestamp_key(offer.created_at)

    def by_status_then_recent(offer: OfferRecord) -> tuple:
        return (STATUS_RANK.get(offer.status, len(STATUS_RANK)), -timestamp_key(offer.created_at))

    if mode is SortMode.START_TIME:
        return sorted(offers, key=by_convoy_start)
    if mode is SortMode.RECENT:
        return sorted(offers, key=by_recent)
    return sorted(offers, key=by_status_then_recent)

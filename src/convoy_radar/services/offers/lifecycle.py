"""Offer status normalization, archive partitioning and offer counts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from ...models.domain import OfferRecord, OfferStatus

_STATUS_ALIASES: dict[str, OfferStatus] = {
    "pending": OfferStatus.PENDING,
    "accepted": OfferStatus.ACCEPTED,
    "approved": OfferStatus.ACCEPTED,
    "rejected": OfferStatus.REJECTED,
    "declined": OfferStatus.REJECTED,
    "expired": OfferStatus.EXPIRED,
    "cancelled": OfferStatus.CANCELLED,
    "canceled": OfferStatus.CANCELLED,
    "completed": OfferStatus.COMPLETED,
    "done": OfferStatus.COMPLETED,
    "closed": OfferStatus.COMPLETED,
}

STATUS_RANK: dict[OfferStatus, int] = {
    OfferStatus.PENDING: 0,
    OfferStatus.ACCEPTED: 1,
    OfferStatus.REJECTED: 2,
    OfferStatus.EXPIRED: 3,
    OfferStatus.CANCELLED: 4,
    OfferStatus.COMPLETED: 5,
}

DEFAULT_ARCHIVE_LIMIT = 20
DEFAULT_ARCHIVE_AGE = timedelta(days=5)


def normalize_offer_status(raw: Any) -> OfferStatus:
    """Map a free-text status onto the closed set; anything unknown is pending."""

    if isinstance(raw, OfferStatus):
        return raw
    value = str(raw or "").strip().lower()
    return _STATUS_ALIASES.get(value, OfferStatus.PENDING)


def compute_archive_set(
    offers: Sequence[OfferRecord],
    now: datetime,
    *,
    limit: int = DEFAULT_ARCHIVE_LIMIT,
    max_age: timedelta = DEFAULT_ARCHIVE_AGE,
) -> frozenset[str]:
    """Ids of offers kept out of the default view.

    Nothing is archived while a business has ``limit`` offers or fewer. Above
    that, every offer at least ``max_age`` old is archived. Offers without a
    creation time stay active.
    """
    if len(offers) <= limit:
        return frozenset()
    return frozenset(
        offer.id
        for offer in offers
        if offer.created_at is not None and now - offer.created_at >= max_age
    )


def partition_offers(
    offers: Sequence[OfferRecord],
    archived_ids: frozenset[str],
) -> tuple[list[OfferRecord], list[OfferRecord]]:
    active: list[OfferRecord] = []
    archived: list[OfferRecord] = []
    for offer in offers:
        (archived if offer.id in archived_ids else active).append(offer)
    return active, archived


@dataclass(frozen=True, slots=True)
class OfferCounts:
    total: int
    active: int
    archived: int
    pending: int


def compute_offer_counts(offers: Iterable[OfferRecord], archived_ids: frozenset[str]) -> OfferCounts:
    total = active = archived = pending = 0
    for offer in offers:
        total += 1
        if offer.id in archived_ids:
            archived += 1
            continue
        active += 1
        if offer.status is OfferStatus.PENDING:
            pending += 1
    return OfferCounts(total=total, active=active, archived=archived, pending=pending)


def parse_status_filter(raw: Optional[str]) -> Optional[OfferStatus]:
    """Status filter from user input; ``all``, blank or unknown values disable it."""

    value = (raw or "").strip().lower()
    return _STATUS_ALIASES.get(value)

"""Offer lifecycle helpers."""

from .lifecycle import (
    STATUS_RANK,
    OfferCounts,
    compute_archive_set,
    compute_offer_counts,
    normalize_offer_status,
    parse_status_filter,
    partition_offers,
)

__all__ = [
    "STATUS_RANK",
    "OfferCounts",
    "compute_archive_set",
    "compute_offer_counts",
    "normalize_offer_status",
    "parse_status_filter",
    "partition_offers",
]

"""Filtering and ordering of convoy and offer lists."""

from .filters import ListFilter, clamp_radius, filter_convoys, filter_offers
from .sorting import ListKind, SortMode, resolve_sort_mode, sort_convoys, sort_offers
from .text import fold_text, matches, normalize_vehicle_category, parse_category_filter

__all__ = [
    "ListFilter",
    "ListKind",
    "SortMode",
    "clamp_radius",
    "filter_convoys",
    "filter_offers",
    "fold_text",
    "matches",
    "normalize_vehicle_category",
    "parse_category_filter",
    "resolve_sort_mode",
    "sort_convoys",
    "sort_offers",
]

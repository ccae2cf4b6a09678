"""Diacritic-insensitive text matching and vehicle category helpers."""

from __future__ import annotations

import re
from typing import Optional

_FOLD_TABLE = str.maketrans(
    {
        "ı": "i",
        "ğ": "g",
        "ü": "u",
        "ş": "s",
        "ö": "o",
        "ç": "c",
        # str.lower() turns "İ" into "i" followed by a combining dot
        "\u0307": None,
    }
)

VEHICLE_CATEGORIES = ("Binek", "Motosiklet", "Bisiklet", "Karavan", "Kamp")
ALL_CATEGORIES = "Hepsi"
DEFAULT_CATEGORY = "Binek"

_CATEGORY_ALIASES = {
    "karavan": "Karavan",
    "caravan": "Karavan",
    "kamp": "Kamp",
    "camp": "Kamp",
    "motor": "Motosiklet",
    "motosiklet": "Motosiklet",
    "bisiklet": "Bisiklet",
    "binek": "Binek",
    "sedan": "Binek",
    "suv": "Binek",
    "ticari": "Binek",
    "uzun": "Binek",
}

_DESCRIPTION_CATEGORY = re.compile(
    r"Araç Tipi:\s*(Binek|Motor|Motosiklet|Bisiklet|Karavan|Kamp)", re.IGNORECASE
)


def fold_text(value: Optional[str]) -> str:
    """Lowercase and fold Turkish characters onto their ASCII counterparts."""

    return (value or "").lower().translate(_FOLD_TABLE)


def matches(haystack: Optional[str], needle: Optional[str]) -> bool:
    """Case- and diacritic-insensitive substring match; an empty needle matches."""

    folded_needle = fold_text((needle or "").strip())
    if not folded_needle:
        return True
    return folded_needle in fold_text(haystack)


def normalize_vehicle_category(raw: Optional[str]) -> str:
    value = (raw or "").strip().lower()
    return _CATEGORY_ALIASES.get(value, DEFAULT_CATEGORY)


def category_from_description(description: Optional[str]) -> Optional[str]:
    match = _DESCRIPTION_CATEGORY.search(description or "")
    if match:
        return normalize_vehicle_category(match.group(1))
    return None


def parse_category_filter(raw: Optional[str]) -> Optional[str]:
    """Category filter from user input; ``Hepsi``, blank and unknown values disable it."""

    value = (raw or "").strip()
    if not value or fold_text(value) == fold_text(ALL_CATEGORIES):
        return None
    for category in VEHICLE_CATEGORIES:
        if fold_text(category) == fold_text(value):
            return category
    return None

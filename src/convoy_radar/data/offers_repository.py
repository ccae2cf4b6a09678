"""Data access helpers for convoy offers and coupon campaigns."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from supabase import Client

from ..models.domain import ConvoySummary, CouponRecord, OfferRecord
from ..services.offers.lifecycle import normalize_offer_status
from .coerce import clean_text, parse_timestamp, to_number

logger = logging.getLogger(__name__)

OFFER_SELECT = (
    "*, captain:profiles!captain_id(full_name), "
    "convoy:convoys(name, category, start_location, end_location, start_time, status)"
)
COUPON_SELECT = "id, title, code, discount_type, discount_value, monetary_value, valid_until, is_active"


def fetch_offer_rows(client: Client, business_id: str) -> list[dict]:
    response = (
        client.table("convoy_offers")
        .select(OFFER_SELECT)
        .eq("business_id", business_id)
        .order("created_at", desc=True)
        .execute()
    )
    return list(response.data or [])


def fetch_coupon_rows(client: Client, business_id: str) -> list[dict]:
    response = (
        client.table("coupon_campaigns")
        .select(COUPON_SELECT)
        .eq("business_id", business_id)
        .eq("is_active", True)
        .order("created_at", desc=True)
        .execute()
    )
    return list(response.data or [])


def insert_offer(client: Client, payload: dict[str, Any]) -> Optional[dict]:
    """Insert one offer row and return the stored row when the backend echoes it."""
    response = client.table("convoy_offers").insert(payload).execute()
    rows = response.data or []
    return rows[0] if rows else None


def parse_offer_row(row: dict[str, Any]) -> Optional[OfferRecord]:
    offer_id = clean_text(row.get("id"))
    if not offer_id:
        return None

    convoy_raw = row.get("convoy")
    convoy = None
    if isinstance(convoy_raw, dict):
        convoy = ConvoySummary(
            name=clean_text(convoy_raw.get("name")),
            category=clean_text(convoy_raw.get("category")),
            start_location=clean_text(convoy_raw.get("start_location")),
            end_location=clean_text(convoy_raw.get("end_location")),
            start_time=parse_timestamp(convoy_raw.get("start_time")),
            status=clean_text(convoy_raw.get("status")),
        )

    captain_raw = row.get("captain")
    captain_name = clean_text(captain_raw.get("full_name")) if isinstance(captain_raw, dict) else None

    return OfferRecord(
        id=offer_id,
        convoy_id=clean_text(row.get("convoy_id")),
        business_id=clean_text(row.get("business_id")),
        captain_id=clean_text(row.get("captain_id")),
        title=clean_text(row.get("offer_title")),
        details=clean_text(row.get("offer_details")),
        coupon_id=clean_text(row.get("coupon_campaign_id")),
        status=normalize_offer_status(row.get("status")),
        created_at=parse_timestamp(row.get("created_at")),
        convoy=convoy,
        captain_name=captain_name,
    )


def parse_offer_rows(rows: Iterable[dict]) -> tuple[OfferRecord, ...]:
    offers: list[OfferRecord] = []
    for row in rows:
        try:
            offer = parse_offer_row(row)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid offer row: {e}")
            continue
        if offer is not None:
            offers.append(offer)
    return tuple(offers)


def parse_coupon_rows(rows: Iterable[dict]) -> tuple[CouponRecord, ...]:
    coupons: list[CouponRecord] = []
    for row in rows:
        coupon_id = clean_text(row.get("id"))
        if not coupon_id:
            continue
        coupons.append(
            CouponRecord(
                id=coupon_id,
                title=clean_text(row.get("title")),
                code=clean_text(row.get("code")),
                discount_type=clean_text(row.get("discount_type")),
                discount_value=to_number(row.get("discount_value")),
                monetary_value=to_number(row.get("monetary_value")),
                valid_until=parse_timestamp(row.get("valid_until")),
            )
        )
    return tuple(coupons)

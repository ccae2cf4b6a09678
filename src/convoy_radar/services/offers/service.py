"""Sending offers to convoy leaders and picking usable coupons."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from supabase import Client

from ...data.offers_repository import insert_offer, parse_offer_row
from ...models.domain import ConvoySnapshot, CouponRecord, OfferRecord, OfferStatus

logger = logging.getLogger(__name__)


def filter_active_coupons(coupons: Iterable[CouponRecord], now: datetime) -> list[CouponRecord]:
    """Coupons without an expiry, or expiring after ``now``."""

    return [coupon for coupon in coupons if coupon.valid_until is None or coupon.valid_until > now]


def coupon_benefit_text(coupon: CouponRecord) -> str:
    if coupon.discount_type == "percentage":
        return f"%{int(coupon.discount_value or 0)} indirim"
    if coupon.discount_type == "free":
        return f"Hediye ({int(coupon.monetary_value or 0)}₺)"
    if coupon.discount_type == "item":
        return "Ürün hediyesi"
    return "Kupon"


def coupon_label(coupon: CouponRecord) -> str:
    return f"{coupon.title or 'Kupon'} - {coupon_benefit_text(coupon)}"


def build_offer_payload(
    business_id: str,
    convoy: ConvoySnapshot,
    title: str,
    details: str,
    coupon_id: Optional[str] = None,
) -> dict:
    business = (business_id or "").strip()
    clean_title = (title or "").strip()
    clean_details = (details or "").strip()
    if not business:
        raise ValueError("A business must be selected to send an offer.")
    if not clean_title or not clean_details:
        raise ValueError("Offer title and details are required.")
    if not convoy.leader_id:
        raise ValueError(f"Convoy '{convoy.id}' has no known captain.")

    payload = {
        "business_id": business,
        "convoy_id": convoy.id,
        "captain_id": convoy.leader_id,
        "offer_title": clean_title,
        "offer_details": clean_details,
        "status": OfferStatus.PENDING.value,
    }
    if coupon_id and coupon_id.strip():
        payload["coupon_campaign_id"] = coupon_id.strip()
    return payload


def send_offer(
    client: Client,
    business_id: str,
    convoy: ConvoySnapshot,
    title: str,
    details: str,
    coupon_id: Optional[str] = None,
) -> Optional[OfferRecord]:
    """Insert a pending offer for the convoy's leader.

    Raises ValueError for invalid input or when the backend lacks the coupon
    column; other backend failures propagate unchanged.
    """
    payload = build_offer_payload(business_id, convoy, title, details, coupon_id)
    try:
        stored = insert_offer(client, payload)
    except Exception as e:
        if "coupon_campaign_id" in str(e):
            raise ValueError(
                "The coupon field is missing on the backend. Send the offer without a coupon."
            ) from e
        raise

    logger.info(f"Offer sent to convoy {convoy.id} for business {payload['business_id']}")
    return parse_offer_row(stored) if stored else None

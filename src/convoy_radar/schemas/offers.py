"""Offer and coupon API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class OfferConvoyModel(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    start_time: Optional[datetime] = None
    status: Optional[str] = None


class OfferItemModel(BaseModel):
    id: str
    convoy_id: Optional[str] = None
    captain_id: Optional[str] = None
    captain_name: Optional[str] = None
    title: Optional[str] = None
    details: Optional[str] = None
    coupon_id: Optional[str] = None
    status: str
    category: str
    created_at: Optional[datetime] = None
    archived: bool = False
    convoy: Optional[OfferConvoyModel] = None


class OfferCountsModel(BaseModel):
    total: int
    active: int
    archived: int
    pending: int


class OfferListResponse(BaseModel):
    business_id: str
    sort: str
    sort_options: List[str]
    show_archive: bool
    total: int
    source_total: int
    counts: OfferCountsModel
    generated_at: Optional[datetime] = None
    refresh_failed: bool = False
    items: List[OfferItemModel]


class CouponModel(BaseModel):
    id: str
    title: Optional[str] = None
    code: Optional[str] = None
    label: str
    benefit: str
    valid_until: Optional[datetime] = None


class SendOfferRequest(BaseModel):
    business_id: str = Field(..., description="Business sending the offer.")
    convoy_id: str = Field(..., description="Target convoy; the offer goes to its leader.")
    title: str
    details: str
    coupon_id: Optional[str] = Field(default=None, description="Optional coupon campaign attached to the offer.")

    @field_validator("title", "details")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class SendOfferResponse(BaseModel):
    sent: bool
    offer: Optional[OfferItemModel] = None

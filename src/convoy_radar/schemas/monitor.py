"""Monitor session API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .convoys import CoordinateModel
from .offers import CouponModel


class PositionRequest(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class KpiModel(BaseModel):
    nearest_active_distance_km: Optional[float] = None
    live_tracked_count: int
    active_with_distance_count: int
    active_within_radius_count: int
    pending_offer_count: int
    active_offer_count: int
    archived_offer_count: int


class MonitorSummaryResponse(BaseModel):
    business_id: str
    running: bool
    sequence: int
    generated_at: Optional[datetime] = None
    origin: Optional[CoordinateModel] = None
    origin_updated_at: Optional[datetime] = None
    radius_km: Optional[float] = None
    distance_presets: List[int]
    active_count: int
    planned_count: int
    kpis: KpiModel
    coupons: List[CouponModel]
    advisories: List[str]
    refresh_failed: bool = False
    error: Optional[str] = None

"""Convoy list API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class CoordinateModel(BaseModel):
    lat: float
    lng: float


class HeadcountModel(BaseModel):
    max_headcount: int
    leader_party_size: int
    confirmed_headcount: int
    pending_headcount: int
    available_headcount: int


class ConvoyItemModel(BaseModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    category: str
    status: str
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    start_time: Optional[datetime] = None
    leader_id: Optional[str] = None
    leader_name: Optional[str] = None
    leader_position: Optional[CoordinateModel] = None
    leader_updated_at: Optional[datetime] = None
    is_live: bool = False
    distance_km: Optional[float] = None
    trend: Optional[str] = None
    headcount: Optional[HeadcountModel] = None


class ConvoyListResponse(BaseModel):
    business_id: str
    list_kind: str
    sort: str
    sort_options: List[str]
    total: int
    source_total: int
    origin: Optional[CoordinateModel] = None
    radius_km: Optional[float] = None
    generated_at: Optional[datetime] = None
    refresh_failed: bool = False
    live_schema_missing: bool = False
    items: List[ConvoyItemModel]

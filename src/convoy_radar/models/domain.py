"""Domain models for convoys, live positions, headcounts and offers."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class TrendEnum(str, Enum):
    """Direction of change in distance between a convoy leader and the merchant."""

    UNKNOWN = "unknown"
    APPROACHING = "approaching"
    PASSED = "passed"
    AWAY = "away"
    STABLE = "stable"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ConvoyStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class ConvoySnapshot:
    """One convoy's known state at a polling tick. Replaced wholesale every tick."""

    id: str
    name: Optional[str]
    description: Optional[str]
    category: Optional[str]
    status: ConvoyStatus
    start_location: Optional[str]
    end_location: Optional[str]
    start_time: Optional[datetime]
    leader_id: Optional[str]
    leader_name: Optional[str]
    declared_capacity: Optional[int]
    declared_leader_party_size: Optional[int]
    raw_leader_position: Optional[Coordinate]
    raw_leader_position_at: Optional[datetime]
    created_at: Optional[datetime]
    raw: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class MemberPositionReport:
    """A roster row carrying one member's live position."""

    convoy_id: str
    user_id: Optional[str]
    role: str
    position: Optional[Coordinate]
    reported_at: Optional[datetime]


@dataclass(frozen=True, slots=True)
class ReconciledPosition:
    position: Coordinate
    observed_at: Optional[datetime]


@dataclass(slots=True)
class DistanceState:
    """Per-convoy trend state carried across ticks by the classifier."""

    last_distance_km: Optional[float] = None
    min_seen_distance_km: Optional[float] = None
    trend: TrendEnum = TrendEnum.UNKNOWN


@dataclass(frozen=True, slots=True)
class HeadcountStats:
    max_headcount: int
    leader_party_size: int
    confirmed_headcount: int
    pending_headcount: int
    available_headcount: int


@dataclass(frozen=True, slots=True)
class ConvoySummary:
    """Denormalized convoy fields carried on offer rows."""

    name: Optional[str]
    category: Optional[str]
    start_location: Optional[str]
    end_location: Optional[str]
    start_time: Optional[datetime]
    status: Optional[str]


@dataclass(frozen=True, slots=True)
class OfferRecord:
    id: str
    convoy_id: Optional[str]
    business_id: Optional[str]
    captain_id: Optional[str]
    title: Optional[str]
    details: Optional[str]
    coupon_id: Optional[str]
    status: OfferStatus
    created_at: Optional[datetime]
    convoy: Optional[ConvoySummary] = None
    captain_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CouponRecord:
    id: str
    title: Optional[str]
    code: Optional[str]
    discount_type: Optional[str]
    discount_value: Optional[float]
    monetary_value: Optional[float]
    valid_until: Optional[datetime]

"""Monitor session endpoints: summary, device position, manual refresh, stop."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Path, Query, status

from ...config import settings
from ...models.domain import Coordinate
from ...schemas.convoys import CoordinateModel
from ...schemas.monitor import KpiModel, MonitorSummaryResponse, PositionRequest
from ...schemas.offers import CouponModel
from ...services.listing.filters import clamp_radius
from ...services.monitoring import registry as monitor_registry
from ...services.monitoring.monitor import ConvoyMonitor
from ...services.monitoring.snapshot import Tick, compute_kpis
from ...services.offers.service import coupon_benefit_text, coupon_label

router = APIRouter(prefix="/monitor", tags=["monitor"])


def resolve_monitor(business_id: str) -> ConvoyMonitor:
    """Return the running monitor for a business, starting one on first use."""
    try:
        return monitor_registry.get_registry().ensure(business_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConnectionError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def coordinate_model(position: Coordinate | None) -> CoordinateModel | None:
    if position is None:
        return None
    return CoordinateModel(lat=position.lat, lng=position.lng)


def tick_advisories(tick: Tick) -> list[str]:
    advisories = []
    if tick.refresh_failed:
        advisories.append("Could not refresh convoy data; showing the last known state.")
    if tick.live_schema_missing:
        advisories.append("Leader live-position fields are missing on convoys; proximity data is unavailable.")
    if tick.origin is None:
        advisories.append("Device position unavailable; distances and trends are disabled.")
    return advisories


def _summary(monitor: ConvoyMonitor, radius_km: str | None) -> MonitorSummaryResponse:
    tick = monitor.latest
    applied_radius = clamp_radius(radius_km) if tick.origin is not None else None
    kpis = compute_kpis(tick, radius_km=applied_radius, now=datetime.now(timezone.utc))
    return MonitorSummaryResponse(
        business_id=monitor.business_id,
        running=monitor.running,
        sequence=tick.sequence,
        generated_at=tick.generated_at,
        origin=coordinate_model(tick.origin),
        origin_updated_at=monitor.origin.updated_at if monitor.origin else None,
        radius_km=applied_radius,
        distance_presets=list(settings.distance_presets),
        active_count=len(tick.active_convoys),
        planned_count=len(tick.planned_convoys),
        kpis=KpiModel(
            nearest_active_distance_km=kpis.nearest_active_distance_km,
            live_tracked_count=kpis.live_tracked_count,
            active_with_distance_count=kpis.active_with_distance_count,
            active_within_radius_count=kpis.active_within_radius_count,
            pending_offer_count=kpis.pending_offer_count,
            active_offer_count=kpis.active_offer_count,
            archived_offer_count=kpis.archived_offer_count,
        ),
        coupons=[
            CouponModel(
                id=coupon.id,
                title=coupon.title,
                code=coupon.code,
                label=coupon_label(coupon),
                benefit=coupon_benefit_text(coupon),
                valid_until=coupon.valid_until,
            )
            for coupon in tick.coupons
        ],
        advisories=tick_advisories(tick),
        refresh_failed=tick.refresh_failed,
        error=tick.error,
    )


@router.get("/{business_id}/summary", response_model=MonitorSummaryResponse, status_code=status.HTTP_200_OK)
def get_summary(
    business_id: str = Path(..., description="Business whose monitor session to read"),
    radius_km: str | None = Query(default=None, description="Proximity radius used for the in-range KPI"),
) -> MonitorSummaryResponse:
    monitor = resolve_monitor(business_id)
    return _summary(monitor, radius_km)


@router.post("/{business_id}/position", response_model=MonitorSummaryResponse, status_code=status.HTTP_200_OK)
def push_position(
    payload: PositionRequest,
    business_id: str = Path(..., description="Business whose device reported the position"),
) -> MonitorSummaryResponse:
    """Store the merchant's device position and run a tick against it."""
    try:
        monitor = monitor_registry.get_registry().push_position(
            business_id, Coordinate(lat=payload.lat, lng=payload.lng)
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConnectionError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    monitor.tick()
    return _summary(monitor, None)


@router.post("/{business_id}/refresh", response_model=MonitorSummaryResponse, status_code=status.HTTP_200_OK)
def refresh(business_id: str = Path(..., description="Business whose monitor to tick")) -> MonitorSummaryResponse:
    monitor = resolve_monitor(business_id)
    try:
        monitor.tick()
    except Exception as exc:
        logging.exception(f"Manual refresh failed for business {business_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Refresh failed: {exc}",
        ) from exc
    return _summary(monitor, None)


@router.delete("/{business_id}", status_code=status.HTTP_200_OK)
def stop_monitor(business_id: str = Path(..., description="Business whose polling loop to stop")) -> dict:
    stopped = monitor_registry.get_registry().stop(business_id)
    if not stopped:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No monitor running for business '{business_id}'",
        )
    return {"business_id": business_id, "stopped": True}

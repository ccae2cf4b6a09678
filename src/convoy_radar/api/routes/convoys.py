"""Active and planned convoy list endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...schemas.convoys import ConvoyItemModel, ConvoyListResponse, HeadcountModel
from ...services.listing.filters import ListFilter, clamp_radius
from ...services.listing.sorting import SORT_OPTIONS, ListKind
from ...services.listing.text import parse_category_filter
from ...services.listing.views import ConvoyView, build_convoy_list
from .monitor import coordinate_model, resolve_monitor

router = APIRouter(prefix="/convoys", tags=["convoys"])


def _item(view: ConvoyView, leader_position) -> ConvoyItemModel:
    convoy = view.convoy
    headcount = view.headcount
    return ConvoyItemModel(
        id=convoy.id,
        name=convoy.name,
        description=convoy.description,
        category=view.category,
        status=convoy.status.value,
        start_location=convoy.start_location,
        end_location=convoy.end_location,
        start_time=convoy.start_time,
        leader_id=convoy.leader_id,
        leader_name=convoy.leader_name,
        leader_position=coordinate_model(leader_position),
        leader_updated_at=view.leader_updated_at,
        is_live=view.is_live,
        distance_km=view.distance_km,
        trend=view.trend.value if view.trend else None,
        headcount=HeadcountModel(
            max_headcount=headcount.max_headcount,
            leader_party_size=headcount.leader_party_size,
            confirmed_headcount=headcount.confirmed_headcount,
            pending_headcount=headcount.pending_headcount,
            available_headcount=headcount.available_headcount,
        )
        if headcount
        else None,
    )


def _list_convoys(
    list_kind: ListKind,
    business_id: str,
    category: str | None,
    search: str | None,
    location: str | None,
    radius_km: str | None,
    sort: str | None,
) -> ConvoyListResponse:
    monitor = resolve_monitor(business_id)
    tick = monitor.latest
    list_filter = ListFilter(
        category=parse_category_filter(category),
        search=(search or "").strip(),
        location=(location or "").strip(),
        radius_km=clamp_radius(radius_km),
    )
    try:
        view = build_convoy_list(tick, list_kind, list_filter, sort)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Failed to build {list_kind.value} convoy list for business {business_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list convoys: {exc}",
        ) from exc

    radius_applied = list_kind is ListKind.ACTIVE and tick.origin is not None
    items = []
    for item in view.items:
        merged = tick.merged_positions.get(item.convoy.id) if list_kind is ListKind.ACTIVE else None
        items.append(_item(item, merged.position if merged else None))

    return ConvoyListResponse(
        business_id=monitor.business_id,
        list_kind=list_kind.value,
        sort=view.sort.value,
        sort_options=[mode.value for mode in SORT_OPTIONS[list_kind]],
        total=len(items),
        source_total=view.source_count,
        origin=coordinate_model(tick.origin),
        radius_km=list_filter.radius_km if radius_applied else None,
        generated_at=tick.generated_at,
        refresh_failed=tick.refresh_failed,
        live_schema_missing=tick.live_schema_missing,
        items=items,
    )


@router.get("/active", response_model=ConvoyListResponse, status_code=status.HTTP_200_OK)
def list_active_convoys(
    business_id: str = Query(..., description="Business whose monitor session to read"),
    category: str | None = Query(default=None, description="Vehicle category; 'Hepsi' or empty for all"),
    search: str | None = Query(default=None, description="Search in name, description and leader name"),
    location: str | None = Query(default=None, description="Match against start or end location"),
    radius_km: str | None = Query(default=None, description="Proximity radius in km; needs a device position"),
    sort: str | None = Query(default=None, description="smart, closest, start_time, headcount or recent"),
) -> ConvoyListResponse:
    return _list_convoys(ListKind.ACTIVE, business_id, category, search, location, radius_km, sort)


@router.get("/planned", response_model=ConvoyListResponse, status_code=status.HTTP_200_OK)
def list_planned_convoys(
    business_id: str = Query(..., description="Business whose monitor session to read"),
    category: str | None = Query(default=None, description="Vehicle category; 'Hepsi' or empty for all"),
    search: str | None = Query(default=None, description="Search in name, description and leader name"),
    location: str | None = Query(default=None, description="Match against start or end location"),
    sort: str | None = Query(default=None, description="smart, start_time, headcount or recent"),
) -> ConvoyListResponse:
    return _list_convoys(ListKind.PLANNED, business_id, category, search, location, None, sort)

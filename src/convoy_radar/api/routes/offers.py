"""Offer list and send endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...models.domain import OfferRecord
from ...schemas.offers import (
    OfferConvoyModel,
    OfferCountsModel,
    OfferItemModel,
    OfferListResponse,
    SendOfferRequest,
    SendOfferResponse,
)
from ...services.listing.filters import ListFilter, resolve_offer_category
from ...services.listing.sorting import SORT_OPTIONS, ListKind
from ...services.listing.text import parse_category_filter
from ...services.listing.views import build_offer_list
from ...services.offers.lifecycle import compute_offer_counts, parse_status_filter
from ...services.offers.service import send_offer
from .monitor import resolve_monitor

router = APIRouter(prefix="/offers", tags=["offers"])


def _item(offer: OfferRecord, category: str, archived: bool) -> OfferItemModel:
    convoy = offer.convoy
    return OfferItemModel(
        id=offer.id,
        convoy_id=offer.convoy_id,
        captain_id=offer.captain_id,
        captain_name=offer.captain_name,
        title=offer.title,
        details=offer.details,
        coupon_id=offer.coupon_id,
        status=offer.status.value,
        category=category,
        created_at=offer.created_at,
        archived=archived,
        convoy=OfferConvoyModel(
            name=convoy.name,
            category=convoy.category,
            start_location=convoy.start_location,
            end_location=convoy.end_location,
            start_time=convoy.start_time,
            status=convoy.status,
        )
        if convoy
        else None,
    )


@router.get("", response_model=OfferListResponse, status_code=status.HTTP_200_OK)
def list_offers(
    business_id: str = Query(..., description="Business whose offers to list"),
    status_filter: str | None = Query(default=None, alias="status", description="Offer status or 'all'"),
    category: str | None = Query(default=None, description="Vehicle category of the offer's convoy"),
    search: str | None = Query(default=None, description="Search in title, details, captain and convoy name"),
    location: str | None = Query(default=None, description="Match against the convoy's route"),
    sort: str | None = Query(default=None, description="smart, recent or start_time"),
    archive: bool = Query(default=False, description="Show the archive instead of active offers"),
) -> OfferListResponse:
    monitor = resolve_monitor(business_id)
    tick = monitor.latest
    list_filter = ListFilter(
        category=parse_category_filter(category),
        search=(search or "").strip(),
        location=(location or "").strip(),
        offer_status=parse_status_filter(status_filter),
        show_archive=archive,
    )
    view = build_offer_list(tick, list_filter, sort)
    counts = compute_offer_counts(tick.offers, tick.archived_offer_ids)
    items = [_item(item.offer, item.category, item.archived) for item in view.items]
    return OfferListResponse(
        business_id=monitor.business_id,
        sort=view.sort.value,
        sort_options=[mode.value for mode in SORT_OPTIONS[ListKind.OFFERS]],
        show_archive=view.show_archive,
        total=len(items),
        source_total=view.source_count,
        counts=OfferCountsModel(
            total=counts.total,
            active=counts.active,
            archived=counts.archived,
            pending=counts.pending,
        ),
        generated_at=tick.generated_at,
        refresh_failed=tick.refresh_failed,
        items=items,
    )


@router.post("", response_model=SendOfferResponse, status_code=status.HTTP_201_CREATED)
def create_offer(payload: SendOfferRequest) -> SendOfferResponse:
    """Send an offer to the leader of a convoy known to the business's monitor."""
    monitor = resolve_monitor(payload.business_id)
    convoy = monitor.latest.find_convoy(payload.convoy_id)
    if convoy is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Convoy '{payload.convoy_id}' is not in the current active or planned lists",
        )

    try:
        offer = send_offer(
            monitor.client,
            payload.business_id,
            convoy,
            payload.title,
            payload.details,
            payload.coupon_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Failed to send offer to convoy {convoy.id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send offer: {exc}",
        ) from exc

    monitor.tick()
    if offer is None:
        return SendOfferResponse(sent=True)
    return SendOfferResponse(sent=True, offer=_item(offer, resolve_offer_category(offer), False))

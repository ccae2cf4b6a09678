"""Data access helpers for convoys and their live roster positions."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

from supabase import Client

from ..models.domain import ConvoySnapshot, ConvoyStatus, MemberPositionReport
from .coerce import clean_text, floor_int, parse_coordinate, parse_timestamp

logger = logging.getLogger(__name__)

CONVOY_SELECT = "*, profiles:leader_id(full_name)"
ROSTER_POSITION_SELECT = "convoy_id, user_id, role, current_lat, current_lng, last_updated"
LIVE_POSITION_FIELDS = ("leader_live_lat", "leader_live_lng", "leader_live_updated_at")


def fetch_convoy_rows(client: Client, status: ConvoyStatus) -> list[dict]:
    """Return raw convoy rows for one status.

    Active convoys come newest first, planned (pending) convoys by start time.
    Transport errors propagate; the monitor decides how to degrade.
    """
    query = client.table("convoys").select(CONVOY_SELECT).eq("status", status.value)
    if status is ConvoyStatus.ACTIVE:
        query = query.order("created_at", desc=True)
    else:
        query = query.order("start_time", desc=False)
    response = query.execute()
    return list(response.data or [])


def has_live_position_fields(rows: Sequence[dict]) -> bool:
    """Check the first row for the leader live-position columns.

    An empty result cannot prove the columns are missing, so it counts as present.
    """
    if not rows:
        return True
    first = rows[0]
    return all(name in first for name in LIVE_POSITION_FIELDS)


def parse_convoy_row(row: dict, status: ConvoyStatus) -> Optional[ConvoySnapshot]:
    convoy_id = clean_text(row.get("id"))
    if not convoy_id:
        return None

    profile = row.get("profiles") or {}
    leader_name = clean_text(profile.get("full_name")) if isinstance(profile, dict) else None

    capacity_raw = row.get("max_headcount")
    if capacity_raw is None:
        capacity_raw = row.get("max_vehicles")
    declared_capacity = floor_int(capacity_raw, 0) if capacity_raw is not None else None
    party_raw = row.get("leader_party_size")
    declared_party = floor_int(party_raw, 1) if party_raw is not None else None

    return ConvoySnapshot(
        id=convoy_id,
        name=clean_text(row.get("name")),
        description=clean_text(row.get("description")),
        category=clean_text(row.get("category")),
        status=status,
        start_location=clean_text(row.get("start_location")),
        end_location=clean_text(row.get("end_location")),
        start_time=parse_timestamp(row.get("start_time")),
        leader_id=clean_text(row.get("leader_id")),
        leader_name=leader_name,
        declared_capacity=declared_capacity,
        declared_leader_party_size=declared_party,
        raw_leader_position=parse_coordinate(row.get("leader_live_lat"), row.get("leader_live_lng")),
        raw_leader_position_at=parse_timestamp(row.get("leader_live_updated_at")),
        created_at=parse_timestamp(row.get("created_at")),
        raw=row,
    )


def parse_convoy_rows(rows: Iterable[dict], status: ConvoyStatus) -> tuple[ConvoySnapshot, ...]:
    convoys: list[ConvoySnapshot] = []
    for row in rows:
        try:
            convoy = parse_convoy_row(row, status)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid convoy row: {e}")
            continue
        if convoy is not None:
            convoys.append(convoy)
    return tuple(convoys)


def fetch_roster_positions(client: Client, convoy_ids: Sequence[str]) -> list[MemberPositionReport]:
    """Load every roster row for the given convoys as position reports."""
    if not convoy_ids:
        return []
    response = (
        client.table("convoy_members")
        .select(ROSTER_POSITION_SELECT)
        .in_("convoy_id", list(convoy_ids))
        .execute()
    )
    return [report for report in map(parse_member_position, response.data or []) if report is not None]


def parse_member_position(row: dict[str, Any]) -> Optional[MemberPositionReport]:
    convoy_id = clean_text(row.get("convoy_id"))
    if not convoy_id:
        return None
    return MemberPositionReport(
        convoy_id=convoy_id,
        user_id=clean_text(row.get("user_id")),
        role=(clean_text(row.get("role")) or "member").lower(),
        position=parse_coordinate(row.get("current_lat"), row.get("current_lng")),
        reported_at=parse_timestamp(row.get("last_updated")),
    )

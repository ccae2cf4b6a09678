"""Per-convoy occupancy resolution: bulk remote aggregate first, local reconstruction second."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from supabase import Client

from ...config import settings
from ...data.coerce import clean_text, floor_int
from ...data.headcount_repository import (
    call_headcount_bulk,
    fetch_convoy_capacity,
    fetch_roster_statuses,
)
from ...models.domain import HeadcountStats

logger = logging.getLogger(__name__)

CONFIRMED_MEMBER_STATUSES = frozenset({"active", "accepted_waiting_confirmation"})
PENDING_MEMBER_STATUS = "pending"

# One confirmed occupant (the leader), nothing pending, no room.
MISSING_CONVOY_STATS = HeadcountStats(
    max_headcount=1,
    leader_party_size=1,
    confirmed_headcount=1,
    pending_headcount=0,
    available_headcount=0,
)


def normalize_headcount_row(row: Mapping[str, Any]) -> HeadcountStats:
    """Floor and clamp one bulk row into valid stats."""

    leader_party_size = max(1, floor_int(row.get("leader_party_size"), 1))
    max_headcount = max(leader_party_size, floor_int(row.get("max_headcount"), 1))
    confirmed_headcount = max(
        leader_party_size, floor_int(row.get("confirmed_headcount"), leader_party_size)
    )
    pending_headcount = max(0, floor_int(row.get("pending_headcount"), 0))
    available_headcount = max(
        0, floor_int(row.get("available_headcount"), max_headcount - confirmed_headcount)
    )
    return HeadcountStats(
        max_headcount=max_headcount,
        leader_party_size=leader_party_size,
        confirmed_headcount=confirmed_headcount,
        pending_headcount=pending_headcount,
        available_headcount=available_headcount,
    )


def stats_from_roster(capacity_row: Mapping[str, Any], roster_rows: Iterable[Mapping[str, Any]]) -> HeadcountStats:
    """Rebuild stats from a convoy's capacity columns and its member rows."""

    leader_party_size = max(1, floor_int(capacity_row.get("leader_party_size"), 1))
    capacity_raw = capacity_row.get("max_headcount")
    if capacity_raw is None:
        capacity_raw = capacity_row.get("max_vehicles")
    max_headcount = max(leader_party_size, floor_int(capacity_raw, leader_party_size))

    confirmed_members = 0
    pending_members = 0
    for row in roster_rows:
        role = (clean_text(row.get("role")) or "member").lower()
        if role == "leader":
            continue
        status = (clean_text(row.get("status")) or "").lower()
        party_size = max(1, floor_int(row.get("party_size"), 1))
        if status in CONFIRMED_MEMBER_STATUSES:
            confirmed_members += party_size
        elif status == PENDING_MEMBER_STATUS:
            pending_members += party_size

    confirmed_headcount = leader_party_size + confirmed_members
    return HeadcountStats(
        max_headcount=max_headcount,
        leader_party_size=leader_party_size,
        confirmed_headcount=confirmed_headcount,
        pending_headcount=pending_members,
        available_headcount=max(0, max_headcount - confirmed_headcount),
    )


class HeadcountAggregator:
    """Resolves ``HeadcountStats`` for a batch of convoys.

    A single bulk RPC is tried first. When it raises (or answers with no rows at
    all) every convoy is resolved on its own from the convoy and roster tables.
    A convoy whose fallback fails is left out of the result; it never aborts the
    rest of the batch.
    """

    def __init__(self, client: Client, rpc_name: str | None = None) -> None:
        self.client = client
        self.rpc_name = rpc_name or settings.headcount_rpc_name

    def resolve(self, convoy_ids: Iterable[str]) -> dict[str, HeadcountStats]:
        ids = _unique_ids(convoy_ids)
        if not ids:
            return {}

        try:
            rows = call_headcount_bulk(self.client, ids, self.rpc_name)
        except Exception as e:
            logger.warning(f"Bulk headcount call failed for {len(ids)} convoys, using fallback: {e}")
            rows = []

        if rows:
            mapped: dict[str, HeadcountStats] = {}
            for row in rows:
                convoy_id = clean_text(row.get("convoy_id"))
                if not convoy_id:
                    continue
                mapped[convoy_id] = normalize_headcount_row(row)
            return mapped

        return self._resolve_each(ids)

    def resolve_one(self, convoy_id: str) -> HeadcountStats:
        """Local reconstruction for a single convoy. Errors propagate."""
        capacity_row = fetch_convoy_capacity(self.client, convoy_id)
        if capacity_row is None:
            return MISSING_CONVOY_STATS
        roster_rows = fetch_roster_statuses(self.client, convoy_id)
        return stats_from_roster(capacity_row, roster_rows)

    def _resolve_each(self, convoy_ids: list[str]) -> dict[str, HeadcountStats]:
        resolved: dict[str, HeadcountStats] = {}
        for convoy_id in convoy_ids:
            try:
                resolved[convoy_id] = self.resolve_one(convoy_id)
            except Exception as e:
                logger.warning(f"Headcount fallback failed for convoy {convoy_id}: {e}")
        return resolved


def _unique_ids(convoy_ids: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for convoy_id in convoy_ids:
        cleaned = (convoy_id or "").strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)

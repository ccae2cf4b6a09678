"""Backend queries behind convoy headcount resolution."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from supabase import Client

logger = logging.getLogger(__name__)

CAPACITY_SELECT = "max_headcount, max_vehicles, leader_party_size"
NARROW_CAPACITY_SELECT = "max_vehicles"
ROSTER_STATUS_SELECT = "status, role, party_size"


def call_headcount_bulk(client: Client, convoy_ids: Sequence[str], rpc_name: str) -> list[dict[str, Any]]:
    """Invoke the bulk headcount stored procedure.

    The procedure may answer with a list of rows or a single row object.
    """
    response = client.rpc(rpc_name, {"p_convoy_ids": list(convoy_ids)}).execute()
    data = response.data
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if isinstance(data, dict):
        return [data]
    return []


def _maybe_single(client: Client, columns: str, convoy_id: str) -> Optional[dict[str, Any]]:
    response = client.table("convoys").select(columns).eq("id", convoy_id).maybe_single().execute()
    if response is None:
        return None
    data = response.data
    return data if isinstance(data, dict) else None


def fetch_convoy_capacity(client: Client, convoy_id: str) -> Optional[dict[str, Any]]:
    """Load the capacity columns of one convoy, retrying with the narrow column set.

    Older schemas only carry ``max_vehicles``; selecting the wider column list
    fails there, so a second query asks for that column alone. Returns None when
    the convoy does not exist.
    """
    try:
        return _maybe_single(client, CAPACITY_SELECT, convoy_id)
    except Exception as e:
        logger.debug(f"Capacity query failed for convoy {convoy_id}, retrying narrow columns: {e}")
        return _maybe_single(client, NARROW_CAPACITY_SELECT, convoy_id)


def fetch_roster_statuses(client: Client, convoy_id: str) -> list[dict[str, Any]]:
    response = (
        client.table("convoy_members")
        .select(ROSTER_STATUS_SELECT)
        .eq("convoy_id", convoy_id)
        .execute()
    )
    return list(response.data or [])

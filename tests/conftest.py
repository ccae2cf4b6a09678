from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from convoy_radar.models.domain import ConvoySnapshot, ConvoyStatus, Coordinate

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, data: Any) -> None:
        self.data = data


class FakeQuery:
    """Chainable stand-in for the supabase-py query builder."""

    def __init__(self, backend: "FakeSupabase", table: str) -> None:
        self.backend = backend
        self.table = table
        self.columns: str | None = None
        self.filters: list[tuple[str, str, Any]] = []
        self.orders: list[tuple[str, bool]] = []
        self.single = False
        self.payload: dict | None = None

    def select(self, columns: str = "*", **kwargs) -> "FakeQuery":
        self.columns = columns
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column: str, values: list) -> "FakeQuery":
        self.filters.append(("in", column, list(values)))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        return self

    def maybe_single(self) -> "FakeQuery":
        self.single = True
        return self

    def insert(self, payload: dict) -> "FakeQuery":
        self.payload = payload
        return self

    def value_of(self, column: str) -> Any:
        for op, name, value in self.filters:
            if op == "eq" and name == column:
                return value
        return None

    def _matches(self, row: dict) -> bool:
        for op, column, value in self.filters:
            if op == "eq" and row.get(column) != value:
                return False
            if op == "in" and row.get(column) not in value:
                return False
        return True

    def execute(self) -> FakeResponse | None:
        self.backend.queries.append(self)
        delay = self.backend.delays.get(self.table)
        if delay:
            time.sleep(delay)
        for table, exc, when in self.backend.failures:
            if table == self.table and (when is None or when(self)):
                raise exc

        if self.payload is not None:
            self.backend.inserted.append((self.table, dict(self.payload)))
            stored = {"id": f"{self.table}-{len(self.backend.inserted)}", "created_at": NOW.isoformat(), **self.payload}
            return FakeResponse([stored])

        rows = [dict(row) for row in self.backend.tables.get(self.table, []) if self._matches(row)]
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda row: (row.get(column) is None, str(row.get(column) or "")), reverse=desc)
        if self.single:
            # supabase-py answers None when maybe_single() finds no row
            return FakeResponse(rows[0]) if rows else None
        return FakeResponse(rows)


class FakeRpc:
    def __init__(self, backend: "FakeSupabase", name: str, params: dict) -> None:
        self.backend = backend
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.backend.rpc_calls.append((self.name, self.params))
        result = self.backend.rpc_results.get(self.name)
        if isinstance(result, Exception):
            raise result
        return FakeResponse(result)


class FakeSupabase:
    def __init__(self, tables: dict[str, list[dict]] | None = None) -> None:
        self.tables = tables or {}
        self.rpc_results: dict[str, Any] = {}
        self.failures: list[tuple[str, Exception, Callable[[FakeQuery], bool] | None]] = []
        self.queries: list[FakeQuery] = []
        self.rpc_calls: list[tuple[str, dict]] = []
        self.inserted: list[tuple[str, dict]] = []
        # table -> seconds each query against it takes
        self.delays: dict[str, float] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: dict) -> FakeRpc:
        return FakeRpc(self, name, params)

    def fail(self, table: str, exc: Exception, when: Callable[[FakeQuery], bool] | None = None) -> None:
        self.failures.append((table, exc, when))


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


def make_convoy(
    convoy_id: str,
    *,
    name: str | None = None,
    category: str | None = "Binek",
    description: str | None = None,
    status: ConvoyStatus = ConvoyStatus.ACTIVE,
    start_location: str | None = None,
    end_location: str | None = None,
    start_offset_hours: float | None = 0.0,
    created_offset_hours: float | None = 0.0,
    leader_id: str | None = "leader-1",
    leader_name: str | None = None,
    position: Coordinate | None = None,
    position_at: datetime | None = None,
    party_size: int | None = 1,
) -> ConvoySnapshot:
    return ConvoySnapshot(
        id=convoy_id,
        name=name or f"Convoy {convoy_id}",
        description=description,
        category=category,
        status=status,
        start_location=start_location,
        end_location=end_location,
        start_time=NOW + timedelta(hours=start_offset_hours) if start_offset_hours is not None else None,
        leader_id=leader_id,
        leader_name=leader_name,
        declared_capacity=None,
        declared_leader_party_size=party_size,
        raw_leader_position=position,
        raw_leader_position_at=position_at,
        created_at=NOW + timedelta(hours=created_offset_hours) if created_offset_hours is not None else None,
    )


IZMIR = Coordinate(38.42, 27.14)


def _iso(offset: timedelta) -> str:
    return (NOW + offset).isoformat()


def seed_backend(fake: FakeSupabase, business_id: str = "b1") -> FakeSupabase:
    """Two active convoys (one live, one without position), one planned convoy, one offer and coupon."""
    fake.tables["convoys"] = [
        {
            "id": "c1",
            "name": "Ege Turu",
            "description": "Sahil yolu",
            "category": "Motor",
            "status": "active",
            "start_location": "İzmir",
            "end_location": "Çeşme",
            "start_time": _iso(timedelta(hours=-2)),
            "leader_id": "u1",
            "profiles": {"full_name": "Ayşe Kaptan"},
            "leader_live_lat": 38.5,
            "leader_live_lng": 27.0,
            "leader_live_updated_at": _iso(timedelta(seconds=-60)),
            "created_at": _iso(timedelta(days=-1)),
            "max_headcount": 8,
            "leader_party_size": 2,
        },
        {
            "id": "c2",
            "name": "Karadeniz Karavan",
            "description": "Araç Tipi: Karavan",
            "category": None,
            "status": "active",
            "start_location": "Samsun",
            "end_location": "Rize",
            "start_time": _iso(timedelta(hours=-1)),
            "leader_id": "u5",
            "profiles": {"full_name": "Mehmet"},
            "leader_live_lat": None,
            "leader_live_lng": None,
            "leader_live_updated_at": None,
            "created_at": _iso(timedelta(hours=-5)),
            "max_headcount": 4,
            "leader_party_size": 1,
        },
        {
            "id": "p1",
            "name": "Kapadokya Sabah",
            "description": None,
            "category": "Binek",
            "status": "pending",
            "start_location": "Ankara",
            "end_location": "Nevşehir",
            "start_time": _iso(timedelta(days=2)),
            "leader_id": "u9",
            "profiles": {"full_name": "Zeynep"},
            "created_at": _iso(timedelta(hours=-3)),
            "max_vehicles": 6,
        },
    ]
    fake.tables["convoy_members"] = [
        {
            "convoy_id": "c1",
            "user_id": "u1",
            "role": "leader",
            "current_lat": 38.45,
            "current_lng": 27.1,
            "last_updated": _iso(timedelta(seconds=-10)),
            "status": "active",
            "party_size": 2,
        },
        {
            "convoy_id": "c1",
            "user_id": "u2",
            "role": "member",
            "current_lat": 0,
            "current_lng": 0,
            "last_updated": _iso(timedelta(0)),
            "status": "active",
            "party_size": 3,
        },
    ]
    fake.tables["convoy_offers"] = [
        {
            "id": "o1",
            "business_id": business_id,
            "convoy_id": "c1",
            "captain_id": "u1",
            "offer_title": "Çay molası",
            "offer_details": "Tüm ekibe ücretsiz çay",
            "status": "pending",
            "created_at": _iso(timedelta(hours=-1)),
            "captain": {"full_name": "Ayşe Kaptan"},
            "convoy": {"name": "Ege Turu", "category": "Motor", "start_location": "İzmir", "end_location": "Çeşme"},
        },
    ]
    fake.tables["coupon_campaigns"] = [
        {
            "id": "k1",
            "business_id": business_id,
            "title": "Yaz",
            "code": "YAZ10",
            "discount_type": "percentage",
            "discount_value": 10,
            "valid_until": None,
            "is_active": True,
            "created_at": _iso(timedelta(days=-3)),
        },
        {
            "id": "k2",
            "business_id": business_id,
            "title": "Bitti",
            "discount_type": "item",
            "valid_until": _iso(timedelta(days=-1)),
            "is_active": True,
            "created_at": _iso(timedelta(days=-9)),
        },
    ]
    return fake

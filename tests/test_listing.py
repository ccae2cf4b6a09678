from datetime import timedelta

from conftest import NOW, make_convoy

from convoy_radar.models.domain import ConvoySummary, HeadcountStats, OfferRecord, OfferStatus
from convoy_radar.services.listing.filters import ListFilter, clamp_radius, filter_convoys, filter_offers
from convoy_radar.services.listing.sorting import ListKind, SortMode, resolve_sort_mode, sort_convoys, sort_offers
from convoy_radar.services.listing.text import (
    category_from_description,
    matches,
    normalize_vehicle_category,
    parse_category_filter,
)


def _offer(offer_id, *, status=OfferStatus.PENDING, created_hours=0.0, title="Çay ikramı", convoy=None):
    return OfferRecord(
        id=offer_id,
        convoy_id="c1",
        business_id="b1",
        captain_id="leader-1",
        title=title,
        details="Mola yerinde",
        coupon_id=None,
        status=status,
        created_at=NOW + timedelta(hours=created_hours),
        convoy=convoy,
        captain_name="Ahmet",
    )


def _headcount(confirmed: int) -> HeadcountStats:
    return HeadcountStats(
        max_headcount=max(confirmed, 10),
        leader_party_size=1,
        confirmed_headcount=confirmed,
        pending_headcount=0,
        available_headcount=0,
    )


def test_text_matching_folds_turkish_characters():
    assert matches("Şişli Otogarı", "sisli")
    assert matches("şişli", "ŞİŞLİ")
    assert matches("ÇAMLICA", "camlıca")
    assert matches("anything", "")
    assert not matches("Kadıköy", "besiktas")


def test_category_normalization():
    assert normalize_vehicle_category("caravan") == "Karavan"
    assert normalize_vehicle_category("MOTOR") == "Motosiklet"
    assert normalize_vehicle_category("suv") == "Binek"
    assert normalize_vehicle_category(None) == "Binek"
    assert category_from_description("Rota: Bolu\nAraç Tipi: Bisiklet") == "Bisiklet"
    assert category_from_description("no vehicle info") is None
    assert parse_category_filter("Hepsi") is None
    assert parse_category_filter("  ") is None
    assert parse_category_filter("karavan") == "Karavan"


def test_clamp_radius():
    assert clamp_radius(None) is None
    assert clamp_radius("") is None
    assert clamp_radius("  ") is None
    assert clamp_radius(25) == 25
    assert clamp_radius(-4) == 30
    assert clamp_radius("abc") == 30
    assert clamp_radius(float("inf")) == 30
    assert clamp_radius(10_000) == 500


def test_convoy_filters():
    convoys = [
        make_convoy("c1", name="Karadeniz Turu", category="Karavan", start_location="Şile", end_location="Rize"),
        make_convoy("c2", name="Ege Sürüşü", category=None, description="Araç Tipi: Motor", leader_name="Şükrü"),
        make_convoy("c3", name="Kapadokya", category="sedan", start_location="İstanbul", end_location="Nevşehir"),
    ]

    assert [c.id for c in filter_convoys(convoys, ListFilter(category="Karavan"))] == ["c1"]
    assert [c.id for c in filter_convoys(convoys, ListFilter(category="Motosiklet"))] == ["c2"]
    assert [c.id for c in filter_convoys(convoys, ListFilter(search="sukru"))] == ["c2"]
    assert [c.id for c in filter_convoys(convoys, ListFilter(location="nevsehir"))] == ["c3"]
    assert [c.id for c in filter_convoys(convoys, ListFilter(location="sile"))] == ["c1"]


def test_radius_excludes_unknown_distance():
    convoys = [make_convoy("near"), make_convoy("far"), make_convoy("unknown")]
    distances = {"near": 12.0, "far": 45.0}

    kept = filter_convoys(convoys, ListFilter(radius_km=25), distances=distances, apply_radius=True)
    assert [c.id for c in kept] == ["near"]

    unfiltered = filter_convoys(convoys, ListFilter(radius_km=25), distances=distances, apply_radius=False)
    assert len(unfiltered) == 3


def test_closest_sort_puts_unknown_last_by_start_time():
    convoys = [
        make_convoy("late-unknown", start_offset_hours=5),
        make_convoy("far", start_offset_hours=1),
        make_convoy("early-unknown", start_offset_hours=2),
        make_convoy("near", start_offset_hours=3),
    ]
    distances = {"far": 40.0, "near": 3.0}

    ordered = sort_convoys(convoys, SortMode.CLOSEST, distances=distances)

    assert [c.id for c in ordered] == ["near", "far", "early-unknown", "late-unknown"]


def test_smart_sort_depends_on_list_and_distances():
    convoys = [make_convoy("a", start_offset_hours=1), make_convoy("b", start_offset_hours=2)]

    active = sort_convoys(convoys, SortMode.SMART, list_kind=ListKind.ACTIVE, distances={"b": 1.0, "a": 9.0})
    planned = sort_convoys(convoys, SortMode.SMART, list_kind=ListKind.PLANNED, distances={"b": 1.0})
    no_distance = sort_convoys(convoys, SortMode.SMART, list_kind=ListKind.ACTIVE, distances={})

    assert [c.id for c in active] == ["b", "a"]
    assert [c.id for c in planned] == ["a", "b"]
    assert [c.id for c in no_distance] == ["a", "b"]


def test_headcount_and_recent_sorts():
    convoys = [
        make_convoy("small", start_offset_hours=1, created_offset_hours=-3),
        make_convoy("big-late", start_offset_hours=4, created_offset_hours=-1),
        make_convoy("big-early", start_offset_hours=2, created_offset_hours=-2),
        make_convoy("declared", start_offset_hours=3, created_offset_hours=None, party_size=3),
    ]
    headcounts = {"small": _headcount(2), "big-late": _headcount(8), "big-early": _headcount(8)}

    by_headcount = sort_convoys(convoys, SortMode.HEADCOUNT, headcounts=headcounts)
    recent = sort_convoys(convoys, SortMode.RECENT)

    assert [c.id for c in by_headcount] == ["big-early", "big-late", "declared", "small"]
    assert [c.id for c in recent] == ["big-late", "big-early", "small", "declared"]


def test_sorts_are_idempotent_and_stable():
    convoys = [make_convoy(f"c{i}", start_offset_hours=i % 2) for i in range(6)]
    distances = {"c0": 5.0, "c2": 5.0, "c4": 1.0}
    for mode in SortMode:
        once = sort_convoys(convoys, mode, distances=distances)
        assert sort_convoys(once, mode, distances=distances) == once

    # equal start times keep their input order
    by_start = sort_convoys(convoys, SortMode.START_TIME)
    assert [c.id for c in by_start] == ["c0", "c2", "c4", "c1", "c3", "c5"]


def test_offer_smart_sort_by_status_rank_then_recency():
    offers = [
        _offer("done", status=OfferStatus.COMPLETED, created_hours=5),
        _offer("old-pending", created_hours=-2),
        _offer("accepted", status=OfferStatus.ACCEPTED, created_hours=3),
        _offer("new-pending", created_hours=1),
    ]

    ordered = sort_offers(offers, SortMode.SMART)

    assert [o.id for o in ordered] == ["new-pending", "old-pending", "accepted", "done"]
    assert sort_offers(ordered, SortMode.SMART) == ordered


def test_offer_filters_cover_archive_status_and_text():
    summary = ConvoySummary(
        name="Ege Sürüşü",
        category="Motosiklet",
        start_location="İzmir",
        end_location="Çeşme",
        start_time=NOW,
        status="active",
    )
    offers = [
        _offer("o1", convoy=summary),
        _offer("o2", status=OfferStatus.ACCEPTED, title="Yakıt indirimi"),
        _offer("o3"),
    ]
    archived = frozenset({"o3"})

    active = filter_offers(offers, ListFilter(), archived_ids=archived)
    archive = filter_offers(offers, ListFilter(show_archive=True), archived_ids=archived)
    by_status = filter_offers(offers, ListFilter(offer_status=OfferStatus.ACCEPTED), archived_ids=archived)
    by_route = filter_offers(offers, ListFilter(location="cesme"), archived_ids=archived)
    by_convoy_name = filter_offers(offers, ListFilter(search="ege"), archived_ids=archived)
    by_category = filter_offers(offers, ListFilter(category="Motosiklet"), archived_ids=archived)

    assert [o.id for o in active] == ["o1", "o2"]
    assert [o.id for o in archive] == ["o3"]
    assert [o.id for o in by_status] == ["o2"]
    assert [o.id for o in by_route] == ["o1"]
    assert [o.id for o in by_convoy_name] == ["o1"]
    assert [o.id for o in by_category] == ["o1"]


def test_unsupported_sort_mode_falls_back_to_smart():
    assert resolve_sort_mode(ListKind.PLANNED, "closest") is SortMode.SMART
    assert resolve_sort_mode(ListKind.OFFERS, "headcount") is SortMode.SMART
    assert resolve_sort_mode(ListKind.ACTIVE, "bogus") is SortMode.SMART
    assert resolve_sort_mode(ListKind.ACTIVE, None) is SortMode.SMART
    assert resolve_sort_mode(ListKind.ACTIVE, "closest") is SortMode.CLOSEST
    assert resolve_sort_mode(ListKind.OFFERS, "start_time") is SortMode.START_TIME

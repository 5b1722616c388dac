from collections import namedtuple

import pytest

from gigmarket.extensions import db
from gigmarket.models.worker_profile import Position
from gigmarket.services import order_service
from gigmarket.services.matching_service import (
    haversine_km,
    matches_skills,
    rank,
    rank_orders,
    rank_workers,
)

Spot = namedtuple("Spot", ["name", "lat", "lng"])

SAO_PAULO = Position(-23.5505, -46.6333)
GUARULHOS = (-23.4543, -46.5337)
CAMPINAS = (-22.9056, -47.0608)
RIO = (-22.9068, -43.1729)


def coords(spot):
    return spot.lat, spot.lng


def test_haversine_known_distance():
    assert haversine_km(SAO_PAULO.lat, SAO_PAULO.lng, *RIO) == pytest.approx(361, abs=5)
    assert haversine_km(0, 0, 0, 0) == 0


def test_empty_skill_set_matches_everything():
    assert matches_skills("mudanca", [])
    assert matches_skills("mudanca", None)
    assert matches_skills("mudanca", ["mudanca", "carga"])
    assert not matches_skills("mudanca", ["carga"])


def test_rank_sorts_by_distance_and_puts_unknown_last():
    spots = [
        Spot("campinas", *CAMPINAS),
        Spot("nowhere", None, None),
        Spot("guarulhos", *GUARULHOS),
    ]
    result = rank(spots, SAO_PAULO, coords, radius_km=150)

    assert result.ranked
    assert [m.item.name for m in result.matches] == ["guarulhos", "campinas", "nowhere"]
    assert result.matches[-1].distance_km is None


def test_rank_drops_known_distances_beyond_radius():
    spots = [Spot("rio", *RIO), Spot("guarulhos", *GUARULHOS), Spot("nowhere", None, None)]
    result = rank(spots, SAO_PAULO, coords, radius_km=50)
    assert [m.item.name for m in result.matches] == ["guarulhos", "nowhere"]


def test_rank_without_position_keeps_input_order():
    spots = [Spot("rio", *RIO), Spot("guarulhos", *GUARULHOS)]
    result = rank(spots, None, coords, radius_km=10)
    assert not result.ranked
    assert [m.item.name for m in result.matches] == ["rio", "guarulhos"]
    assert all(m.distance_km is None for m in result.matches)


def _post(contractor, cargo_type, lat=None, lng=None):
    data = {"origin": "Somewhere", "cargo_type": cargo_type, "description": "job"}
    if lat is not None:
        data.update(lat=lat, lng=lng)
    return order_service.create_order(contractor, data).value


def test_rank_orders_filters_by_skill_and_status(contractor):
    near = _post(contractor, "carga", *GUARULHOS)
    far = _post(contractor, "carga", *RIO)
    other_skill = _post(contractor, "mudanca", *GUARULHOS)
    no_coords = _post(contractor, "carga")
    closed = _post(contractor, "carga", *GUARULHOS)
    closed.status = "completed"
    db.session.commit()

    result = rank_orders(SAO_PAULO, ["carga"], 100)
    ids = [m.item.id for m in result.matches]

    assert ids == [near.id, no_coords.id]
    assert far.id not in ids
    assert other_skill.id not in ids


def test_rank_orders_without_location_is_unranked(contractor):
    first = _post(contractor, "carga", *GUARULHOS)
    second = _post(contractor, "carga", *RIO)
    result = rank_orders(None, [], 10)
    assert not result.ranked
    assert {m.item.id for m in result.matches} == {first.id, second.id}


def test_rank_workers_only_available_and_unblocked(make_user):
    near = make_user("worker", position=GUARULHOS, skills=["carga"])
    far = make_user("worker", position=RIO)
    offline = make_user("worker")
    blocked = make_user("worker", position=GUARULHOS, is_blocked=True)
    generalist = make_user("worker", position=CAMPINAS)

    result = rank_workers(SAO_PAULO, 150)
    ids = [m.item.user_id for m in result.matches]
    assert ids == [near.id, generalist.id]
    assert far.id not in ids and offline.id not in ids and blocked.id not in ids

    mudanca = rank_workers(SAO_PAULO, 150, cargo_type="mudanca")
    assert [m.item.user_id for m in mudanca.matches] == [generalist.id]


def test_rank_workers_never_ranks_the_caller(make_user):
    me = make_user("worker", position=GUARULHOS)
    result = rank_workers(SAO_PAULO, 150, exclude_user_id=me.id)
    assert me.id not in [m.item.user_id for m in result.matches]

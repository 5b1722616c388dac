import logging
import math
from collections import namedtuple

from gigmarket.constants import OrderStatus, Role
from gigmarket.models.order import Order
from gigmarket.models.user import User
from gigmarket.models.worker_profile import WorkerProfile
from gigmarket.services.repository import Repository

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371

# distance is None when either side has no coordinates
Match = namedtuple("Match", ["item", "distance_km"])
MatchResult = namedtuple("MatchResult", ["matches", "ranked"])


def haversine_km(lat1, lng1, lat2, lng2):
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_to(position, lat, lng):
    if position is None or lat is None or lng is None:
        return None
    return haversine_km(position.lat, position.lng, lat, lng)


def matches_skills(cargo_type, skills):
    """Set membership; an empty skill set matches everything."""
    if not skills:
        return True
    return cargo_type in set(skills)


def rank(items, position, coords_of, radius_km=None):
    """
    Sort items by great-circle distance from position. Items without
    coordinates are kept and go last; items with a known distance beyond
    radius_km are dropped. Without a position the input order is kept.
    """
    if position is None:
        return MatchResult([Match(item, None) for item in items], False)

    known, unknown = [], []
    for item in items:
        lat, lng = coords_of(item)
        dist = distance_to(position, lat, lng)
        if dist is None:
            unknown.append(Match(item, None))
        elif radius_km is None or dist <= radius_km:
            known.append(Match(item, dist))

    known.sort(key=lambda m: m.distance_km)
    return MatchResult(known + unknown, True)


def rank_orders(worker_position, skills, radius_km, exclude_contractor_id=None):
    orders = Repository(Order).list(
        order_by="created_at", descending=True, status=OrderStatus.OPEN.value
    )
    candidates = [
        o for o in orders
        if matches_skills(o.cargo_type, skills) and o.contractor_id != exclude_contractor_id
    ]
    if worker_position is None:
        logger.info("No worker location available, returning %d orders unranked", len(candidates))
    return rank(candidates, worker_position, lambda o: (o.lat, o.lng), radius_km)


def rank_workers(contractor_position, radius_km, exclude_user_id=None, cargo_type=None):
    profiles = (
        WorkerProfile.query
        .join(User, User.id == WorkerProfile.user_id)
        .filter(
            WorkerProfile.available.is_(True),
            User.is_blocked.is_(False),
            User.role == Role.WORKER.value,
        )
        .order_by(WorkerProfile.availability_updated_at.desc())
        .all()
    )
    candidates = [
        p for p in profiles
        if p.user_id != exclude_user_id
        and (cargo_type is None or matches_skills(cargo_type, p.skills))
    ]
    if contractor_position is None:
        logger.info("No contractor location available, returning %d workers unranked", len(candidates))
    return rank(candidates, contractor_position, lambda p: (p.last_lat, p.last_lng), radius_km)

from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required

from gigmarket.constants import Role
from gigmarket.routes.order_routes import serialize_order
from gigmarket.services.matching_service import rank_orders, rank_workers
from gigmarket.services.profile_service import parse_position
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.exceptions import ForbiddenError, ValidationError
from gigmarket.utils.response_formatter import success_response

bp = Blueprint("feed", __name__, url_prefix="/api/v1/feed")


def _radius():
    radius = request.args.get("radius_km", type=float)
    if radius is None:
        return current_app.config["DEFAULT_SEARCH_RADIUS_KM"]
    if radius <= 0:
        raise ValidationError("radius_km must be positive", {"field": "radius_km"})
    return radius


def _distance(match):
    return round(match.distance_km, 2) if match.distance_km is not None else None


# ------------------------------------------------------------
#  GET /feed/orders: open jobs near the worker, matching their skills
# ------------------------------------------------------------
@bp.route("/orders", methods=["GET"])
@jwt_required()
def order_feed():
    user = get_current_user()
    if user.role != Role.WORKER.value:
        raise ForbiddenError("Only workers have an order feed")

    profile = user.worker_profile
    position = parse_position(request.args)
    if position is None and profile is not None:
        position = profile.availability.last_position
    skills = []
    if profile is not None and request.args.get("all") != "true":
        skills = profile.skills

    result = rank_orders(position, skills, _radius(), exclude_contractor_id=user.id)
    return success_response({
        "ranked": result.ranked,
        "orders": [
            dict(serialize_order(m.item, user), distance_km=_distance(m))
            for m in result.matches
        ],
    })


# ------------------------------------------------------------
#  GET /feed/workers: workers online near the contractor
# ------------------------------------------------------------
@bp.route("/workers", methods=["GET"])
@jwt_required()
def worker_feed():
    user = get_current_user()
    position = parse_position(request.args)
    result = rank_workers(
        position,
        _radius(),
        exclude_user_id=user.id,
        cargo_type=request.args.get("cargo_type"),
    )
    return success_response({
        "ranked": result.ranked,
        "workers": [
            {
                "user_id": m.item.user_id,
                "full_name": m.item.user.full_name,
                "skills": m.item.skills or [],
                "distance_km": _distance(m),
            }
            for m in result.matches
        ],
    })

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from gigmarket.constants import Role
from gigmarket.schemas.user_schema import UserAdminSchema
from gigmarket.services import profile_service
from gigmarket.services.review_service import average_rating
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.exceptions import ValidationError
from gigmarket.utils.response_formatter import success_response

bp = Blueprint("profile", __name__, url_prefix="/api/v1/profile")


def _profile_payload(user):
    data = UserAdminSchema().dump(user)
    data["phone"] = user.phone
    data["rating"] = average_rating(user.id)
    if user.role == Role.WORKER.value and user.worker_profile is not None:
        data["worker"] = user.worker_profile.to_dict()
    return data


@bp.route("", methods=["GET"])
@jwt_required()
def get_profile():
    user = get_current_user(allow_blocked=True)
    return success_response({"profile": _profile_payload(user)})


@bp.route("", methods=["PATCH"])
@jwt_required()
def update_profile():
    user = get_current_user()
    profile_service.update_profile(user, request.get_json() or {})
    return success_response({"profile": _profile_payload(user)})


# ------------------------------------------------------------
#  PUT /profile/availability: go online/offline {available, lat, lng}
# ------------------------------------------------------------
@bp.route("/availability", methods=["PUT"])
@jwt_required()
def set_availability():
    user = get_current_user()
    data = request.get_json() or {}
    if not isinstance(data.get("available"), bool):
        raise ValidationError("available must be true or false", {"field": "available"})

    availability = profile_service.set_availability(
        user, data["available"], profile_service.parse_position(data)
    )
    return success_response({
        "available": availability.available,
        "last_position": availability.last_position._asdict() if availability.last_position else None,
        "updated_at": availability.updated_at.isoformat() + "Z" if availability.updated_at else None,
    })

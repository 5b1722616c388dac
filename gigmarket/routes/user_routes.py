from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from gigmarket.schemas.user_schema import UserPublicSchema, ReportSchema
from gigmarket.services import moderation_service
from gigmarket.services.profile_service import get_user
from gigmarket.services.review_service import average_rating
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.response_formatter import success_response

bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@bp.route("/<user_id>", methods=["GET"])
@jwt_required()
def public_profile(user_id):
    get_current_user(allow_blocked=True)
    user = get_user(user_id)
    data = UserPublicSchema().dump(user)
    data["rating"] = average_rating(user.id)
    if user.worker_profile is not None:
        data["skills"] = user.worker_profile.skills or []
        data["bio"] = user.worker_profile.bio
    return success_response({"user": data})


@bp.route("/<user_id>/report", methods=["POST"])
@jwt_required()
def report_user(user_id):
    user = get_current_user()
    data = request.get_json() or {}
    report = moderation_service.create_report(user, user_id, data.get("reason"), data.get("order_id"))
    return success_response({"report": ReportSchema().dump(report)}, status=201)

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from gigmarket.schemas.user_schema import UserAdminSchema, ReportSchema
from gigmarket.services import moderation_service
from gigmarket.utils.auth_utils import get_current_user, require_admin
from gigmarket.utils.pagination import page_args, paginate_query
from gigmarket.utils.response_formatter import success_response

bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")

user_schema = UserAdminSchema()


def current_admin():
    return require_admin(get_current_user())


@bp.route("/reports", methods=["GET"])
@jwt_required()
def list_reports():
    current_admin()
    page, limit = page_args(request.args, default_limit=20)
    items, pagination = paginate_query(moderation_service.list_reports(), page, limit)
    return success_response({
        "reports": ReportSchema().dump(items, many=True),
        "pagination": pagination,
    })


@bp.route("/reports/<report_id>", methods=["DELETE"])
@jwt_required()
def dismiss_report(report_id):
    current_admin()
    moderation_service.dismiss_report(report_id)
    return success_response(message="Report dismissed")


@bp.route("/users/<user_id>/block", methods=["POST"])
@jwt_required()
def block_user(user_id):
    user = moderation_service.set_blocked(user_id, current_admin(), True)
    return success_response({"user": user_schema.dump(user)})


@bp.route("/users/<user_id>/unblock", methods=["POST"])
@jwt_required()
def unblock_user(user_id):
    user = moderation_service.set_blocked(user_id, current_admin(), False)
    return success_response({"user": user_schema.dump(user)})


@bp.route("/users/<user_id>/promote", methods=["POST"])
@jwt_required()
def promote_user(user_id):
    user = moderation_service.set_admin(user_id, current_admin(), True)
    return success_response({"user": user_schema.dump(user)})


@bp.route("/users/<user_id>/demote", methods=["POST"])
@jwt_required()
def demote_user(user_id):
    user = moderation_service.set_admin(user_id, current_admin(), False)
    return success_response({"user": user_schema.dump(user)})

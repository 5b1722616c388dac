from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from gigmarket.schemas.notification_schema import NotificationSchema
from gigmarket.services import notification_service
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.pagination import page_args, paginate_query
from gigmarket.utils.response_formatter import success_response

bp = Blueprint("notifications", __name__, url_prefix="/api/v1/notifications")

notification_schema = NotificationSchema()


@bp.route("", methods=["GET"])
@jwt_required()
def list_notifications():
    user = get_current_user(allow_blocked=True)
    page, limit = page_args(request.args, default_limit=20)
    unread_only = request.args.get("unread") == "true"

    q = notification_service.list_notifications(user, unread_only=unread_only)
    items, pagination = paginate_query(q, page, limit)
    return success_response({
        "notifications": notification_schema.dump(items, many=True),
        "pagination": pagination,
    })


@bp.route("/unread-count", methods=["GET"])
@jwt_required()
def unread_count():
    user = get_current_user(allow_blocked=True)
    return success_response({"unread": notification_service.unread_notification_count(user)})


@bp.route("/<notification_id>/read", methods=["POST"])
@jwt_required()
def mark_read(notification_id):
    user = get_current_user(allow_blocked=True)
    notification = notification_service.mark_notification_read(notification_id, user)
    return success_response({"notification": notification_schema.dump(notification)})


@bp.route("/read-all", methods=["POST"])
@jwt_required()
def mark_all_read():
    user = get_current_user(allow_blocked=True)
    updated = notification_service.mark_all_read(user)
    return success_response({"updated": updated})

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from gigmarket.schemas.chat_schema import MessageSchema
from gigmarket.services import chat_service
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.response_formatter import success_response

bp = Blueprint("chats", __name__, url_prefix="/api/v1/chats")

message_schema = MessageSchema()


@bp.route("/<proposal_id>/messages", methods=["GET"])
@jwt_required()
def get_messages(proposal_id):
    user = get_current_user(allow_blocked=True)
    items, expired = chat_service.list_messages(proposal_id, user)
    return success_response({
        "messages": message_schema.dump(items, many=True),
        "read_only": expired,
    })


# Filter rejections come back as 422 MESSAGE_BLOCKED with the reason in details
@bp.route("/<proposal_id>/messages", methods=["POST"])
@jwt_required()
def send_message(proposal_id):
    user = get_current_user()
    data = request.get_json() or {}
    msg = chat_service.send_message(proposal_id, user, data.get("content"))
    return success_response({"message": message_schema.dump(msg)}, status=201)


@bp.route("/<proposal_id>/read", methods=["POST"])
@jwt_required()
def mark_read(proposal_id):
    user = get_current_user(allow_blocked=True)
    updated = chat_service.mark_read(proposal_id, user)
    return success_response({"updated": updated})

from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy import select

from gigmarket.constants import OrderStatus, Role
from gigmarket.models.order import Order
from gigmarket.models.proposal import Proposal
from gigmarket.schemas.order_schema import OrderSchema, ProposalSchema, ReviewSchema
from gigmarket.services import order_service, proposal_service, review_service
from gigmarket.services.disclosure_service import can_reveal, counterpart_phone
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.exceptions import ForbiddenError
from gigmarket.utils.pagination import page_args, paginate_query
from gigmarket.utils.response_formatter import success_response, error_response, rejection_response

bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")

order_schema = OrderSchema()
proposal_schema = ProposalSchema()


def serialize_order(order, viewer):
    data = order_schema.dump(order)
    data["accepted_worker_id"] = order.accepted_worker_id
    data["proposal_count"] = len(order.proposals)
    data["contact_unlocked"] = can_reveal(order, viewer.id)
    if viewer.id == order.contractor_id:
        data["stale_warning"] = order_service.stale_order_warning(order)
    return data


def _visible(order, viewer):
    if order.status == OrderStatus.OPEN.value or viewer.is_admin:
        return True
    return viewer.id in (order.contractor_id, order.accepted_worker_id)


# ------------------------------------------------------------
#  GET /orders: contractors see their orders; workers the ones they bid on
# ------------------------------------------------------------
@bp.route("", methods=["GET"])
@jwt_required()
def list_orders():
    user = get_current_user(allow_blocked=True)
    page, limit = page_args(request.args)
    status = request.args.get("status")

    q = Order.query
    if user.role == Role.CONTRACTOR.value:
        q = q.filter(Order.contractor_id == user.id)
    elif not user.is_admin:
        bid_on = select(Proposal.order_id).where(Proposal.worker_id == user.id)
        q = q.filter(Order.id.in_(bid_on))

    if status:
        q = q.filter(Order.status == status)

    items, pagination = paginate_query(q.order_by(Order.created_at.desc()), page, limit)
    return success_response({
        "orders": [serialize_order(o, user) for o in items],
        "pagination": pagination,
    })


@bp.route("", methods=["POST"])
@jwt_required()
def create_order():
    user = get_current_user()
    result = order_service.create_order(user, request.get_json() or {})
    if not result.ok:
        return rejection_response(result.error)
    current_app.logger.info("Order %s posted", result.value.id)
    return success_response({"order": serialize_order(result.value, user)}, status=201)


@bp.route("/<order_id>", methods=["GET"])
@jwt_required()
def get_order(order_id):
    user = get_current_user(allow_blocked=True)
    order = order_service.get_order(order_id)
    if not _visible(order, user):
        raise ForbiddenError("You cannot view this order")
    return success_response({"order": serialize_order(order, user)})


@bp.route("/<order_id>", methods=["PATCH"])
@jwt_required()
def update_order(order_id):
    user = get_current_user()
    result = order_service.update_order(order_id, user, request.get_json() or {})
    if not result.ok:
        return rejection_response(result.error)
    return success_response({"order": serialize_order(result.value, user)})


@bp.route("/<order_id>", methods=["DELETE"])
@jwt_required()
def delete_order(order_id):
    user = get_current_user()
    result = order_service.delete_order(order_id, user)
    if not result.ok:
        return rejection_response(result.error)
    return success_response(message="Order deleted")


@bp.route("/<order_id>/cancel", methods=["POST"])
@jwt_required()
def cancel_engagement(order_id):
    user = get_current_user()
    data = request.get_json() or {}
    result = order_service.cancel_engagement(order_id, user, data.get("reason"))
    if not result.ok:
        return rejection_response(result.error)
    return success_response({"order": serialize_order(result.value, user)}, message="Engagement cancelled")


@bp.route("/<order_id>/finish", methods=["POST"])
@jwt_required()
def finish_order(order_id):
    user = get_current_user()
    result = order_service.finish_order(order_id, user)
    if not result.ok:
        return rejection_response(result.error)
    return success_response({"order": serialize_order(result.value, user)}, message="Order completed")


# ------------------------------------------------------------
#  GET /orders/<id>/contact: counterpart phone, once the fee is paid
# ------------------------------------------------------------
@bp.route("/<order_id>/contact", methods=["GET"])
@jwt_required()
def get_contact(order_id):
    user = get_current_user(allow_blocked=True)
    order = order_service.get_order(order_id)
    if not can_reveal(order, user.id):
        return error_response("CONTACT_LOCKED", "Contact is released after the unlock fee is paid", status=403)
    return success_response({"phone": counterpart_phone(order, user.id)})


@bp.route("/<order_id>/proposals", methods=["GET"])
@jwt_required()
def list_proposals(order_id):
    user = get_current_user(allow_blocked=True)
    items = proposal_service.list_order_proposals(order_id, user)
    return success_response({"proposals": proposal_schema.dump(items, many=True)})


@bp.route("/<order_id>/proposals", methods=["POST"])
@jwt_required()
def submit_proposal(order_id):
    user = get_current_user()
    data = request.get_json() or {}
    result = proposal_service.submit_proposal(order_id, user, data.get("amount"), data.get("message"))
    if not result.ok:
        return rejection_response(result.error)
    return success_response({"proposal": proposal_schema.dump(result.value)}, status=201)


@bp.route("/<order_id>/review", methods=["POST"])
@jwt_required()
def review_order(order_id):
    user = get_current_user()
    data = request.get_json() or {}
    review = review_service.submit_review(order_id, user, data.get("stars"))
    return success_response({"review": ReviewSchema().dump(review)}, status=201)

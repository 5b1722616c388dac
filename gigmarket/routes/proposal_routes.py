from flask import Blueprint
from flask_jwt_extended import jwt_required

from gigmarket.schemas.order_schema import ProposalSchema
from gigmarket.services import proposal_service
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.response_formatter import success_response, rejection_response

bp = Blueprint("proposals", __name__, url_prefix="/api/v1/proposals")

proposal_schema = ProposalSchema()


@bp.route("/mine", methods=["GET"])
@jwt_required()
def my_proposals():
    user = get_current_user(allow_blocked=True)
    items = proposal_service.list_worker_proposals(user)
    return success_response({"proposals": proposal_schema.dump(items, many=True)})


@bp.route("/<proposal_id>/accept", methods=["POST"])
@jwt_required()
def accept(proposal_id):
    user = get_current_user()
    result = proposal_service.accept_proposal(proposal_id, user)
    if not result.ok:
        return rejection_response(result.error)
    return success_response({"proposal": proposal_schema.dump(result.value)}, message="Proposal accepted")


@bp.route("/<proposal_id>/reject", methods=["POST"])
@jwt_required()
def reject(proposal_id):
    user = get_current_user()
    result = proposal_service.reject_proposal(proposal_id, user)
    if not result.ok:
        return rejection_response(result.error)
    return success_response(message="Proposal rejected")


@bp.route("/<proposal_id>", methods=["DELETE"])
@jwt_required()
def withdraw(proposal_id):
    user = get_current_user()
    result = proposal_service.withdraw_proposal(proposal_id, user)
    if not result.ok:
        return rejection_response(result.error)
    return success_response(message="Proposal withdrawn")

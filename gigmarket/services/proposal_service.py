import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from gigmarket.constants import ENGAGED_STATUSES, OrderStatus, Role
from gigmarket.models.message import Message
from gigmarket.models.order import Order
from gigmarket.models.proposal import Proposal
from gigmarket.services.message_filter import filter_outbound
from gigmarket.services.repository import Repository, commit, rollback
from gigmarket.utils.exceptions import (
    ConflictError,
    FilterRejection,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from gigmarket.utils.result import returns_result

logger = logging.getLogger(__name__)

orders = Repository(Order)
proposals = Repository(Proposal)
messages = Repository(Message)


def get_proposal(proposal_id):
    proposal = proposals.get(proposal_id)
    if not proposal:
        raise NotFoundError("Proposal not found")
    return proposal


def get_proposal_order(proposal):
    order = orders.get(proposal.order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def _parse_amount(amount):
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("amount must be numeric", {"field": "amount"})
    if amount <= 0:
        raise ValidationError("amount must be greater than zero", {"field": "amount"})
    return amount


def _clean_message(message):
    message = (message or "").strip() or None
    if message:
        verdict = filter_outbound(message)
        if not verdict.allowed:
            raise FilterRejection(verdict.reason, verdict.message)
    return message


@returns_result
def submit_proposal(order_id, worker, amount, message=None):
    """
    Bid on an open order. One proposal per (order, worker): bidding again
    edits the existing proposal instead of adding a second one.
    """
    if worker.role != Role.WORKER.value:
        raise ForbiddenError("Only workers can send proposals")

    amount = _parse_amount(amount)
    message = _clean_message(message)

    order = orders.get(order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.contractor_id == worker.id:
        raise ForbiddenError("You cannot bid on your own order")
    if order.status != OrderStatus.OPEN.value:
        raise InvalidStateError("ORDER_NOT_OPEN", "This order is no longer taking proposals")

    existing = proposals.first(order_id=order.id, worker_id=worker.id)
    if existing is None:
        try:
            proposal = proposals.insert(
                order_id=order.id,
                worker_id=worker.id,
                amount=amount,
                message=message,
                is_accepted=False,
            )
            commit()
            logger.info("Proposal %s sent on order %s by %s", proposal.id, order.id, worker.id)
            return proposal
        except IntegrityError:
            # a concurrent submit from the same worker got in first
            rollback()
            existing = proposals.first(order_id=order_id, worker_id=worker.id)
            if existing is None:
                raise

    if existing.is_accepted:
        raise InvalidStateError("PROPOSAL_ACCEPTED", "An accepted proposal cannot be edited")
    proposals.update(existing, amount=amount, message=message, updated_at=datetime.utcnow())
    commit()
    return existing


@returns_result
def accept_proposal(proposal_id, contractor):
    """
    Engage the proposal's worker. The order row is flipped open -> accepted
    with a conditional update, then the proposal is flipped; both happen in
    one transaction and the partial unique index backs the second step.
    """
    proposal = get_proposal(proposal_id)
    order = get_proposal_order(proposal)
    if order.contractor_id != contractor.id:
        raise ForbiddenError("Only the contractor who posted the order can accept proposals")
    if proposal.is_accepted:
        raise ConflictError("ALREADY_ACCEPTED", "This proposal was already accepted")

    now = datetime.utcnow()
    won = orders.update_if(
        {
            "status": OrderStatus.ACCEPTED.value,
            "agreed_price": proposal.amount,
            "updated_at": now,
        },
        id=order.id,
        status=OrderStatus.OPEN.value,
    )
    if not won:
        current = orders.get(order.id, refresh=True)
        if current is not None and current.status in ENGAGED_STATUSES:
            raise ConflictError("ALREADY_ACCEPTED", "Another proposal was already accepted for this order")
        raise InvalidStateError("ORDER_NOT_OPEN", "This order is not open")

    try:
        flipped = proposals.update_if(
            {"is_accepted": True, "updated_at": now},
            id=proposal.id,
            is_accepted=False,
        )
    except IntegrityError:
        raise ConflictError("ALREADY_ACCEPTED", "Another proposal was already accepted for this order")
    if not flipped:
        raise ConflictError("PROPOSAL_GONE", "The proposal was withdrawn or already accepted")

    commit()
    logger.info("Proposal %s accepted on order %s", proposal.id, order.id)
    return proposals.get(proposal.id)


def _remove_pending(proposal):
    proposal_id = proposal.id
    messages.delete_if(proposal_id=proposal_id)
    if proposals.delete_if(id=proposal_id, is_accepted=False):
        return
    if proposals.get(proposal_id, refresh=True) is None:
        raise ConflictError("ALREADY_REMOVED", "This proposal was already removed")
    raise InvalidStateError(
        "PROPOSAL_ACCEPTED",
        "An accepted proposal can only be removed by cancelling the engagement",
    )


@returns_result
def reject_proposal(proposal_id, contractor):
    proposal = get_proposal(proposal_id)
    order = get_proposal_order(proposal)
    if order.contractor_id != contractor.id:
        raise ForbiddenError("Only the contractor who posted the order can reject proposals")

    _remove_pending(proposal)
    commit()
    logger.info("Proposal %s rejected on order %s", proposal_id, order.id)
    return proposal_id


@returns_result
def withdraw_proposal(proposal_id, worker):
    proposal = get_proposal(proposal_id)
    if proposal.worker_id != worker.id:
        raise ForbiddenError("You can only withdraw your own proposals")

    _remove_pending(proposal)
    commit()
    return proposal_id


def list_order_proposals(order_id, viewer):
    """The owner sees every proposal; anybody else only sees their own."""
    order = orders.get(order_id)
    if not order:
        raise NotFoundError("Order not found")
    if viewer.id == order.contractor_id or viewer.is_admin:
        return proposals.list(order_by="created_at", order_id=order.id)
    return proposals.list(order_by="created_at", order_id=order.id, worker_id=viewer.id)


def list_worker_proposals(worker):
    return proposals.list(order_by="created_at", descending=True, worker_id=worker.id)

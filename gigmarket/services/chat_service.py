import logging
from datetime import datetime

from gigmarket.models.message import Message
from gigmarket.models.order import Order
from gigmarket.models.proposal import Proposal
from gigmarket.services.message_filter import filter_outbound
from gigmarket.services.order_service import is_chat_expired
from gigmarket.services.repository import Repository, commit
from gigmarket.utils.exceptions import (
    FilterRejection,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000

messages = Repository(Message)
proposals = Repository(Proposal)
orders = Repository(Order)


def get_chat(proposal_id, user):
    """Every proposal carries one chat between its worker and the order's contractor."""
    proposal = proposals.get(proposal_id)
    if not proposal:
        raise NotFoundError("Chat not found")
    order = orders.get(proposal.order_id)
    if not order:
        raise NotFoundError("Chat not found")
    if user.id not in (proposal.worker_id, order.contractor_id):
        raise ForbiddenError("Not part of this chat")
    return proposal, order


def send_message(proposal_id, sender, text, now=None):
    proposal, order = get_chat(proposal_id, sender)

    if is_chat_expired(order, now):
        raise InvalidStateError("CHAT_EXPIRED", "This chat is closed")

    text = (text or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty", {"field": "content"})
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError("Message is too long", {"field": "content", "max": MAX_MESSAGE_LENGTH})

    verdict = filter_outbound(text)
    if not verdict.allowed:
        logger.info("Blocked message from %s on %s: %s", sender.id, proposal.id, verdict.reason)
        raise FilterRejection(verdict.reason, verdict.message)

    msg = messages.insert(
        proposal_id=proposal.id,
        sender_id=sender.id,
        content=text,
        is_read=False,
        created_at=now or datetime.utcnow(),
    )
    commit()
    return msg


def list_messages(proposal_id, user):
    proposal, order = get_chat(proposal_id, user)
    return messages.list(order_by="created_at", proposal_id=proposal.id), is_chat_expired(order)


def mark_read(proposal_id, user):
    """Mark everything the other side sent as read."""
    proposal, _ = get_chat(proposal_id, user)
    updated = 0
    for msg in messages.list(proposal_id=proposal.id, is_read=False):
        if msg.sender_id != user.id:
            messages.update(msg, is_read=True)
            updated += 1
    commit()
    return updated


def unread_count(proposal_id, user_id):
    return messages.query(proposal_id=proposal_id, is_read=False).filter(
        Message.sender_id != user_id
    ).count()

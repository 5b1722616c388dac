import logging
import re
from datetime import datetime, timedelta

from dateutil import parser
from flask import current_app

from gigmarket.constants import CARGO_TYPES, ENGAGED_STATUSES, OrderStatus, Role
from gigmarket.models.message import Message
from gigmarket.models.order import Order
from gigmarket.models.payment_intent import PaymentIntent
from gigmarket.models.proposal import Proposal
from gigmarket.models.review import Review
from gigmarket.services.payment_service import abandon_pending_intents, cancel_at_processor
from gigmarket.services.repository import Repository, commit
from gigmarket.utils.exceptions import (
    ConflictError,
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

LEGACY_PREFIX = re.compile(r"^\[(.*?)\]\s*")

EDITABLE_FIELDS = (
    "origin", "lat", "lng", "cargo_type", "description",
    "scheduled_date", "scheduled_time", "agreed_price",
)


def split_legacy_description(description):
    """'[CARGA] Descarregar caminhão' -> ('carga', 'Descarregar caminhão')"""
    match = LEGACY_PREFIX.match(description or "")
    if not match:
        return None, description
    return match.group(1).strip().lower(), description[match.end():]


def _coordinate(value, field, limit):
    if value is None or value == "":
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be numeric", {"field": field})
    if not -limit <= value <= limit:
        raise ValidationError(f"{field} out of range", {"field": field})
    return value


def parse_order_form(data, partial=False):
    fields = {}

    if "origin" in data or not partial:
        origin = (data.get("origin") or "").strip()
        if not origin:
            raise ValidationError("origin is required", {"field": "origin"})
        fields["origin"] = origin

    if "lat" in data or "lng" in data:
        lat = _coordinate(data.get("lat"), "lat", 90)
        lng = _coordinate(data.get("lng"), "lng", 180)
        if (lat is None) != (lng is None):
            raise ValidationError("lat and lng must be given together", {"field": "lat"})
        fields["lat"], fields["lng"] = lat, lng

    if "description" in data or not partial:
        legacy_cargo, description = split_legacy_description(data.get("description") or "")
        fields["description"] = description.strip()
        if legacy_cargo and not data.get("cargo_type"):
            fields["cargo_type"] = legacy_cargo

    if "cargo_type" in data or (not partial and "cargo_type" not in fields):
        fields["cargo_type"] = (data.get("cargo_type") or "carga").lower()
    if "cargo_type" in fields and fields["cargo_type"] not in CARGO_TYPES:
        raise ValidationError(
            f"Unknown cargo_type {fields['cargo_type']!r}",
            {"field": "cargo_type", "allowed": sorted(CARGO_TYPES)},
        )

    if data.get("scheduled_date"):
        try:
            fields["scheduled_date"] = parser.isoparse(data["scheduled_date"]).date()
        except (TypeError, ValueError):
            raise ValidationError("Invalid scheduled_date (use ISO)", {"field": "scheduled_date"})
    elif "scheduled_date" in data:
        fields["scheduled_date"] = None

    if data.get("scheduled_time"):
        try:
            fields["scheduled_time"] = datetime.strptime(data["scheduled_time"], "%H:%M").time()
        except (TypeError, ValueError):
            raise ValidationError("Invalid scheduled_time (use HH:MM)", {"field": "scheduled_time"})
    elif "scheduled_time" in data:
        fields["scheduled_time"] = None

    price = data.get("price", data.get("agreed_price"))
    if price not in (None, ""):
        try:
            price = float(price)
        except (TypeError, ValueError):
            raise ValidationError("price must be numeric", {"field": "price"})
        if price <= 0:
            raise ValidationError("price must be positive", {"field": "price"})
        fields["agreed_price"] = price

    return fields


def get_order(order_id):
    order = orders.get(order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_owned_order(order_id, contractor):
    order = get_order(order_id)
    if order.contractor_id != contractor.id:
        raise ForbiddenError("Only the contractor who posted the order can do this")
    return order


@returns_result
def create_order(contractor, data):
    if contractor.role != Role.CONTRACTOR.value:
        raise ForbiddenError("Only contractors can post orders")

    fields = parse_order_form(data)
    order = orders.insert(
        contractor_id=contractor.id,
        status=OrderStatus.OPEN.value,
        contact_fee_paid=False,
        **fields,
    )
    commit()
    logger.info("Order %s created by %s", order.id, contractor.id)
    return order


@returns_result
def update_order(order_id, contractor, data):
    order = get_owned_order(order_id, contractor)
    patch = {k: v for k, v in parse_order_form(data, partial=True).items() if k in EDITABLE_FIELDS}
    if not patch:
        raise ValidationError("Nothing to update")

    patch["updated_at"] = datetime.utcnow()
    if not orders.update_if(patch, id=order.id, status=OrderStatus.OPEN.value):
        raise InvalidStateError("ORDER_NOT_OPEN", "Only open orders can be edited")
    commit()
    return orders.get(order.id)


def _purge_children(order_id):
    proposal_ids = [p.id for p in proposals.list(order_id=order_id)]
    if proposal_ids:
        messages.delete_if(proposal_id=proposal_ids)
        proposals.delete_if(order_id=order_id)
    Repository(PaymentIntent).delete_if(order_id=order_id)
    Repository(Review).delete_if(order_id=order_id)
    return len(proposal_ids)


@returns_result
def delete_order(order_id, contractor):
    """
    Open orders (never accepted) and completed orders can be removed by their
    owner; pending proposals and their chats go with them.
    """
    order_id = get_owned_order(order_id, contractor).id
    deletable = [OrderStatus.OPEN.value, OrderStatus.COMPLETED.value]

    if not orders.delete_if(id=order_id, status=deletable):
        current = orders.get(order_id, refresh=True)
        if current is None:
            raise ConflictError("ALREADY_DELETED", "Order was already removed")
        raise InvalidStateError(
            "ORDER_ENGAGED",
            "Cancel the engagement before deleting this order",
        )

    removed = _purge_children(order_id)
    commit()
    logger.info("Order %s deleted with %d proposals", order_id, removed)
    return order_id


def expire_stale_order(order_id):
    """Sweep-only removal; an order that got a worker meanwhile is left alone."""
    if not orders.delete_if(id=order_id, status=OrderStatus.OPEN.value):
        return False
    _purge_children(order_id)
    commit()
    return True


@returns_result
def cancel_engagement(order_id, contractor, reason):
    """
    Drop the engaged worker and put the order back on the market.
    contact_fee_paid is kept: re-engaging on the same order is not charged again.
    """
    order = get_owned_order(order_id, contractor)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A cancellation reason is required", {"field": "reason"}, code="REASON_REQUIRED")

    reopened = orders.update_if(
        {
            "status": OrderStatus.OPEN.value,
            "agreed_price": None,
            "cancel_reason": reason,
            "updated_at": datetime.utcnow(),
        },
        id=order.id,
        status=list(ENGAGED_STATUSES),
    )
    if not reopened:
        current = orders.get(order.id, refresh=True)
        if current is not None and current.status == OrderStatus.OPEN.value:
            raise ConflictError("ALREADY_CANCELLED", "This engagement was already cancelled")
        raise InvalidStateError("ORDER_NOT_ENGAGED", "Only accepted or paid orders can be cancelled")

    accepted_ids = [p.id for p in proposals.list(order_id=order.id, is_accepted=True)]
    if accepted_ids:
        messages.delete_if(proposal_id=accepted_ids)
        proposals.delete_if(id=accepted_ids, is_accepted=True)
    abandoned = abandon_pending_intents(order.id)
    commit()
    cancel_at_processor(abandoned)
    logger.info("Engagement on order %s cancelled: %s", order.id, reason)
    return orders.get(order.id)


@returns_result
def finish_order(order_id, actor, now=None):
    order = get_order(order_id)
    if actor.id not in (order.contractor_id, order.accepted_worker_id):
        raise ForbiddenError("Only the engaged parties can finish this order")

    finished = orders.update_if(
        {"status": OrderStatus.COMPLETED.value, "updated_at": now or datetime.utcnow()},
        id=order.id,
        status=list(ENGAGED_STATUSES),
    )
    if not finished:
        current = orders.get(order.id, refresh=True)
        if current is not None and current.status == OrderStatus.COMPLETED.value:
            raise ConflictError("ALREADY_COMPLETED", "This order was already finished")
        raise InvalidStateError("ORDER_NOT_ENGAGED", "Only accepted or paid orders can be finished")
    abandoned = abandon_pending_intents(order.id)
    commit()
    cancel_at_processor(abandoned)
    return orders.get(order.id)


def is_chat_expired(order, now=None):
    """Chats go read-only CHAT_EXPIRY_DAYS after the order is completed."""
    if order.status != OrderStatus.COMPLETED.value or not order.updated_at:
        return False
    now = now or datetime.utcnow()
    expiry = timedelta(days=current_app.config["CHAT_EXPIRY_DAYS"])
    return now - order.updated_at > expiry


def stale_order_warning(order, now=None):
    """
    Advisory only. The order is removed by the expire_stale_orders sweep,
    never by the coordinator itself.
    """
    if order.status != OrderStatus.OPEN.value:
        return None
    now = now or datetime.utcnow()

    if order.scheduled_date:
        if order.scheduled_date <= now.date():
            return "Scheduled date reached, this order will be removed soon"
        return None

    warn_days = current_app.config["STALE_ORDER_WARNING_DAYS"]
    delete_days = current_app.config["STALE_ORDER_DELETE_DAYS"]
    if order.created_at and now - order.created_at > timedelta(days=warn_days):
        hours_left = max(delete_days - warn_days, 0) * 24
        return f"No activity for {warn_days} days, this order will be removed in {hours_left}h"
    return None


def find_stale_orders(now=None):
    now = now or datetime.utcnow()
    cutoff = now - timedelta(days=current_app.config["STALE_ORDER_DELETE_DAYS"])
    stale = []
    for order in orders.list(status=OrderStatus.OPEN.value):
        if order.scheduled_date:
            if order.scheduled_date < now.date():
                stale.append(order)
        elif order.created_at and order.created_at < cutoff:
            stale.append(order)
    return stale

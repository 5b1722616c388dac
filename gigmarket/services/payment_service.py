"""
Contact-unlock fee reconciliation.

A PaymentIntent is created against the processor and then polled by the
client. The first poll that observes settlement performs the one and only
transition (intent pending -> settled, order contact_fee_paid false -> true,
order accepted -> paid); every later poll is a no-op.
"""
import hashlib
import logging
from collections import namedtuple
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from gigmarket.constants import ENGAGED_STATUSES, IntentStatus, OrderStatus
from gigmarket.models.order import Order
from gigmarket.models.payment_intent import PaymentIntent
from gigmarket.services.payment_processor import (
    PROCESSOR_FAILED,
    PROCESSOR_SETTLED,
    get_payment_processor,
)
from gigmarket.services.repository import Repository, commit, rollback
from gigmarket.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from gigmarket.utils.result import returns_result

logger = logging.getLogger(__name__)

orders = Repository(Order)
intents = Repository(PaymentIntent)

# changed is True only for the poll that performed the settlement
PollOutcome = namedtuple("PollOutcome", ["intent", "status", "changed"])


def idempotency_key(order_id, payer_id, amount, attempt):
    raw = f"{order_id}:{payer_id}:{amount:.2f}:{attempt}"
    return hashlib.sha256(raw.encode()).hexdigest()


def _fee():
    amount = float(current_app.config["CONTACT_UNLOCK_FEE"])
    if amount <= 0:
        raise ValidationError("Contact unlock fee must be positive", code="INVALID_AMOUNT")
    return amount


def _open_intent(order_id, payer_id, now):
    for intent in intents.list(
        order_by="created_at", descending=True,
        order_id=order_id, payer_id=payer_id, status=IntentStatus.PENDING.value,
    ):
        if not intent.is_expired(now):
            return intent
    return None


@returns_result
def create_intent(order_id, payer, now=None):
    now = now or datetime.utcnow()

    order = orders.get(order_id)
    if not order:
        raise NotFoundError("Order not found")
    if payer.id not in (order.contractor_id, order.accepted_worker_id):
        raise ForbiddenError("Only the engaged parties can pay the contact fee")
    if order.contact_fee_paid:
        raise ConflictError("ALREADY_PAID", "The contact fee for this order is already paid")
    if order.status not in ENGAGED_STATUSES:
        raise InvalidStateError("ORDER_NOT_ENGAGED", "The order has no accepted worker yet")

    amount = _fee()

    existing = _open_intent(order.id, payer.id, now)
    if existing:
        logger.info("Reusing pending intent %s for order %s", existing.id, order.id)
        return existing

    attempt = intents.count(order_id=order.id, payer_id=payer.id) + 1
    key = idempotency_key(order.id, payer.id, amount, attempt)
    expires_at = now + timedelta(minutes=current_app.config["PAYMENT_INTENT_EXPIRY_MINUTES"])
    payer_email = payer.email

    # nothing may be held open while the processor is called
    order_id = order.id
    rollback()

    payment = get_payment_processor().create_payment(
        amount=amount,
        expires_at=expires_at,
        idempotency_key=key,
        description=current_app.config["PAYMENT_DESCRIPTION"],
        payer_email=payer_email,
    )

    try:
        intent = intents.insert(
            id=payment.intent_id,
            order_id=order_id,
            payer_id=payer.id,
            idempotency_key=key,
            amount=amount,
            status=IntentStatus.PENDING.value,
            qr_code=payment.qr_code,
            qr_code_base64=payment.qr_code_base64,
            ticket_url=payment.ticket_url,
            expires_at=expires_at,
            created_at=now,
        )
        commit()
    except IntegrityError:
        # same attempt raced in from another session; the processor deduped it
        rollback()
        intent = intents.first(idempotency_key=key) or intents.get(payment.intent_id)
        if intent is None:
            raise
    logger.info("Intent %s created for order %s by %s", intent.id, order_id, payer.id)
    return intent


def get_intent(intent_id, viewer=None):
    intent = intents.get(intent_id)
    if not intent:
        raise NotFoundError("Payment intent not found")
    if viewer is not None:
        order = orders.get(intent.order_id)
        allowed = {intent.payer_id}
        if order:
            allowed.update({order.contractor_id, order.accepted_worker_id})
        if viewer.id not in allowed:
            raise ForbiddenError("You cannot view this payment")
    return intent


def abandon_pending_intents(order_id, keep=None):
    """
    Expire every pending intent on the order except ``keep``. Returns the ids
    that were expired; the caller cancels them at the processor after commit.
    """
    abandoned = []
    for intent in intents.list(order_id=order_id, status=IntentStatus.PENDING.value):
        if intent.id == keep:
            continue
        if intents.update_if(
            {"status": IntentStatus.EXPIRED.value},
            id=intent.id,
            status=IntentStatus.PENDING.value,
        ):
            abandoned.append(intent.id)
    return abandoned


def cancel_at_processor(intent_ids):
    if not intent_ids:
        return
    processor = get_payment_processor()
    for intent_id in intent_ids:
        try:
            processor.cancel_payment(intent_id)
        except PaymentError as exc:
            logger.warning("Could not cancel intent %s at the processor (%s)", intent_id, exc.code)


def _settle(intent, now):
    won = intents.update_if(
        {"status": IntentStatus.SETTLED.value, "settled_at": now},
        id=intent.id,
        status=IntentStatus.PENDING.value,
    )
    if not won:
        return False

    # a completed order keeps its completion timestamp (the chat expiry clock)
    flagged = orders.update_if(
        {"contact_fee_paid": True},
        id=intent.order_id,
        contact_fee_paid=False,
        status=list(ENGAGED_STATUSES),
    )
    if flagged:
        orders.update_if(
            {"status": OrderStatus.PAID.value},
            id=intent.order_id,
            status=OrderStatus.ACCEPTED.value,
        )
    else:
        logger.warning(
            "Intent %s settled but order %s was already paid or is no longer engaged",
            intent.id, intent.order_id,
        )
    superseded = abandon_pending_intents(intent.order_id, keep=intent.id)
    commit()
    cancel_at_processor(superseded)
    logger.info("Intent %s settled, order %s unlocked", intent.id, intent.order_id)
    return True


@returns_result
def poll_status(intent_id, viewer=None, now=None):
    now = now or datetime.utcnow()
    intent = get_intent(intent_id, viewer)

    if intent.status != IntentStatus.PENDING.value:
        return PollOutcome(intent, intent.status, False)

    order = orders.get(intent.order_id)
    if order is None or order.contact_fee_paid or order.status not in ENGAGED_STATUSES:
        # fee already collected or engagement over: never charge this intent
        abandoned = abandon_pending_intents(intent.order_id)
        commit()
        cancel_at_processor(abandoned)
        intent = intents.get(intent.id, refresh=True)
        return PollOutcome(intent, intent.status, False)

    if intent.is_expired(now):
        intents.update_if(
            {"status": IntentStatus.EXPIRED.value},
            id=intent.id,
            status=IntentStatus.PENDING.value,
        )
        commit()
        intent = intents.get(intent.id)
        return PollOutcome(intent, intent.status, False)

    try:
        payment = get_payment_processor().get_payment(intent.id)
    except PaymentError as exc:
        logger.warning("Polling intent %s failed (%s), will retry", intent.id, exc.code)
        return PollOutcome(intent, IntentStatus.PENDING.value, False)

    if payment.status == PROCESSOR_SETTLED:
        changed = _settle(intent, now)
        intent = intents.get(intent.id, refresh=True)
        return PollOutcome(intent, intent.status, changed)

    if payment.status == PROCESSOR_FAILED:
        # abandoned like an expired one; the payer starts a new intent
        intents.update_if(
            {"status": IntentStatus.EXPIRED.value},
            id=intent.id,
            status=IntentStatus.PENDING.value,
        )
        commit()
        intent = intents.get(intent.id)
        return PollOutcome(intent, intent.status, False)

    return PollOutcome(intent, IntentStatus.PENDING.value, False)

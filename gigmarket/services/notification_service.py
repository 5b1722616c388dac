import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gigmarket.constants import NotificationType, OrderStatus
from gigmarket.extensions import db
from gigmarket.models.notification import Notification
from gigmarket.models.order import Order
from gigmarket.models.proposal import Proposal
from gigmarket.models.worker_profile import Position
from gigmarket.services.change_feed import INSERT, UPDATE, DELETE
from gigmarket.services.chat_service import unread_count
from gigmarket.services.matching_service import rank_workers
from gigmarket.services.repository import Repository
from gigmarket.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

notifications = Repository(Notification)
orders = Repository(Order)
proposals = Repository(Proposal)


def dedupe_key(entity_id, event_type, stamp):
    stamp = stamp.isoformat() if hasattr(stamp, "isoformat") else stamp
    return f"{entity_id}:{event_type}:{stamp}"


class NotificationFanout:
    """
    Turns committed row changes into per-user notifications.

    The same change may arrive more than once (change feed plus a replaying
    transport after reconnect); the unique (user_id, dedupe_key) makes the
    second copy a no-op.
    """

    def __init__(self):
        self.handlers = {
            ("proposals", INSERT): self._new_proposal,
            ("proposals", UPDATE): self._proposal_accepted,
            ("proposals", DELETE): self._engagement_cancelled,
            ("messages", INSERT): self._new_message,
            ("orders", INSERT): self._new_order_in_radius,
            ("orders", UPDATE): self._order_completed,
        }

    def ingest(self, event):
        handler = self.handlers.get((event.table, event.operation))
        if handler is None:
            return 0
        try:
            return handler(event.old_row, event.new_row)
        except SQLAlchemyError:
            db.session.rollback()
            raise

    def _emit(self, user_id, ntype, title, message, key, details=None):
        if not user_id:
            return 0
        if notifications.first(user_id=user_id, dedupe_key=key):
            return 0
        db.session.add(Notification(
            user_id=user_id,
            type=ntype.value,
            title=title,
            message=message,
            details=details or {},
            dedupe_key=key,
        ))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.debug("Duplicate notification %s for %s dropped", key, user_id)
            return 0
        return 1

    def _new_proposal(self, old_row, row):
        order = orders.get(row["order_id"])
        if not order:
            return 0
        return self._emit(
            order.contractor_id,
            NotificationType.NEW_PROPOSAL,
            "New proposal",
            f"You received a proposal of R$ {row['amount']:.2f}",
            dedupe_key(row["id"], NotificationType.NEW_PROPOSAL.value, row.get("created_at")),
            {"order_id": row["order_id"], "proposal_id": row["id"]},
        )

    def _proposal_accepted(self, old_row, row):
        if not row.get("is_accepted") or (old_row or {}).get("is_accepted"):
            return 0
        return self._emit(
            row["worker_id"],
            NotificationType.PROPOSAL_ACCEPTED,
            "Proposal accepted",
            "Your proposal was accepted. Unlock the contact to talk to the contractor.",
            dedupe_key(row["id"], NotificationType.PROPOSAL_ACCEPTED.value, row.get("updated_at")),
            {"order_id": row["order_id"], "proposal_id": row["id"]},
        )

    def _engagement_cancelled(self, old_row, row):
        if not old_row.get("is_accepted"):
            return 0
        order = orders.get(old_row["order_id"], refresh=True)
        if not order or order.status != OrderStatus.OPEN.value:
            return 0
        return self._emit(
            old_row["worker_id"],
            NotificationType.ENGAGEMENT_CANCELLED,
            "Engagement cancelled",
            f"The contractor cancelled the job: {order.cancel_reason or 'no reason given'}",
            dedupe_key(old_row["id"], NotificationType.ENGAGEMENT_CANCELLED.value, order.updated_at),
            {"order_id": order.id},
        )

    def _new_message(self, old_row, row):
        proposal = proposals.get(row["proposal_id"])
        if not proposal:
            return 0
        order = orders.get(proposal.order_id)
        if not order:
            return 0
        recipient = order.contractor_id if row["sender_id"] == proposal.worker_id else proposal.worker_id
        unread = unread_count(proposal.id, recipient)
        return self._emit(
            recipient,
            NotificationType.NEW_MESSAGE,
            "New message",
            f"You have {unread} unread message(s)",
            dedupe_key(row["id"], NotificationType.NEW_MESSAGE.value, row.get("created_at")),
            {"proposal_id": proposal.id, "order_id": order.id, "unread_count": unread},
        )

    def _order_completed(self, old_row, row):
        if row.get("status") != OrderStatus.COMPLETED.value:
            return 0
        if (old_row or {}).get("status") == OrderStatus.COMPLETED.value:
            return 0
        accepted = proposals.first(order_id=row["id"], is_accepted=True)
        key = dedupe_key(row["id"], NotificationType.ORDER_COMPLETED.value, row.get("updated_at"))
        sent = 0
        for user_id in (row["contractor_id"], accepted.worker_id if accepted else None):
            sent += self._emit(
                user_id,
                NotificationType.ORDER_COMPLETED,
                "Job completed",
                "The job was marked as finished. Leave a review!",
                key,
                {"order_id": row["id"]},
            )
        return sent

    def _new_order_in_radius(self, old_row, row):
        if row.get("status") != OrderStatus.OPEN.value:
            return 0
        if row.get("lat") is None or row.get("lng") is None:
            return 0
        result = rank_workers(
            Position(row["lat"], row["lng"]),
            current_app.config["DEFAULT_SEARCH_RADIUS_KM"],
            exclude_user_id=row["contractor_id"],
            cargo_type=row.get("cargo_type"),
        )
        key = dedupe_key(row["id"], NotificationType.NEW_ORDER_IN_RADIUS.value, row.get("created_at"))
        sent = 0
        for match in result.matches:
            if match.distance_km is None:
                continue
            sent += self._emit(
                match.item.user_id,
                NotificationType.NEW_ORDER_IN_RADIUS,
                "New job nearby",
                f"New {row.get('cargo_type')} job {match.distance_km:.1f} km from you",
                key,
                {"order_id": row["id"], "distance_km": round(match.distance_km, 1)},
            )
        return sent


def register_fanout(feed):
    fanout = NotificationFanout()
    feed.subscribe(fanout.ingest)
    return fanout


def list_notifications(user, unread_only=False):
    q = Notification.query.filter_by(user_id=user.id)
    if unread_only:
        q = q.filter_by(is_read=False)
    return q.order_by(Notification.created_at.desc())


def unread_notification_count(user):
    return notifications.count(user_id=user.id, is_read=False)


def mark_notification_read(notification_id, user):
    notification = notifications.first(id=notification_id, user_id=user.id)
    if not notification:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(user):
    updated = Notification.query.filter_by(user_id=user.id, is_read=False).update({"is_read": True})
    db.session.commit()
    return updated

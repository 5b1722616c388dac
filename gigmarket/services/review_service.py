from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from gigmarket.constants import OrderStatus
from gigmarket.extensions import db
from gigmarket.models.order import Order
from gigmarket.models.review import Review
from gigmarket.services.repository import Repository, commit, rollback
from gigmarket.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

reviews = Repository(Review)
orders = Repository(Order)


def submit_review(order_id, reviewer, stars):
    order = orders.get(order_id)
    if not order:
        raise NotFoundError("Order not found")
    if order.status != OrderStatus.COMPLETED.value:
        raise InvalidStateError("ORDER_NOT_COMPLETED", "Only finished jobs can be reviewed")

    worker_id = order.accepted_worker_id
    if reviewer.id == order.contractor_id:
        target_id = worker_id
    elif reviewer.id == worker_id:
        target_id = order.contractor_id
    else:
        raise ForbiddenError("Only the engaged parties can review this job")
    if target_id is None:
        raise InvalidStateError("NO_COUNTERPART", "There is nobody to review on this order")

    try:
        stars = int(stars)
    except (TypeError, ValueError):
        raise ValidationError("stars must be an integer", {"field": "stars"})
    if not 1 <= stars <= 5:
        raise ValidationError("stars must be between 1 and 5", {"field": "stars"})

    if reviews.first(order_id=order.id, reviewer_id=reviewer.id):
        raise ConflictError("ALREADY_REVIEWED", "You already reviewed this job")
    try:
        review = reviews.insert(
            order_id=order.id, reviewer_id=reviewer.id, target_id=target_id, stars=stars
        )
        commit()
    except IntegrityError:
        rollback()
        raise ConflictError("ALREADY_REVIEWED", "You already reviewed this job")
    return review


def average_rating(user_id):
    avg, total = (
        db.session.query(func.avg(Review.stars), func.count(Review.id))
        .filter(Review.target_id == user_id)
        .one()
    )
    return {"average": round(float(avg), 2) if avg is not None else None, "count": total}

from gigmarket.extensions import db
from gigmarket.models.user import User


def can_reveal(order, viewer_id):
    """
    True iff the contact fee for this order is paid and the viewer is one of
    the two engaged parties. Every surface that shows a phone number must go
    through here.
    """
    if not order or not viewer_id or not order.contact_fee_paid:
        return False
    accepted_worker_id = order.accepted_worker_id
    if accepted_worker_id is None:
        return False
    return viewer_id in (order.contractor_id, accepted_worker_id)


def counterpart_id(order, viewer_id):
    if viewer_id == order.contractor_id:
        return order.accepted_worker_id
    return order.contractor_id


def counterpart_phone(order, viewer_id):
    if not can_reveal(order, viewer_id):
        return None
    other = db.session.get(User, counterpart_id(order, viewer_id))
    return other.phone if other else None

from gigmarket.extensions import db
from gigmarket.models.notification import Notification
from gigmarket.models.order import Order
from gigmarket.services import (
    chat_service,
    notification_service,
    order_service,
    proposal_service,
)
from gigmarket.services.change_feed import ChangeEvent, ChangeFeed, INSERT


def of_type(user, ntype):
    return Notification.query.filter_by(user_id=user.id, type=ntype).all()


def test_new_proposal_notifies_contractor(open_order, contractor, worker_a):
    proposal_service.submit_proposal(open_order.id, worker_a, 150)
    [notif] = of_type(contractor, "new_proposal")
    assert notif.details["order_id"] == open_order.id
    assert not notif.is_read


def test_editing_a_proposal_does_not_renotify(open_order, contractor, worker_a):
    proposal_service.submit_proposal(open_order.id, worker_a, 150)
    proposal_service.submit_proposal(open_order.id, worker_a, 140)
    assert len(of_type(contractor, "new_proposal")) == 1


def test_accept_notifies_only_the_winner(accepted_order, worker_a, worker_b):
    assert len(of_type(worker_a, "proposal_accepted")) == 1
    assert of_type(worker_b, "proposal_accepted") == []


def test_new_message_carries_unread_count(accepted_order, contractor, worker_a):
    _, prop_a, _ = accepted_order
    chat_service.send_message(prop_a.id, worker_a, "Cheguei")
    chat_service.send_message(prop_a.id, worker_a, "Estou na portaria")

    notes = sorted(of_type(contractor, "new_message"), key=lambda n: n.details["unread_count"])
    assert [n.details["unread_count"] for n in notes] == [1, 2]
    assert of_type(worker_a, "new_message") == []


def test_message_on_vanished_order_is_skipped(app, open_order, contractor, worker_a):
    proposal = proposal_service.submit_proposal(open_order.id, worker_a, 150).value
    row = {"id": "MSG-1", "proposal_id": proposal.id, "sender_id": worker_a.id, "created_at": None}
    Order.query.filter_by(id=open_order.id).delete()
    db.session.commit()
    db.session.expire_all()

    fanout = app.extensions["notification_fanout"]
    assert fanout.ingest(ChangeEvent("messages", INSERT, None, row)) == 0
    assert of_type(contractor, "new_message") == []


def test_finish_notifies_both_parties(accepted_order, contractor, worker_a, worker_b):
    order, _, _ = accepted_order
    order_service.finish_order(order.id, worker_a)
    assert len(of_type(contractor, "order_completed")) == 1
    assert len(of_type(worker_a, "order_completed")) == 1
    assert of_type(worker_b, "order_completed") == []


def test_cancel_notifies_dropped_worker(accepted_order, contractor, worker_a, worker_b):
    order, _, _ = accepted_order
    order_service.cancel_engagement(order.id, contractor, "Choveu")
    [notif] = of_type(worker_a, "engagement_cancelled")
    assert "Choveu" in notif.message
    assert of_type(worker_b, "engagement_cancelled") == []


def test_rejecting_a_pending_proposal_is_silent(accepted_order, contractor, worker_b):
    _, _, prop_b = accepted_order
    proposal_service.reject_proposal(prop_b.id, contractor)
    assert of_type(worker_b, "engagement_cancelled") == []


def test_new_order_reaches_nearby_workers_with_matching_skill(contractor, make_user):
    near = make_user("worker", position=(-23.56, -46.64), skills=["mudanca"])
    generalist = make_user("worker", position=(-23.60, -46.70))
    wrong_skill = make_user("worker", position=(-23.56, -46.64), skills=["freelance"])
    far = make_user("worker", position=(-22.9068, -43.1729))
    offline = make_user("worker", skills=["mudanca"])

    order_service.create_order(contractor, {
        "origin": "Pinheiros", "lat": -23.5505, "lng": -46.6333, "cargo_type": "mudanca",
    })

    assert len(of_type(near, "new_order_in_radius")) == 1
    assert len(of_type(generalist, "new_order_in_radius")) == 1
    for user in (wrong_skill, far, offline, contractor):
        assert of_type(user, "new_order_in_radius") == []


def test_replayed_event_is_deduplicated(app, open_order, contractor, worker_a):
    proposal = proposal_service.submit_proposal(open_order.id, worker_a, 150).value
    row = {
        "id": proposal.id,
        "order_id": open_order.id,
        "worker_id": worker_a.id,
        "amount": 150.0,
        "created_at": proposal.created_at,
    }
    fanout = app.extensions["notification_fanout"]

    assert fanout.ingest(ChangeEvent("proposals", INSERT, None, row)) == 0
    assert len(of_type(contractor, "new_proposal")) == 1


def test_failing_subscriber_does_not_break_publish(app):
    feed = ChangeFeed()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    feed.subscribe(broken)
    unsubscribe = feed.subscribe(seen.append)
    event = ChangeEvent("orders", INSERT, None, {"id": "ORD-1"})
    feed.publish(event)
    assert seen == [event]

    unsubscribe()
    feed.publish(event)
    assert seen == [event]


def test_read_state(open_order, contractor, worker_a, worker_b):
    proposal_service.submit_proposal(open_order.id, worker_a, 150)
    proposal_service.submit_proposal(open_order.id, worker_b, 140)

    assert notification_service.unread_notification_count(contractor) == 2
    first = notification_service.list_notifications(contractor).first()
    notification_service.mark_notification_read(first.id, contractor)
    assert notification_service.unread_notification_count(contractor) == 1
    assert notification_service.list_notifications(contractor, unread_only=True).count() == 1

    assert notification_service.mark_all_read(contractor) == 1
    assert notification_service.unread_notification_count(contractor) == 0
    db.session.expire_all()
    assert all(n.is_read for n in of_type(contractor, "new_proposal"))

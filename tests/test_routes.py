from datetime import date, timedelta

from gigmarket.extensions import db
from gigmarket.models.user import User


def post_order(client, headers, **overrides):
    body = {
        "origin": "Av. Paulista, 1000",
        "lat": -23.5614,
        "lng": -46.6559,
        "cargo_type": "carga",
        "description": "Descarregar 200 sacos",
        "scheduled_date": (date.today() + timedelta(days=2)).isoformat(),
    }
    body.update(overrides)
    res = client.post("/api/v1/orders", json=body, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["order"]


def bid(client, headers, order_id, amount):
    res = client.post(f"/api/v1/orders/{order_id}/proposals", json={"amount": amount}, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["proposal"]


def test_requires_token(client):
    assert client.get("/api/v1/orders").status_code == 401


def test_two_bids_one_accept(client, auth_headers, contractor, worker_a, worker_b):
    c, a, b = auth_headers(contractor), auth_headers(worker_a), auth_headers(worker_b)
    order = post_order(client, c)
    prop_a = bid(client, a, order["id"], 150)
    prop_b = bid(client, b, order["id"], 130)

    res = client.post(f"/api/v1/proposals/{prop_a['id']}/accept", headers=c)
    assert res.status_code == 200
    assert res.get_json()["proposal"]["is_accepted"] is True

    listed = client.get(f"/api/v1/orders/{order['id']}/proposals", headers=c).get_json()["proposals"]
    accepted = {p["id"]: p["is_accepted"] for p in listed}
    assert accepted == {prop_a["id"]: True, prop_b["id"]: False}

    # losing the race shows up as a no-op, not an error
    res = client.post(f"/api/v1/proposals/{prop_b['id']}/accept", headers=c)
    assert res.status_code == 200
    assert res.get_json()["noop"] is True
    assert res.get_json()["code"] == "ALREADY_ACCEPTED"

    res = client.post(f"/api/v1/proposals/{prop_b['id']}/reject", headers=c)
    assert res.status_code == 200

    detail = client.get(f"/api/v1/orders/{order['id']}", headers=c).get_json()["order"]
    assert detail["status"] == "accepted"
    assert detail["accepted_worker_id"] == worker_a.id
    assert detail["agreed_price"] == 150
    assert detail["contact_unlocked"] is False


def test_pay_and_reveal(client, auth_headers, contractor, worker_a, worker_b, processor):
    c, a, b = auth_headers(contractor), auth_headers(worker_a), auth_headers(worker_b)
    order = post_order(client, c)
    prop_a = bid(client, a, order["id"], 150)
    bid(client, b, order["id"], 130)
    client.post(f"/api/v1/proposals/{prop_a['id']}/accept", headers=c)

    assert client.get(f"/api/v1/orders/{order['id']}/contact", headers=c).status_code == 403

    res = client.post("/api/v1/payments/intents", json={"order_id": order["id"]}, headers=c)
    assert res.status_code == 201
    payload = res.get_json()
    intent_id = payload["intent"]["id"]
    assert payload["status"] == "pending"
    assert payload["poll_interval_seconds"] == 3
    assert payload["intent"]["qr_code"]

    assert client.get(f"/api/v1/payments/intents/{intent_id}", headers=c).get_json()["status"] == "pending"
    processor.settle(intent_id)
    assert client.get(f"/api/v1/payments/intents/{intent_id}", headers=c).get_json()["status"] == "settled"

    res = client.get(f"/api/v1/orders/{order['id']}/contact", headers=c)
    assert res.status_code == 200
    assert res.get_json()["phone"] == worker_a.phone
    assert client.get(f"/api/v1/orders/{order['id']}/contact", headers=a).get_json()["phone"] == contractor.phone
    assert client.get(f"/api/v1/orders/{order['id']}/contact", headers=b).status_code == 403

    again = client.post("/api/v1/payments/intents", json={"order_id": order["id"]}, headers=a)
    assert again.get_json()["noop"] is True and again.get_json()["code"] == "ALREADY_PAID"


def test_error_envelope(client, auth_headers, contractor, worker_a):
    c, a = auth_headers(contractor), auth_headers(worker_a)

    res = client.post("/api/v1/orders", json={"description": "sem origem"}, headers=c)
    assert res.status_code == 422
    assert res.get_json()["error"]["code"] == "VALIDATION_ERROR"

    res = client.get("/api/v1/orders/ORD-missing", headers=c)
    assert res.status_code == 404
    assert res.get_json()["error"]["code"] == "NOT_FOUND"

    order = post_order(client, c)
    res = client.post(f"/api/v1/orders/{order['id']}/finish", headers=c)
    assert res.status_code == 400
    assert res.get_json()["error"]["code"] == "ORDER_NOT_ENGAGED"

    prop = bid(client, a, order["id"], 100)
    res = client.post(f"/api/v1/chats/{prop['id']}/messages", json={"content": "me chama no zap"}, headers=a)
    assert res.status_code == 422
    error = res.get_json()["error"]
    assert error["code"] == "MESSAGE_BLOCKED"
    assert error["details"]["reason"] == "CONTACT_KEYWORD"


def test_chat_and_notifications(client, auth_headers, contractor, worker_a):
    c, a = auth_headers(contractor), auth_headers(worker_a)
    order = post_order(client, c)
    prop = bid(client, a, order["id"], 100)

    res = client.post(f"/api/v1/chats/{prop['id']}/messages", json={"content": "Posso ir sexta"}, headers=a)
    assert res.status_code == 201

    messages = client.get(f"/api/v1/chats/{prop['id']}/messages", headers=c).get_json()
    assert [m["content"] for m in messages["messages"]] == ["Posso ir sexta"]
    assert messages["read_only"] is False
    assert client.post(f"/api/v1/chats/{prop['id']}/read", headers=c).get_json()["updated"] == 1

    assert client.get("/api/v1/notifications/unread-count", headers=c).get_json()["unread"] == 2
    types = {n["type"] for n in client.get("/api/v1/notifications", headers=c).get_json()["notifications"]}
    assert types == {"new_proposal", "new_message"}
    assert client.post("/api/v1/notifications/read-all", headers=c).get_json()["updated"] == 2


def test_cancel_and_finish_routes(client, auth_headers, contractor, worker_a):
    c, a = auth_headers(contractor), auth_headers(worker_a)
    order = post_order(client, c)
    prop = bid(client, a, order["id"], 100)
    client.post(f"/api/v1/proposals/{prop['id']}/accept", headers=c)

    res = client.post(f"/api/v1/orders/{order['id']}/cancel", json={}, headers=c)
    assert res.status_code == 422

    res = client.post(f"/api/v1/orders/{order['id']}/cancel", json={"reason": "imprevisto"}, headers=c)
    assert res.status_code == 200
    assert res.get_json()["order"]["status"] == "open"

    res = client.post(f"/api/v1/orders/{order['id']}/cancel", json={"reason": "imprevisto"}, headers=c)
    assert res.get_json()["noop"] is True

    prop = bid(client, a, order["id"], 90)
    client.post(f"/api/v1/proposals/{prop['id']}/accept", headers=c)
    res = client.post(f"/api/v1/orders/{order['id']}/finish", headers=a)
    assert res.get_json()["order"]["status"] == "completed"

    res = client.post(f"/api/v1/orders/{order['id']}/review", json={"stars": 5}, headers=c)
    assert res.status_code == 201
    rating = client.get(f"/api/v1/users/{worker_a.id}", headers=c).get_json()["user"]["rating"]
    assert rating == {"average": 5.0, "count": 1}


def test_availability_and_worker_feed(client, auth_headers, contractor, worker_a):
    c, a = auth_headers(contractor), auth_headers(worker_a)

    res = client.put("/api/v1/profile/availability", json={"available": True}, headers=a)
    assert res.status_code == 422
    assert res.get_json()["error"]["code"] == "POSITION_REQUIRED"

    res = client.put("/api/v1/profile/availability",
                     json={"available": True, "lat": -23.55, "lng": -46.63}, headers=a)
    assert res.status_code == 200
    assert res.get_json()["last_position"] == {"lat": -23.55, "lng": -46.63}

    workers = client.get("/api/v1/feed/workers?lat=-23.56&lng=-46.65", headers=c).get_json()
    assert workers["ranked"] is True
    assert [w["user_id"] for w in workers["workers"]] == [worker_a.id]

    near = post_order(client, c)
    post_order(client, c, lat=-22.9068, lng=-43.1729)
    feed = client.get("/api/v1/feed/orders", headers=a).get_json()
    assert feed["ranked"] is True
    assert [o["id"] for o in feed["orders"]] == [near["id"]]
    assert feed["orders"][0]["distance_km"] < 5


def test_admin_blocks_user(client, auth_headers, contractor, worker_a, admin):
    c, a, adm = auth_headers(contractor), auth_headers(worker_a), auth_headers(admin)

    res = client.post(f"/api/v1/users/{contractor.id}/report", json={"reason": "Não pagou"}, headers=a)
    assert res.status_code == 201
    report_id = res.get_json()["report"]["id"]

    assert client.get("/api/v1/admin/reports", headers=a).status_code == 403
    reports = client.get("/api/v1/admin/reports", headers=adm).get_json()["reports"]
    assert [r["id"] for r in reports] == [report_id]

    assert client.post(f"/api/v1/admin/users/{contractor.id}/block", headers=adm).status_code == 200
    res = client.post("/api/v1/orders", json={"origin": "x"}, headers=c)
    assert res.status_code == 403

    client.post(f"/api/v1/admin/users/{contractor.id}/unblock", headers=adm)
    assert client.post("/api/v1/orders", json={"origin": "x"}, headers=c).status_code == 201

    assert client.delete(f"/api/v1/admin/reports/{report_id}", headers=adm).status_code == 200
    assert client.get("/api/v1/admin/reports", headers=adm).get_json()["reports"] == []

    client.post(f"/api/v1/admin/users/{worker_a.id}/promote", headers=adm)
    db.session.expire_all()
    assert db.session.get(User, worker_a.id).is_admin is True

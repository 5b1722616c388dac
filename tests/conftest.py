import uuid
from datetime import date, timedelta

import pytest
from flask_jwt_extended import create_access_token

from gigmarket.extensions import db
from gigmarket.main import create_app
from gigmarket.models.user import User
from gigmarket.models.worker_profile import WorkerProfile
from gigmarket.services import order_service, proposal_service
from gigmarket.services.payment_processor import (
    PROCESSOR_FAILED,
    PROCESSOR_PENDING,
    PROCESSOR_SETTLED,
    ProcessorPayment,
)
from gigmarket.utils.exceptions import PaymentError


class FakeProcessor:
    """Stands in for Mercado Pago; tests flip payment statuses by hand."""

    def __init__(self):
        self.created = []
        self.polled = []
        self.cancelled = []
        self.statuses = {}
        self.fail_polls = False
        self.fail_create = False

    def create_payment(self, amount, expires_at, idempotency_key, description, payer_email=None):
        if self.fail_create:
            raise PaymentError("PROCESSOR_TIMEOUT", "Payment processor timed out")
        intent_id = f"pay-{len(self.created) + 1}"
        self.created.append({
            "intent_id": intent_id,
            "amount": amount,
            "expires_at": expires_at,
            "idempotency_key": idempotency_key,
        })
        self.statuses[intent_id] = PROCESSOR_PENDING
        return ProcessorPayment(intent_id, PROCESSOR_PENDING, "000201pix", "aW1n", "https://mp/ticket")

    def get_payment(self, intent_id):
        self.polled.append(intent_id)
        if self.fail_polls:
            raise PaymentError("PROCESSOR_TIMEOUT", "Payment processor timed out")
        return ProcessorPayment(intent_id, self.statuses[intent_id], None, None, None)

    def settle(self, intent_id):
        self.statuses[intent_id] = PROCESSOR_SETTLED

    def cancel_payment(self, intent_id):
        self.cancelled.append(intent_id)
        self.statuses[intent_id] = PROCESSOR_FAILED
        return ProcessorPayment(intent_id, PROCESSOR_FAILED, None, None, None)


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'gigmarket.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        },
    })
    app.extensions["payment_processor"] = FakeProcessor()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def processor(app):
    return app.extensions["payment_processor"]


@pytest.fixture
def make_user(app):
    def _make(role="worker", phone="11987654321", skills=None, position=None, **kwargs):
        user = User(
            email=kwargs.pop("email", f"{uuid.uuid4().hex[:8]}@example.com"),
            full_name=kwargs.pop("full_name", role.title()),
            phone=phone,
            role=role,
            **kwargs,
        )
        db.session.add(user)
        db.session.flush()
        if role == "worker":
            profile = WorkerProfile(user_id=user.id, skills=skills or [], available=position is not None)
            if position is not None:
                profile.last_lat, profile.last_lng = position
            db.session.add(profile)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def contractor(make_user):
    return make_user("contractor", phone="11911112222", full_name="Carla Contratante")


@pytest.fixture
def worker_a(make_user):
    return make_user("worker", phone="11933334444", full_name="Antonio")


@pytest.fixture
def worker_b(make_user):
    return make_user("worker", phone="11955556666", full_name="Bruno")


@pytest.fixture
def admin(make_user):
    return make_user("admin", is_admin=True)


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(identity=user.id)}"}

    return _headers


@pytest.fixture
def open_order(contractor):
    result = order_service.create_order(contractor, {
        "origin": "Rua Augusta, 100 - São Paulo",
        "lat": -23.5505,
        "lng": -46.6333,
        "cargo_type": "carga",
        "description": "Descarregar caminhão de cimento",
        "scheduled_date": (date.today() + timedelta(days=3)).isoformat(),
        "scheduled_time": "08:00",
    })
    assert result.ok, result
    return result.value


@pytest.fixture
def accepted_order(open_order, contractor, worker_a, worker_b):
    """Open order with bids from A and B where A was accepted."""
    prop_a = proposal_service.submit_proposal(open_order.id, worker_a, 150, "Chego cedo").value
    prop_b = proposal_service.submit_proposal(open_order.id, worker_b, 130).value
    result = proposal_service.accept_proposal(prop_a.id, contractor)
    assert result.ok, result
    return open_order, prop_a, prop_b

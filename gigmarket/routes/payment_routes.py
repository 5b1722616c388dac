from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required

from gigmarket.schemas.payment_schema import PaymentIntentSchema
from gigmarket.services import payment_service
from gigmarket.utils.auth_utils import get_current_user
from gigmarket.utils.exceptions import ValidationError
from gigmarket.utils.response_formatter import success_response, rejection_response

bp = Blueprint("payments", __name__, url_prefix="/api/v1/payments")

intent_schema = PaymentIntentSchema()


def _intent_payload(intent, status=None):
    return {
        "intent": intent_schema.dump(intent),
        "status": status or intent.status,
        "poll_interval_seconds": current_app.config["PAYMENT_POLL_INTERVAL_SECONDS"],
    }


# ------------------------------------------------------------
#  POST /payments/intents: start (or resume) the contact unlock payment
# ------------------------------------------------------------
@bp.route("/intents", methods=["POST"])
@jwt_required()
def create_intent():
    user = get_current_user()
    data = request.get_json() or {}
    if not data.get("order_id"):
        raise ValidationError("order_id is required", {"field": "order_id"})

    result = payment_service.create_intent(data["order_id"], user)
    if not result.ok:
        return rejection_response(result.error)
    return success_response(_intent_payload(result.value), status=201)


# ------------------------------------------------------------
#  GET /payments/intents/<id>: status poll
# ------------------------------------------------------------
@bp.route("/intents/<intent_id>", methods=["GET"])
@jwt_required()
def poll_intent(intent_id):
    user = get_current_user(allow_blocked=True)
    result = payment_service.poll_status(intent_id, viewer=user)
    if not result.ok:
        return rejection_response(result.error)
    outcome = result.value
    return success_response(_intent_payload(outcome.intent, outcome.status))

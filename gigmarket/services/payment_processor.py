"""
Mercado Pago PIX adapter.

Only the calls the contact-unlock flow needs: create a PIX payment, read its
status back, and cancel one that was superseded before the payer scanned it.
Anything else the gateway offers is out of reach here.
"""
import logging
from collections import namedtuple

import requests
from flask import current_app

from gigmarket.utils.exceptions import PaymentError

logger = logging.getLogger(__name__)

ProcessorPayment = namedtuple(
    "ProcessorPayment",
    ["intent_id", "status", "qr_code", "qr_code_base64", "ticket_url"],
)

PROCESSOR_SETTLED = "settled"
PROCESSOR_PENDING = "pending"
PROCESSOR_FAILED = "failed"

# Mercado Pago status -> ours
STATUS_MAP = {
    "approved": PROCESSOR_SETTLED,
    "authorized": PROCESSOR_PENDING,
    "pending": PROCESSOR_PENDING,
    "in_process": PROCESSOR_PENDING,
    "in_mediation": PROCESSOR_PENDING,
    "rejected": PROCESSOR_FAILED,
    "cancelled": PROCESSOR_FAILED,
    "refunded": PROCESSOR_FAILED,
    "charged_back": PROCESSOR_FAILED,
}


class MercadoPagoProcessor:
    def __init__(self, access_token, api_url="https://api.mercadopago.com", timeout=10):
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            config.get("MERCADOPAGO_ACCESS_TOKEN"),
            config.get("MERCADOPAGO_API_URL", "https://api.mercadopago.com"),
            config.get("MERCADOPAGO_TIMEOUT", 10),
        )

    def _headers(self, idempotency_key=None):
        if not self.access_token:
            raise PaymentError("PROCESSOR_NOT_CONFIGURED", "Payment processor is not configured")
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    def _request(self, method, path, **kwargs):
        try:
            res = requests.request(
                method, f"{self.api_url}{path}", timeout=self.timeout, **kwargs
            )
        except requests.Timeout:
            raise PaymentError("PROCESSOR_TIMEOUT", "Payment processor timed out")
        except requests.RequestException as exc:
            raise PaymentError("PROCESSOR_UNAVAILABLE", f"Payment processor unreachable: {exc}")

        try:
            body = res.json()
        except ValueError:
            body = {}
        if res.status_code >= 400:
            message = body.get("message") or f"Processor returned HTTP {res.status_code}"
            raise PaymentError("PROCESSOR_REJECTED", message, {"http_status": res.status_code})
        return body

    @staticmethod
    def _to_payment(body):
        data = (body.get("point_of_interaction") or {}).get("transaction_data") or {}
        return ProcessorPayment(
            intent_id=str(body.get("id")),
            status=STATUS_MAP.get(body.get("status"), PROCESSOR_PENDING),
            qr_code=data.get("qr_code"),
            qr_code_base64=data.get("qr_code_base64"),
            ticket_url=data.get("ticket_url"),
        )

    def create_payment(self, amount, expires_at, idempotency_key, description, payer_email=None):
        headers = self._headers(idempotency_key)
        payload = {
            "transaction_amount": round(float(amount), 2),
            "description": description,
            "payment_method_id": "pix",
            "payer": {"email": payer_email or "cliente@gigmarket.app"},
            "date_of_expiration": expires_at.strftime("%Y-%m-%dT%H:%M:%S.000+00:00"),
        }
        body = self._request("POST", "/v1/payments", json=payload, headers=headers)
        payment = self._to_payment(body)
        if payment.status == PROCESSOR_FAILED:
            raise PaymentError("PAYMENT_DECLINED", "Payment was declined", {"status": body.get("status")})
        logger.info("Created PIX payment %s (%s)", payment.intent_id, body.get("status"))
        return payment

    def get_payment(self, intent_id):
        body = self._request("GET", f"/v1/payments/{intent_id}", headers=self._headers())
        return self._to_payment(body)

    def cancel_payment(self, intent_id):
        body = self._request(
            "PUT", f"/v1/payments/{intent_id}",
            json={"status": "cancelled"}, headers=self._headers(),
        )
        return self._to_payment(body)


def get_payment_processor():
    processor = current_app.extensions.get("payment_processor")
    if processor is None:
        processor = MercadoPagoProcessor.from_config(current_app.config)
        current_app.extensions["payment_processor"] = processor
    return processor

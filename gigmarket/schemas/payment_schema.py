from gigmarket.extensions import ma


class PaymentIntentSchema(ma.Schema):
    id = ma.String()
    order_id = ma.String()
    payer_id = ma.String()
    amount = ma.Float()
    currency = ma.String()
    status = ma.String()
    qr_code = ma.String(allow_none=True)
    qr_code_base64 = ma.String(allow_none=True)
    ticket_url = ma.String(allow_none=True)
    expires_at = ma.DateTime()
    settled_at = ma.DateTime(allow_none=True)

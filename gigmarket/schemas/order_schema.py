from gigmarket.extensions import ma


class OrderSchema(ma.Schema):
    id = ma.String()
    contractor_id = ma.String()
    status = ma.String()
    origin = ma.String()
    lat = ma.Float(allow_none=True)
    lng = ma.Float(allow_none=True)
    cargo_type = ma.String()
    description = ma.String(allow_none=True)
    scheduled_date = ma.Date(allow_none=True)
    scheduled_time = ma.Time(allow_none=True)
    agreed_price = ma.Float(allow_none=True)
    contact_fee_paid = ma.Boolean()
    cancel_reason = ma.String(allow_none=True)
    created_at = ma.DateTime()
    updated_at = ma.DateTime()


class ProposalSchema(ma.Schema):
    id = ma.String()
    order_id = ma.String()
    worker_id = ma.String()
    amount = ma.Float()
    message = ma.String(allow_none=True)
    is_accepted = ma.Boolean()
    created_at = ma.DateTime()
    updated_at = ma.DateTime()


class ReviewSchema(ma.Schema):
    id = ma.String()
    order_id = ma.String()
    reviewer_id = ma.String()
    target_id = ma.String()
    stars = ma.Integer()
    created_at = ma.DateTime()

from gigmarket.extensions import ma


class MessageSchema(ma.Schema):
    id = ma.String()
    proposal_id = ma.String()
    sender_id = ma.String()
    content = ma.String()
    is_read = ma.Boolean()
    created_at = ma.DateTime()

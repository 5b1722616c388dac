from gigmarket.extensions import ma


class NotificationSchema(ma.Schema):
    id = ma.String()
    type = ma.String()
    title = ma.String()
    message = ma.String()
    details = ma.Dict()
    is_read = ma.Boolean()
    created_at = ma.DateTime()

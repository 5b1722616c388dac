from gigmarket.extensions import ma


class UserPublicSchema(ma.Schema):
    """Never carries phone or cpf; phones go through the disclosure gate."""
    id = ma.String()
    full_name = ma.String(allow_none=True)
    role = ma.String()
    created_at = ma.DateTime()


class UserAdminSchema(UserPublicSchema):
    email = ma.String()
    is_admin = ma.Boolean()
    is_blocked = ma.Boolean()


class ReportSchema(ma.Schema):
    id = ma.String()
    accuser_id = ma.String()
    accused_id = ma.String()
    order_id = ma.String(allow_none=True)
    reason = ma.String()
    created_at = ma.DateTime()

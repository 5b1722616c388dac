from flask_jwt_extended import get_jwt_identity

from gigmarket.extensions import db
from gigmarket.models.user import User
from gigmarket.utils.exceptions import ForbiddenError, NotFoundError


def get_current_user(allow_blocked=False):
    """Resolve the JWT identity to a User. Blocked users may only read."""
    uid = get_jwt_identity()
    user = db.session.get(User, uid) if uid else None
    if not user:
        raise NotFoundError("User not found")
    if user.is_blocked and not allow_blocked:
        raise ForbiddenError("Your account is blocked")
    return user

def require_admin(user):
    if not user.is_admin:
        raise ForbiddenError("Admin privileges required")
    return user

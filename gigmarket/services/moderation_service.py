import logging

from gigmarket.models.report import Report
from gigmarket.models.user import User
from gigmarket.services.repository import Repository, commit
from gigmarket.utils.exceptions import InvalidStateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

reports = Repository(Report)
users = Repository(User)


def create_report(accuser, accused_id, reason, order_id=None):
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required", {"field": "reason"}, code="REASON_REQUIRED")
    if accused_id == accuser.id:
        raise ValidationError("You cannot report yourself", {"field": "accused_id"})
    if not users.get(accused_id):
        raise NotFoundError("Reported user not found")

    report = reports.insert(
        accuser_id=accuser.id, accused_id=accused_id, order_id=order_id, reason=reason
    )
    commit()
    logger.info("User %s reported %s", accuser.id, accused_id)
    return report


def list_reports():
    return Report.query.order_by(Report.created_at.desc())


def dismiss_report(report_id):
    if not reports.delete_if(id=report_id):
        raise NotFoundError("Report not found")
    commit()
    return report_id


def _target(user_id, admin):
    user = users.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.id == admin.id:
        raise InvalidStateError("SELF_MODERATION", "You cannot change your own account")
    return user


def set_blocked(user_id, admin, blocked):
    user = _target(user_id, admin)
    users.update_if({"is_blocked": bool(blocked)}, id=user.id)
    commit()
    logger.info("Admin %s %s user %s", admin.id, "blocked" if blocked else "unblocked", user.id)
    return users.get(user.id)


def set_admin(user_id, admin, promote):
    user = _target(user_id, admin)
    users.update_if({"is_admin": bool(promote)}, id=user.id)
    commit()
    logger.info("Admin %s %s user %s", admin.id, "promoted" if promote else "demoted", user.id)
    return users.get(user.id)

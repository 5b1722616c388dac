from gigmarket.extensions import db
from datetime import datetime
import uuid

def gen_notif_id():
    return f"notif-{str(uuid.uuid4())[:8]}"

class Notification(db.Model):
    __tablename__ = "notifications"

    __table_args__ = (
        db.UniqueConstraint("user_id", "dedupe_key", name="uq_notification_user_dedupe"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_notif_id)
    user_id = db.Column(db.String(50), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    details = db.Column(db.JSON, nullable=True)

    # entity_id:event_type:updated_at of the change that produced it
    dedupe_key = db.Column(db.String(255), nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    recipient = db.relationship("User", backref=db.backref("notifications", lazy=True))

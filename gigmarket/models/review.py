from gigmarket.extensions import db
from datetime import datetime
import uuid

def gen_uuid(prefix="rev"):
    return f"{prefix}-{str(uuid.uuid4())[:8]}"

class Review(db.Model):
    __tablename__ = "reviews"

    __table_args__ = (
        db.UniqueConstraint("order_id", "reviewer_id", name="uq_review_order_reviewer"),
        db.Index("idx_reviews_target_id", "target_id"),
    )

    id = db.Column(
        db.String(50),
        primary_key=True,
        default=lambda: gen_uuid("rev")
    )

    order_id = db.Column(
        db.String(50),
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False
    )

    reviewer_id = db.Column(
        db.String(50),
        db.ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )

    target_id = db.Column(
        db.String(50),
        db.ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )

    stars = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    order = db.relationship(
        "Order",
        backref=db.backref("reviews", cascade="all, delete-orphan", lazy=True)
    )

from gigmarket.extensions import db
from datetime import datetime
import uuid

def gen_proposal_id():
    return f"PRP-{str(uuid.uuid4())[:8]}"

class Proposal(db.Model):
    __tablename__ = "proposals"

    __table_args__ = (
        db.UniqueConstraint("order_id", "worker_id", name="uq_proposal_order_worker"),
        # At most one accepted proposal per order, whatever the caller does
        db.Index(
            "uq_proposals_one_accepted",
            "order_id",
            unique=True,
            sqlite_where=db.text("is_accepted = 1"),
            postgresql_where=db.text("is_accepted = true"),
        ),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_proposal_id)
    order_id = db.Column(db.String(50), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_id = db.Column(db.String(50), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    amount = db.Column(db.Float, nullable=False)
    message = db.Column(db.Text, nullable=True)
    is_accepted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = db.relationship("Order", back_populates="proposals")
    worker = db.relationship("User", backref=db.backref("proposals", lazy=True))
    messages = db.relationship(
        "Message",
        back_populates="proposal",
        cascade="all, delete-orphan",
        lazy=True
    )

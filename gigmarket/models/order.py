from gigmarket.extensions import db
from datetime import datetime
import uuid

def gen_order_id():
    return f"ORD-{str(uuid.uuid4())[:8]}"

class Order(db.Model):
    __tablename__ = "orders"

    __table_args__ = (
        db.Index("idx_orders_status", "status"),
        db.Index("idx_orders_contractor_id", "contractor_id"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_order_id)

    contractor_id = db.Column(
        db.String(50),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    status = db.Column(db.String(30), nullable=False, default="open")

    origin = db.Column(db.String(255), nullable=False)
    lat = db.Column(db.Float, nullable=True)
    lng = db.Column(db.Float, nullable=True)

    cargo_type = db.Column(db.String(30), nullable=False, default="carga")
    description = db.Column(db.Text)

    scheduled_date = db.Column(db.Date, nullable=True)
    scheduled_time = db.Column(db.Time, nullable=True)

    agreed_price = db.Column(db.Float, nullable=True)
    contact_fee_paid = db.Column(db.Boolean, nullable=False, default=False)
    cancel_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contractor = db.relationship(
        "User",
        foreign_keys=[contractor_id],
        backref="orders",
        lazy=True
    )

    proposals = db.relationship(
        "Proposal",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy=True
    )

    @property
    def accepted_proposal(self):
        for proposal in self.proposals:
            if proposal.is_accepted:
                return proposal
        return None

    @property
    def accepted_worker_id(self):
        accepted = self.accepted_proposal
        return accepted.worker_id if accepted else None

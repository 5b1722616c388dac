from gigmarket.extensions import db
from datetime import datetime


class PaymentIntent(db.Model):
    __tablename__ = "payment_intents"

    __table_args__ = (
        db.Index("idx_payment_intents_order_id", "order_id"),
        db.Index("idx_payment_intents_status", "status"),
    )

    # Assigned by the processor
    id = db.Column(db.String(64), primary_key=True)
    order_id = db.Column(db.String(50), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    payer_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)

    gateway = db.Column(db.String(50), default="mercadopago")
    idempotency_key = db.Column(db.String(128), unique=True, nullable=False)

    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(10), default="BRL")
    status = db.Column(db.String(30), nullable=False, default="pending")

    qr_code = db.Column(db.Text, nullable=True)
    qr_code_base64 = db.Column(db.Text, nullable=True)
    ticket_url = db.Column(db.String(1024), nullable=True)

    expires_at = db.Column(db.DateTime, nullable=False)
    settled_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    order = db.relationship(
        "Order",
        backref=db.backref("payment_intents", cascade="all, delete-orphan", lazy=True)
    )

    def is_expired(self, now=None):
        now = now or datetime.utcnow()
        return self.expires_at <= now

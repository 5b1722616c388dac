from gigmarket.extensions import db
from datetime import datetime
import uuid

def gen_msg_id():
    return f"msg-{str(uuid.uuid4())[:8]}"

class Message(db.Model):
    __tablename__ = "messages"
    id = db.Column(db.String(50), primary_key=True, default=gen_msg_id)
    proposal_id = db.Column(db.String(50), db.ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    proposal = db.relationship("Proposal", back_populates="messages")
    sender = db.relationship("User", backref="messages", lazy=True)

from gigmarket.extensions import db
from datetime import datetime
import uuid

def gen_report_id():
    return f"rep-{str(uuid.uuid4())[:8]}"

class Report(db.Model):
    __tablename__ = "reports"

    id = db.Column(db.String(50), primary_key=True, default=gen_report_id)
    accuser_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    accused_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False, index=True)
    # Reports outlive the order they were filed on
    order_id = db.Column(db.String(50), nullable=True)
    reason = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    accuser = db.relationship("User", foreign_keys=[accuser_id], lazy=True)
    accused = db.relationship("User", foreign_keys=[accused_id], lazy=True)

from gigmarket.extensions import db
from collections import namedtuple
from datetime import datetime


Position = namedtuple("Position", ["lat", "lng"])

# Read-only view of the availability columns; mutate through
# profile_service.set_availability only.
WorkerAvailability = namedtuple("WorkerAvailability", ["available", "last_position", "updated_at"])


class WorkerProfile(db.Model):
    __tablename__ = "worker_profiles"

    __table_args__ = (
        db.Index("idx_worker_profiles_available", "available"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.String(50), db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    bio = db.Column(db.Text)
    skills = db.Column(db.JSON, default=list)

    available = db.Column(db.Boolean, default=False, nullable=False)
    last_lat = db.Column(db.Float, nullable=True)
    last_lng = db.Column(db.Float, nullable=True)
    availability_updated_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("worker_profile", uselist=False))

    @property
    def availability(self):
        position = None
        if self.last_lat is not None and self.last_lng is not None:
            position = Position(self.last_lat, self.last_lng)
        return WorkerAvailability(bool(self.available), position, self.availability_updated_at)

    def to_dict(self):
        availability = self.availability
        return {
            "user_id": self.user_id,
            "bio": self.bio,
            "skills": self.skills or [],
            "available": availability.available,
            "last_position": (
                {"lat": availability.last_position.lat, "lng": availability.last_position.lng}
                if availability.last_position else None
            ),
            "availability_updated_at": (
                availability.updated_at.isoformat() + "Z" if availability.updated_at else None
            ),
        }

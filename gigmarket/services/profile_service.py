import logging
from datetime import datetime

from gigmarket.constants import CARGO_TYPES, Role
from gigmarket.models.user import User
from gigmarket.models.worker_profile import Position, WorkerProfile
from gigmarket.services.repository import Repository, commit
from gigmarket.utils.exceptions import ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

users = Repository(User)
profiles = Repository(WorkerProfile)


def get_user(user_id):
    user = users.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_or_create_profile(user):
    profile = profiles.first(user_id=user.id)
    if profile is None:
        profile = profiles.insert(user_id=user.id, skills=[], available=False)
    return profile


def parse_position(data):
    lat, lng = data.get("lat"), data.get("lng")
    if lat is None and lng is None:
        return None
    try:
        position = Position(float(lat), float(lng))
    except (TypeError, ValueError):
        raise ValidationError("lat and lng must be numeric", {"field": "lat"})
    if not (-90 <= position.lat <= 90 and -180 <= position.lng <= 180):
        raise ValidationError("Coordinates out of range", {"field": "lat"})
    return position


def set_availability(user, available, position=None, now=None):
    """
    The only writer of the availability columns. available, last position
    and the timestamp always change together, in a single UPDATE.
    """
    if user.role != Role.WORKER.value:
        raise ForbiddenError("Only workers have an availability status")
    if available and position is None:
        raise ValidationError(
            "A location is required to go online",
            {"field": "lat"},
            code="POSITION_REQUIRED",
        )

    profile = get_or_create_profile(user)
    current = profile.availability
    position = position or current.last_position

    profiles.update_if(
        {
            "available": bool(available),
            "last_lat": position.lat if position else None,
            "last_lng": position.lng if position else None,
            "availability_updated_at": now or datetime.utcnow(),
        },
        id=profile.id,
    )
    commit()
    logger.info("Worker %s is now %s", user.id, "online" if available else "offline")
    return profiles.get(profile.id).availability


def update_profile(user, data):
    user_patch = {}
    for field in ("full_name", "phone"):
        if field in data:
            value = (data.get(field) or "").strip()
            if field == "full_name" and not value:
                raise ValidationError("full_name cannot be empty", {"field": field})
            user_patch[field] = value or None
    if user_patch:
        users.update(user, **user_patch)

    if user.role == Role.WORKER.value and ("bio" in data or "skills" in data):
        profile = get_or_create_profile(user)
        profile_patch = {}
        if "bio" in data:
            profile_patch["bio"] = (data.get("bio") or "").strip() or None
        if "skills" in data:
            skills = data.get("skills") or []
            if not isinstance(skills, list):
                raise ValidationError("skills must be a list", {"field": "skills"})
            unknown = [s for s in skills if s not in CARGO_TYPES]
            if unknown:
                raise ValidationError("Unknown skills", {"field": "skills", "unknown": unknown})
            profile_patch["skills"] = sorted(set(skills))
        profiles.update(profile, **profile_patch)

    commit()
    return user

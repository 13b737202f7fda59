from __future__ import annotations
import logging

from sqlmodel import Session as DBSession, select

from ..models import User, WeightUnit
from ..schemas import GoogleProfile
from .common import now_utc

logger = logging.getLogger(__name__)


def upsert_oauth_user(db: DBSession, profile: GoogleProfile) -> User:
    """Create the user on first login, refresh profile fields afterwards."""
    u = db.exec(select(User).where(User.google_id == profile.sub)).first()
    if u is None:
        u = User(
            google_id=profile.sub,
            email=profile.email,
            display_name=profile.name or profile.email,
            profile_picture_url=profile.picture,
            preferred_weight_unit=WeightUnit.lbs,
        )
        logger.info("Creating user for %s", profile.email)
    else:
        u.email = profile.email
        u.display_name = profile.name or u.display_name
        u.profile_picture_url = profile.picture
        u.updated_at = now_utc()
    db.add(u)
    db.commit()
    db.refresh(u)
    return u

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.errors import AuthRequired
from storefront.identity.models import UserProfile
from storefront.identity.schemas import Identity

logger = logging.getLogger(__name__)


def require_identity(identity: Optional[Identity], message: Optional[str] = None) -> Identity:
    """Return the identity or raise AuthRequired."""
    if identity is None or not identity.user_id:
        raise AuthRequired(message)
    return identity


class UserDirectory:
    """Repository for user profiles."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def get(self, user_id: str) -> Optional[UserProfile]:
        return self.db.get(UserProfile, user_id)

    def upsert_from_identity(self, identity: Identity) -> UserProfile:
        """Create the profile if it does not exist yet. Existing profiles are left untouched."""
        profile = self.get(identity.user_id)
        if profile:
            return profile

        profile = UserProfile(
            id=identity.user_id,
            email=identity.email or "",
            first_name=identity.given_name or "",
            last_name=identity.family_name or "",
            profile_image=identity.picture or "",
        )
        self.db.add(profile)
        try:
            self.db.flush()
        except IntegrityError:
            # Created by a concurrent request; the upsert must run before any other write
            self.db.rollback()
            logger.info(f"User {identity.user_id} created concurrently, reusing existing profile")
            return self.get(identity.user_id)

        logger.info(f"Created user profile {identity.user_id}")
        return profile

# policy_approval/services/profiles.py
"""
User profile management.

A profile is created once at signup and carries a fixed role.
"""

from typing import List, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.engine import bind_actor, commit_or_raise
from ..db.models import UserProfile, normalize_id
from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..logging import get_logger
from ..workflow.access import can_update_profile
from ..workflow.models import UserRole

logger = get_logger(__name__)


class ProfileService:
    """Signup and lookup of user profiles."""

    def __init__(self, session: Session):
        self.session = session

    def create_profile(
        self,
        email: str,
        full_name: str,
        role: str,
        user_id: Optional[str] = None,
    ) -> UserProfile:
        """
        Create a profile at signup.

        Args:
            email: Unique email address
            full_name: Display name
            role: creator, underwriter or manager
            user_id: Identifier from the identity provider; generated if omitted

        Returns:
            The new profile

        Raises:
            ValidationError: unknown role or malformed input
            ConflictError: email already registered
        """
        try:
            role = UserRole(role).value
        except ValueError:
            raise ValidationError(
                f"Invalid role '{role}'. Must be one of: {[r.value for r in UserRole]}"
            )
        if not email or "@" not in email:
            raise ValidationError("A valid email address is required")
        if not (full_name or "").strip():
            raise ValidationError("Full name is required")

        profile_id = normalize_id(user_id) if user_id else str(uuid4())
        if profile_id is None:
            raise ValidationError(f"user_id must be a UUID, got '{user_id}'")
        # Signup inserts the caller's own row
        bind_actor(self.session, profile_id)

        profile = UserProfile(
            id=profile_id,
            email=email.strip().lower(),
            full_name=full_name.strip(),
            role=role,
        )
        self.session.add(profile)
        commit_or_raise(self.session)

        logger.info("profile_created", profile_id=profile.id, role=profile.role)
        return profile

    def get_profile(self, profile_id: str, actor_id: Optional[str] = None) -> Optional[UserProfile]:
        """Profile by id; None when absent or when either id is not a UUID."""
        profile_id = normalize_id(profile_id)
        actor_id = normalize_id(actor_id) if actor_id else profile_id
        if profile_id is None or actor_id is None:
            return None
        bind_actor(self.session, actor_id)
        return self.session.execute(
            select(UserProfile).where(UserProfile.id == profile_id)
        ).scalar_one_or_none()

    def list_profiles(self, actor_id: str) -> List[UserProfile]:
        """All profiles, ordered by name."""
        bind_actor(self.session, actor_id)
        result = self.session.execute(
            select(UserProfile).order_by(UserProfile.full_name, UserProfile.email)
        )
        return list(result.scalars())

    def update_profile(self, actor: UserProfile, full_name: str, profile_id: Optional[str] = None) -> UserProfile:
        """
        Change a display name.

        Only the owner may update a profile, and the role never changes.
        """
        profile = self.get_profile(profile_id or actor.id, actor_id=actor.id)
        if profile is None:
            raise NotFoundError(f"Profile not found: {profile_id}")
        if not can_update_profile(actor, profile):
            raise PermissionDeniedError("Users can only update their own profile")
        if not (full_name or "").strip():
            raise ValidationError("Full name is required")

        profile.full_name = full_name.strip()
        commit_or_raise(self.session)

        logger.info("profile_updated", profile_id=profile.id)
        return profile

"""
Profile service for Crudzaso.

Extended profile attributes are stored per user under profile_<userId>.
"""

import logging

from crudzaso.models.profile import Profile
from crudzaso.models.user import Session
from crudzaso.store import get_store
from crudzaso.store.keys import profile_key
from crudzaso.timeutil import parse_datetime, utcnow
from crudzaso.validation import validate_profile_changes

logger = logging.getLogger(__name__)


class ProfileService:
    """Load and edit the signed-in user's profile."""

    def __init__(self, store=None, auth=None):
        self._store = store
        self.auth = auth

    @property
    def store(self):
        """Get the key-value store."""
        if self._store is None:
            self._store = get_store()
        return self._store

    async def load(self, session: Session) -> Profile:
        """
        Build the profile for a session.

        The first load stores the generated attributes (student id, join
        date) so they stay fixed afterwards.
        """
        stored = await self.store.read_json(profile_key(session.user_id), default={})
        if not isinstance(stored, dict):
            logger.warning(f"Ignoring malformed profile for {session.user_id}")
            stored = {}

        profile = Profile.from_session(session, stored)
        if not stored.get("joinDate") and self.auth is not None:
            user = await self.auth.get_user(session.user_id)
            if user is not None and user.join_date:
                profile.join_date = parse_datetime(user.join_date)
        profile.last_active = utcnow()

        if not stored:
            await self.save(profile)
            logger.info(f"Created profile for {session.email} ({profile.student_id})")
        return profile

    async def save(self, profile: Profile) -> None:
        await self.store.write_json(profile_key(profile.user_id), profile.to_dict())

    async def update(self, session: Session, changes: dict) -> Profile:
        """
        Apply profile edits.

        Raises:
            ValidationErrors: if any change is invalid or touches a protected field
        """
        values = validate_profile_changes(changes)
        profile = await self.load(session)
        previous_name = profile.name

        for key, value in values.items():
            setattr(profile, key, value)
        await self.save(profile)

        if profile.name != previous_name and self.auth is not None:
            await self.auth.update_display_name(session.user_id, profile.name)

        logger.info(f"Updated profile for {session.email}: {', '.join(sorted(values))}")
        return profile

# src/tasklane/profiles/profile_service.py

from __future__ import annotations

import logging
from datetime import UTC, datetime

from ..core.errors import MutationError, StoreError
from ..core.ports import DataStore
from ..tasks.task_models import CurrentUser
from .profile_models import Profile, ProfileFormValues

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"


class ProfileService:
    """Profile of the signed-in user: load (creating it on first visit) and update."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def _select_profile(self, user_id: str) -> Profile | None:
        rows = await self._store.select(PROFILES_TABLE, filters=[("id", user_id)], limit=1)
        return Profile.from_row(rows[0]) if rows else None

    async def load_or_create(self, user: CurrentUser) -> Profile:
        """
        Return the user's profile, inserting one seeded from auth metadata if missing.

        Never raises on store errors: failures are logged and, as a last resort,
        a minimal in-memory profile is returned so the form can still render.
        """
        try:
            profile = await self._select_profile(user.id)
        except StoreError as exc:
            logger.error("Error fetching profile user=%s: %s", user.id, exc)
            profile = None

        if profile is not None:
            logger.debug("Existing profile found user=%s", user.id)
            return profile

        logger.info("Creating new profile for user=%s", user.id)
        try:
            await self._store.insert(
                PROFILES_TABLE,
                {
                    "id": user.id,
                    "email": user.email,
                    "full_name": user.metadata.get("full_name") or None,
                    "avatar_url": user.metadata.get("avatar_url") or None,
                },
            )
        except StoreError as exc:
            logger.error("Error creating profile user=%s: %s", user.id, exc)

        try:
            profile = await self._select_profile(user.id)
        except StoreError as exc:
            logger.error("Error fetching newly created profile user=%s: %s", user.id, exc)
            profile = None

        if profile is None:
            now = datetime.now(UTC).isoformat()
            return Profile(
                id=user.id,
                email=user.email,
                full_name=None,
                avatar_url=None,
                created_at=now,
                updated_at=now,
            )
        return profile

    async def update(self, profile: Profile, values: ProfileFormValues) -> Profile:
        try:
            await self._store.update(
                PROFILES_TABLE,
                {"full_name": values.full_name, "avatar_url": values.avatar_url},
                filters=[("id", profile.id)],
            )
        except StoreError as exc:
            logger.error("Error updating profile id=%s: %s", profile.id, exc)
            raise MutationError("Failed to update profile. Please try again.") from exc

        logger.info("Profile updated id=%s", profile.id)
        profile.full_name = values.full_name
        profile.avatar_url = values.avatar_url
        return profile

    async def display_email(self, profile: Profile) -> str | None:
        """Profile email, else the auth user's email."""
        if profile.email:
            return profile.email
        try:
            user = await self._store.get_current_user()
        except StoreError:
            logger.warning("Could not resolve auth user email", exc_info=True)
            return None
        return user.email if user else None

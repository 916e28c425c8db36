"""
Profile resolution.

Makes sure a human user or bot personality has a persisted profile before
any content is attributed to it.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .bots import BOT_PERSONALITIES, BotPersonality, bot_profile_id
from .db_models import DBProfile
from .exceptions import ProfileCreationError

logger = logging.getLogger(__name__)


class ProfileService:
    """Lookup and lazy creation of profiles."""

    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, user_id: str) -> Optional[DBProfile]:
        if not user_id:
            return None
        return self.db.get(DBProfile, user_id)

    def ensure_profile(
        self,
        user_id: Optional[str],
        username: Optional[str] = None,
        avatar_url: Optional[str] = None,
        is_ai: bool = False
    ) -> Optional[str]:
        """
        Return the id of an existing profile, creating it if needed.

        Args:
            user_id: Stable id of the user (None means anonymous)
            username: Display name used only when creating
            avatar_url: Avatar used only when creating
            is_ai: Whether the profile belongs to a bot

        Returns:
            The profile id, or None when no user id was supplied

        Raises:
            ProfileCreationError: If the row cannot be inserted
        """
        profile, _ = self._ensure(user_id, username, avatar_url, is_ai)
        return profile.id if profile else None

    def _ensure(
        self,
        user_id: Optional[str],
        username: Optional[str],
        avatar_url: Optional[str],
        is_ai: bool
    ) -> Tuple[Optional[DBProfile], bool]:
        if not user_id:
            return None, False

        existing = self.get_profile(user_id)
        if existing:
            return existing, False

        profile = DBProfile(
            id=user_id,
            username=username or f"user_{user_id[:8]}",
            is_ai=bool(is_ai),
            avatar_url=avatar_url or None,
        )
        self.db.add(profile)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # Another request created it first
            raced = self.get_profile(user_id)
            if raced:
                return raced, False
            logger.error(f"Error creating profile {user_id}: {e.orig}")
            raise ProfileCreationError(
                user_id,
                "the backing identity record is missing; provision it out of band and retry"
            ) from e

        logger.info(f"Created {'bot' if is_ai else 'user'} profile {user_id} ({profile.username})")
        return profile, True

    def ensure_bot_profile(self, personality: BotPersonality) -> DBProfile:
        """Resolve (or create) the profile for a bot personality."""
        profile, _ = self._ensure(
            bot_profile_id(personality.key),
            personality.username,
            None,
            True,
        )
        return profile

    def initialize_bots(self, personalities: List[BotPersonality] = None) -> Tuple[List[DBProfile], int]:
        """
        Seed every bot profile.

        Returns:
            (profiles, number newly created); calling twice creates nothing new
        """
        profiles = []
        created = 0
        for personality in personalities or BOT_PERSONALITIES:
            profile, was_created = self._ensure(
                bot_profile_id(personality.key),
                personality.username,
                None,
                True,
            )
            profiles.append(profile)
            created += int(was_created)
        if created:
            logger.info(f"Initialized {created} bot profiles")
        return profiles, created

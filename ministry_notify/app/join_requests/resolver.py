import asyncio
import logging
from typing import Dict, Iterable, List, Optional

import google.cloud.firestore
from pydantic import ValidationError

from .schemas import NotificationType, UserProfile
from ..config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class RecipientResolver:
    """
    Works out who should hear about a join request event.

    Reads go straight to Firestore; failures are not retried and surface to
    the caller.
    """

    def __init__(self, firestore_db: google.cloud.firestore.Client, settings: Optional[Settings] = None):
        self.db = firestore_db
        self.settings = settings or default_settings

    async def resolve_ministry_name(self, ministry_id: str) -> str:
        """Display name of a ministry, or "" when the document or name is missing."""
        ministry_ref = self.db.collection(self.settings.ministries_collection).document(ministry_id)
        ministry = await asyncio.to_thread(ministry_ref.get)
        if not ministry.exists:
            logger.info(f"Ministry {ministry_id} not found")
            return ""

        name = (ministry.to_dict() or {}).get('name')
        return name if isinstance(name, str) else ""

    async def resolve(self,
                      ministry_id: str,
                      ministry_name: str,
                      notification_type: NotificationType,
                      member_id: Optional[str] = None) -> Dict[str, UserProfile]:
        """
        Resolve recipients for one event.

        Args:
            ministry_id: The join request's ministry document id
            ministry_name: Pre-resolved ministry name ("" when unknown)
            notification_type: Which kind of event is being delivered
            member_id: The requesting member, used for status changes

        Returns:
            Recipient profiles keyed by uid
        """
        if notification_type == NotificationType.JOIN_REQUEST_STATUS:
            profiles = await self._linked_user(member_id)
        else:
            profiles = await self._admins_and_leaders(ministry_name)

        recipients: Dict[str, UserProfile] = {}
        for profile in profiles:
            recipients[profile.id] = profile

        logger.info(
            f"Resolved {len(recipients)} recipients for {notification_type.value} "
            f"(ministry {ministry_id})"
        )
        return recipients

    async def _admins_and_leaders(self, ministry_name: str) -> List[UserProfile]:
        users_ref = self.db.collection(self.settings.users_collection)
        queries = [users_ref.where('roles', 'array_contains', ADMIN_ROLE)]

        # leadershipMinistries stores ministry names, not ids
        if ministry_name:
            queries.append(users_ref.where('leadershipMinistries', 'array_contains', ministry_name))

        results = await asyncio.gather(*(asyncio.to_thread(query.get) for query in queries))

        profiles: List[UserProfile] = []
        for docs in results:
            profiles.extend(self._to_profiles(docs))
        return profiles

    async def _linked_user(self, member_id: Optional[str]) -> List[UserProfile]:
        if not member_id:
            return []

        query = (
            self.db.collection(self.settings.users_collection)
            .where('memberId', '==', member_id)
            .limit(1)
        )
        docs = await asyncio.to_thread(query.get)
        profiles = self._to_profiles(docs)
        if not profiles:
            logger.info(f"No user linked to member {member_id}")
        return profiles

    @staticmethod
    def _to_profiles(docs: Iterable) -> List[UserProfile]:
        profiles = []
        for doc in docs:
            try:
                profiles.append(UserProfile.from_snapshot(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed user profile {doc.id}: {e.error_count()} invalid fields")
        return profiles

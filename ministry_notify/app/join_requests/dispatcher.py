import asyncio
import hashlib
import logging
from typing import Dict, List, Optional

import google.cloud.firestore
from firebase_admin import firestore

from .schemas import DispatchResult, EventPayload, NotificationType, UserProfile
from ..config import Settings, settings as default_settings
from ..firebase import PushClient

logger = logging.getLogger(__name__)


class FanOutDispatcher:
    """
    Delivers one composed event to every recipient.

    The inbox rows are written in a single atomic batch; push delivery runs
    afterwards and its failures never undo the inbox write.
    """

    def __init__(self,
                 firestore_db: google.cloud.firestore.Client,
                 push_client: PushClient,
                 settings: Optional[Settings] = None):
        self.db = firestore_db
        self.push = push_client
        self.settings = settings or default_settings

    def inbox_event_ref(self, uid: str, payload: EventPayload):
        events_ref = (
            self.db.collection(self.settings.inbox_collection)
            .document(uid)
            .collection(self.settings.inbox_events_collection)
        )
        if self.settings.deterministic_inbox_ids:
            return events_ref.document(hashlib.sha1(payload.dedupe_key.encode("utf-8")).hexdigest())
        return events_ref.document()

    async def dispatch(self, recipients: Dict[str, UserProfile], payload: EventPayload) -> DispatchResult:
        """
        Write inbox events and send push notifications.

        Args:
            recipients: Recipient profiles keyed by uid
            payload: Composed event content

        Returns:
            DispatchResult describing what was written and sent
        """
        result = DispatchResult(recipients=len(recipients))
        if not recipients:
            logger.info(f"No recipients for {payload.type.value} {payload.joinRequestId}, nothing to dispatch")
            return result

        document = payload.to_inbox_document()
        document['createdAt'] = firestore.SERVER_TIMESTAMP

        batch = self.db.batch()
        for uid in recipients:
            batch.set(self.inbox_event_ref(uid, payload), document, merge=True)

        await asyncio.to_thread(batch.commit)
        result.inbox_written = len(recipients)
        logger.info(f"Wrote {result.inbox_written} inbox events for {payload.type.value} {payload.joinRequestId}")

        tokens = self._collect_tokens(recipients)
        result.push_tokens = len(tokens)
        if tokens:
            await self._send_push(tokens, payload, result)

        return result

    @staticmethod
    def _collect_tokens(recipients: Dict[str, UserProfile]) -> List[str]:
        tokens: List[str] = []
        for profile in recipients.values():
            token = (profile.fcmToken or "").strip()
            if token and token not in tokens:
                tokens.append(token)
        return tokens

    async def _send_push(self, tokens: List[str], payload: EventPayload, result: DispatchResult) -> None:
        data = payload.to_push_data()
        try:
            if payload.type == NotificationType.JOIN_REQUEST_STATUS:
                report = await asyncio.to_thread(
                    self.push.send, tokens[0], payload.title, payload.body, data
                )
            else:
                report = await asyncio.to_thread(
                    self.push.send_multicast, tokens, payload.title, payload.body, data
                )
            result.push_succeeded = report.success_count
            result.push_failed = report.failure_count
        except Exception as e:
            logger.warning(f"FCM send error for {payload.type.value} {payload.joinRequestId}: {str(e)}")
            result.push_failed = len(tokens)
            result.push_error = str(e)

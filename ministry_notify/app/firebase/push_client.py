import logging
from typing import Dict, List, Optional

import firebase_admin
from firebase_admin import messaging
from pydantic import BaseModel

from ..config import settings

logger = logging.getLogger(__name__)


class PushReport(BaseModel):
    """Outcome of one push call, possibly spanning several FCM requests."""
    success_count: int = 0
    failure_count: int = 0


class PushClient:
    """Thin wrapper around Firebase Cloud Messaging bound to one Firebase app.

    Errors raised by the SDK are not handled here; callers decide whether a
    failed push matters.
    """

    def __init__(self, app: Optional[firebase_admin.App] = None, batch_size: Optional[int] = None):
        self.app = app
        self.batch_size = batch_size or settings.fcm_batch_size

    def send_multicast(self,
                       tokens: List[str],
                       title: str,
                       body: str,
                       data: Optional[Dict[str, str]] = None) -> PushReport:
        """
        Send one notification to many device tokens.

        Args:
            tokens: Registration tokens to target
            title: Notification title
            body: Notification body
            data: String key/value pairs delivered alongside the notification

        Returns:
            PushReport aggregated over every FCM batch
        """
        report = PushReport()

        for i in range(0, len(tokens), self.batch_size):
            batch = tokens[i:i + self.batch_size]
            message = messaging.MulticastMessage(
                notification=messaging.Notification(title=title, body=body),
                data=data or {},
                tokens=batch
            )
            batch_response = messaging.send_each_for_multicast(message, app=self.app)
            report.success_count += batch_response.success_count
            report.failure_count += batch_response.failure_count

            if batch_response.failure_count > 0:
                for idx, resp in enumerate(batch_response.responses):
                    if not resp.success:
                        logger.info(f"FCM rejected token #{i + idx}: {resp.exception}")

        return report

    def send(self,
             token: str,
             title: str,
             body: str,
             data: Optional[Dict[str, str]] = None) -> PushReport:
        """Send one notification to a single device token."""
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data=data or {}
        )
        message_id = messaging.send(message, app=self.app)
        logger.debug(f"FCM message sent: {message_id}")
        return PushReport(success_count=1)

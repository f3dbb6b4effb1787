import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .composer import compose
from .dispatcher import FanOutDispatcher
from .resolver import RecipientResolver
from .schemas import (
    DEFAULT_STATUS,
    DispatchResult,
    JoinRequest,
    NotificationType,
    TriggerEvent,
    TriggerKind,
    normalize_status,
)

logger = logging.getLogger(__name__)


class JoinRequestEventProcessor:
    """Processes document changes on join_requests/{requestId}."""

    def __init__(self, resolver: RecipientResolver, dispatcher: FanOutDispatcher):
        self.resolver = resolver
        self.dispatcher = dispatcher

    async def process_event(self, event: TriggerEvent) -> Optional[DispatchResult]:
        """
        Route a trigger event to its handler.

        Returns:
            DispatchResult, or None when the event was skipped
        """
        logger.info(f"Processing {event.kind.value} event for join request {event.requestId} (ID: {event.eventId})")

        if event.kind == TriggerKind.CREATED:
            return await self.on_created(event.requestId, event.value)
        if event.kind == TriggerKind.UPDATED:
            return await self.on_updated(event.requestId, event.before, event.after)
        return await self.on_deleted(event.requestId, event.value)

    async def on_created(self, request_id: str, data: Optional[Dict[str, Any]]) -> Optional[DispatchResult]:
        """Notify admins and the ministry's leaders about a new join request."""
        join_request = self._parse(request_id, data, "create")
        if join_request is None:
            return None

        return await self._notify_admins_and_leaders(join_request, NotificationType.JOIN_REQUEST_CREATED)

    async def on_updated(self,
                         request_id: str,
                         before: Optional[Dict[str, Any]],
                         after: Optional[Dict[str, Any]]) -> Optional[DispatchResult]:
        """Notify the requesting member's user when the status changes."""
        if not before or not after:
            logger.info(f"join_requests update {request_id} without both snapshots, skipping")
            return None

        status_before = normalize_status(before.get('status'))
        status_after = normalize_status(after.get('status'))
        if status_before == status_after:
            return None

        join_request = self._parse(request_id, after, "update")
        if join_request is None:
            return None

        ministry_name = await self.resolver.resolve_ministry_name(join_request.ministryId)
        recipients = await self.resolver.resolve(
            join_request.ministryId,
            ministry_name,
            NotificationType.JOIN_REQUEST_STATUS,
            member_id=join_request.memberId,
        )
        if not recipients:
            return DispatchResult()

        payload = compose(
            NotificationType.JOIN_REQUEST_STATUS,
            ministry_name,
            join_request.ministryId,
            request_id,
            join_request.memberId,
            status=status_after,
        )
        return await self.dispatcher.dispatch(recipients, payload)

    async def on_deleted(self, request_id: str, data: Optional[Dict[str, Any]]) -> Optional[DispatchResult]:
        """Tell admins and leaders that a pending request was withdrawn."""
        join_request = self._parse(request_id, data, "delete")
        if join_request is None:
            return None

        if join_request.status != DEFAULT_STATUS:
            return None

        return await self._notify_admins_and_leaders(join_request, NotificationType.JOIN_REQUEST_CANCELLED)

    async def _notify_admins_and_leaders(self,
                                         join_request: JoinRequest,
                                         notification_type: NotificationType) -> DispatchResult:
        ministry_name = await self.resolver.resolve_ministry_name(join_request.ministryId)
        recipients = await self.resolver.resolve(join_request.ministryId, ministry_name, notification_type)

        payload = compose(
            notification_type,
            ministry_name,
            join_request.ministryId,
            join_request.id,
            join_request.memberId,
        )
        return await self.dispatcher.dispatch(recipients, payload)

    @staticmethod
    def _parse(request_id: str, data: Optional[Dict[str, Any]], action: str) -> Optional[JoinRequest]:
        if not data:
            logger.warning(f"join_requests {action} {request_id} has no document data")
            return None
        try:
            return JoinRequest.model_validate({**data, 'id': request_id})
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err['loc']) for err in e.errors())
            logger.warning(f"join_requests {action} {request_id} missing or invalid fields: {fields}")
            return None

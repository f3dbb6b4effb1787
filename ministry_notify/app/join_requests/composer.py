from typing import Optional

from .schemas import EventPayload, NotificationType

# Known status titles; any other status falls through to the generic template
STATUS_TITLES = {
    "approved": "Join request approved",
    "rejected": "Join request rejected",
}


def compose(notification_type: NotificationType,
            ministry_name: str,
            ministry_id: str,
            request_id: str,
            member_id: str,
            status: Optional[str] = None) -> EventPayload:
    """Build the notification content for a join request event."""
    label = ministry_name or ministry_id

    if notification_type == NotificationType.JOIN_REQUEST_STATUS:
        if not status:
            raise ValueError("status is required for join request status notifications")
        title = STATUS_TITLES.get(status, f"Join request {status}")
        body = f"Your request to join {label} was {status}"
    elif notification_type == NotificationType.JOIN_REQUEST_CANCELLED:
        title = "Join request cancelled"
        body = f"A member cancelled their request to join {label}"
        status = None
    else:
        title = "New join request"
        body = f"A member requested to join {label}"
        status = None

    return EventPayload(
        type=notification_type,
        joinRequestId=request_id,
        ministryId=ministry_id,
        ministryName=ministry_name,
        memberId=member_id,
        status=status,
        title=title,
        body=body,
    )

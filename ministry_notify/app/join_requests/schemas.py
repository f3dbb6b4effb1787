from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NotificationType(str, Enum):
    JOIN_REQUEST_CREATED = "join_request_created"
    JOIN_REQUEST_STATUS = "join_request_status"
    JOIN_REQUEST_CANCELLED = "join_request_cancelled"


class TriggerKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


DEFAULT_STATUS = "pending"


def normalize_status(value: Any) -> str:
    """Lower-cased, stripped status; anything empty or non-string reads as pending."""
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_STATUS
    return value.strip().lower()


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """
    Best-effort datetime for a timestamp field.

    Accepts datetimes, ISO-8601 strings and serialized Firestore timestamps
    ({"_seconds": ...} or {"seconds": ...}); anything else reads as None.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, dict):
        seconds = value.get('_seconds', value.get('seconds'))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    return None


def string_or_none(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


class JoinRequest(BaseModel):
    """A join_requests document as delivered by a trigger"""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: str = Field(min_length=1)
    ministryId: str = Field(min_length=1)
    memberId: str = Field(min_length=1)
    status: str = DEFAULT_STATUS
    requestedAt: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return normalize_status(value)

    # Informational only; an odd timestamp never makes a request malformed
    @field_validator("requestedAt", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value):
        return coerce_timestamp(value)


class UserProfile(BaseModel):
    """A users document, keyed by uid"""
    model_config = ConfigDict(extra="ignore")

    id: str
    roles: Set[str] = set()
    leadershipMinistries: Set[str] = set()
    memberId: Optional[str] = None
    fcmToken: Optional[str] = None

    @field_validator("roles", "leadershipMinistries", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return set() if value is None else value

    # Push and linking fields never disqualify a recipient from the inbox
    @field_validator("memberId", "fcmToken", mode="before")
    @classmethod
    def _non_string_as_none(cls, value):
        return string_or_none(value)

    @classmethod
    def from_snapshot(cls, snapshot) -> "UserProfile":
        return cls.model_validate({**(snapshot.to_dict() or {}), "id": snapshot.id})


class Ministry(BaseModel):
    id: str
    name: str = ""


class EventPayload(BaseModel):
    """Content shared by every inbox row and push message of one logical event"""
    type: NotificationType
    joinRequestId: str
    ministryId: str
    ministryName: str = ""
    memberId: str
    status: Optional[str] = None
    title: str
    body: str

    @property
    def dedupe_key(self) -> str:
        key = f"{self.type.value}:{self.joinRequestId}"
        if self.status:
            key = f"{key}:{self.status}"
        return key

    def to_inbox_document(self) -> Dict[str, Any]:
        """Inbox fields, without the server-assigned createdAt."""
        document = self.model_dump(mode="json", exclude_none=True)
        document["read"] = False
        document["dedupeKey"] = self.dedupe_key
        return document

    def to_push_data(self) -> Dict[str, str]:
        """FCM data payload; every value must be a string."""
        data = {
            "type": self.type.value,
            "joinRequestId": self.joinRequestId,
            "ministryId": self.ministryId,
            "ministryName": self.ministryName,
        }
        if self.status:
            data["status"] = self.status
        return data


class DispatchResult(BaseModel):
    recipients: int = 0
    inbox_written: int = 0
    push_tokens: int = 0
    push_succeeded: int = 0
    push_failed: int = 0
    push_error: Optional[str] = None


class TriggerEvent(BaseModel):
    """Document change delivered for join_requests/{requestId}"""
    eventId: Optional[str] = None
    kind: TriggerKind
    requestId: str = Field(min_length=1)
    value: Optional[Dict[str, Any]] = None
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None


class TriggerResponse(BaseModel):
    status: str
    result: Optional[DispatchResult] = None

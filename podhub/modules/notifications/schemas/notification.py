import enum
from typing import Annotated, ClassVar, Literal, Optional, Union
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class NotificationType(str, enum.Enum):
    POD_JOIN = "pod_join"
    POD_APPROVED = "pod_approved"
    POD_REJECTED = "pod_rejected"
    ROOM_JOIN_REQUEST = "room_join_request"
    ROOM_JOIN_ACCEPTED = "room_join_accepted"
    ROOM_JOIN_REJECTED = "room_join_rejected"
    MESSAGE = "message"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value):
        # Rows written by newer releases still load
        return cls.OTHER


class _Payload(BaseModel):
    link_field: ClassVar[Optional[str]] = None

    def link_target(self) -> Optional[str]:
        """Value stored in Notification.linked_id"""
        if self.link_field is None:
            return None
        return getattr(self, self.link_field)

    @property
    def kind(self) -> NotificationType:
        return NotificationType(self.type)


class PodJoined(_Payload):
    type: Literal["pod_join"] = "pod_join"
    link_field: ClassVar[str] = "pod_id"
    pod_id: str

class PodApproved(_Payload):
    type: Literal["pod_approved"] = "pod_approved"
    link_field: ClassVar[str] = "pod_id"
    pod_id: str

class PodRejected(_Payload):
    type: Literal["pod_rejected"] = "pod_rejected"
    link_field: ClassVar[str] = "pod_id"
    pod_id: str

class RoomJoinRequested(_Payload):
    type: Literal["room_join_request"] = "room_join_request"
    link_field: ClassVar[str] = "room_id"
    room_id: str

class RoomJoinAccepted(_Payload):
    type: Literal["room_join_accepted"] = "room_join_accepted"
    link_field: ClassVar[str] = "room_id"
    room_id: str

class RoomJoinRejected(_Payload):
    type: Literal["room_join_rejected"] = "room_join_rejected"
    link_field: ClassVar[str] = "room_id"
    room_id: str

class NewMessage(_Payload):
    type: Literal["message"] = "message"
    link_field: ClassVar[str] = "chat_id"
    chat_id: str

class Other(_Payload):
    type: Literal["other"] = "other"
    link_field: ClassVar[str] = "linked_id"
    linked_id: Optional[str] = None


NotificationPayload = Annotated[
    Union[
        PodJoined,
        PodApproved,
        PodRejected,
        RoomJoinRequested,
        RoomJoinAccepted,
        RoomJoinRejected,
        NewMessage,
        Other,
    ],
    Field(discriminator="type"),
]

_VARIANTS = {
    NotificationType.POD_JOIN: PodJoined,
    NotificationType.POD_APPROVED: PodApproved,
    NotificationType.POD_REJECTED: PodRejected,
    NotificationType.ROOM_JOIN_REQUEST: RoomJoinRequested,
    NotificationType.ROOM_JOIN_ACCEPTED: RoomJoinAccepted,
    NotificationType.ROOM_JOIN_REJECTED: RoomJoinRejected,
    NotificationType.MESSAGE: NewMessage,
}


def payload_from_row(type_value: Optional[str], linked_id: Optional[str]) -> _Payload:
    """Rebuild the typed payload from the stored type and linked_id columns"""
    variant = _VARIANTS.get(NotificationType(type_value))
    if variant is None or linked_id is None:
        return Other(linked_id=linked_id)
    return variant(**{variant.link_field: linked_id})


class Notification(BaseModel):
    """Notification model returned to client and emitted over sockets"""
    id: str
    user_id: str
    type: str
    title: str
    message: str
    linked_id: Optional[str] = None
    is_read: bool
    created_at: datetime
    payload: Optional[NotificationPayload] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_row(cls, row) -> "Notification":
        notification = cls.model_validate(row)
        notification.payload = payload_from_row(row.type, row.linked_id)
        return notification

class UnreadCount(BaseModel):
    count: int


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)

class PushSubscriptionCreate(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: PushKeys

class PushUnsubscribe(BaseModel):
    endpoint: str = Field(..., min_length=1)

class PushSubscription(BaseModel):
    id: str
    endpoint: str
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from podhub.modules.rooms.models.room import JoinRequestStatus, RoomPrivacy, RoomType
from podhub.modules.user_management.schemas.user import UserBrief

class RoomCreate(BaseModel):
    name: str = Field(..., min_length=3)
    description: Optional[str] = None
    pod_id: str = Field(..., min_length=1)
    type: RoomType = RoomType.GENERAL
    privacy: RoomPrivacy = RoomPrivacy.PUBLIC

class RoomInDBBase(BaseModel):
    id: str
    pod_id: str
    name: str
    description: Optional[str] = None
    type: str
    privacy: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class Room(RoomInDBBase):
    """Room model returned to client"""
    pass

class RoomWithStatus(RoomInDBBase):
    """Room as listed inside a pod, with the caller's membership state"""
    is_member: bool = False
    join_request_status: Optional[str] = None

class RoomMemberAdd(BaseModel):
    user_id: str = Field(..., min_length=1)

class JoinRequest(BaseModel):
    id: str
    room_id: str
    user_id: str
    status: str
    user: Optional[UserBrief] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class JoinRequestUpdate(BaseModel):
    status: JoinRequestStatus

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v == JoinRequestStatus.PENDING:
            raise ValueError("Status must be ACCEPTED or REJECTED")
        return v

class JoinRequestResult(BaseModel):
    message: str
    status: str

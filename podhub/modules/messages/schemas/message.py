from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from podhub.modules.user_management.schemas.user import UserBrief

class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)
    reply_to_id: Optional[str] = None

class ReplyPreview(BaseModel):
    """The quoted message shown above a reply"""
    id: str
    content: str
    sender_id: str
    sender: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)

class Message(BaseModel):
    """Message model returned to client and broadcast over sockets"""
    id: str
    content: str
    sender_id: str
    sender: Optional[UserBrief] = None
    room_id: Optional[str] = None
    chat_id: Optional[str] = None
    reply_to_id: Optional[str] = None
    reply_to: Optional[ReplyPreview] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

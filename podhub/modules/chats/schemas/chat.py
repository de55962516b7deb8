from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from podhub.modules.user_management.schemas.user import UserBrief
from podhub.modules.messages.schemas.message import Message

class GetOrCreateChat(BaseModel):
    target_user_id: str = Field(..., min_length=1)

class Chat(BaseModel):
    """A direct chat with its participants flattened to users"""
    id: str
    participants: List[UserBrief] = []
    last_message: Optional[Message] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

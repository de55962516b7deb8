from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict

class UserBrief(BaseModel):
    """Minimal user shape embedded in messages, members and chats"""
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class User(UserBrief):
    """User model returned to client"""
    email: Optional[str] = None
    role: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

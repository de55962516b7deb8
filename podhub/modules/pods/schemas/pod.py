from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from podhub.modules.user_management.schemas.user import UserBrief

class PodCreate(BaseModel):
    name: str = Field(..., min_length=3)
    description: Optional[str] = None

class PodInDBBase(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    is_approved: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class Pod(PodInDBBase):
    """Pod model returned to client"""
    pass

class PodMember(BaseModel):
    id: str
    pod_id: str
    user_id: str
    is_co_owner: bool
    is_team_member: bool
    joined_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)

class MemberUpdateResult(BaseModel):
    message: str
    member: PodMember

class PodShareLink(BaseModel):
    shareable_code: str
    shareable_link: str
    pod_name: str

class PodPreview(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner: UserBrief
    member_count: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class JoinByCodeResult(BaseModel):
    message: str
    pod: Pod

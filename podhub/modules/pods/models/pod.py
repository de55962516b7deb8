import secrets

from sqlalchemy import Boolean, Column, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from podhub.db.session import Base

def generate_shareable_code() -> str:
    return secrets.token_urlsafe(8)

class Pod(Base):
    __tablename__ = "pods"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_approved = Column(Boolean, default=False)  # Only approved pods are publicly visible
    shareable_code = Column(String, unique=True, index=True, nullable=False, default=generate_shareable_code)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    owner = relationship("User")
    members = relationship("PodMember", back_populates="pod", cascade="all, delete-orphan")
    rooms = relationship("Room", back_populates="pod", cascade="all, delete-orphan")

# Co-owners and team members are flags on the membership row
class PodMember(Base):
    __tablename__ = "pod_members"

    id = Column(String, primary_key=True, index=True)
    pod_id = Column(String, ForeignKey("pods.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_co_owner = Column(Boolean, default=False)
    is_team_member = Column(Boolean, default=False)
    joined_at = Column(DateTime, default=func.now())

    pod = relationship("Pod", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('pod_id', 'user_id', name='unique_pod_member'),
    )

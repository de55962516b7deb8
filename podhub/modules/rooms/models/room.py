import enum

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from podhub.db.session import Base

class RoomType(str, enum.Enum):
    GENERAL = "GENERAL"
    QA = "QA"

class RoomPrivacy(str, enum.Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"

class JoinRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

class Room(Base):
    __tablename__ = "rooms"

    id = Column(String, primary_key=True, index=True)
    pod_id = Column(String, ForeignKey("pods.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, default=RoomType.GENERAL.value)
    privacy = Column(String, default=RoomPrivacy.PUBLIC.value)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=func.now())

    pod = relationship("Pod", back_populates="rooms")
    members = relationship("RoomMember", back_populates="room", cascade="all, delete-orphan")
    join_requests = relationship("RoomJoinRequest", back_populates="room", cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="room", cascade="all, delete-orphan")

    @property
    def is_private(self) -> bool:
        return self.privacy == RoomPrivacy.PRIVATE.value

class RoomMember(Base):
    __tablename__ = "room_members"

    id = Column(String, primary_key=True, index=True)
    room_id = Column(String, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at = Column(DateTime, default=func.now())

    room = relationship("Room", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('room_id', 'user_id', name='unique_room_member'),
    )

# One row per (room, user); a rejected request is reused on resubmission
class RoomJoinRequest(Base):
    __tablename__ = "room_join_requests"

    id = Column(String, primary_key=True, index=True)
    room_id = Column(String, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, default=JoinRequestStatus.PENDING.value)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    room = relationship("Room", back_populates="join_requests")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('room_id', 'user_id', name='unique_room_join_request'),
    )

from datetime import datetime

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from podhub.db.session import Base

class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    sender_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    room_id = Column(String, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=True, index=True)
    chat_id = Column(String, ForeignKey("chats.id", ondelete="CASCADE"), nullable=True, index=True)
    reply_to_id = Column(String, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)
    # Python-side timestamp keeps sub-second precision for the pagination cursor
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    sender = relationship("User")
    room = relationship("Room", back_populates="messages")
    chat = relationship("Chat", back_populates="messages")
    reply_to = relationship("Message", remote_side=[id])

    __table_args__ = (
        CheckConstraint(
            '(room_id IS NULL) != (chat_id IS NULL)',
            name='message_single_container'
        ),
    )

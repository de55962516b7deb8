from datetime import datetime

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.sql import func

from podhub.db.session import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    type = Column(String)  # see NotificationType
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    linked_id = Column(String, nullable=True)  # Target of the notification, meaning depends on type
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

# One row per browser/device registered for Web Push
class PushSubscription(Base):
    __tablename__ = "push_subscriptions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    endpoint = Column(Text, unique=True, nullable=False)
    p256dh = Column(String, nullable=False)  # Public key
    auth = Column(String, nullable=False)  # Auth secret
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=func.now())

    def subscription_info(self) -> dict:
        """Shape expected by pywebpush"""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }

from typing import List, Optional, Tuple
import uuid
import logging
from sqlalchemy.orm import Session

from podhub.modules.notifications.models.notification import Notification, PushSubscription
from podhub.modules.notifications.schemas.notification import NotificationType

logger = logging.getLogger(__name__)

def get_notification(db: Session, notification_id: str) -> Optional[Notification]:
    """Get notification by ID"""
    return db.query(Notification).filter(Notification.id == notification_id).first()

def get_user_notifications(db: Session, user_id: str, limit: int = 50, unread_only: bool = False) -> List[Notification]:
    """Get notifications for a user, newest first"""
    query = db.query(Notification).filter(Notification.user_id == user_id)

    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    return query.order_by(Notification.created_at.desc()).limit(limit).all()

def count_unread(db: Session, user_id: str) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False)
    ).count()

def create_notification(
    db: Session,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    linked_id: Optional[str] = None,
) -> Notification:
    """Create a new notification"""
    notification = Notification(
        id=str(uuid.uuid4()),
        user_id=user_id,
        type=NotificationType(type).value,
        title=title,
        message=message,
        linked_id=linked_id,
        is_read=False,
    )

    db.add(notification)
    db.commit()
    db.refresh(notification)

    return notification

def mark_as_read(db: Session, notification: Notification) -> Notification:
    """Mark a notification as read. Reading is one-way."""
    if not notification.is_read:
        notification.is_read = True
        db.add(notification)
        db.commit()
        db.refresh(notification)

    return notification

def mark_all_as_read(db: Session, user_id: str) -> int:
    """Mark all notifications as read for a user"""
    result = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False)
    ).update({"is_read": True}, synchronize_session=False)

    db.commit()

    return result

def delete_notification(db: Session, notification: Notification) -> Notification:
    """Delete a notification"""
    db.delete(notification)
    db.commit()

    return notification

def delete_all_notifications(db: Session, user_id: str) -> int:
    """Delete all notifications for a user"""
    result = db.query(Notification).filter(Notification.user_id == user_id).delete(synchronize_session=False)
    db.commit()

    return result


# Push subscriptions
def get_subscription_by_endpoint(db: Session, endpoint: str) -> Optional[PushSubscription]:
    return db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()

def list_subscriptions(db: Session, user_id: str) -> List[PushSubscription]:
    """All push subscriptions (devices) of a user"""
    return db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()

def subscribe(
    db: Session,
    user_id: str,
    endpoint: str,
    p256dh: str,
    auth: str,
    user_agent: Optional[str] = None,
) -> Tuple[PushSubscription, bool]:
    """
    Register a push endpoint for a user.

    An endpoint is unique across users: a browser that changes hands is
    reassigned to the new user. Returns the subscription and whether it was
    newly created.
    """
    existing = get_subscription_by_endpoint(db, endpoint)
    if existing:
        if existing.user_id != user_id:
            logger.info(f"Reassigning push endpoint from user {existing.user_id} to {user_id}")
            existing.user_id = user_id
            existing.p256dh = p256dh
            existing.auth = auth
            existing.user_agent = user_agent
            db.add(existing)
            db.commit()
            db.refresh(existing)
        return existing, False

    subscription = PushSubscription(
        id=str(uuid.uuid4()),
        user_id=user_id,
        endpoint=endpoint,
        p256dh=p256dh,
        auth=auth,
        user_agent=user_agent,
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription, True

def unsubscribe(db: Session, user_id: str, endpoint: str) -> bool:
    subscription = db.query(PushSubscription).filter(
        PushSubscription.user_id == user_id,
        PushSubscription.endpoint == endpoint
    ).first()
    if not subscription:
        return False

    db.delete(subscription)
    db.commit()
    return True

def delete_subscription(db: Session, subscription_id: str) -> None:
    """Remove a subscription the push service reported as gone"""
    db.query(PushSubscription).filter(PushSubscription.id == subscription_id).delete(synchronize_session=False)
    db.commit()

from typing import Any, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from podhub.core.config import settings
from podhub.core.errors import NotFoundError, PermissionDeniedError
from podhub.deps import get_current_user, get_db
from podhub.modules.user_management.models.user import User
from podhub.modules.notifications.schemas.notification import (
    Notification as NotificationSchema,
    UnreadCount,
)
from podhub.modules.notifications.services.notification import (
    count_unread,
    delete_all_notifications,
    delete_notification,
    get_notification,
    get_user_notifications,
    mark_all_as_read,
    mark_as_read,
)

router = APIRouter()

def _get_own_notification(db: Session, notification_id: str, user: User):
    notification = get_notification(db, notification_id=notification_id)
    if not notification:
        raise NotFoundError("Notification not found")

    if notification.user_id != user.id:
        raise PermissionDeniedError("Not enough permissions")

    return notification

@router.get("", response_model=List[NotificationSchema])
def read_notifications(
    db: Session = Depends(get_db),
    limit: int = Query(settings.NOTIFICATION_PAGE_SIZE, ge=1, le=200),
    unread_only: bool = False,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get user's notifications, newest first"""
    rows = get_user_notifications(db, current_user.id, limit=limit, unread_only=unread_only)
    return [NotificationSchema.from_row(row) for row in rows]

@router.get("/unread/count", response_model=UnreadCount)
def read_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    return {"count": count_unread(db, current_user.id)}

@router.patch("/{notification_id}/read", response_model=NotificationSchema)
def mark_notification_as_read(
    *,
    db: Session = Depends(get_db),
    notification_id: str,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Mark a specific notification as read"""
    notification = _get_own_notification(db, notification_id, current_user)
    return NotificationSchema.from_row(mark_as_read(db, notification))

@router.post("/mark-all-read", response_model=dict)
def mark_all_notifications_as_read(
    *,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Mark all of the user's notifications as read"""
    count = mark_all_as_read(db, current_user.id)

    return {
        "message": f"Marked {count} notifications as read",
        "count": count
    }

@router.delete("/{notification_id}", response_model=dict)
def delete_notification_by_id(
    *,
    db: Session = Depends(get_db),
    notification_id: str,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Delete a specific notification"""
    notification = _get_own_notification(db, notification_id, current_user)
    delete_notification(db, notification)
    return {"message": "Notification deleted"}

@router.delete("", response_model=dict)
def delete_all_user_notifications(
    *,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Delete all notifications for the current user"""
    count = delete_all_notifications(db, current_user.id)

    return {
        "message": f"Deleted {count} notifications",
        "count": count
    }

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.orm import Session

from podhub.core.config import settings
from podhub.core.errors import NotFoundError
from podhub.deps import get_current_user, get_db
from podhub.modules.user_management.models.user import User
from podhub.modules.notifications.schemas.notification import (
    PushSubscription as PushSubscriptionSchema,
    PushSubscriptionCreate,
    PushUnsubscribe,
)
from podhub.modules.notifications.services.notification import (
    list_subscriptions,
    subscribe,
    unsubscribe,
)

router = APIRouter()

@router.get("/vapid-public-key", response_model=dict)
def read_vapid_public_key() -> Any:
    """Public application server key browsers subscribe with"""
    if not settings.VAPID_PUBLIC_KEY:
        raise NotFoundError("Push notifications are not configured")
    return {"public_key": settings.VAPID_PUBLIC_KEY}

@router.post("/subscribe", response_model=PushSubscriptionSchema)
def subscribe_device(
    *,
    subscription_in: PushSubscriptionCreate,
    response: Response,
    user_agent: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Register this browser for push notifications"""
    subscription, created = subscribe(
        db,
        user_id=current_user.id,
        endpoint=subscription_in.endpoint,
        p256dh=subscription_in.keys.p256dh,
        auth=subscription_in.keys.auth,
        user_agent=user_agent,
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
    return subscription

@router.post("/unsubscribe", response_model=dict)
def unsubscribe_device(
    *,
    subscription_in: PushUnsubscribe,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    if not unsubscribe(db, current_user.id, subscription_in.endpoint):
        raise NotFoundError("Subscription not found")
    return {"message": "Unsubscribed successfully"}

@router.get("/subscriptions", response_model=List[PushSubscriptionSchema])
def read_subscriptions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    return list_subscriptions(db, current_user.id)

"""
Web Push delivery.

Wraps pywebpush with the VAPID credentials from settings. A sender is built
once by the application factory and handed to the NotificationDispatcher.
"""
import json
import logging
from typing import Any, Dict, Optional

from pywebpush import WebPushException, webpush

from podhub.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# Status codes the push services use for expired or unsubscribed endpoints
GONE_STATUS_CODES = (404, 410)


class PushDeliveryError(Exception):
    """Delivery failed but the subscription may still be valid"""


class PushSubscriptionGone(PushDeliveryError):
    """The push service reports the endpoint as permanently invalid"""


def build_push_payload(notification, icon: Optional[str] = None, badge: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": notification.title,
        "body": notification.message,
        "data": {
            "notificationId": notification.id,
            "type": notification.type,
            "linkedId": notification.linked_id,
        },
    }
    if icon:
        payload["icon"] = icon
    if badge:
        payload["badge"] = badge
    return payload


class WebPushSender:
    def __init__(self, settings: Settings = default_settings):
        self._private_key = settings.VAPID_PRIVATE_KEY
        self._subject = settings.VAPID_SUBJECT
        self._ttl = settings.PUSH_TTL
        self.icon = settings.PUSH_ICON
        self.badge = settings.PUSH_BADGE

    @property
    def enabled(self) -> bool:
        return bool(self._private_key)

    def send(self, subscription_info: Dict[str, Any], payload: Dict[str, Any]) -> None:
        """Deliver one payload to one endpoint. Blocking; run it in a worker thread."""
        try:
            webpush(
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self._private_key,
                # pywebpush adds aud/exp to the claims dict, so pass a fresh one
                vapid_claims={"sub": self._subject},
                ttl=self._ttl,
            )
        except WebPushException as e:
            status_code = getattr(e.response, "status_code", None)
            if status_code in GONE_STATUS_CODES:
                raise PushSubscriptionGone(f"Endpoint gone ({status_code})") from e
            raise PushDeliveryError(f"Push failed ({status_code}): {e}") from e

from datetime import datetime
import json
from unittest.mock import MagicMock

import pytest
from pywebpush import WebPushException

from podhub.core.config import Settings
from podhub.modules.notifications.schemas.notification import Notification
from podhub.modules.notifications.services import push
from podhub.modules.notifications.services.push import (
    PushDeliveryError,
    PushSubscriptionGone,
    WebPushSender,
    build_push_payload,
)

SUBSCRIPTION = {
    "endpoint": "https://push.example/a",
    "keys": {"p256dh": "p256dh-a", "auth": "auth-a"},
}


def _sender(**overrides):
    values = {"VAPID_PRIVATE_KEY": "private-key", "VAPID_SUBJECT": "mailto:ops@podhub.app"}
    values.update(overrides)
    return WebPushSender(Settings(**values))


def _rejecting_webpush(status_code):
    response = MagicMock(status_code=status_code)
    return MagicMock(side_effect=WebPushException("Push failed", response=response))


def test_sender_is_disabled_without_private_key():
    assert _sender().enabled is True
    assert _sender(VAPID_PRIVATE_KEY="").enabled is False


def test_send_posts_json_with_vapid_claims(monkeypatch):
    webpush = MagicMock()
    monkeypatch.setattr(push, "webpush", webpush)

    _sender(PUSH_TTL=120).send(SUBSCRIPTION, {"title": "New Member", "body": "hello"})

    kwargs = webpush.call_args.kwargs
    assert kwargs["subscription_info"] == SUBSCRIPTION
    assert json.loads(kwargs["data"]) == {"title": "New Member", "body": "hello"}
    assert kwargs["vapid_private_key"] == "private-key"
    assert kwargs["vapid_claims"] == {"sub": "mailto:ops@podhub.app"}
    assert kwargs["ttl"] == 120


@pytest.mark.parametrize("status_code", [404, 410])
def test_expired_endpoints_are_reported_gone(monkeypatch, status_code):
    monkeypatch.setattr(push, "webpush", _rejecting_webpush(status_code))

    with pytest.raises(PushSubscriptionGone):
        _sender().send(SUBSCRIPTION, {"title": "t"})


@pytest.mark.parametrize("status_code", [400, 429, 500])
def test_other_failures_keep_the_subscription(monkeypatch, status_code):
    monkeypatch.setattr(push, "webpush", _rejecting_webpush(status_code))

    with pytest.raises(PushDeliveryError) as excinfo:
        _sender().send(SUBSCRIPTION, {"title": "t"})
    assert not isinstance(excinfo.value, PushSubscriptionGone)


def test_failure_without_response_is_a_delivery_error(monkeypatch):
    monkeypatch.setattr(push, "webpush", MagicMock(side_effect=WebPushException("Connection reset")))

    with pytest.raises(PushDeliveryError):
        _sender().send(SUBSCRIPTION, {"title": "t"})


def _notification():
    return Notification(
        id="n-1",
        user_id="u-1",
        type="room_join_request",
        title="Room Join Request",
        message="Marco asked to join general",
        linked_id="r-1",
        is_read=False,
        created_at=datetime(2025, 1, 1, 12, 0, 0),
    )


def test_payload_carries_notification_reference():
    payload = build_push_payload(_notification(), icon="/icons/icon.png", badge="/icons/badge.png")

    assert payload == {
        "title": "Room Join Request",
        "body": "Marco asked to join general",
        "icon": "/icons/icon.png",
        "badge": "/icons/badge.png",
        "data": {"notificationId": "n-1", "type": "room_join_request", "linkedId": "r-1"},
    }


def test_payload_omits_missing_icon_and_badge():
    payload = build_push_payload(_notification())

    assert "icon" not in payload
    assert "badge" not in payload
    assert payload["data"]["linkedId"] == "r-1"

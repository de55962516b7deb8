import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import BackgroundTasks

from helpers import FakePushSender, FakeRealtime
from podhub.modules.notifications.models.notification import Notification, PushSubscription
from podhub.modules.notifications.schemas.notification import PodJoined, RoomJoinRequested
from podhub.modules.notifications.services.dispatcher import NotificationDispatcher
from podhub.modules.notifications.services.notification import subscribe
from podhub.modules.notifications.services.push import PushDeliveryError, PushSubscriptionGone


def _dispatcher(session_factory, realtime=None, push_sender=None):
    return NotificationDispatcher(session_factory, realtime=realtime, push_sender=push_sender)


async def test_notify_stores_one_unread_row_and_emits_to_online_user(db, session_factory, owner):
    realtime = FakeRealtime(online=[owner.id])
    dispatcher = _dispatcher(session_factory, realtime=realtime, push_sender=FakePushSender())

    result = dispatcher.notify(
        db,
        user_id=owner.id,
        payload=PodJoined(pod_id="pod-1"),
        title="New Member",
        message="Marco joined Founders",
    )
    await dispatcher.shutdown()

    rows = db.query(Notification).filter(Notification.user_id == owner.id).all()
    assert len(rows) == 1
    assert rows[0].is_read is False
    assert rows[0].type == "pod_join"
    assert rows[0].linked_id == "pod-1"

    realtime.emit_to_user.assert_awaited_once()
    user_id, event, data = realtime.emit_to_user.await_args.args
    assert (user_id, event) == (owner.id, "notification")
    assert data["id"] == result.id
    assert data["payload"] == {"type": "pod_join", "pod_id": "pod-1"}


async def test_each_notify_creates_a_new_row(db, session_factory, owner):
    dispatcher = _dispatcher(session_factory)
    for _ in range(2):
        dispatcher.notify(db, owner.id, RoomJoinRequested(room_id="r-1"), "Room Join Request", "Marco asked")
    await dispatcher.shutdown()

    assert db.query(Notification).filter(Notification.user_id == owner.id).count() == 2


async def test_offline_user_gets_no_emit(db, session_factory, owner):
    realtime = FakeRealtime()
    dispatcher = _dispatcher(session_factory, realtime=realtime)

    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    realtime.emit_to_user.assert_not_awaited()


async def test_no_subscriptions_means_no_push_calls(db, session_factory, owner):
    sender = FakePushSender()
    dispatcher = _dispatcher(session_factory, push_sender=sender)

    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    assert sender.sent == []


async def test_push_reaches_every_subscription(db, session_factory, owner):
    subscribe(db, owner.id, "https://push.example/a", "p256dh-a", "auth-a")
    subscribe(db, owner.id, "https://push.example/b", "p256dh-b", "auth-b")
    sender = FakePushSender()
    dispatcher = _dispatcher(session_factory, push_sender=sender)

    notification = dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    assert sorted(endpoint for endpoint, _ in sender.sent) == ["https://push.example/a", "https://push.example/b"]
    payload = sender.sent[0][1]
    assert payload["title"] == "New Member"
    assert payload["body"] == "hello"
    assert payload["icon"] == "/icons/icon.png"
    assert payload["data"] == {"notificationId": notification.id, "type": "pod_join", "linkedId": "p"}


async def test_gone_subscription_is_removed_and_not_retried(db, session_factory, owner):
    subscribe(db, owner.id, "https://push.example/gone", "k", "a")
    subscribe(db, owner.id, "https://push.example/live", "k", "a")
    sender = FakePushSender()
    sender.failures["https://push.example/gone"] = PushSubscriptionGone("Endpoint gone (410)")
    dispatcher = _dispatcher(session_factory, push_sender=sender)

    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    db.expire_all()
    endpoints = [s.endpoint for s in db.query(PushSubscription).all()]
    assert endpoints == ["https://push.example/live"]
    assert [e for e, _ in sender.sent].count("https://push.example/gone") == 1

    # The next notification only goes to the remaining device
    sender.sent.clear()
    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "again")
    await dispatcher.shutdown()
    assert [e for e, _ in sender.sent] == ["https://push.example/live"]


async def test_transient_push_failure_keeps_subscription(db, session_factory, owner):
    subscribe(db, owner.id, "https://push.example/flaky", "k", "a")
    sender = FakePushSender()
    sender.failures["https://push.example/flaky"] = PushDeliveryError("Push failed (500)")
    dispatcher = _dispatcher(session_factory, push_sender=sender)

    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    db.expire_all()
    assert db.query(PushSubscription).count() == 1


async def test_socket_failure_does_not_block_push(db, session_factory, owner):
    subscribe(db, owner.id, "https://push.example/a", "k", "a")
    realtime = FakeRealtime(online=[owner.id])
    realtime.emit_to_user.side_effect = RuntimeError("socket closed")
    sender = FakePushSender()
    dispatcher = _dispatcher(session_factory, realtime=realtime, push_sender=sender)

    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    assert len(sender.sent) == 1
    assert db.query(Notification).count() == 1


async def test_disabled_push_sender_is_skipped(db, session_factory, owner):
    subscribe(db, owner.id, "https://push.example/a", "k", "a")
    sender = FakePushSender(enabled=False)
    dispatcher = _dispatcher(session_factory, push_sender=sender)

    assert dispatcher.push_enabled is False
    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    assert sender.sent == []


async def test_row_write_failure_propagates_and_nothing_is_delivered(session_factory):
    realtime = FakeRealtime(online=["u-1"])
    sender = FakePushSender()
    dispatcher = _dispatcher(session_factory, realtime=realtime, push_sender=sender)
    broken_db = MagicMock()
    broken_db.commit.side_effect = RuntimeError("database is down")

    with pytest.raises(RuntimeError):
        dispatcher.notify(broken_db, "u-1", PodJoined(pod_id="p"), "New Member", "hello")
    await dispatcher.shutdown()

    realtime.emit_to_user.assert_not_awaited()
    assert sender.sent == []


def test_background_tasks_defer_delivery(db, session_factory, owner):
    realtime = FakeRealtime(online=[owner.id])
    dispatcher = _dispatcher(session_factory, realtime=realtime)
    background_tasks = BackgroundTasks()

    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "New Member", "hello", background_tasks=background_tasks)

    assert len(background_tasks.tasks) == 1
    assert background_tasks.tasks[0].func == dispatcher.deliver
    realtime.emit_to_user.assert_not_awaited()


async def test_shutdown_waits_for_deliveries_scheduled_while_waiting(db, session_factory, owner):
    realtime = FakeRealtime(online=[owner.id])
    dispatcher = _dispatcher(session_factory, realtime=realtime)
    delivered = []

    async def emit_to_user(user_id, event, data):
        if data["title"] == "first":
            dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "second", "later")
        else:
            await asyncio.sleep(0.05)
        delivered.append(data["title"])

    realtime.emit_to_user = AsyncMock(side_effect=emit_to_user)

    dispatcher.notify(db, owner.id, PodJoined(pod_id="p"), "first", "now")
    await dispatcher.shutdown()

    assert delivered == ["first", "second"]

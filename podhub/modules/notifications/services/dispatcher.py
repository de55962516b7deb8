"""
Notification fan-out.

A notification reaches a user through three channels:

1. the notifications table (authoritative, must succeed),
2. the user's private Socket.IO channel ``user:<id>`` when they are connected,
3. Web Push to every registered subscription of the user.

Only step 1 runs inside the caller's request. Steps 2 and 3 are scheduled
after it and run as independent tasks whose failures are logged, never raised.
"""
import asyncio
import logging
from typing import List, Optional, Set, Tuple

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from podhub.modules.notifications.schemas.notification import (
    Notification as NotificationSchema,
    NotificationPayload,
)
from podhub.modules.notifications.services.notification import (
    create_notification,
    delete_subscription,
    list_subscriptions,
)
from podhub.modules.notifications.services.push import (
    PushDeliveryError,
    PushSubscriptionGone,
    build_push_payload,
)

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, session_factory, realtime=None, push_sender=None):
        self._session_factory = session_factory
        self._realtime = realtime
        self._push_sender = push_sender
        self._tasks: Set[asyncio.Task] = set()

    @property
    def push_enabled(self) -> bool:
        return self._push_sender is not None and self._push_sender.enabled

    async def start(self) -> None:
        logger.info(f"Notification dispatcher started (web push {'enabled' if self.push_enabled else 'disabled'})")

    async def shutdown(self) -> None:
        """Wait for deliveries that are still in flight"""
        # New deliveries can be scheduled while we wait
        while self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} pending notification deliveries")
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("Notification dispatcher stopped")

    def notify(
        self,
        db: Session,
        user_id: str,
        payload: NotificationPayload,
        title: str,
        message: str,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> NotificationSchema:
        """
        Store a notification for ``user_id`` and schedule its delivery.

        A failure to write the row propagates to the caller. Delivery is never
        awaited here: with ``background_tasks`` it runs after the response has
        been sent, otherwise as a task on the running event loop.
        Each call creates a new notification.
        """
        notification = self.store(db, user_id, payload, title, message)
        self.schedule(notification, background_tasks)
        return notification

    def store(self, db: Session, user_id: str, payload: NotificationPayload, title: str, message: str) -> NotificationSchema:
        """Write the row only. Callers on a worker thread schedule delivery from the event loop."""
        row = create_notification(
            db,
            user_id=user_id,
            type=payload.kind,
            title=title,
            message=message,
            linked_id=payload.link_target(),
        )
        return NotificationSchema.from_row(row)

    def schedule(self, notification: NotificationSchema, background_tasks: Optional[BackgroundTasks] = None) -> None:
        if background_tasks is not None:
            background_tasks.add_task(self.deliver, notification)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No event loop to deliver notification {notification.id}; it is stored only")
            return

        task = loop.create_task(self.deliver(notification))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def deliver(self, notification: NotificationSchema) -> None:
        results = await asyncio.gather(
            self._emit(notification),
            self._push(notification),
            return_exceptions=True,
        )
        for channel, result in zip(("socket", "push"), results):
            if isinstance(result, Exception):
                logger.error(f"Error delivering notification {notification.id} via {channel}: {result}")

    async def _emit(self, notification: NotificationSchema) -> bool:
        # Offline users are the common case, the REST list is their backstop
        if self._realtime is None or not self._realtime.is_online(notification.user_id):
            return False

        await self._realtime.emit_to_user(
            notification.user_id,
            "notification",
            notification.model_dump(mode="json"),
        )
        return True

    async def _push(self, notification: NotificationSchema) -> int:
        """Returns the number of subscriptions the payload was delivered to"""
        if not self.push_enabled:
            return 0

        subscriptions = await run_in_threadpool(self._load_subscriptions, notification.user_id)
        if not subscriptions:
            return 0

        payload = build_push_payload(
            notification,
            icon=getattr(self._push_sender, "icon", None),
            badge=getattr(self._push_sender, "badge", None),
        )
        results = await asyncio.gather(
            *(self._push_one(subscription_id, info, payload) for subscription_id, info in subscriptions),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Error cleaning up push subscription for user {notification.user_id}: {result}")
        return sum(1 for delivered in results if delivered is True)

    async def _push_one(self, subscription_id: str, subscription_info: dict, payload: dict) -> bool:
        try:
            await run_in_threadpool(self._push_sender.send, subscription_info, payload)
            return True
        except PushSubscriptionGone:
            logger.info(f"Push subscription {subscription_id} is gone, removing it")
            await run_in_threadpool(self._drop_subscription, subscription_id)
        except PushDeliveryError as e:
            logger.warning(f"Push to subscription {subscription_id} failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected error pushing to subscription {subscription_id}: {e}")
        return False

    def _load_subscriptions(self, user_id: str) -> List[Tuple[str, dict]]:
        db = self._session_factory()
        try:
            return [(s.id, s.subscription_info()) for s in list_subscriptions(db, user_id)]
        finally:
            db.close()

    def _drop_subscription(self, subscription_id: str) -> None:
        db = self._session_factory()
        try:
            delete_subscription(db, subscription_id)
        finally:
            db.close()

"""
Socket.IO channel manager.

Every authenticated connection joins its private ``user:<id>`` channel.
Rooms and chats are joined explicitly and are access checked against the
database on every join and every send; nothing about authorization is
remembered on the connection. Messages are persisted before they are
broadcast, so subscribers of one room or chat see them in storage order.

Routing state (which sid belongs to which user, which channels a sid has
joined) lives in this process only and is rebuilt as clients reconnect.
It is changed on the event loop and read from worker threads; writes and
the lookups used by other services hold ``_lock``.
"""
import logging
import threading
from typing import Dict, List, Optional, Set, Tuple

import socketio
from starlette.concurrency import run_in_threadpool

from podhub.core.errors import ServiceError
from podhub.core.permissions import check_chat_participant, check_room_access
from podhub.core.security import extract_bearer_token, verify_access_token
from podhub.modules.user_management.services.user import display_name, get_user
from podhub.modules.chats.services.chat import get_chat_for_participant, other_participant_ids, send_chat_message
from podhub.modules.messages.schemas.message import Message as MessageSchema
from podhub.modules.messages.services.message import create_room_message
from podhub.modules.notifications.schemas.notification import NewMessage
from podhub.modules.rooms.services.room import get_room_or_404

logger = logging.getLogger(__name__)


def _header(scope: dict, name: str) -> Optional[str]:
    target = name.encode().lower()
    for key, value in scope.get("headers", []):
        if key.lower() == target:
            return value.decode()
    return None


class RealtimeServer:
    def __init__(self, sio: socketio.AsyncServer, session_factory, dispatcher=None):
        self.sio = sio
        self.dispatcher = dispatcher
        self._session_factory = session_factory
        self._sessions: Dict[str, dict] = {}
        self._user_sids: Dict[str, Set[str]] = {}
        self._channels: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def user_channel(user_id: str) -> str:
        return f"user:{user_id}"

    @staticmethod
    def room_channel(room_id: str) -> str:
        return f"room:{room_id}"

    @staticmethod
    def chat_channel(chat_id: str) -> str:
        return f"chat:{chat_id}"

    def register(self) -> None:
        handlers = {
            "connect": self.on_connect,
            "disconnect": self.on_disconnect,
            "join-room": self.on_join_room,
            "leave-room": self.on_leave_room,
            "send-message": self.on_send_message,
            "typing-start": self.on_typing_start,
            "typing-stop": self.on_typing_stop,
            "join-chat": self.on_join_chat,
            "leave-chat": self.on_leave_chat,
            "send-dm": self.on_send_dm,
            "dm-typing-start": self.on_dm_typing_start,
            "dm-typing-stop": self.on_dm_typing_stop,
        }
        for event, handler in handlers.items():
            self.sio.on(event, handler=handler)
        logger.info(f"Realtime server registered {len(handlers)} socket events")

    async def shutdown(self) -> None:
        logger.info(f"Realtime server stopping with {len(self._sessions)} open connections")
        with self._lock:
            self._sessions.clear()
            self._user_sids.clear()
            self._channels.clear()

    # Lookups used by other services
    def is_online(self, user_id: str) -> bool:
        with self._lock:
            return bool(self._user_sids.get(user_id))

    def is_watching(self, user_id: str, channel: str) -> bool:
        """True when one of the user's connections has joined ``channel``"""
        with self._lock:
            return any(channel in self._channels.get(sid, ()) for sid in self._user_sids.get(user_id, ()))

    async def emit_to_user(self, user_id: str, event: str, data: dict) -> None:
        await self.sio.emit(event, data, room=self.user_channel(user_id))

    async def emit_to_chat(self, chat_id: str, event: str, data: dict) -> None:
        await self.sio.emit(event, data, room=self.chat_channel(chat_id))

    # Connection lifecycle
    async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
        token = None
        if isinstance(auth, dict):
            token = auth.get("token")
        if not token:
            scope = environ.get("asgi.scope", {})
            token = extract_bearer_token(environ.get("HTTP_AUTHORIZATION") or _header(scope, "authorization"))
        if not token:
            raise ConnectionRefusedError("Authentication required")

        user = await run_in_threadpool(self._authenticate, token)
        if user is None:
            raise ConnectionRefusedError("Invalid or expired token")

        with self._lock:
            self._sessions[sid] = user
            self._user_sids.setdefault(user["id"], set()).add(sid)
            self._channels[sid] = set()
        await self.sio.enter_room(sid, self.user_channel(user["id"]))
        logger.info(f"Socket {sid} connected for user {user['id']}")

    async def on_disconnect(self, sid: str, reason=None) -> None:
        with self._lock:
            user = self._sessions.pop(sid, None)
            self._channels.pop(sid, None)
            if user:
                sids = self._user_sids.get(user["id"], set())
                sids.discard(sid)
                if not sids:
                    self._user_sids.pop(user["id"], None)
        if user:
            logger.info(f"Socket {sid} disconnected for user {user['id']}")

    # Rooms
    async def on_join_room(self, sid: str, data: dict) -> None:
        user = self._sessions.get(sid)
        room_id = self._id(data, "roomId")
        if not user or not room_id:
            return await self._error(sid, "Room ID is required")

        try:
            await run_in_threadpool(self._check_room, room_id, user["id"])
        except ServiceError as e:
            return await self._error(sid, e.message)

        channel = self.room_channel(room_id)
        await self._enter(sid, channel)
        await self.sio.emit("room-joined", {"roomId": room_id}, to=sid)
        await self.sio.emit("user-joined", self._presence(user, roomId=room_id), room=channel, skip_sid=sid)

    async def on_leave_room(self, sid: str, data: dict) -> None:
        user = self._sessions.get(sid)
        room_id = self._id(data, "roomId")
        if not user or not room_id:
            return

        channel = self.room_channel(room_id)
        await self._leave(sid, channel)
        await self.sio.emit("user-left", self._presence(user, roomId=room_id), room=channel, skip_sid=sid)

    async def on_send_message(self, sid: str, data: dict) -> None:
        user = self._sessions.get(sid)
        room_id = self._id(data, "roomId")
        if not user or not room_id:
            return await self._error(sid, "Room ID is required")

        try:
            message = await run_in_threadpool(
                self._persist_room_message,
                room_id,
                user["id"],
                self._field(data, "content"),
                self._field(data, "replyToId"),
            )
        except ServiceError as e:
            return await self._error(sid, e.message)

        await self.sio.emit("new-message", message, room=self.room_channel(room_id))

    async def on_typing_start(self, sid: str, data: dict) -> None:
        await self._typing(sid, self._id(data, "roomId"), self.room_channel, "roomId", "user-typing")

    async def on_typing_stop(self, sid: str, data: dict) -> None:
        await self._typing(sid, self._id(data, "roomId"), self.room_channel, "roomId", "user-stopped-typing")

    # Direct chats
    async def on_join_chat(self, sid: str, data: dict) -> None:
        user = self._sessions.get(sid)
        chat_id = self._id(data, "chatId")
        if not user or not chat_id:
            return await self._error(sid, "Chat ID is required")

        if not await run_in_threadpool(self._is_participant, chat_id, user["id"]):
            return await self._error(sid, "You are not a participant of this chat")

        await self._enter(sid, self.chat_channel(chat_id))

    async def on_leave_chat(self, sid: str, data: dict) -> None:
        chat_id = self._id(data, "chatId")
        if sid in self._sessions and chat_id:
            await self._leave(sid, self.chat_channel(chat_id))

    async def on_send_dm(self, sid: str, data: dict) -> None:
        user = self._sessions.get(sid)
        chat_id = self._id(data, "chatId")
        if not user or not chat_id:
            return await self._error(sid, "Chat ID is required")

        try:
            message, notifications = await run_in_threadpool(
                self._persist_dm,
                chat_id,
                user["id"],
                self._field(data, "content"),
                self._field(data, "replyToId"),
            )
        except ServiceError as e:
            return await self._error(sid, e.message)

        await self.sio.emit("new-dm", message, room=self.chat_channel(chat_id))
        for notification in notifications:
            self.dispatcher.schedule(notification)

    async def on_dm_typing_start(self, sid: str, data: dict) -> None:
        await self._typing(sid, self._id(data, "chatId"), self.chat_channel, "chatId", "dm-user-typing")

    async def on_dm_typing_stop(self, sid: str, data: dict) -> None:
        await self._typing(sid, self._id(data, "chatId"), self.chat_channel, "chatId", "dm-user-typing-stopped")

    # Helpers
    @staticmethod
    def _field(data, name: str):
        if not isinstance(data, dict):
            return None
        return data.get(name)

    @classmethod
    def _id(cls, data, name: str) -> Optional[str]:
        value = cls._field(data, name)
        return value if isinstance(value, str) else None

    @staticmethod
    def _presence(user: dict, **ids) -> dict:
        return dict(ids, userId=user["id"], username=user["username"], fullName=user["full_name"])

    async def _error(self, sid: str, message: str) -> None:
        await self.sio.emit("error", {"message": message}, to=sid)

    async def _enter(self, sid: str, channel: str) -> None:
        await self.sio.enter_room(sid, channel)
        with self._lock:
            self._channels.setdefault(sid, set()).add(channel)

    async def _leave(self, sid: str, channel: str) -> None:
        await self.sio.leave_room(sid, channel)
        with self._lock:
            self._channels.get(sid, set()).discard(channel)

    async def _typing(self, sid: str, target_id: Optional[str], channel_for, key: str, event: str) -> None:
        # Typing is only relayed from connections already in the group
        user = self._sessions.get(sid)
        if not user or not target_id:
            return
        channel = channel_for(target_id)
        if channel not in self._channels.get(sid, ()):
            return
        await self.sio.emit(event, self._presence(user, **{key: target_id}), room=channel, skip_sid=sid)

    # Database work, run on a worker thread with its own session
    def _authenticate(self, token: str) -> Optional[dict]:
        user_id = verify_access_token(token)
        if not user_id:
            return None
        db = self._session_factory()
        try:
            user = get_user(db, user_id)
            if not user or not user.is_active:
                return None
            return {"id": user.id, "username": user.username, "full_name": user.full_name}
        finally:
            db.close()

    def _check_room(self, room_id: str, user_id: str) -> None:
        db = self._session_factory()
        try:
            check_room_access(db, get_room_or_404(db, room_id), user_id)
        finally:
            db.close()

    def _persist_room_message(self, room_id: str, user_id: str, content, reply_to_id) -> dict:
        db = self._session_factory()
        try:
            room = get_room_or_404(db, room_id)
            check_room_access(db, room, user_id)
            message = create_room_message(db, room.id, user_id, content, reply_to_id=reply_to_id)
            return MessageSchema.model_validate(message).model_dump(mode="json")
        finally:
            db.close()

    def _is_participant(self, chat_id: str, user_id: str) -> bool:
        db = self._session_factory()
        try:
            return check_chat_participant(db, chat_id, user_id)
        finally:
            db.close()

    def _persist_dm(self, chat_id: str, user_id: str, content, reply_to_id) -> Tuple[dict, List]:
        db = self._session_factory()
        try:
            chat = get_chat_for_participant(db, chat_id, user_id)
            message = send_chat_message(db, chat, user_id, content, reply_to_id)
            data = MessageSchema.model_validate(message).model_dump(mode="json")

            notifications = []
            if self.dispatcher is not None:
                sender = message.sender
                for recipient_id in other_participant_ids(chat, user_id):
                    if self.is_watching(recipient_id, self.chat_channel(chat_id)):
                        continue
                    notifications.append(self.dispatcher.store(
                        db,
                        recipient_id,
                        NewMessage(chat_id=chat.id),
                        title="New Message",
                        message=f"{display_name(sender)}: {message.content[:100]}",
                    ))
            return data, notifications
        finally:
            db.close()

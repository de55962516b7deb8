from typing import List, Optional
import uuid
import logging
from sqlalchemy.orm import Session, joinedload

from podhub.core.config import settings
from podhub.core.errors import InvalidOperationError, NotFoundError, PermissionDeniedError
from podhub.modules.messages.models.message import Message

logger = logging.getLogger(__name__)

def get_message(db: Session, message_id: str) -> Optional[Message]:
    """Get message by ID"""
    return db.query(Message).filter(Message.id == message_id).first()

def _clean_content(content: Optional[str]) -> str:
    if content is not None and not isinstance(content, str):
        raise InvalidOperationError("Message content must be text")
    content = (content or "").strip()
    if not content:
        raise InvalidOperationError("Message content is required")
    return content

def _check_reply_target(db: Session, reply_to_id: Optional[str], room_id: Optional[str], chat_id: Optional[str]) -> Optional[str]:
    """A reply may only quote a message from the same room or chat"""
    if not reply_to_id:
        return None
    if not isinstance(reply_to_id, str):
        raise InvalidOperationError("Reply target must be a message ID")
    target = get_message(db, reply_to_id)
    if not target or target.room_id != room_id or target.chat_id != chat_id:
        raise InvalidOperationError("Reply target not found in this conversation")
    return target.id

def _create_message(
    db: Session,
    sender_id: str,
    content: str,
    room_id: Optional[str] = None,
    chat_id: Optional[str] = None,
    reply_to_id: Optional[str] = None,
) -> Message:
    if (room_id is None) == (chat_id is None):
        raise ValueError("A message belongs to exactly one room or chat")

    message = Message(
        id=str(uuid.uuid4()),
        content=_clean_content(content),
        sender_id=sender_id,
        room_id=room_id,
        chat_id=chat_id,
        reply_to_id=_check_reply_target(db, reply_to_id, room_id, chat_id),
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message

def create_room_message(db: Session, room_id: str, sender_id: str, content: str, reply_to_id: Optional[str] = None) -> Message:
    """Persist a room message. Access must be checked by the caller."""
    return _create_message(db, sender_id, content, room_id=room_id, reply_to_id=reply_to_id)

def create_chat_message(db: Session, chat_id: str, sender_id: str, content: str, reply_to_id: Optional[str] = None) -> Message:
    """Persist a direct message. Participancy must be checked by the caller."""
    return _create_message(db, sender_id, content, chat_id=chat_id, reply_to_id=reply_to_id)

def list_messages(
    db: Session,
    *,
    room_id: Optional[str] = None,
    chat_id: Optional[str] = None,
    limit: int = 50,
    before: Optional[str] = None,
) -> List[Message]:
    """
    Return up to ``limit`` messages of a room or chat, oldest first.

    ``before`` is a message id used as a timestamp cursor: only messages
    created strictly earlier than it are returned, so new messages never
    shift a page. An unknown cursor is ignored.
    """
    if (room_id is None) == (chat_id is None):
        raise ValueError("Pass exactly one of room_id or chat_id")

    limit = max(1, min(limit, settings.MESSAGE_PAGE_MAX))

    query = db.query(Message).options(
        joinedload(Message.sender),
        joinedload(Message.reply_to).joinedload(Message.sender),
    )
    if room_id is not None:
        query = query.filter(Message.room_id == room_id)
    else:
        query = query.filter(Message.chat_id == chat_id)

    if before:
        cursor = db.query(Message.created_at).filter(Message.id == before).scalar()
        if cursor is not None:
            query = query.filter(Message.created_at < cursor)

    newest_first = query.order_by(Message.created_at.desc()).limit(limit).all()
    return list(reversed(newest_first))

def delete_message(db: Session, message_id: str, user_id: str) -> Message:
    """Delete a message. Only its sender may do so."""
    message = get_message(db, message_id)
    if not message:
        raise NotFoundError("Message not found")

    if message.sender_id != user_id:
        raise PermissionDeniedError("You can only delete your own messages")

    db.delete(message)
    db.commit()
    logger.info(f"Message {message_id} deleted by {user_id}")
    return message

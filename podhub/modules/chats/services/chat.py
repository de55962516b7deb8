from datetime import datetime
from typing import Dict, List, Optional, Tuple
import uuid
import logging
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from podhub.core.errors import InvalidOperationError, NotFoundError, PermissionDeniedError
from podhub.core.permissions import check_chat_participant
from podhub.modules.chats.models.chat import Chat, ChatParticipant
from podhub.modules.messages.models.message import Message
from podhub.modules.messages.services.message import create_chat_message
from podhub.modules.user_management.services.user import get_user

logger = logging.getLogger(__name__)

def get_chat(db: Session, chat_id: str) -> Optional[Chat]:
    """Get chat by ID"""
    return db.query(Chat).options(
        joinedload(Chat.participants).joinedload(ChatParticipant.user)
    ).filter(Chat.id == chat_id).first()

def get_chat_for_participant(db: Session, chat_id: str, user_id: str) -> Chat:
    chat = get_chat(db, chat_id)
    if not chat:
        raise NotFoundError("Chat not found")
    if not check_chat_participant(db, chat_id, user_id):
        raise PermissionDeniedError("You are not a participant of this chat")
    return chat

def chat_pair_key(user_id: str, other_user_id: str) -> str:
    return ":".join(sorted((user_id, other_user_id)))

def find_chat(db: Session, user_id: str, other_user_id: str) -> Optional[Chat]:
    """The chat between this pair, in either order"""
    return db.query(Chat).options(
        joinedload(Chat.participants).joinedload(ChatParticipant.user)
    ).filter(Chat.pair_key == chat_pair_key(user_id, other_user_id)).first()

def get_or_create_chat(db: Session, user_id: str, target_user_id: str) -> Tuple[Chat, bool]:
    """
    Return the chat between two users, creating it on first contact.

    The second element tells whether the chat was created by this call.
    """
    if target_user_id == user_id:
        raise InvalidOperationError("Cannot create chat with yourself")

    if not get_user(db, target_user_id):
        raise NotFoundError("Target user not found")

    existing = find_chat(db, user_id, target_user_id)
    if existing:
        return existing, False

    chat = Chat(
        id=str(uuid.uuid4()),
        pair_key=chat_pair_key(user_id, target_user_id),
        updated_at=datetime.utcnow(),
    )
    db.add(chat)
    for participant_id in (user_id, target_user_id):
        db.add(ChatParticipant(id=str(uuid.uuid4()), chat_id=chat.id, user_id=participant_id))
    try:
        db.commit()
    except IntegrityError:
        # Another request created the chat for this pair first
        db.rollback()
        existing = find_chat(db, user_id, target_user_id)
        if existing is None:
            raise
        return existing, False

    logger.info(f"Chat {chat.id} created between {user_id} and {target_user_id}")
    return get_chat(db, chat.id), True

def _last_messages(db: Session, chat_ids: List[str]) -> Dict[str, Message]:
    if not chat_ids:
        return {}
    newest = db.query(
        Message.chat_id,
        func.max(Message.created_at).label("created_at")
    ).filter(Message.chat_id.in_(chat_ids)).group_by(Message.chat_id).subquery()

    # One row per chat, unless two messages share the newest timestamp
    latest: Dict[str, Message] = {}
    rows = db.query(Message).options(joinedload(Message.sender)).join(
        newest,
        and_(Message.chat_id == newest.c.chat_id, Message.created_at == newest.c.created_at)
    ).order_by(Message.created_at.desc(), Message.id.desc()).all()
    for message in rows:
        latest.setdefault(message.chat_id, message)
    return latest

def serialize_chat(chat: Chat, last_message: Optional[Message] = None) -> Dict:
    return {
        "id": chat.id,
        "participants": [p.user for p in chat.participants],
        "last_message": last_message,
        "created_at": chat.created_at,
        "updated_at": chat.updated_at,
    }

def list_user_chats(db: Session, user_id: str) -> List[Dict]:
    """Chats of a user, most recently active first, each with its last message"""
    chat_ids = select(ChatParticipant.chat_id).where(ChatParticipant.user_id == user_id)
    chats = db.query(Chat).options(
        joinedload(Chat.participants).joinedload(ChatParticipant.user)
    ).filter(Chat.id.in_(chat_ids)).order_by(Chat.updated_at.desc()).all()

    latest = _last_messages(db, [chat.id for chat in chats])
    return [serialize_chat(chat, latest.get(chat.id)) for chat in chats]

def send_chat_message(db: Session, chat: Chat, sender_id: str, content: str, reply_to_id: Optional[str] = None) -> Message:
    """Persist a direct message and mark the chat as recently active"""
    if not check_chat_participant(db, chat.id, sender_id):
        raise PermissionDeniedError("You are not a participant of this chat")

    message = create_chat_message(db, chat.id, sender_id, content, reply_to_id=reply_to_id)

    chat.updated_at = message.created_at or datetime.utcnow()
    db.add(chat)
    db.commit()
    db.refresh(message)
    return message

def other_participant_ids(chat: Chat, user_id: str) -> List[str]:
    return [p.user_id for p in chat.participants if p.user_id != user_id]

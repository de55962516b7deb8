from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session

from podhub.core.config import settings
from podhub.core.errors import InvalidOperationError, PermissionDeniedError
from podhub.deps import get_current_user, get_db, get_dispatcher, get_realtime
from podhub.modules.user_management.models.user import User
from podhub.modules.user_management.services.user import display_name
from podhub.modules.notifications.schemas.notification import NewMessage
from podhub.modules.chats.schemas.chat import Chat as ChatSchema, GetOrCreateChat
from podhub.modules.chats.services.chat import (
    find_chat,
    get_chat_for_participant,
    get_or_create_chat,
    list_user_chats,
    other_participant_ids,
    send_chat_message,
    serialize_chat,
)
from podhub.modules.messages.schemas.message import Message as MessageSchema, MessageCreate
from podhub.modules.messages.services.message import list_messages

router = APIRouter()

@router.get("", response_model=List[ChatSchema])
def read_chats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get all chats of the current user"""
    return [ChatSchema.model_validate(chat) for chat in list_user_chats(db, current_user.id)]

# Declared before /{chat_id} so "find" is not taken for an id
@router.get("/find", response_model=Optional[ChatSchema])
def find_chat_by_participants(
    participant_ids: str = Query(..., description="Two comma separated user ids"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Find the chat between two users, or null"""
    ids = [i.strip() for i in participant_ids.split(",") if i.strip()]
    if len(ids) != 2:
        raise InvalidOperationError("Exactly 2 participant IDs are required")
    if current_user.id not in ids:
        raise PermissionDeniedError("You must be one of the participants")

    other_id = ids[1] if ids[0] == current_user.id else ids[0]
    chat = find_chat(db, current_user.id, other_id)
    return ChatSchema.model_validate(serialize_chat(chat)) if chat else None

@router.post("/get-or-create", response_model=ChatSchema)
def get_or_create(
    chat_in: GetOrCreateChat,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get the chat with another user, creating it if needed"""
    chat, created = get_or_create_chat(db, current_user.id, chat_in.target_user_id)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return ChatSchema.model_validate(serialize_chat(chat))

@router.get("/{chat_id}", response_model=ChatSchema)
def read_chat(
    chat_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    chat = get_chat_for_participant(db, chat_id, current_user.id)
    return ChatSchema.model_validate(serialize_chat(chat))

@router.get("/{chat_id}/messages", response_model=List[MessageSchema])
def read_chat_messages(
    chat_id: str,
    db: Session = Depends(get_db),
    limit: int = Query(settings.MESSAGE_PAGE_SIZE, ge=1, le=settings.MESSAGE_PAGE_MAX),
    before: Optional[str] = None,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get messages in a chat, oldest first, paginated backwards with ``before``"""
    chat = get_chat_for_participant(db, chat_id, current_user.id)
    messages = list_messages(db, chat_id=chat.id, limit=limit, before=before)
    return [MessageSchema.model_validate(message) for message in messages]

@router.post("/{chat_id}/messages", response_model=MessageSchema, status_code=status.HTTP_201_CREATED)
def send_message(
    chat_id: str,
    message_in: MessageCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    realtime=Depends(get_realtime),
    current_user: User = Depends(get_current_user),
) -> Any:
    """
    Send a direct message. Participants with the chat open receive it as
    ``new-dm``; the others get a notification.
    """
    chat = get_chat_for_participant(db, chat_id, current_user.id)
    message = send_chat_message(db, chat, current_user.id, message_in.content, message_in.reply_to_id)
    result = MessageSchema.model_validate(message)

    if realtime is not None:
        background_tasks.add_task(realtime.emit_to_chat, chat.id, "new-dm", result.model_dump(mode="json"))

    for recipient_id in other_participant_ids(chat, current_user.id):
        if realtime is not None and realtime.is_watching(recipient_id, realtime.chat_channel(chat.id)):
            continue
        dispatcher.notify(
            db,
            user_id=recipient_id,
            payload=NewMessage(chat_id=chat.id),
            title="New Message",
            message=f"{display_name(current_user)}: {result.content[:100]}",
            background_tasks=background_tasks,
        )

    return result

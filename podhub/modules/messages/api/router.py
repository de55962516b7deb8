from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from podhub.deps import get_current_user, get_db
from podhub.modules.user_management.models.user import User
from podhub.modules.messages.services.message import delete_message

router = APIRouter()

@router.delete("/{message_id}", response_model=dict)
def delete_message_by_id(
    *,
    db: Session = Depends(get_db),
    message_id: str,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Delete one of your own messages, in a room or a chat"""
    delete_message(db, message_id, current_user.id)

    return {"message": "Message deleted successfully"}

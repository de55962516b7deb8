from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session

from podhub.core.config import settings
from podhub.core.permissions import check_room_access
from podhub.deps import get_current_user, get_db, get_dispatcher
from podhub.modules.user_management.models.user import User
from podhub.modules.user_management.services.user import display_name
from podhub.modules.messages.schemas.message import Message as MessageSchema
from podhub.modules.messages.services.message import list_messages
from podhub.modules.notifications.schemas.notification import (
    RoomJoinAccepted,
    RoomJoinRejected,
    RoomJoinRequested,
)
from podhub.modules.rooms.models.room import JoinRequestStatus
from podhub.modules.rooms.schemas.room import (
    JoinRequest as JoinRequestSchema,
    JoinRequestResult,
    JoinRequestUpdate,
    Room as RoomSchema,
    RoomCreate,
    RoomMemberAdd,
    RoomWithStatus,
)
from podhub.modules.rooms.services.room import (
    add_room_member,
    create_room,
    delete_room,
    get_room_or_404,
    list_join_requests,
    list_pod_rooms,
    remove_room_member,
    request_join,
    resolve_join_request,
)

router = APIRouter()

@router.get("/pod/{pod_id}", response_model=List[RoomWithStatus])
def read_pod_rooms(
    pod_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get all rooms in a pod"""
    return list_pod_rooms(db, pod_id, current_user.id)

@router.post("", response_model=RoomSchema, status_code=status.HTTP_201_CREATED)
def create_new_room(
    *,
    db: Session = Depends(get_db),
    room_in: RoomCreate,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Create a room (pod owner only)"""
    return create_room(db, room_in, current_user.id)

@router.get("/{room_id}", response_model=RoomSchema)
def read_room(
    room_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get a single room"""
    room = get_room_or_404(db, room_id)
    check_room_access(db, room, current_user.id)
    return room

@router.delete("/{room_id}", response_model=dict)
def delete_room_by_id(
    room_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Delete a room (pod owner only)"""
    room = get_room_or_404(db, room_id)
    delete_room(db, room, current_user.id)
    return {"message": "Room deleted successfully"}

@router.get("/{room_id}/messages", response_model=List[MessageSchema])
def read_room_messages(
    room_id: str,
    db: Session = Depends(get_db),
    limit: int = Query(settings.MESSAGE_PAGE_SIZE, ge=1, le=settings.MESSAGE_PAGE_MAX),
    before: Optional[str] = None,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get messages in a room, oldest first, paginated backwards with ``before``"""
    room = get_room_or_404(db, room_id)
    check_room_access(db, room, current_user.id)

    messages = list_messages(db, room_id=room.id, limit=limit, before=before)
    return [MessageSchema.model_validate(message) for message in messages]

@router.post("/{room_id}/members", response_model=dict)
def add_member_to_room(
    *,
    room_id: str,
    member_in: RoomMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Add member to a room (pod owner only)"""
    room = get_room_or_404(db, room_id)
    add_room_member(db, room, current_user.id, member_in.user_id)
    return {"message": "Member added successfully"}

@router.delete("/{room_id}/members/{user_id}", response_model=dict)
def remove_member_from_room(
    room_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Remove member from a room (pod owner only)"""
    room = get_room_or_404(db, room_id)
    remove_room_member(db, room, current_user.id, user_id)
    return {"message": "Member removed successfully"}

@router.post("/{room_id}/join-request", response_model=JoinRequestResult)
def submit_join_request(
    room_id: str,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Join a public room or request to join a private one"""
    room = get_room_or_404(db, room_id)
    outcome = request_join(db, room, current_user.id)

    if outcome.status == JoinRequestStatus.PENDING.value:
        if outcome.created:
            response.status_code = status.HTTP_201_CREATED
        owner_id = room.pod.owner_id
        if owner_id != current_user.id:
            dispatcher.notify(
                db,
                user_id=owner_id,
                payload=RoomJoinRequested(room_id=room.id),
                title="Room Join Request",
                message=f"{display_name(current_user)} requested to join {room.name}",
                background_tasks=background_tasks,
            )

    return {"message": outcome.message, "status": outcome.status}

@router.get("/{room_id}/join-requests", response_model=List[JoinRequestSchema])
def read_join_requests(
    room_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get pending join requests for a room (pod owner only)"""
    room = get_room_or_404(db, room_id)
    return list_join_requests(db, room, current_user.id)

@router.put("/{room_id}/join-requests/{request_id}", response_model=JoinRequestResult)
def process_join_request(
    *,
    room_id: str,
    request_id: str,
    request_in: JoinRequestUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Accept or reject a join request (pod owner only)"""
    room = get_room_or_404(db, room_id)
    join_request = resolve_join_request(db, room, current_user.id, request_id, request_in.status)

    accepted = join_request.status == JoinRequestStatus.ACCEPTED.value
    dispatcher.notify(
        db,
        user_id=join_request.user_id,
        payload=RoomJoinAccepted(room_id=room.id) if accepted else RoomJoinRejected(room_id=room.id),
        title="Room Request Accepted" if accepted else "Room Request Declined",
        message=(
            f"You can now chat in {room.name}" if accepted
            else f"Your request to join {room.name} was declined"
        ),
        background_tasks=background_tasks,
    )

    return {
        "message": f"Join request {join_request.status.lower()} successfully",
        "status": join_request.status,
    }

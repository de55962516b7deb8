from typing import Dict, List, NamedTuple, Optional
import uuid
import logging
from sqlalchemy.orm import Session, joinedload

from podhub.core.errors import InvalidOperationError, NotFoundError, PermissionDeniedError
from podhub.core.permissions import check_pod_access, check_room_member
from podhub.modules.pods.models.pod import Pod
from podhub.modules.rooms.models.room import (
    JoinRequestStatus,
    Room,
    RoomJoinRequest,
    RoomMember,
    RoomPrivacy,
)
from podhub.modules.rooms.schemas.room import RoomCreate

logger = logging.getLogger(__name__)


class JoinOutcome(NamedTuple):
    status: str  # JOINED for public rooms, PENDING for private ones
    message: str
    created: bool


def get_room(db: Session, room_id: str) -> Optional[Room]:
    """Get room by ID"""
    return db.query(Room).filter(Room.id == room_id).first()

def get_room_or_404(db: Session, room_id: str) -> Room:
    room = get_room(db, room_id)
    if not room:
        raise NotFoundError("Room not found")
    return room

def _require_pod_owner(db: Session, pod_id: str, user_id: str, detail: str) -> Pod:
    pod = db.query(Pod).filter(Pod.id == pod_id).first()
    if not pod:
        raise NotFoundError("Pod not found")
    if pod.owner_id != user_id:
        raise PermissionDeniedError(detail)
    return pod

def create_room(db: Session, room_in: RoomCreate, user_id: str) -> Room:
    """Create a room in a pod the user owns"""
    _require_pod_owner(db, room_in.pod_id, user_id, "You are not the owner of this pod")

    room = Room(
        id=str(uuid.uuid4()),
        pod_id=room_in.pod_id,
        name=room_in.name,
        description=room_in.description,
        type=room_in.type.value,
        privacy=room_in.privacy.value,
        created_by=user_id,
    )
    db.add(room)

    # The owner is a member of private rooms from the start
    if room_in.privacy == RoomPrivacy.PRIVATE:
        db.add(RoomMember(id=str(uuid.uuid4()), room_id=room.id, user_id=user_id))

    db.commit()
    db.refresh(room)
    logger.info(f"Room {room.id} ({room.privacy}) created in pod {room.pod_id}")
    return room

def list_pod_rooms(db: Session, pod_id: str, user_id: str) -> List[Dict]:
    """Rooms of a pod annotated with the caller's membership and pending request"""
    access = check_pod_access(db, pod_id, user_id)
    if not access.has_access:
        if not db.query(Pod.id).filter(Pod.id == pod_id).scalar():
            raise NotFoundError("Pod not found")
        raise PermissionDeniedError("You must be a member of this pod to view rooms")

    rooms = db.query(Room).filter(Room.pod_id == pod_id).order_by(Room.created_at.desc()).all()
    room_ids = [room.id for room in rooms]

    member_of = {
        room_id for (room_id,) in db.query(RoomMember.room_id).filter(
            RoomMember.user_id == user_id,
            RoomMember.room_id.in_(room_ids)
        )
    } if room_ids else set()
    pending = {
        room_id for (room_id,) in db.query(RoomJoinRequest.room_id).filter(
            RoomJoinRequest.user_id == user_id,
            RoomJoinRequest.status == JoinRequestStatus.PENDING.value,
            RoomJoinRequest.room_id.in_(room_ids)
        )
    } if room_ids else set()

    result = []
    for room in rooms:
        result.append({
            "id": room.id,
            "pod_id": room.pod_id,
            "name": room.name,
            "description": room.description,
            "type": room.type,
            "privacy": room.privacy,
            "created_by": room.created_by,
            "created_at": room.created_at,
            "is_member": room.id in member_of or access.is_owner,
            "join_request_status": JoinRequestStatus.PENDING.value if room.id in pending else None,
        })
    return result

def delete_room(db: Session, room: Room, user_id: str) -> None:
    _require_pod_owner(db, room.pod_id, user_id, "You are not the owner of this pod")
    db.delete(room)
    db.commit()

def add_room_member(db: Session, room: Room, owner_id: str, user_id: str) -> RoomMember:
    """Add a member to a room directly (pod owner only)"""
    _require_pod_owner(db, room.pod_id, owner_id, "You are not the owner of this pod")

    if check_room_member(db, room.id, user_id):
        raise InvalidOperationError("User is already a member of this room")

    member = RoomMember(id=str(uuid.uuid4()), room_id=room.id, user_id=user_id)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member

def remove_room_member(db: Session, room: Room, owner_id: str, user_id: str) -> None:
    _require_pod_owner(db, room.pod_id, owner_id, "You are not the owner of this pod")

    deleted = db.query(RoomMember).filter(
        RoomMember.room_id == room.id,
        RoomMember.user_id == user_id
    ).delete(synchronize_session=False)
    if not deleted:
        raise NotFoundError("User is not a member of this room")
    db.commit()


# Join requests
def get_join_request(db: Session, room_id: str, user_id: str) -> Optional[RoomJoinRequest]:
    return db.query(RoomJoinRequest).filter(
        RoomJoinRequest.room_id == room_id,
        RoomJoinRequest.user_id == user_id
    ).first()

def request_join(db: Session, room: Room, user_id: str) -> JoinOutcome:
    """
    Join a public room, or ask to join a private one.

    Private rooms keep one request row per user: a rejected request is
    resubmitted by moving the same row back to PENDING.
    """
    access = check_pod_access(db, room.pod_id, user_id)
    if not access.has_access:
        raise PermissionDeniedError("You must be a member of the pod to request joining a room")

    if not room.is_private:
        if check_room_member(db, room.id, user_id):
            raise InvalidOperationError("You are already a member of this room")

        db.add(RoomMember(id=str(uuid.uuid4()), room_id=room.id, user_id=user_id))
        db.commit()
        return JoinOutcome("JOINED", "Joined room successfully", True)

    existing = get_join_request(db, room.id, user_id)
    if existing:
        if existing.status == JoinRequestStatus.PENDING.value:
            raise InvalidOperationError("You already have a pending request for this room")
        if existing.status == JoinRequestStatus.ACCEPTED.value:
            raise InvalidOperationError("Your request has already been accepted")

        existing.status = JoinRequestStatus.PENDING.value
        db.add(existing)
        db.commit()
        logger.info(f"Join request for room {room.id} resubmitted by {user_id}")
        return JoinOutcome(JoinRequestStatus.PENDING.value, "Join request resubmitted", False)

    db.add(RoomJoinRequest(
        id=str(uuid.uuid4()),
        room_id=room.id,
        user_id=user_id,
        status=JoinRequestStatus.PENDING.value,
    ))
    db.commit()
    return JoinOutcome(JoinRequestStatus.PENDING.value, "Join request submitted", True)

def list_join_requests(db: Session, room: Room, owner_id: str) -> List[RoomJoinRequest]:
    """Pending requests, oldest first (pod owner only)"""
    _require_pod_owner(db, room.pod_id, owner_id, "Only the pod owner can view join requests")

    return db.query(RoomJoinRequest).options(joinedload(RoomJoinRequest.user)).filter(
        RoomJoinRequest.room_id == room.id,
        RoomJoinRequest.status == JoinRequestStatus.PENDING.value
    ).order_by(RoomJoinRequest.created_at.asc()).all()

def resolve_join_request(
    db: Session,
    room: Room,
    owner_id: str,
    request_id: str,
    status: JoinRequestStatus,
) -> RoomJoinRequest:
    """Accept or reject a pending request. Accepting adds the room membership."""
    _require_pod_owner(db, room.pod_id, owner_id, "Only the pod owner can manage join requests")

    join_request = db.query(RoomJoinRequest).filter(RoomJoinRequest.id == request_id).first()
    if not join_request:
        raise NotFoundError("Join request not found")

    if join_request.room_id != room.id:
        raise InvalidOperationError("Join request does not belong to this room")

    if join_request.status != JoinRequestStatus.PENDING.value:
        raise InvalidOperationError("This request has already been processed")

    join_request.status = JoinRequestStatus(status).value
    db.add(join_request)

    if join_request.status == JoinRequestStatus.ACCEPTED.value and not check_room_member(db, room.id, join_request.user_id):
        db.add(RoomMember(id=str(uuid.uuid4()), room_id=room.id, user_id=join_request.user_id))

    db.commit()
    db.refresh(join_request)
    logger.info(f"Join request {request_id} for room {room.id} {join_request.status.lower()}")
    return join_request

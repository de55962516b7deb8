# Authorization helpers shared by the REST routers and the Socket.IO server.
# Each check is a plain query against the session; nothing is cached.

from typing import NamedTuple

from sqlalchemy.orm import Session

from podhub.core.errors import PermissionDeniedError
from podhub.modules.chats.models.chat import ChatParticipant
from podhub.modules.pods.models.pod import Pod, PodMember
from podhub.modules.rooms.models.room import Room, RoomMember


class PodAccess(NamedTuple):
    has_access: bool
    is_owner: bool
    is_co_owner: bool
    is_member: bool


def _get_membership(db: Session, pod_id: str, user_id: str):
    return db.query(PodMember).filter(
        PodMember.pod_id == pod_id,
        PodMember.user_id == user_id
    ).first()

def check_pod_membership(db: Session, pod_id: str, user_id: str) -> bool:
    """Check if a user is a member of a pod"""
    return _get_membership(db, pod_id, user_id) is not None

def check_pod_ownership(db: Session, pod_id: str, user_id: str) -> bool:
    """Check if a user is the owner of a pod"""
    owner_id = db.query(Pod.owner_id).filter(Pod.id == pod_id).scalar()
    return owner_id is not None and owner_id == user_id

def check_pod_co_ownership(db: Session, pod_id: str, user_id: str) -> bool:
    """Check if a user is a co-owner of a pod"""
    membership = _get_membership(db, pod_id, user_id)
    return bool(membership and membership.is_co_owner)

def check_pod_access(db: Session, pod_id: str, user_id: str) -> PodAccess:
    """Check if user has access to pod (member, owner, or co-owner)"""
    owner_id = db.query(Pod.owner_id).filter(Pod.id == pod_id).scalar()
    if owner_id is None:
        return PodAccess(False, False, False, False)

    membership = _get_membership(db, pod_id, user_id)
    is_owner = owner_id == user_id
    is_co_owner = bool(membership and membership.is_co_owner)
    is_member = membership is not None

    return PodAccess(is_owner or is_member, is_owner, is_co_owner, is_member)

def check_room_member(db: Session, room_id: str, user_id: str) -> bool:
    return db.query(RoomMember).filter(
        RoomMember.room_id == room_id,
        RoomMember.user_id == user_id
    ).first() is not None

def check_room_access(db: Session, room: Room, user_id: str) -> PodAccess:
    """
    Raise PermissionDeniedError unless the user may read and write in the room.

    Pod members and the owner may use public rooms. Private rooms additionally
    need a room membership unless the user owns the pod.
    """
    access = check_pod_access(db, room.pod_id, user_id)
    if not access.has_access:
        raise PermissionDeniedError("You must be a member of this pod to access this room")

    if room.is_private and not access.is_owner and not check_room_member(db, room.id, user_id):
        raise PermissionDeniedError(
            "This is a private room. You need to be approved by the pod owner to access it."
        )

    return access

def check_chat_participant(db: Session, chat_id: str, user_id: str) -> bool:
    """Check if user is a participant in a chat"""
    return db.query(ChatParticipant).filter(
        ChatParticipant.chat_id == chat_id,
        ChatParticipant.user_id == user_id
    ).first() is not None

from typing import List, Optional, Tuple
import uuid
import logging
from sqlalchemy.orm import Session, joinedload

from podhub.core.config import settings
from podhub.core.errors import InvalidOperationError, NotFoundError, PermissionDeniedError
from podhub.core.permissions import check_pod_access
from podhub.modules.pods.models.pod import Pod, PodMember
from podhub.modules.pods.schemas.pod import PodCreate

logger = logging.getLogger(__name__)

def get_pod(db: Session, pod_id: str) -> Optional[Pod]:
    """Get pod by ID"""
    return db.query(Pod).filter(Pod.id == pod_id).first()

def get_pod_or_404(db: Session, pod_id: str) -> Pod:
    pod = get_pod(db, pod_id)
    if not pod:
        raise NotFoundError("Pod not found")
    return pod

def get_member(db: Session, pod_id: str, user_id: str) -> Optional[PodMember]:
    return db.query(PodMember).filter(
        PodMember.pod_id == pod_id,
        PodMember.user_id == user_id
    ).first()

def _require_owner(pod: Pod, user_id: str, detail: str = "You are not the owner of this pod") -> None:
    if pod.owner_id != user_id:
        raise PermissionDeniedError(detail)

def _require_member(db: Session, pod_id: str, user_id: str) -> PodMember:
    member = get_member(db, pod_id, user_id)
    if not member:
        raise NotFoundError("User is not a member of this pod")
    return member

def create_pod(db: Session, pod_in: PodCreate, owner_id: str) -> Pod:
    """Create a pod; it stays hidden until an administrator approves it"""
    pod = Pod(
        id=str(uuid.uuid4()),
        name=pod_in.name,
        description=pod_in.description,
        owner_id=owner_id,
        is_approved=False,
    )
    db.add(pod)
    db.commit()
    db.refresh(pod)
    return pod

def list_members(db: Session, pod_id: str, user_id: str, team_only: bool = False) -> List[PodMember]:
    """Members of a pod, visible to its members and owner"""
    get_pod_or_404(db, pod_id)
    if not check_pod_access(db, pod_id, user_id).has_access:
        raise PermissionDeniedError("You must be a member of this pod to view its members")

    query = db.query(PodMember).options(joinedload(PodMember.user)).filter(PodMember.pod_id == pod_id)
    if team_only:
        query = query.filter(PodMember.is_team_member.is_(True))
    return query.order_by(PodMember.joined_at.asc()).all()

def join_pod(db: Session, pod: Pod, user_id: str) -> PodMember:
    if get_member(db, pod.id, user_id):
        raise InvalidOperationError("Already a member of this pod")

    member = PodMember(id=str(uuid.uuid4()), pod_id=pod.id, user_id=user_id)
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info(f"User {user_id} joined pod {pod.id}")
    return member

# Share links. Only approved pods can be shared, previewed or joined by code.
def get_pod_by_code(db: Session, shareable_code: str) -> Optional[Pod]:
    return db.query(Pod).filter(Pod.shareable_code == shareable_code).first()

def _shared_pod(db: Session, shareable_code: str, not_found: str, unavailable: str) -> Pod:
    pod = get_pod_by_code(db, shareable_code)
    if not pod:
        raise NotFoundError(not_found)
    if not pod.is_approved:
        raise PermissionDeniedError(unavailable)
    return pod

def get_share_link(db: Session, pod_id: str) -> dict:
    pod = get_pod_or_404(db, pod_id)
    if not pod.is_approved:
        raise PermissionDeniedError("This pod is not available for sharing")

    return {
        "shareable_code": pod.shareable_code,
        "shareable_link": f"{settings.FRONTEND_URL.rstrip('/')}/join/{pod.shareable_code}",
        "pod_name": pod.name,
    }

def join_pod_by_code(db: Session, shareable_code: str, user_id: str) -> Tuple[Pod, PodMember]:
    pod = _shared_pod(db, shareable_code, "Invalid or expired link", "This pod is not available for joining")
    if get_member(db, pod.id, user_id):
        raise InvalidOperationError("You are already a member of this pod")
    if pod.owner_id == user_id:
        raise InvalidOperationError("You are the owner of this pod")

    return pod, join_pod(db, pod, user_id)

def preview_pod(db: Session, shareable_code: str) -> dict:
    """Public view of a pod for people holding its link"""
    pod = _shared_pod(db, shareable_code, "Pod not found", "This pod is not available")
    member_count = db.query(PodMember).filter(PodMember.pod_id == pod.id).count()
    return {
        "id": pod.id,
        "name": pod.name,
        "description": pod.description,
        "owner": pod.owner,
        "member_count": member_count,
        "created_at": pod.created_at,
    }

def leave_pod(db: Session, pod_id: str, user_id: str) -> None:
    member = get_member(db, pod_id, user_id)
    if not member:
        raise NotFoundError("Not a member of this pod")

    db.delete(member)
    db.commit()

def remove_member(db: Session, pod: Pod, owner_id: str, user_id: str) -> None:
    _require_owner(pod, owner_id)
    member = _require_member(db, pod.id, user_id)

    db.delete(member)
    db.commit()

# Role changes. Co-owner and team member are exclusive roles; both
# promotion paths check the other flag.
def promote_to_co_owner(db: Session, pod: Pod, owner_id: str, user_id: str) -> PodMember:
    _require_owner(pod, owner_id, "Only the pod owner can promote members to co-owner")
    member = _require_member(db, pod.id, user_id)

    if member.is_co_owner:
        raise InvalidOperationError("User is already a co-owner")
    if member.is_team_member:
        raise InvalidOperationError("Team members cannot be co-owners. Please remove team member status first.")

    member.is_co_owner = True
    db.add(member)
    db.commit()
    db.refresh(member)
    return member

def demote_co_owner(db: Session, pod: Pod, owner_id: str, user_id: str) -> PodMember:
    _require_owner(pod, owner_id, "Only the pod owner can demote co-owners")
    member = _require_member(db, pod.id, user_id)

    if not member.is_co_owner:
        raise InvalidOperationError("User is not a co-owner")

    member.is_co_owner = False
    db.add(member)
    db.commit()
    db.refresh(member)
    return member

def assign_team_member(db: Session, pod: Pod, owner_id: str, user_id: str) -> PodMember:
    _require_owner(pod, owner_id, "Only the pod owner can assign team members")
    member = _require_member(db, pod.id, user_id)

    if member.is_co_owner:
        raise InvalidOperationError("Co-owners cannot be team members. Please demote from co-owner first.")
    if member.is_team_member:
        raise InvalidOperationError("User is already a team member")

    member.is_team_member = True
    db.add(member)
    db.commit()
    db.refresh(member)
    return member

def remove_team_member(db: Session, pod: Pod, owner_id: str, user_id: str) -> PodMember:
    _require_owner(pod, owner_id, "Only the pod owner can remove team members")
    member = _require_member(db, pod.id, user_id)

    if not member.is_team_member:
        raise InvalidOperationError("User is not a team member")

    member.is_team_member = False
    db.add(member)
    db.commit()
    db.refresh(member)
    return member

def set_approval(db: Session, pod: Pod, approved: bool) -> Pod:
    pod.is_approved = approved
    db.add(pod)
    db.commit()
    db.refresh(pod)
    logger.info(f"Pod {pod.id} {'approved' if approved else 'rejected'}")
    return pod

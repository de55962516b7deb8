from typing import Any, List

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from podhub.deps import get_current_admin, get_current_user, get_db, get_dispatcher
from podhub.modules.user_management.models.user import User
from podhub.modules.user_management.services.user import display_name
from podhub.modules.notifications.schemas.notification import PodApproved, PodJoined, PodRejected
from podhub.modules.pods.schemas.pod import (
    JoinByCodeResult,
    MemberUpdateResult,
    Pod as PodSchema,
    PodCreate,
    PodMember as PodMemberSchema,
    PodPreview,
    PodShareLink,
)
from podhub.modules.pods.services.pod import (
    assign_team_member,
    create_pod,
    demote_co_owner,
    get_pod_or_404,
    get_share_link,
    join_pod,
    join_pod_by_code,
    leave_pod,
    list_members,
    preview_pod,
    promote_to_co_owner,
    remove_member,
    remove_team_member,
    set_approval,
)

router = APIRouter()

def _member_result(message: str, member) -> dict:
    return {"message": message, "member": PodMemberSchema.model_validate(member)}

@router.post("", response_model=PodSchema, status_code=status.HTTP_201_CREATED)
def create_new_pod(
    *,
    db: Session = Depends(get_db),
    pod_in: PodCreate,
    current_user: User = Depends(get_current_user),
) -> Any:
    """Create a pod owned by the current user"""
    return create_pod(db, pod_in, current_user.id)

# Code routes are declared before the /{pod_id} ones
@router.get("/preview/{shareable_code}", response_model=PodPreview)
def read_pod_preview(
    shareable_code: str,
    db: Session = Depends(get_db),
) -> Any:
    """Public details of a pod reached through its share link"""
    return PodPreview.model_validate(preview_pod(db, shareable_code))

@router.post("/join/{shareable_code}", response_model=JoinByCodeResult)
def join_by_code(
    shareable_code: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Join a pod through its share link; the owner is notified"""
    pod, _ = join_pod_by_code(db, shareable_code, current_user.id)

    dispatcher.notify(
        db,
        user_id=pod.owner_id,
        payload=PodJoined(pod_id=pod.id),
        title="New Member Joined",
        message=f"{display_name(current_user)} joined {pod.name} via shared link",
        background_tasks=background_tasks,
    )
    return {"message": "Successfully joined the pod", "pod": PodSchema.model_validate(pod)}

@router.get("/{pod_id}/share", response_model=PodShareLink)
def read_share_link(
    pod_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get the share link of an approved pod"""
    return get_share_link(db, pod_id)

@router.get("/{pod_id}/members", response_model=List[PodMemberSchema])
def read_pod_members(
    pod_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get members of a pod"""
    return [PodMemberSchema.model_validate(m) for m in list_members(db, pod_id, current_user.id)]

@router.get("/{pod_id}/team-members", response_model=List[PodMemberSchema])
def read_team_members(
    pod_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Get team members of a pod"""
    members = list_members(db, pod_id, current_user.id, team_only=True)
    return [PodMemberSchema.model_validate(m) for m in members]

@router.post("/{pod_id}/join", response_model=PodMemberSchema, status_code=status.HTTP_201_CREATED)
def join(
    pod_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Join a pod; the owner is notified"""
    pod = get_pod_or_404(db, pod_id)
    membership = join_pod(db, pod, current_user.id)

    if pod.owner_id != current_user.id:
        dispatcher.notify(
            db,
            user_id=pod.owner_id,
            payload=PodJoined(pod_id=pod.id),
            title="New Member",
            message=f"{display_name(current_user)} joined {pod.name}",
            background_tasks=background_tasks,
        )

    return PodMemberSchema.model_validate(membership)

@router.post("/{pod_id}/leave", response_model=dict)
def leave(
    pod_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Leave a pod"""
    leave_pod(db, pod_id, current_user.id)
    return {"message": "Left pod successfully"}

@router.delete("/{pod_id}/members/{user_id}", response_model=dict)
def remove_pod_member(
    pod_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Remove a member (owner only)"""
    pod = get_pod_or_404(db, pod_id)
    remove_member(db, pod, current_user.id, user_id)
    return {"message": "Member removed successfully"}

@router.post("/{pod_id}/members/{user_id}/promote", response_model=MemberUpdateResult)
def promote_member(
    pod_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Promote member to co-owner (owner only)"""
    pod = get_pod_or_404(db, pod_id)
    member = promote_to_co_owner(db, pod, current_user.id, user_id)
    return _member_result("Member promoted to co-owner successfully", member)

@router.post("/{pod_id}/members/{user_id}/demote", response_model=MemberUpdateResult)
def demote_member(
    pod_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Demote co-owner to regular member (owner only)"""
    pod = get_pod_or_404(db, pod_id)
    member = demote_co_owner(db, pod, current_user.id, user_id)
    return _member_result("Co-owner demoted to regular member successfully", member)

@router.post("/{pod_id}/members/{user_id}/assign-team-member", response_model=MemberUpdateResult)
def assign_team(
    pod_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Assign member as team member (owner only)"""
    pod = get_pod_or_404(db, pod_id)
    member = assign_team_member(db, pod, current_user.id, user_id)
    return _member_result("Member assigned as team member successfully", member)

@router.delete("/{pod_id}/members/{user_id}/remove-team-member", response_model=MemberUpdateResult)
def remove_team(
    pod_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    """Remove team member status (owner only)"""
    pod = get_pod_or_404(db, pod_id)
    member = remove_team_member(db, pod, current_user.id, user_id)
    return _member_result("Team member status removed successfully", member)

@router.post("/{pod_id}/approve", response_model=PodSchema)
def approve_pod(
    pod_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    current_admin: User = Depends(get_current_admin),
) -> Any:
    """Approve a pod (administrators only); the owner is notified"""
    pod = set_approval(db, get_pod_or_404(db, pod_id), True)

    dispatcher.notify(
        db,
        user_id=pod.owner_id,
        payload=PodApproved(pod_id=pod.id),
        title="Pod Approved",
        message=f"Your pod {pod.name} has been approved",
        background_tasks=background_tasks,
    )
    return PodSchema.model_validate(pod)

@router.post("/{pod_id}/reject", response_model=PodSchema)
def reject_pod(
    pod_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher=Depends(get_dispatcher),
    current_admin: User = Depends(get_current_admin),
) -> Any:
    """Reject a pod (administrators only); the owner is notified"""
    pod = set_approval(db, get_pod_or_404(db, pod_id), False)

    dispatcher.notify(
        db,
        user_id=pod.owner_id,
        payload=PodRejected(pod_id=pod.id),
        title="Pod Not Approved",
        message=f"Your pod {pod.name} was not approved",
        background_tasks=background_tasks,
    )
    return PodSchema.model_validate(pod)

import pytest

from podhub.core.errors import PermissionDeniedError
from podhub.core.permissions import (
    check_chat_participant,
    check_pod_access,
    check_pod_co_ownership,
    check_pod_membership,
    check_pod_ownership,
    check_room_access,
)
from podhub.modules.chats.services.chat import get_or_create_chat
from podhub.modules.pods.services.pod import promote_to_co_owner
from podhub.modules.rooms.models.room import RoomPrivacy


def test_pod_roles(db, pod, owner, member, outsider):
    assert check_pod_ownership(db, pod.id, owner.id)
    assert not check_pod_ownership(db, pod.id, member.id)
    assert check_pod_membership(db, pod.id, member.id)
    assert not check_pod_membership(db, pod.id, owner.id)

    assert not check_pod_co_ownership(db, pod.id, member.id)
    promote_to_co_owner(db, pod, owner.id, member.id)
    assert check_pod_co_ownership(db, pod.id, member.id)

    assert check_pod_access(db, pod.id, owner.id) == (True, True, False, False)
    assert check_pod_access(db, pod.id, member.id) == (True, False, True, True)
    assert check_pod_access(db, pod.id, outsider.id).has_access is False
    assert check_pod_access(db, "missing", owner.id) == (False, False, False, False)


def test_room_access_rules(db, pod, owner, member, outsider, make_room):
    public = make_room(pod, name="public")
    private = make_room(pod, privacy=RoomPrivacy.PRIVATE, name="private")

    assert check_room_access(db, public, member.id).is_member
    assert check_room_access(db, private, owner.id).is_owner

    with pytest.raises(PermissionDeniedError):
        check_room_access(db, private, member.id)
    with pytest.raises(PermissionDeniedError):
        check_room_access(db, public, outsider.id)


def test_chat_participant(db, owner, member, outsider):
    chat, _ = get_or_create_chat(db, owner.id, member.id)

    assert check_chat_participant(db, chat.id, member.id)
    assert not check_chat_participant(db, chat.id, outsider.id)

from datetime import datetime, timedelta
import uuid

import pytest

from helpers import auth_headers
from podhub.core.config import settings
from podhub.core.errors import InvalidOperationError, NotFoundError, PermissionDeniedError
from podhub.modules.messages.models.message import Message
from podhub.modules.messages.services.message import (
    create_room_message,
    delete_message,
    list_messages,
)


def _seed(db, room, sender, count):
    """Messages one second apart, M1 oldest"""
    start = datetime(2025, 1, 1, 12, 0, 0)
    messages = []
    for i in range(count):
        message = Message(
            id=str(uuid.uuid4()),
            content=f"M{i + 1}",
            sender_id=sender.id,
            room_id=room.id,
            created_at=start + timedelta(seconds=i),
        )
        db.add(message)
        messages.append(message)
    db.commit()
    return messages


def test_latest_page_is_returned_oldest_first(db, pod, owner, make_room):
    room = make_room(pod)
    _seed(db, room, owner, 3)

    page = list_messages(db, room_id=room.id, limit=2)

    assert [m.content for m in page] == ["M2", "M3"]


def test_before_cursor_returns_strictly_older_messages(db, pod, owner, make_room):
    room = make_room(pod)
    m1, m2, m3 = _seed(db, room, owner, 3)

    page = list_messages(db, room_id=room.id, limit=2, before=m3.id)
    assert [m.content for m in page] == ["M1", "M2"]

    assert list_messages(db, room_id=room.id, limit=2, before=m1.id) == []


def test_new_messages_do_not_shift_an_older_page(db, pod, owner, make_room):
    room = make_room(pod)
    _, m2, _ = _seed(db, room, owner, 3)

    create_room_message(db, room.id, owner.id, "M4")

    assert [m.content for m in list_messages(db, room_id=room.id, limit=5, before=m2.id)] == ["M1"]


def test_unknown_cursor_is_ignored(db, pod, owner, make_room):
    room = make_room(pod)
    _seed(db, room, owner, 3)

    page = list_messages(db, room_id=room.id, limit=10, before="missing")

    assert [m.content for m in page] == ["M1", "M2", "M3"]


def test_limit_is_clamped(db, pod, owner, make_room):
    room = make_room(pod)
    _seed(db, room, owner, 3)

    assert [m.content for m in list_messages(db, room_id=room.id, limit=0)] == ["M3"]
    assert len(list_messages(db, room_id=room.id, limit=settings.MESSAGE_PAGE_MAX + 50)) == 3


def test_pages_are_scoped_to_one_room(db, pod, owner, make_room):
    first = make_room(pod, name="first")
    second = make_room(pod, name="second")
    _seed(db, first, owner, 2)
    _seed(db, second, owner, 1)

    assert [m.content for m in list_messages(db, room_id=second.id)] == ["M1"]


def test_blank_content_is_rejected(db, pod, owner, make_room):
    room = make_room(pod)

    with pytest.raises(InvalidOperationError):
        create_room_message(db, room.id, owner.id, "   ")


def test_non_text_fields_are_rejected(db, pod, owner, make_room):
    room = make_room(pod)

    with pytest.raises(InvalidOperationError):
        create_room_message(db, room.id, owner.id, 123)
    with pytest.raises(InvalidOperationError):
        create_room_message(db, room.id, owner.id, "hi", reply_to_id=["not", "an", "id"])
    assert db.query(Message).count() == 0


def test_reply_must_target_the_same_room(db, pod, owner, make_room):
    room = make_room(pod, name="first")
    other = make_room(pod, name="second")
    [elsewhere] = _seed(db, other, owner, 1)

    with pytest.raises(InvalidOperationError):
        create_room_message(db, room.id, owner.id, "hi", reply_to_id=elsewhere.id)

    [original] = _seed(db, room, owner, 1)
    reply = create_room_message(db, room.id, owner.id, "  agreed  ", reply_to_id=original.id)
    assert reply.content == "agreed"
    assert reply.reply_to.id == original.id


def test_only_sender_deletes(db, pod, owner, member, make_room):
    room = make_room(pod)
    [message] = _seed(db, room, owner, 1)

    with pytest.raises(PermissionDeniedError):
        delete_message(db, message.id, member.id)
    with pytest.raises(NotFoundError):
        delete_message(db, "missing", owner.id)

    delete_message(db, message.id, owner.id)
    assert db.query(Message).count() == 0


def test_room_history_endpoint(client, db, pod, owner, member, outsider, make_room):
    room = make_room(pod)
    m1, m2, m3 = _seed(db, room, owner, 3)
    create_room_message(db, room.id, member.id, "reply", reply_to_id=m3.id)

    response = client.get(
        f"/api/v1/rooms/{room.id}/messages",
        params={"limit": 2},
        headers=auth_headers(member),
    )
    assert response.status_code == 200
    body = response.json()
    assert [m["content"] for m in body] == ["M3", "reply"]
    assert body[1]["sender"]["username"] == "marco"
    assert body[1]["reply_to"]["id"] == m3.id
    assert body[1]["reply_to"]["sender"]["username"] == "olivia"

    older = client.get(
        f"/api/v1/rooms/{room.id}/messages",
        params={"limit": 2, "before": m3.id},
        headers=auth_headers(member),
    )
    assert [m["content"] for m in older.json()] == ["M1", "M2"]

    denied = client.get(f"/api/v1/rooms/{room.id}/messages", headers=auth_headers(outsider))
    assert denied.status_code == 403


def test_delete_endpoint(client, db, pod, owner, member, make_room):
    room = make_room(pod)
    [message] = _seed(db, room, owner, 1)

    assert client.delete(f"/api/v1/messages/{message.id}", headers=auth_headers(member)).status_code == 403
    assert client.delete(f"/api/v1/messages/{message.id}", headers=auth_headers(owner)).status_code == 200
    assert client.delete(f"/api/v1/messages/{message.id}", headers=auth_headers(owner)).status_code == 404

import pytest

from helpers import FakeRealtime, auth_headers
from podhub.core.errors import InvalidOperationError, NotFoundError
from podhub.modules.chats.models.chat import Chat, ChatParticipant
from podhub.modules.chats.services import chat as chat_service
from podhub.modules.chats.services.chat import find_chat, get_or_create_chat, list_user_chats, send_chat_message
from podhub.modules.notifications.models.notification import Notification

API = "/api/v1/chats"


def test_get_or_create_is_idempotent_in_either_order(db, owner, member):
    chat, created = get_or_create_chat(db, owner.id, member.id)
    again, created_again = get_or_create_chat(db, owner.id, member.id)
    reverse, created_reverse = get_or_create_chat(db, member.id, owner.id)

    assert created is True
    assert created_again is False and created_reverse is False
    assert chat.id == again.id == reverse.id
    assert db.query(Chat).count() == 1
    assert db.query(ChatParticipant).count() == 2


def test_get_or_create_rejects_self_and_unknown_users(db, owner):
    with pytest.raises(InvalidOperationError):
        get_or_create_chat(db, owner.id, owner.id)
    with pytest.raises(NotFoundError):
        get_or_create_chat(db, owner.id, "nobody")


def test_find_chat_only_matches_the_exact_pair(db, owner, member, outsider):
    chat, _ = get_or_create_chat(db, owner.id, member.id)
    get_or_create_chat(db, owner.id, outsider.id)

    assert find_chat(db, member.id, owner.id).id == chat.id
    assert find_chat(db, member.id, outsider.id) is None


def test_chats_are_listed_by_recent_activity(db, owner, member, outsider):
    first, _ = get_or_create_chat(db, owner.id, member.id)
    second, _ = get_or_create_chat(db, owner.id, outsider.id)
    send_chat_message(db, first, member.id, "latest news")

    chats = list_user_chats(db, owner.id)

    assert [c["id"] for c in chats] == [first.id, second.id]
    assert chats[0]["last_message"].content == "latest news"
    assert chats[1]["last_message"] is None
    assert {u.username for u in chats[0]["participants"]} == {"olivia", "marco"}


def test_listing_carries_only_the_newest_message_of_each_chat(db, owner, member, outsider):
    first, _ = get_or_create_chat(db, owner.id, member.id)
    second, _ = get_or_create_chat(db, owner.id, outsider.id)
    for content in ("one", "two", "three"):
        send_chat_message(db, first, member.id, content)
    send_chat_message(db, second, outsider.id, "only")

    chats = {c["id"]: c for c in list_user_chats(db, owner.id)}

    assert chats[first.id]["last_message"].content == "three"
    assert chats[first.id]["last_message"].sender.username == "marco"
    assert chats[second.id]["last_message"].content == "only"


def test_concurrent_first_contact_reuses_the_existing_chat(db, monkeypatch, owner, member):
    existing, _ = get_or_create_chat(db, owner.id, member.id)

    # The lookup misses once, as it would for a request racing the first one
    lookups = []
    real_find_chat = chat_service.find_chat

    def stale_find_chat(db, user_id, other_user_id):
        lookups.append(user_id)
        if len(lookups) == 1:
            return None
        return real_find_chat(db, user_id, other_user_id)

    monkeypatch.setattr(chat_service, "find_chat", stale_find_chat)

    chat, created = get_or_create_chat(db, member.id, owner.id)

    assert created is False
    assert chat.id == existing.id
    assert db.query(Chat).count() == 1
    assert db.query(ChatParticipant).count() == 2


def test_get_or_create_endpoint_status_codes(client, owner, member):
    created = client.post(f"{API}/get-or-create", json={"target_user_id": member.id}, headers=auth_headers(owner))
    existing = client.post(f"{API}/get-or-create", json={"target_user_id": owner.id}, headers=auth_headers(member))

    assert created.status_code == 201
    assert existing.status_code == 200
    assert created.json()["id"] == existing.json()["id"]
    assert {p["username"] for p in created.json()["participants"]} == {"olivia", "marco"}

    assert client.post(f"{API}/get-or-create", json={"target_user_id": owner.id}, headers=auth_headers(owner)).status_code == 400


def test_find_endpoint(client, db, owner, member, outsider):
    chat, _ = get_or_create_chat(db, owner.id, member.id)

    found = client.get(f"{API}/find", params={"participant_ids": f"{member.id},{owner.id}"}, headers=auth_headers(owner))
    assert found.status_code == 200
    assert found.json()["id"] == chat.id

    missing = client.get(f"{API}/find", params={"participant_ids": f"{owner.id},{outsider.id}"}, headers=auth_headers(owner))
    assert missing.json() is None

    not_mine = client.get(f"{API}/find", params={"participant_ids": f"{owner.id},{member.id}"}, headers=auth_headers(outsider))
    assert not_mine.status_code == 403

    bad = client.get(f"{API}/find", params={"participant_ids": owner.id}, headers=auth_headers(owner))
    assert bad.status_code == 400


def test_send_and_read_direct_messages(client, app, db, owner, member, outsider):
    realtime = FakeRealtime()
    app.state.realtime = realtime
    chat, _ = get_or_create_chat(db, owner.id, member.id)

    sent = client.post(f"{API}/{chat.id}/messages", json={"content": "hello there"}, headers=auth_headers(owner))
    assert sent.status_code == 201
    assert sent.json()["chat_id"] == chat.id
    assert sent.json()["room_id"] is None

    realtime.emit_to_chat.assert_awaited_once()
    chat_id, event, data = realtime.emit_to_chat.await_args.args
    assert (chat_id, event, data["content"]) == (chat.id, "new-dm", "hello there")

    # The recipient did not have the chat open
    db.expire_all()
    notification = db.query(Notification).filter(Notification.user_id == member.id).one()
    assert notification.type == "message"
    assert notification.linked_id == chat.id

    history = client.get(f"{API}/{chat.id}/messages", headers=auth_headers(member))
    assert [m["content"] for m in history.json()] == ["hello there"]

    assert client.get(f"{API}/{chat.id}", headers=auth_headers(outsider)).status_code == 403
    assert client.post(f"{API}/{chat.id}/messages", json={"content": "hi"}, headers=auth_headers(outsider)).status_code == 403
    assert client.get(f"{API}/missing", headers=auth_headers(owner)).status_code == 404


def test_list_endpoint(client, db, owner, member):
    chat, _ = get_or_create_chat(db, owner.id, member.id)

    response = client.get(API, headers=auth_headers(member))

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [chat.id]

import os
import uuid
from typing import List, Optional
from unittest.mock import AsyncMock

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
import socketio
from fastapi.testclient import TestClient

from helpers import FakePushSender
from podhub.db import base  # noqa: F401
from podhub.db.session import Base, create_db_engine, create_session_factory
from podhub.main import create_app
from podhub.modules.pods.models.pod import Pod, PodMember
from podhub.modules.rooms.models.room import Room, RoomMember, RoomPrivacy
from podhub.modules.user_management.models.user import User
from podhub.realtime.server import RealtimeServer


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def push_sender():
    return FakePushSender()


@pytest.fixture
def app(session_factory, push_sender):
    return create_app(session_factory=session_factory, push_sender=push_sender)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def sio():
    server = socketio.AsyncServer(async_mode="asgi")
    server.emit = AsyncMock()
    server.enter_room = AsyncMock()
    server.leave_room = AsyncMock()
    return server


@pytest.fixture
def realtime(app, sio, session_factory):
    """Socket server sharing the app's dispatcher, with a mocked transport"""
    server = RealtimeServer(sio, session_factory, dispatcher=app.state.dispatcher)
    app.state.dispatcher._realtime = server
    app.state.realtime = server
    return server


@pytest.fixture
def make_user(db):
    def _make_user(username: str, is_admin: bool = False, is_active: bool = True) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=f"{username}@example.com",
            username=username,
            full_name=username.title(),
            is_admin=is_admin,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_pod(db):
    def _make_pod(owner: User, members: Optional[List[User]] = None, name: str = "Founders") -> Pod:
        pod = Pod(id=str(uuid.uuid4()), name=name, owner_id=owner.id, is_approved=True)
        db.add(pod)
        for member in members or []:
            db.add(PodMember(id=str(uuid.uuid4()), pod_id=pod.id, user_id=member.id))
        db.commit()
        db.refresh(pod)
        return pod
    return _make_pod


@pytest.fixture
def make_room(db):
    def _make_room(pod: Pod, privacy: RoomPrivacy = RoomPrivacy.PUBLIC, name: str = "general") -> Room:
        room = Room(
            id=str(uuid.uuid4()),
            pod_id=pod.id,
            name=name,
            privacy=privacy.value,
            created_by=pod.owner_id,
        )
        db.add(room)
        if privacy == RoomPrivacy.PRIVATE:
            db.add(RoomMember(id=str(uuid.uuid4()), room_id=room.id, user_id=pod.owner_id))
        db.commit()
        db.refresh(room)
        return room
    return _make_room


@pytest.fixture
def owner(make_user):
    return make_user("olivia")


@pytest.fixture
def member(make_user):
    return make_user("marco")


@pytest.fixture
def outsider(make_user):
    return make_user("xena")


@pytest.fixture
def pod(make_pod, owner, member):
    return make_pod(owner, members=[member])


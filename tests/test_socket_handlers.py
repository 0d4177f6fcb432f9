import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import socketio

from app.api.auth.auth import create_access_token
from app.models.chat_group_model import ChatGroup, ChatGroupMember
from app.models.message_model import Message
from app.models.user_model import UserRole
from app.realtime.socket_server import ChatGateway


class FakeServer:
    """Records what the gateway emits; sessions are kept per sid."""

    def __init__(self):
        self.sessions = {}
        self.emit = AsyncMock()
        self.enter_room = AsyncMock()
        self.leave_room = AsyncMock()
        self.on = MagicMock()

    async def save_session(self, sid, session):
        self.sessions[sid] = session

    async def get_session(self, sid):
        return self.sessions.get(sid, {})

    def emitted(self, event):
        return [call for call in self.emit.await_args_list if call.args[0] == event]


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def gateway(server, session_factory):
    return ChatGateway(server, session_factory=session_factory)


def connect(gateway, user, sid="sid-1"):
    asyncio.run(gateway.connect(sid, {}, {"token": create_access_token(user.id)}))


def test_register_binds_every_event(gateway, server):
    gateway.register()
    events = {call.args[0] for call in server.on.call_args_list}
    assert {"connect", "send_message", "send_group_message", "join_group", "typing_start"} <= events


def test_connect_refused_without_valid_token(gateway):
    with pytest.raises(socketio.exceptions.ConnectionRefusedError):
        asyncio.run(gateway.connect("sid-1", {}, None))
    with pytest.raises(socketio.exceptions.ConnectionRefusedError):
        asyncio.run(gateway.connect("sid-1", {}, {"token": "garbage"}))


def test_connect_refused_for_inactive_user(gateway, make_user):
    user = make_user(is_active=False)
    with pytest.raises(socketio.exceptions.ConnectionRefusedError):
        connect(gateway, user)


def test_connect_joins_personal_room_and_announces_presence(gateway, server, make_user):
    user = make_user()
    connect(gateway, user)

    assert server.sessions["sid-1"]["user_id"] == user.id
    server.enter_room.assert_awaited_with("sid-1", f"user_{user.id}")
    status = server.emitted("user_status")[0]
    assert status.args[1] == {"user_id": user.id, "status": "online"}
    assert status.kwargs["skip_sid"] == "sid-1"

    asyncio.run(gateway.disconnect("sid-1", "client disconnect"))
    assert server.emitted("user_status_change")[-1].args[1] == {"user_id": user.id, "online": False}


def test_join_user_room_only_own(gateway, server, make_user):
    user = make_user()
    connect(gateway, user)
    server.enter_room.reset_mock()

    asyncio.run(gateway.join_user_room("sid-1", user.id + 1))
    server.enter_room.assert_not_awaited()
    assert server.emitted("message_error")

    asyncio.run(gateway.join_user_room("sid-1", str(user.id)))
    server.enter_room.assert_awaited_once_with("sid-1", f"user_{user.id}")


def test_send_message_acknowledges_and_delivers(gateway, server, make_user, db):
    alice = make_user()
    bob = make_user()
    connect(gateway, alice)

    asyncio.run(gateway.send_message("sid-1", {"recipient_id": bob.id, "message_text": "hey", "client_id": "c-7"}))

    delivered = server.emitted("new_message")[0]
    assert delivered.kwargs["to"] == f"user_{bob.id}"
    assert delivered.args[1]["message_text"] == "hey"

    ack = server.emitted("message_sent")[0]
    assert ack.kwargs["to"] == f"user_{alice.id}"
    assert ack.args[1]["client_id"] == "c-7"
    assert ack.args[1]["message"]["id"] == delivered.args[1]["id"]
    assert db.query(Message).count() == 1


def test_send_message_error_echoes_client_id(gateway, server, make_user, db):
    alice = make_user()
    connect(gateway, alice)

    data = {"recipient_id": alice.id, "message_text": "me", "client_id": "c-8"}
    asyncio.run(gateway.send_message("sid-1", data))

    error = server.emitted("message_error")[0]
    assert error.kwargs["to"] == "sid-1"
    assert error.args[1] == {"error": "Cannot send message to yourself", "client_id": "c-8", "original_message": data}
    assert server.emitted("message_sent") == []
    assert db.query(Message).count() == 0


def test_send_message_with_malformed_payload(gateway, server, make_user):
    alice = make_user()
    connect(gateway, alice)
    asyncio.run(gateway.send_message("sid-1", {"message_text": "no recipient", "client_id": "c-9"}))
    error = server.emitted("message_error")[0].args[1]
    assert error["error"] == "Invalid message payload"
    assert error["client_id"] == "c-9"


def _group(db, manager, members):
    group = ChatGroup(manager_id=manager.id, name="Crew", description="")
    db.add(group)
    db.flush()
    for member in members:
        db.add(ChatGroupMember(group_id=group.id, user_id=member.id))
    db.commit()
    return group.id


def test_join_group_requires_membership(gateway, server, make_user, db):
    manager = make_user(role=UserRole.manager)
    member = make_user()
    outsider = make_user()
    group_id = _group(db, manager, [member])

    connect(gateway, outsider, sid="sid-out")
    asyncio.run(gateway.join_group("sid-out", group_id))
    assert server.emitted("message_error")[0].args[1]["error"] == "Not a member of this group"

    connect(gateway, member, sid="sid-in")
    asyncio.run(gateway.join_group("sid-in", str(group_id)))
    server.enter_room.assert_awaited_with("sid-in", f"group_{group_id}")

    asyncio.run(gateway.leave_group("sid-in", group_id))
    server.leave_room.assert_awaited_once_with("sid-in", f"group_{group_id}")


def test_send_group_message_broadcasts_to_room(gateway, server, make_user, db):
    manager = make_user(role=UserRole.manager)
    member = make_user()
    outsider = make_user()
    group_id = _group(db, manager, [member])

    connect(gateway, member)
    asyncio.run(gateway.send_group_message("sid-1", {"group_id": group_id, "message_text": "hello", "client_id": "g-1"}))

    broadcast = server.emitted("new_group_message")[0]
    assert broadcast.kwargs == {"to": f"group_{group_id}", "skip_sid": "sid-1"}
    ack = server.emitted("group_message_sent")[0]
    assert ack.kwargs["to"] == "sid-1"
    assert ack.args[1]["client_id"] == "g-1"

    connect(gateway, outsider, sid="sid-2")
    asyncio.run(gateway.send_group_message("sid-2", {"group_id": group_id, "message_text": "let me in", "client_id": "g-2"}))
    error = server.emitted("message_error")[0].args[1]
    assert error["error"] == "Not a member of this group"
    assert error["client_id"] == "g-2"


def test_typing_indicators(gateway, server, make_user):
    alice = make_user()
    connect(gateway, alice)

    asyncio.run(gateway.typing_start("sid-1", {"recipient_id": 42}))
    asyncio.run(gateway.typing_stop("sid-1", {"recipient_id": 42}))
    asyncio.run(gateway.typing_start("sid-1", {}))

    typing = server.emitted("user_typing")
    assert [call.args[1]["typing"] for call in typing] == [True, False]
    assert typing[0].kwargs["to"] == "user_42"

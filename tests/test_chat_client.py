import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.client.chat_client import ChatClient, MessageSendError, MessageSendTimeout

ME = 1
BOB = 2


class FakeSocket:
    def __init__(self):
        self.handlers = {}
        self.emit = AsyncMock()
        self.connect = AsyncMock()
        self.disconnect = AsyncMock()

    def on(self, event, handler):
        self.handlers[event] = handler


def server_message(message_id, text, sender_id=ME, recipient_id=BOB, created_at="2026-10-17T10:00:00"):
    return {
        "id": message_id,
        "sender_id": sender_id,
        "recipient_id": recipient_id,
        "message_text": text,
        "message_type": "text",
        "created_at": created_at,
    }


@pytest.fixture
def sock():
    return FakeSocket()


@pytest.fixture
def chat(sock):
    return ChatClient("http://localhost:5000/", "token", user_id=ME, ack_timeout=0.05, sio=sock, http=MagicMock())


def test_handlers_are_registered(chat, sock):
    assert {"message_sent", "message_error", "new_message", "new_group_message", "group_message_sent"} <= set(
        sock.handlers
    )


def test_send_message_reconciles_with_server_row(chat, sock):
    async def ack(event, payload):
        assert event == "send_message"
        # the optimistic copy is visible while the send is in flight
        assert chat.state.messages[BOB][0]["pending"] is True
        await sock.handlers["message_sent"]({
            "success": True,
            "client_id": payload["client_id"],
            "message": server_message(10, "hello"),
        })

    sock.emit.side_effect = ack
    message = asyncio.run(chat.send_message(BOB, " hello "))

    assert message["id"] == 10
    assert chat.state.messages[BOB] == [server_message(10, "hello")]
    assert chat.state.pending == {}
    conversation = chat.state.find_conversation(BOB)
    assert conversation["last_message"] == "hello"
    assert conversation["last_message_time"] == "2026-10-17T10:00:00"


def test_send_message_error_rolls_back(chat, sock):
    chat.state.conversations = [{
        "other_user_id": BOB,
        "last_message": "earlier",
        "last_message_time": "2026-10-16T09:00:00",
        "last_sender_id": BOB,
        "unread_count": 0,
    }]

    async def reject(event, payload):
        await sock.handlers["message_error"]({"error": "Recipient not found", "client_id": payload["client_id"]})

    sock.emit.side_effect = reject
    with pytest.raises(MessageSendError, match="Recipient not found"):
        asyncio.run(chat.send_message(BOB, "hello"))

    assert chat.state.messages[BOB] == []
    assert chat.state.pending == {}
    assert chat.state.find_conversation(BOB)["last_message"] == "earlier"


def test_send_message_timeout_rolls_back(chat):
    with pytest.raises(MessageSendTimeout):
        asyncio.run(chat.send_message(BOB, "anyone there?"))

    assert chat.state.messages[BOB] == []
    assert chat.state.conversations == []
    assert chat.state.pending == {}


def test_emit_failure_rolls_back(chat, sock):
    sock.emit.side_effect = ConnectionError("not connected")
    with pytest.raises(MessageSendError):
        asyncio.run(chat.send_message(BOB, "hello"))
    assert chat.state.messages[BOB] == []


def test_send_message_rejects_invalid_input(chat, sock):
    with pytest.raises(ValueError):
        asyncio.run(chat.send_message(BOB, "   "))
    with pytest.raises(ValueError):
        asyncio.run(chat.send_message(ME, "note to self"))
    sock.emit.assert_not_awaited()


def test_message_arriving_mid_send_survives_timeout(chat, sock):
    incoming = server_message(77, "you there?", sender_id=BOB, recipient_id=ME)

    async def deliver_incoming(event, payload):
        await sock.handlers["new_message"](incoming)

    sock.emit.side_effect = deliver_incoming
    with pytest.raises(MessageSendTimeout):
        asyncio.run(chat.send_message(BOB, "mine"))

    assert [m["id"] for m in chat.state.messages[BOB]] == [77]
    conversation = chat.state.find_conversation(BOB)
    assert conversation["last_message"] == "you there?"
    assert conversation["last_sender_id"] == BOB
    assert conversation["unread_count"] == 1


def test_concurrent_sends_keep_the_confirmed_one(chat, sock):
    async def ack_second_only(event, payload):
        if payload["message_text"] == "second":
            await sock.handlers["message_sent"]({
                "success": True,
                "client_id": payload["client_id"],
                "message": server_message(11, "second"),
            })

    async def send_both():
        return await asyncio.gather(
            chat.send_message(BOB, "first"), chat.send_message(BOB, "second"), return_exceptions=True
        )

    sock.emit.side_effect = ack_second_only
    first, second = asyncio.run(send_both())

    assert isinstance(first, MessageSendTimeout)
    assert second["id"] == 11
    assert [m["id"] for m in chat.state.messages[BOB]] == [11]
    assert chat.state.find_conversation(BOB)["last_message"] == "second"
    assert chat.state.pending == {}


def test_ack_from_another_session_is_merged(chat, sock):
    stray = server_message(5, "sent from my phone")

    asyncio.run(sock.handlers["message_sent"]({"client_id": "unknown", "message": stray}))
    asyncio.run(sock.handlers["message_sent"]({"success": True, "message": dict(stray)}))

    assert chat.state.messages[BOB] == [stray]
    conversation = chat.state.find_conversation(BOB)
    assert conversation["last_message"] == "sent from my phone"
    assert conversation["unread_count"] == 0


def test_error_with_unknown_client_id_is_ignored(chat, sock):
    asyncio.run(sock.handlers["message_error"]({"client_id": "unknown", "error": "boom"}))
    assert chat.state.messages == {}
    assert chat.state.conversations == []

def test_incoming_messages_are_deduplicated(chat, sock):
    incoming = server_message(20, "hi there", sender_id=BOB, recipient_id=ME)

    asyncio.run(sock.handlers["new_message"](incoming))
    asyncio.run(sock.handlers["new_message"](dict(incoming)))

    assert [m["id"] for m in chat.state.messages[BOB]] == [20]
    conversation = chat.state.find_conversation(BOB)
    assert conversation["unread_count"] == 1
    assert conversation["last_sender_id"] == BOB


def test_conversations_sorted_by_last_activity(chat, sock):
    carol = 3
    asyncio.run(sock.handlers["new_message"](
        server_message(1, "older", sender_id=BOB, recipient_id=ME, created_at="2026-10-17T08:00:00")
    ))
    asyncio.run(sock.handlers["new_message"](
        server_message(2, "newer", sender_id=carol, recipient_id=ME, created_at="2026-10-17T09:00:00")
    ))
    assert [c["other_user_id"] for c in chat.state.conversations] == [carol, BOB]


def test_send_group_message_reconciles(chat, sock):
    chat.state.groups = [{"id": 7, "name": "Crew", "created_at": "2026-10-01T00:00:00"}]

    async def ack(event, payload):
        assert event == "send_group_message"
        await sock.handlers["group_message_sent"]({
            "success": True,
            "client_id": payload["client_id"],
            "message": {
                "id": 30,
                "group_id": 7,
                "sender_id": ME,
                "sender_name": "Me Myself",
                "message_text": "team",
                "message_type": "text",
                "created_at": "2026-10-17T11:00:00",
            },
        })

    sock.emit.side_effect = ack
    asyncio.run(chat.send_group_message(7, "team"))

    assert [m["id"] for m in chat.state.group_messages[7]] == [30]
    group = chat.state.find_group(7)
    assert group["last_message"] == "team"
    assert group["last_sender_name"] == "Me Myself"


def test_group_send_error_restores_group_summary(chat, sock):
    chat.state.groups = [{"id": 7, "name": "Crew", "last_message": "before", "created_at": "2026-10-01T00:00:00"}]

    async def reject(event, payload):
        await sock.handlers["message_error"]({"error": "Not a member of this group", "client_id": payload["client_id"]})

    sock.emit.side_effect = reject
    with pytest.raises(MessageSendError, match="Not a member"):
        asyncio.run(chat.send_group_message(7, "hello"))
    assert chat.state.group_messages[7] == []
    assert chat.state.find_group(7)["last_message"] == "before"


def test_group_message_arriving_mid_send_survives_error(chat, sock):
    chat.state.groups = [{"id": 7, "name": "Crew", "last_message": "before", "created_at": "2026-10-01T00:00:00"}]
    incoming = {
        "id": 31,
        "group_id": 7,
        "sender_id": BOB,
        "sender_name": "Bob Builder",
        "message_text": "meeting at 3",
        "message_type": "text",
        "created_at": "2026-10-17T12:00:00",
    }

    async def deliver_then_reject(event, payload):
        await sock.handlers["new_group_message"](incoming)
        await sock.handlers["message_error"]({"error": "Not a member of this group", "client_id": payload["client_id"]})

    sock.emit.side_effect = deliver_then_reject
    with pytest.raises(MessageSendError):
        asyncio.run(chat.send_group_message(7, "hello"))

    assert [m["id"] for m in chat.state.group_messages[7]] == [31]
    group = chat.state.find_group(7)
    assert group["last_message"] == "meeting at 3"
    assert group["last_sender_name"] == "Bob Builder"


def test_open_conversation_loads_history(chat):
    response = MagicMock()
    response.json.return_value = {
        "messages": [server_message(3, "b", created_at="2026-10-17T10:01:00"), server_message(2, "a")],
        "next_cursor": 2,
    }
    chat.http.request.return_value = response
    chat.state.conversations = [{"other_user_id": BOB, "unread_count": 4, "last_message_time": None}]

    assert chat.open_conversation(BOB) == 2
    chat.http.request.assert_called_with(
        "GET", "http://localhost:5000/api/chat/conversation/2", timeout=10, params=None
    )
    assert [m["id"] for m in chat.state.messages[BOB]] == [2, 3]
    assert chat.state.find_conversation(BOB)["unread_count"] == 0


def test_connect_sends_token(chat, sock):
    asyncio.run(chat.connect())
    sock.connect.assert_awaited_once_with(
        "http://localhost:5000", auth={"token": "token"}, transports=["websocket", "polling"]
    )

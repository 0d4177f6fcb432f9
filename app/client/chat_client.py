# app/client/chat_client.py
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
import socketio # type: ignore

from app.client.chat_state import ChatState, PendingSend

logger = logging.getLogger(__name__)

ACK_TIMEOUT = 5.0
HTTP_TIMEOUT = 10


class MessageSendError(Exception):
    """The server rejected an optimistic send."""


class MessageSendTimeout(MessageSendError):
    """No acknowledgement arrived in time; the optimistic insert was rolled back."""


class ChatClient:
    """
    Chat client speaking the REST API and the Socket.IO protocol.

    Sends are optimistic: the message shows up in `state` at once under a
    temporary id and is swapped for the server row on `message_sent`, or
    removed again on `message_error` or timeout.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        user_id: Optional[int] = None,
        ack_timeout: float = ACK_TIMEOUT,
        sio: Optional[socketio.AsyncClient] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user_id = user_id
        self.ack_timeout = ack_timeout
        self.state = ChatState()

        self.http = http or requests.Session()
        self.http.headers.update({"Authorization": f"Bearer {token}"})

        self.sio = sio or socketio.AsyncClient(reconnection=True)
        self.sio.on("message_sent", self._on_message_sent)
        self.sio.on("group_message_sent", self._on_group_message_sent)
        self.sio.on("message_error", self._on_message_error)
        self.sio.on("new_message", self._on_new_message)
        self.sio.on("new_group_message", self._on_new_group_message)

    # --- REST ---

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = self.http.request(method, f"{self.base_url}/api{path}", timeout=HTTP_TIMEOUT, **kwargs)
        response.raise_for_status()
        return response.json()

    def fetch_me(self) -> Dict[str, Any]:
        user = self._request("GET", "/auth/me")["user"]
        self.user_id = user["id"]
        return user

    def fetch_conversations(self) -> List[Dict[str, Any]]:
        self.state.conversations = self._request("GET", "/chat/conversations")["conversations"]
        return self.state.conversations

    def fetch_users(self) -> List[Dict[str, Any]]:
        self.state.users = self._request("GET", "/chat/users")["users"]
        return self.state.users

    def fetch_groups(self) -> List[Dict[str, Any]]:
        self.state.groups = self._request("GET", "/chat-groups")["groups"]
        return self.state.groups

    def open_conversation(self, other_user_id: int, before_id: Optional[int] = None) -> Optional[int]:
        """Load one page of history into state; returns the cursor of the next older page."""
        params = {"before_id": before_id} if before_id else None
        data = self._request("GET", f"/chat/conversation/{other_user_id}", params=params)
        self.state.set_messages(other_user_id, data["messages"])
        entry = self.state.find_conversation(other_user_id)
        if entry is not None:
            entry["unread_count"] = 0
        return data.get("next_cursor")

    def open_group(self, group_id: int, before_id: Optional[int] = None) -> Optional[int]:
        params = {"before_id": before_id} if before_id else None
        data = self._request("GET", f"/chat-groups/{group_id}/messages", params=params)
        self.state.set_group_messages(group_id, data["messages"])
        return data.get("next_cursor")

    def create_group(self, name: str, description: str = "", members: Optional[List[int]] = None) -> Dict[str, Any]:
        group = self._request(
            "POST", "/chat-groups", json={"name": name, "description": description, "members": members or []}
        )["group"]
        self.state.groups.append(group)
        return group

    # --- socket ---

    async def connect(self) -> None:
        if self.user_id is None:
            self.fetch_me()
        await self.sio.connect(self.base_url, auth={"token": self.token}, transports=["websocket", "polling"])

    async def disconnect(self) -> None:
        await self.sio.disconnect()

    async def join_group(self, group_id: int) -> None:
        await self.sio.emit("join_group", group_id)

    async def leave_group(self, group_id: int) -> None:
        await self.sio.emit("leave_group", group_id)

    async def _await_ack(self, client_id: str, event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        pending = self.state.pending[client_id]
        try:
            await self.sio.emit(event, payload)
            return await asyncio.wait_for(pending.future, timeout=self.ack_timeout)
        except asyncio.TimeoutError:
            self._rollback(client_id)
            raise MessageSendTimeout(f"No acknowledgement for {event} within {self.ack_timeout}s")
        except MessageSendError:
            raise
        except Exception as e:
            self._rollback(client_id)
            raise MessageSendError(str(e)) from e

    async def send_message(self, recipient_id: int, text: str) -> Dict[str, Any]:
        """
        Optimistically send a direct message and wait for the server row.
        Raises MessageSendError or MessageSendTimeout after rolling back.
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Message text is required")
        if recipient_id == self.user_id:
            raise ValueError("Cannot send message to yourself")

        client_id = uuid.uuid4().hex
        temp_id = f"temp-{client_id}"
        now = datetime.now().isoformat()
        self.state.add_message(recipient_id, {
            "id": temp_id,
            "sender_id": self.user_id,
            "recipient_id": recipient_id,
            "message_text": text,
            "message_type": "text",
            "created_at": now,
            "pending": True,
        })
        previous = self.state.update_conversation(recipient_id, text, now, self.user_id)
        future = asyncio.get_running_loop().create_future()
        self.state.pending[client_id] = PendingSend("direct", recipient_id, temp_id, previous, future)

        return await self._await_ack(client_id, "send_message", {
            "recipient_id": recipient_id,
            "message_text": text,
            "message_type": "text",
            "client_id": client_id,
        })

    async def send_group_message(self, group_id: int, text: str) -> Dict[str, Any]:
        text = (text or "").strip()
        if not text:
            raise ValueError("Message text is required")

        client_id = uuid.uuid4().hex
        temp_id = f"temp-{client_id}"
        now = datetime.now().isoformat()
        self.state.add_group_message(group_id, {
            "id": temp_id,
            "group_id": group_id,
            "sender_id": self.user_id,
            "message_text": text,
            "message_type": "text",
            "created_at": now,
            "pending": True,
        })
        previous = self.state.update_group(group_id, text, now, self.user_id)
        future = asyncio.get_running_loop().create_future()
        self.state.pending[client_id] = PendingSend("group", group_id, temp_id, previous, future)

        return await self._await_ack(client_id, "send_group_message", {
            "group_id": group_id,
            "message_text": text,
            "message_type": "text",
            "client_id": client_id,
        })

    def _rollback(self, client_id: str) -> Optional[PendingSend]:
        pending = self.state.pending.pop(client_id, None)
        if pending is None:
            return None
        if pending.kind == "direct":
            self.state.remove_message(pending.target_id, pending.temp_id)
            self.state.revert_conversation(pending.target_id, pending.previous)
        else:
            self.state.remove_group_message(pending.target_id, pending.temp_id)
            self.state.revert_group(pending.target_id, pending.previous)
        return pending

    # --- socket events ---

    async def _on_message_sent(self, data: Dict[str, Any]) -> None:
        data = data or {}
        message = data.get("message")
        pending = self.state.pending.get(data.get("client_id"))
        if pending is None or pending.kind != "direct":
            # sent from another session of ours, or over HTTP
            if message:
                await self._on_new_message(message)
            return
        del self.state.pending[data["client_id"]]
        self.state.replace_message(pending.target_id, pending.temp_id, message)
        self.state.update_conversation(
            pending.target_id, message["message_text"], message["created_at"], message["sender_id"]
        )
        if not pending.future.done():
            pending.future.set_result(message)

    async def _on_group_message_sent(self, data: Dict[str, Any]) -> None:
        data = data or {}
        message = data.get("message")
        pending = self.state.pending.get(data.get("client_id"))
        if pending is None or pending.kind != "group":
            if message:
                await self._on_new_group_message(message)
            return
        del self.state.pending[data["client_id"]]
        self.state.replace_group_message(pending.target_id, pending.temp_id, message)
        self.state.update_group(
            pending.target_id, message["message_text"], message["created_at"], message["sender_id"],
            message.get("sender_name"),
        )
        if not pending.future.done():
            pending.future.set_result(message)

    async def _on_message_error(self, data: Dict[str, Any]) -> None:
        data = data or {}
        pending = self._rollback(data.get("client_id"))
        if pending is None:
            logger.warning(f"Socket error: {data.get('error')}")
            return
        if not pending.future.done():
            pending.future.set_exception(MessageSendError(data.get("error") or "Failed to send message"))

    async def _on_new_message(self, message: Dict[str, Any]) -> None:
        sender_id = message["sender_id"]
        other_id = message["recipient_id"] if sender_id == self.user_id else sender_id
        if not self.state.add_message(other_id, message):
            return
        self.state.update_conversation(
            other_id,
            message["message_text"],
            message["created_at"],
            sender_id,
            unread_increment=0 if sender_id == self.user_id else 1,
        )

    async def _on_new_group_message(self, message: Dict[str, Any]) -> None:
        group_id = message["group_id"]
        if not self.state.add_group_message(group_id, message):
            return
        self.state.update_group(
            group_id, message["message_text"], message["created_at"], message["sender_id"],
            message.get("sender_name"),
        )

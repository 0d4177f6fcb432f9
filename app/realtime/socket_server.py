# app/realtime/socket_server.py
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import socketio # type: ignore
from fastapi import HTTPException
from pydantic import ValidationError

from app.api.auth.auth import load_current_user
from app.config import CLIENT_URL, SOCKETIO_MESSAGE_QUEUE
from app.database import SessionLocal
from app.models.message_model import MessageType
from app.schemas.chat_group_schema import GroupMessageCreate
from app.services import chat_group_service, chat_service

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


def group_room(group_id: int) -> str:
    return f"group_{group_id}"


def create_socket_server() -> socketio.AsyncServer:
    """
    ASGI Socket.IO server. With SOCKETIO_MESSAGE_QUEUE set, rooms are shared
    across processes through Redis.
    """
    kwargs: Dict[str, Any] = {}
    if SOCKETIO_MESSAGE_QUEUE:
        kwargs["client_manager"] = socketio.AsyncRedisManager(SOCKETIO_MESSAGE_QUEUE)
        logger.info("Socket.IO fan-out through Redis message queue enabled")
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=[CLIENT_URL],
        logger=False,
        engineio_logger=False,
        **kwargs,
    )


def _error_text(exc: Exception, fallback: str) -> str:
    if isinstance(exc, HTTPException):
        return exc.detail if isinstance(exc.detail, str) else fallback
    if isinstance(exc, (ValueError, TypeError, KeyError, ValidationError)):
        return "Invalid message payload"
    return fallback


class ChatGateway:
    """
    Socket.IO event handlers. Database work runs in a worker thread with a
    session of its own, the event loop only relays.
    """

    def __init__(self, sio: socketio.AsyncServer, session_factory: Callable = SessionLocal):
        self.sio = sio
        self.session_factory = session_factory

    def register(self) -> None:
        for event in (
            "connect", "disconnect", "join_user_room", "join_group", "leave_group",
            "send_message", "send_group_message", "typing_start", "typing_stop",
        ):
            self.sio.on(event, getattr(self, event))

    def _with_session(self, fn: Callable, *args, **kwargs):
        db = self.session_factory()
        try:
            return fn(db, *args, **kwargs)
        finally:
            db.close()

    async def _run(self, fn: Callable, *args, **kwargs):
        return await asyncio.to_thread(self._with_session, fn, *args, **kwargs)

    async def _user_id(self, sid: str) -> int:
        session = await self.sio.get_session(sid)
        return session["user_id"]

    async def connect(self, sid: str, environ: dict, auth: Optional[dict] = None):
        token = (auth or {}).get("token")
        if not token:
            logger.warning(f"Socket {sid} connection attempted without token")
            raise socketio.exceptions.ConnectionRefusedError("Authentication error: No token provided")
        try:
            user = await self._run(load_current_user, token)
        except HTTPException:
            raise socketio.exceptions.ConnectionRefusedError("Authentication error")

        await self.sio.save_session(sid, {
            "user_id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
        })
        await self.sio.enter_room(sid, user_room(user.id))
        await self.sio.emit("user_status", {"user_id": user.id, "status": "online"}, skip_sid=sid)
        await self.sio.emit("user_status_change", {"user_id": user.id, "online": True}, skip_sid=sid)
        logger.info(f"User {user.id} connected via socket {sid}")

    async def disconnect(self, sid: str, reason: Optional[str] = None):
        session = await self.sio.get_session(sid)
        user_id = session.get("user_id")
        if user_id is None:
            return
        await self.sio.emit("user_status", {"user_id": user_id, "status": "offline"}, skip_sid=sid)
        await self.sio.emit("user_status_change", {"user_id": user_id, "online": False}, skip_sid=sid)
        logger.info(f"User {user_id} disconnected ({reason})")

    async def join_user_room(self, sid: str, user_id):
        own_id = await self._user_id(sid)
        if str(user_id) != str(own_id):
            await self.sio.emit("message_error", {"error": "Cannot join another user's room"}, to=sid)
            return
        await self.sio.enter_room(sid, user_room(own_id))

    async def join_group(self, sid: str, group_id):
        user_id = await self._user_id(sid)
        try:
            group_id = int(group_id)
            allowed = await self._run(chat_group_service.can_access_group, group_id, user_id)
        except (TypeError, ValueError):
            allowed = False
        if not allowed:
            await self.sio.emit("message_error", {"error": "Not a member of this group", "group_id": group_id}, to=sid)
            return
        await self.sio.enter_room(sid, group_room(group_id))

    async def leave_group(self, sid: str, group_id):
        try:
            await self.sio.leave_room(sid, group_room(int(group_id)))
        except (TypeError, ValueError):
            await self.sio.emit("message_error", {"error": "Invalid group id"}, to=sid)

    async def send_message(self, sid: str, data: dict):
        data = data or {}
        client_id = data.get("client_id")
        user_id = await self._user_id(sid)
        try:
            recipient_id = int(data["recipient_id"])
            message = await self._run(
                chat_service.send_message,
                user_id,
                recipient_id,
                data.get("message_text"),
                MessageType(data.get("message_type") or MessageType.text.value),
                data.get("attachment_path"),
                data.get("attachment_name"),
            )
        except Exception as e:
            if not isinstance(e, (HTTPException, ValueError, TypeError, KeyError)):
                logger.error(f"Socket send_message failed for user {user_id}: {e}", exc_info=True)
            await self.sio.emit("message_error", {
                "error": _error_text(e, "Failed to send message"),
                "client_id": client_id,
                "original_message": data,
            }, to=sid)
            return

        payload = message.model_dump(mode="json")
        await self.sio.emit("new_message", payload, to=user_room(recipient_id))
        await self.sio.emit("message_sent", {"success": True, "message": payload, "client_id": client_id}, to=user_room(user_id))

    async def send_group_message(self, sid: str, data: dict):
        data = data or {}
        client_id = data.get("client_id")
        user_id = await self._user_id(sid)
        try:
            group_id = int(data["group_id"])
            message_in = GroupMessageCreate(
                message_text=data.get("message_text") or "",
                message_type=data.get("message_type") or MessageType.text,
                attachment_path=data.get("attachment_path"),
                attachment_name=data.get("attachment_name"),
                client_id=client_id,
            )
            message = await self._run(chat_group_service.send_group_message, group_id, user_id, message_in)
        except Exception as e:
            if not isinstance(e, (HTTPException, ValidationError, ValueError, TypeError, KeyError)):
                logger.error(f"Socket send_group_message failed for user {user_id}: {e}", exc_info=True)
            await self.sio.emit("message_error", {
                "error": _error_text(e, "Failed to send group message"),
                "client_id": client_id,
                "original_message": data,
            }, to=sid)
            return

        payload = message.model_dump(mode="json")
        await self.sio.emit("new_group_message", payload, to=group_room(group_id), skip_sid=sid)
        await self.sio.emit("group_message_sent", {"success": True, "message": payload, "client_id": client_id}, to=sid)

    async def _typing(self, sid: str, data: dict, typing: bool):
        user_id = await self._user_id(sid)
        try:
            recipient_id = int((data or {})["recipient_id"])
        except (KeyError, TypeError, ValueError):
            return
        await self.sio.emit("user_typing", {"user_id": user_id, "typing": typing}, to=user_room(recipient_id))

    async def typing_start(self, sid: str, data: dict):
        await self._typing(sid, data, True)

    async def typing_stop(self, sid: str, data: dict):
        await self._typing(sid, data, False)


sio = create_socket_server()
gateway = ChatGateway(sio)
gateway.register()

# app/realtime/notifier.py
"""
Emit helpers for HTTP routes. Routes schedule these with BackgroundTasks so
the push happens after the response without blocking the request.
"""
import logging
from typing import Any, Optional

from pydantic import BaseModel

from app.realtime.socket_server import group_room, sio, user_room

logger = logging.getLogger(__name__)


def to_payload(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return data


async def emit_to_user(user_id: int, event: str, data: Any) -> None:
    try:
        await sio.emit(event, to_payload(data), to=user_room(user_id))
    except Exception as e:
        logger.error(f"Failed to emit {event} to user {user_id}: {e}", exc_info=True)


async def emit_to_group(group_id: int, event: str, data: Any) -> None:
    try:
        await sio.emit(event, to_payload(data), to=group_room(group_id))
    except Exception as e:
        logger.error(f"Failed to emit {event} to group {group_id}: {e}", exc_info=True)


async def broadcast(event: str, data: Any) -> None:
    try:
        await sio.emit(event, to_payload(data))
    except Exception as e:
        logger.error(f"Failed to broadcast {event}: {e}", exc_info=True)


async def push_notification(notification: Optional[BaseModel]) -> None:
    """Push a freshly created notification to its recipient."""
    if notification is None:
        return
    await emit_to_user(notification.recipient_id, "new_notification", notification)

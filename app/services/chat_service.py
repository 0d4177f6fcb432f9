# app/services/chat_service.py
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import chat_crud, user_crud
from app.models.message_model import MessageType
from app.models.user_model import User
from app.schemas.chat_schema import ConversationSummary, MessageView

MAX_PAGE_SIZE = 100


def send_message(
    db: Session,
    sender_id: int,
    recipient_id: int,
    message_text: Optional[str],
    message_type: MessageType = MessageType.text,
    attachment_path: Optional[str] = None,
    attachment_name: Optional[str] = None,
) -> MessageView:
    """
    Persist a direct message and return it joined with both users' names.
    Text is required unless a file is attached.
    """
    if sender_id == recipient_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot send message to yourself")

    text = (message_text or "").strip()
    if not text and not attachment_path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message text is required")

    if not user_crud.get_active_user(db, recipient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")

    if attachment_path:
        message_type = MessageType.file
        if not text:
            text = attachment_name or "Attachment"

    db_message = chat_crud.create_message(
        db, sender_id, recipient_id, text, message_type, attachment_path, attachment_name
    )
    return chat_crud.get_message_view(db, db_message.id)


def get_conversation(
    db: Session, user_id: int, other_user_id: int, limit: int = 50, before_id: Optional[int] = None
) -> Tuple[List[MessageView], Optional[int]]:
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return chat_crud.get_conversation(db, user_id, other_user_id, limit, before_id)


def get_recent_conversations(db: Session, user_id: int, limit: int = 20) -> List[ConversationSummary]:
    return chat_crud.get_recent_conversations(db, user_id, limit)


def mark_as_read(db: Session, recipient_id: int, sender_id: int) -> int:
    return chat_crud.mark_as_read(db, recipient_id, sender_id)


def get_unread_count(db: Session, user_id: int) -> int:
    return chat_crud.get_unread_count(db, user_id)


def delete_message(db: Session, message_id: int, user_id: int) -> None:
    if not chat_crud.delete_message(db, message_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found or not authorized",
        )


def list_colleagues(db: Session, user_id: int) -> List[User]:
    return user_crud.get_active_users(db, exclude_user_id=user_id)

# app/crud/chat_crud.py
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import Session

from app.crud.pagination import fetch_keyset_page
from app.models.message_model import Message, MessageType
from app.models.user_model import User
from app.schemas.chat_schema import ConversationSummary, MessageView


def get_message_with_names_query():
    """
    Select over messages joined with sender and recipient names.
    """
    sender = User.__table__.alias("sender")
    recipient = User.__table__.alias("recipient")

    return (
        select(
            Message.id,
            Message.sender_id,
            Message.recipient_id,
            Message.message_text,
            Message.message_type,
            Message.attachment_path,
            Message.attachment_name,
            Message.is_read,
            Message.read_at,
            Message.created_at,
            sender.c.first_name.label("sender_first_name"),
            sender.c.last_name.label("sender_last_name"),
            sender.c.email.label("sender_email"),
            recipient.c.first_name.label("recipient_first_name"),
            recipient.c.last_name.label("recipient_last_name"),
            recipient.c.email.label("recipient_email"),
        )
        .select_from(Message)
        .join(sender, Message.sender_id == sender.c.id)
        .join(recipient, Message.recipient_id == recipient.c.id)
    )


def _pair_filter(user_a: int, user_b: int):
    return or_(
        and_(Message.sender_id == user_a, Message.recipient_id == user_b),
        and_(Message.sender_id == user_b, Message.recipient_id == user_a),
    )


def create_message(
    db: Session,
    sender_id: int,
    recipient_id: int,
    message_text: str,
    message_type: MessageType = MessageType.text,
    attachment_path: Optional[str] = None,
    attachment_name: Optional[str] = None,
) -> Message:
    db_message = Message(
        sender_id=sender_id,
        recipient_id=recipient_id,
        message_text=message_text,
        message_type=message_type,
        attachment_path=attachment_path,
        attachment_name=attachment_name,
    )
    db.add(db_message)
    db.commit()
    db.refresh(db_message)
    return db_message


def get_message_view(db: Session, message_id: int) -> Optional[MessageView]:
    row = db.execute(get_message_with_names_query().where(Message.id == message_id)).first()
    if row:
        return MessageView.model_validate(dict(row._mapping))
    return None


def get_conversation(
    db: Session, user_a: int, user_b: int, limit: int = 50, before_id: Optional[int] = None
) -> Tuple[List[MessageView], Optional[int]]:
    """Messages exchanged between two users, one keyset page in ascending order."""
    query = get_message_with_names_query().where(_pair_filter(user_a, user_b))
    rows, next_cursor = fetch_keyset_page(db, query, Message, limit, before_id)
    return [MessageView.model_validate(dict(row._mapping)) for row in rows], next_cursor


def get_recent_conversations(db: Session, user_id: int, limit: int = 20) -> List[ConversationSummary]:
    """
    One row per counterpart with the latest message of the pair and the number
    of unread messages received from that counterpart.
    """
    counterpart = case(
        (Message.sender_id == user_id, Message.recipient_id),
        else_=Message.sender_id,
    )
    ranked = (
        select(
            Message.id,
            Message.sender_id,
            Message.message_text,
            Message.created_at,
            counterpart.label("other_user_id"),
            func.row_number().over(
                partition_by=counterpart,
                order_by=(Message.created_at.desc(), Message.id.desc()),
            ).label("rn"),
        )
        .where(or_(Message.sender_id == user_id, Message.recipient_id == user_id))
        .subquery("ranked")
    )

    unread = (
        select(func.count(Message.id))
        .where(
            Message.sender_id == ranked.c.other_user_id,
            Message.recipient_id == user_id,
            Message.is_read == False,  # noqa: E712
        )
        .correlate(ranked)
        .scalar_subquery()
    )

    query = (
        select(
            ranked.c.other_user_id,
            User.first_name.label("other_user_first_name"),
            User.last_name.label("other_user_last_name"),
            User.email.label("other_user_email"),
            User.role.label("other_user_role"),
            ranked.c.message_text.label("last_message"),
            ranked.c.created_at.label("last_message_time"),
            ranked.c.sender_id.label("last_sender_id"),
            unread.label("unread_count"),
        )
        .select_from(ranked)
        .join(User, User.id == ranked.c.other_user_id)
        .where(ranked.c.rn == 1, User.is_active == True)  # noqa: E712
        .order_by(ranked.c.created_at.desc(), ranked.c.id.desc())
        .limit(limit)
    )
    return [ConversationSummary.model_validate(dict(row._mapping)) for row in db.execute(query).all()]


def mark_as_read(db: Session, recipient_id: int, sender_id: int) -> int:
    count = db.query(Message).filter(
        Message.recipient_id == recipient_id,
        Message.sender_id == sender_id,
        Message.is_read == False,  # noqa: E712
    ).update({"is_read": True, "read_at": datetime.now()}, synchronize_session=False)
    db.commit()
    return count


def get_unread_count(db: Session, user_id: int) -> int:
    return db.query(func.count(Message.id)).filter(
        Message.recipient_id == user_id,
        Message.is_read == False,  # noqa: E712
    ).scalar() or 0


def delete_message(db: Session, message_id: int, sender_id: int) -> Optional[Message]:
    """Hard delete a message; only its sender may do so."""
    db_message = db.query(Message).filter(Message.id == message_id, Message.sender_id == sender_id).first()
    if db_message:
        db.delete(db_message)
        db.commit()
    return db_message

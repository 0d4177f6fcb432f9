# app/crud/notification_crud.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.notification_model import Notification
from app.models.task_model import Task
from app.models.user_model import User
from app.schemas.notification_schema import NotificationCreate, NotificationView


def get_notification_with_details_query():
    sender = User.__table__.alias("sender")
    return (
        select(
            Notification.id,
            Notification.type,
            Notification.recipient_id,
            Notification.sender_id,
            Notification.task_id,
            Notification.message,
            Notification.is_read,
            Notification.read_at,
            Notification.created_at,
            Task.title.label("task_title"),
            Task.priority.label("task_priority"),
            sender.c.first_name.label("sender_first_name"),
            sender.c.last_name.label("sender_last_name"),
            sender.c.email.label("sender_email"),
        )
        .select_from(Notification)
        .outerjoin(Task, Notification.task_id == Task.id)
        .outerjoin(sender, Notification.sender_id == sender.c.id)
    )


def create_notification(db: Session, notification: NotificationCreate) -> Notification:
    """Insert a notification from a NotificationCreate payload."""
    db_notification = Notification(**notification.model_dump())
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification


def get_notification_view(db: Session, notification_id: int) -> Optional[NotificationView]:
    row = db.execute(get_notification_with_details_query().where(Notification.id == notification_id)).first()
    if row:
        return NotificationView.model_validate(dict(row._mapping))
    return None


def get_notifications_by_recipient(
    db: Session, recipient_id: int, is_read: Optional[bool] = None
) -> List[NotificationView]:
    query = get_notification_with_details_query().where(Notification.recipient_id == recipient_id)
    if is_read is not None:
        query = query.where(Notification.is_read == is_read)
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
    return [NotificationView.model_validate(dict(row._mapping)) for row in db.execute(query).all()]


def mark_as_read(db: Session, notification_id: int, recipient_id: int) -> bool:
    db_notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.recipient_id == recipient_id,
    ).first()
    if not db_notification:
        return False
    db_notification.is_read = True
    db_notification.read_at = datetime.now()
    db.commit()
    return True


def mark_all_as_read(db: Session, recipient_id: int) -> int:
    count = db.query(Notification).filter(
        Notification.recipient_id == recipient_id,
        Notification.is_read == False,  # noqa: E712
    ).update({"is_read": True, "read_at": datetime.now()}, synchronize_session=False)
    db.commit()
    return count


def get_unread_count(db: Session, recipient_id: int) -> int:
    return db.query(func.count(Notification.id)).filter(
        Notification.recipient_id == recipient_id,
        Notification.is_read == False,  # noqa: E712
    ).scalar() or 0

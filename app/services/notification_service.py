# app/services/notification_service.py
import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import notification_crud
from app.models.notification_model import NotificationType
from app.schemas.notification_schema import NotificationCreate, NotificationView

logger = logging.getLogger(__name__)


def send_notification(
    db: Session,
    notif_type: NotificationType,
    recipient_id: int,
    message: str,
    sender_id: Optional[int] = None,
    task_id: Optional[int] = None,
) -> NotificationView:
    notification = notification_crud.create_notification(
        db,
        NotificationCreate(
            type=notif_type,
            recipient_id=recipient_id,
            sender_id=sender_id,
            task_id=task_id,
            message=message,
        ),
    )
    return notification_crud.get_notification_view(db, notification.id)


def try_send_notification(db: Session, *args, **kwargs) -> Optional[NotificationView]:
    """
    Best-effort variant used as a side effect of task changes: failures are
    logged and the caller carries on.
    """
    try:
        return send_notification(db, *args, **kwargs)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create notification: {e}", exc_info=True)
        return None


def list_notifications(db: Session, recipient_id: int, is_read: Optional[bool] = None) -> List[NotificationView]:
    return notification_crud.get_notifications_by_recipient(db, recipient_id, is_read)


def mark_as_read(db: Session, notification_id: int, recipient_id: int) -> None:
    if not notification_crud.mark_as_read(db, notification_id, recipient_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")


def mark_all_as_read(db: Session, recipient_id: int) -> int:
    return notification_crud.mark_all_as_read(db, recipient_id)


def get_unread_count(db: Session, recipient_id: int) -> int:
    return notification_crud.get_unread_count(db, recipient_id)

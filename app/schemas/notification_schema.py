# app/schemas/notification_schema.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from app.models.notification_model import NotificationType
from app.models.task_model import TaskPriority


class NotificationCreate(BaseModel):
    type: NotificationType = Field(..., example=NotificationType.task_assigned)
    recipient_id: int = Field(..., example=2)
    sender_id: Optional[int] = Field(None, example=1)
    task_id: Optional[int] = Field(None, example=10)
    message: str = Field(..., example='You have been assigned a new task: "Prepare quarterly report"')


class NotificationView(BaseModel):
    """
    Notification row joined with task and sender details.
    """
    id: int
    type: NotificationType
    recipient_id: int
    sender_id: Optional[int] = None
    task_id: Optional[int] = None
    message: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    task_title: Optional[str] = None
    task_priority: Optional[TaskPriority] = None
    sender_first_name: Optional[str] = None
    sender_last_name: Optional[str] = None
    sender_email: Optional[str] = None


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: List[NotificationView]
    unread_count: int

# app/models/notification_model.py
from sqlalchemy import Boolean, Column, Integer, ForeignKey, DateTime, Text, func, Enum
from sqlalchemy.orm import relationship
from app.models.base_model import Base
import enum

class NotificationType(str, enum.Enum):
    """Notification kinds raised by task activity."""
    task_assigned = "task_assigned"
    task_viewed = "task_viewed"
    task_updated = "task_updated"


class Notification(Base):
    """
    Model for the notifications table.
    """
    __tablename__ = 'notifications'
    id = Column(Integer, primary_key=True)
    type = Column(Enum(NotificationType, name="notification_type_enum"), nullable=False)
    recipient_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey('users.id', ondelete="SET NULL"), nullable=True)
    task_id = Column(Integer, ForeignKey('tasks.id', ondelete="CASCADE"), nullable=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
    task = relationship("Task")

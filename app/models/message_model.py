# app/models/message_model.py
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base_model import Base


class MessageType(str, enum.Enum):
    text = "text"
    file = "file"


class Message(Base):
    """
    Direct message between two users.
    """
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_pair_time", "sender_id", "recipient_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message_text = Column(Text, nullable=False)
    message_type = Column(Enum(MessageType, name="message_type_enum"), nullable=False, default=MessageType.text)
    attachment_path = Column(String(500), nullable=True)
    attachment_name = Column(String(255), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

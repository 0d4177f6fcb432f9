# app/models/chat_group_model.py
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base_model import Base
from app.models.message_model import MessageType


class ChatGroup(Base):
    """
    Model for the chat_groups table. The manager owns the group and its membership.
    """
    __tablename__ = "chat_groups"

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    manager = relationship("User", foreign_keys=[manager_id])
    members = relationship("ChatGroupMember", back_populates="group", cascade="all, delete-orphan")
    messages = relationship("GroupMessage", back_populates="group", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ChatGroup(id={self.id}, name='{self.name}')>"


class ChatGroupMember(Base):
    __tablename__ = "chat_group_members"

    group_id = Column(Integer, ForeignKey("chat_groups.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    joined_at = Column(DateTime, default=func.now())

    group = relationship("ChatGroup", back_populates="members")
    user = relationship("User")


class GroupMessage(Base):
    __tablename__ = "group_messages"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("chat_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    message_text = Column(Text, nullable=False)
    message_type = Column(Enum(MessageType, name="group_message_type_enum"), nullable=False, default=MessageType.text)
    attachment_path = Column(String(500), nullable=True)
    attachment_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    group = relationship("ChatGroup", back_populates="messages")
    sender = relationship("User")

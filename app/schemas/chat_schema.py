# app/schemas/chat_schema.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.models.message_model import MessageType
from app.models.user_model import UserRole


class SendMessageRequest(BaseModel):
    recipient_id: int = Field(..., ge=1, example=2)
    message_text: str = Field("", example="Hello there")
    message_type: MessageType = MessageType.text
    attachment_path: Optional[str] = None
    attachment_name: Optional[str] = None
    client_id: Optional[str] = Field(None, description="Correlation id echoed back in acknowledgements")


class MessageView(BaseModel):
    id: int
    sender_id: int
    recipient_id: int
    message_text: str
    message_type: MessageType
    attachment_path: Optional[str] = None
    attachment_name: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    sender_first_name: Optional[str] = None
    sender_last_name: Optional[str] = None
    sender_email: Optional[str] = None
    recipient_first_name: Optional[str] = None
    recipient_last_name: Optional[str] = None
    recipient_email: Optional[str] = None

    class Config:
        from_attributes = True


class ConversationSummary(BaseModel):
    other_user_id: int
    other_user_first_name: str
    other_user_last_name: str
    other_user_email: str
    other_user_role: UserRole
    last_message: str
    last_message_time: datetime
    last_sender_id: int
    unread_count: int = 0


class ConversationListResponse(BaseModel):
    success: bool = True
    conversations: List[ConversationSummary]


class ConversationPage(BaseModel):
    success: bool = True
    messages: List[MessageView]
    next_cursor: Optional[int] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: MessageView


class UnreadCountResponse(BaseModel):
    success: bool = True
    unread_count: int


class MarkReadResponse(BaseModel):
    success: bool = True
    marked_count: int

# app/schemas/chat_group_schema.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.models.message_model import MessageType
from app.models.user_model import UserRole


class GroupCreate(BaseModel):
    name: str = Field(..., example="Release crew")
    description: str = ""
    members: List[int] = Field(default_factory=list, example=[2, 3])

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Group name is required")
        return value


class MembersRequest(BaseModel):
    members: List[int] = Field(..., example=[4, 5])


class GroupMessageCreate(BaseModel):
    message_text: str = ""
    message_type: MessageType = MessageType.text
    attachment_path: Optional[str] = None
    attachment_name: Optional[str] = None
    client_id: Optional[str] = None


class GroupView(BaseModel):
    id: int
    manager_id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    is_member: bool
    is_manager: bool
    member_count: int
    member_names: Optional[str] = None
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None
    last_sender_id: Optional[int] = None
    last_sender_name: Optional[str] = None


class GroupMessageView(BaseModel):
    id: int
    group_id: int
    sender_id: int
    message_text: str
    message_type: MessageType
    attachment_path: Optional[str] = None
    attachment_name: Optional[str] = None
    created_at: datetime
    sender_first_name: Optional[str] = None
    sender_last_name: Optional[str] = None
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    sender_role: Optional[UserRole] = None


class GroupMemberView(BaseModel):
    user_id: int
    first_name: str
    last_name: str
    email: str
    role: UserRole
    joined_at: Optional[datetime] = None


class GroupListResponse(BaseModel):
    success: bool = True
    groups: List[GroupView]


class GroupResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    group: Optional[GroupView] = None


class GroupMessagePage(BaseModel):
    success: bool = True
    messages: List[GroupMessageView]
    next_cursor: Optional[int] = None


class GroupMessageResponse(BaseModel):
    success: bool = True
    message: GroupMessageView


class GroupMembersResponse(BaseModel):
    success: bool = True
    members: List[GroupMemberView]

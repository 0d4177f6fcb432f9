# app/schemas/announcement_schema.py
from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import date, datetime

from app.models.announcement_model import AnnouncementType, InterestLevel, TargetAudience
from app.models.user_model import UserRole


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class AnnouncementCreate(BaseModel):
    title: str = Field(..., example="Python workshop")
    content: str = Field(..., example="Two-day internal training on Python.")
    announcement_type: AnnouncementType = AnnouncementType.general
    course_name: Optional[str] = None
    course_description: Optional[str] = None
    course_start_date: Optional[date] = None
    target_audience: TargetAudience = TargetAudience.all

    @field_validator("title", "content")
    @classmethod
    def required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title and content are required")
        return value

    @field_validator("course_start_date", mode="before")
    @classmethod
    def empty_date(cls, value):
        return _blank_to_none(value)


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    announcement_type: Optional[AnnouncementType] = None
    course_name: Optional[str] = None
    course_description: Optional[str] = None
    course_start_date: Optional[date] = None
    target_audience: Optional[TargetAudience] = None

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            value = value.strip()
            if not value:
                raise ValueError("Title and content cannot be empty")
        return value

    @field_validator("course_start_date", mode="before")
    @classmethod
    def empty_date(cls, value):
        return _blank_to_none(value)


class AnnouncementView(BaseModel):
    id: int
    sender_id: int
    title: str
    content: str
    announcement_type: AnnouncementType
    course_name: Optional[str] = None
    course_description: Optional[str] = None
    course_start_date: Optional[date] = None
    target_audience: TargetAudience
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    sender_first_name: Optional[str] = None
    sender_last_name: Optional[str] = None
    sender_email: Optional[str] = None
    is_viewed: bool = False
    interest_level: Optional[InterestLevel] = None
    interest_message: Optional[str] = None
    total_interested: int = 0
    view_count: Optional[int] = None


class InterestRequest(BaseModel):
    interest_level: InterestLevel = InterestLevel.interested
    message: Optional[str] = None

    @field_validator("message", mode="before")
    @classmethod
    def empty_message(cls, value):
        return _blank_to_none(value)


class CourseInterestCreate(InterestRequest):
    announcement_id: int = Field(..., ge=1)


class CourseInterestView(BaseModel):
    id: int
    announcement_id: int
    user_id: int
    interest_level: InterestLevel
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None


class AnnouncementListResponse(BaseModel):
    success: bool = True
    announcements: List[AnnouncementView]


class AnnouncementResponse(BaseModel):
    success: bool = True
    announcement: AnnouncementView


class InterestResponse(BaseModel):
    success: bool = True
    message: str
    total_interested: int


class InterestListResponse(BaseModel):
    success: bool = True
    interests: List[CourseInterestView]
    summary: Dict[str, int] = {}


class InterestCountResponse(BaseModel):
    success: bool = True
    count: int


class UserInterestResponse(BaseModel):
    success: bool = True
    interest: Optional[CourseInterestView] = None

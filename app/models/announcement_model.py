# app/models/announcement_model.py
import enum

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text,
    UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from app.models.base_model import Base


class AnnouncementType(str, enum.Enum):
    general = "general"
    course_enrollment = "course_enrollment"
    urgent = "urgent"


class TargetAudience(str, enum.Enum):
    all = "all"
    members = "members"
    managers = "managers"


class InterestLevel(str, enum.Enum):
    interested = "interested"
    very_interested = "very_interested"
    maybe = "maybe"


class Announcement(Base):
    """
    Model for the announcements table. Deleting an announcement only clears is_active.
    """
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    announcement_type = Column(
        Enum(AnnouncementType, name="announcement_type_enum"), nullable=False, default=AnnouncementType.general
    )
    course_name = Column(String(255), nullable=True)
    course_description = Column(Text, nullable=True)
    course_start_date = Column(Date, nullable=True)
    target_audience = Column(
        Enum(TargetAudience, name="target_audience_enum"), nullable=False, default=TargetAudience.all
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    sender = relationship("User")
    views = relationship("AnnouncementView", back_populates="announcement", cascade="all, delete-orphan")
    interests = relationship("CourseInterest", back_populates="announcement", cascade="all, delete-orphan")


class AnnouncementView(Base):
    __tablename__ = "announcement_views"
    __table_args__ = (UniqueConstraint("announcement_id", "user_id", name="uq_announcement_view"),)

    id = Column(Integer, primary_key=True)
    announcement_id = Column(Integer, ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    viewed_at = Column(DateTime, default=func.now())

    announcement = relationship("Announcement", back_populates="views")


class CourseInterest(Base):
    __tablename__ = "course_interests"
    __table_args__ = (UniqueConstraint("announcement_id", "user_id", name="uq_course_interest"),)

    id = Column(Integer, primary_key=True)
    announcement_id = Column(Integer, ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    interest_level = Column(
        Enum(InterestLevel, name="interest_level_enum"), nullable=False, default=InterestLevel.interested
    )
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), onupdate=func.now())

    announcement = relationship("Announcement", back_populates="interests")
    user = relationship("User")

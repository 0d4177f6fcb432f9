# app/services/course_interest_service.py
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.api.auth.policies import can_see_announcement, can_view_course_interests, require
from app.crud import announcement_crud, course_interest_crud
from app.models.announcement_model import Announcement, AnnouncementType, InterestLevel
from app.schemas.announcement_schema import CourseInterestView
from app.schemas.auth_schema import CurrentUser


def _get_visible_announcement(db: Session, announcement_id: int, user: CurrentUser) -> Announcement:
    db_announcement = announcement_crud.get_announcement(db, announcement_id)
    if not db_announcement or not can_see_announcement(user, db_announcement):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return db_announcement


def add_interest(
    db: Session,
    announcement_id: int,
    user: CurrentUser,
    interest_level: InterestLevel = InterestLevel.interested,
    message: Optional[str] = None,
) -> int:
    """
    Record or overwrite the user's interest in a course announcement.
    Returns the number of distinct interested users afterwards.
    """
    db_announcement = _get_visible_announcement(db, announcement_id, user)
    if db_announcement.announcement_type != AnnouncementType.course_enrollment:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Interest can only be expressed for course enrollment announcements",
        )
    course_interest_crud.upsert_interest(db, announcement_id, user.id, interest_level, message)
    return course_interest_crud.get_interest_count(db, announcement_id)


def remove_interest(db: Session, announcement_id: int, user: CurrentUser) -> int:
    if not course_interest_crud.remove_interest(db, announcement_id, user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Interest not found")
    return course_interest_crud.get_interest_count(db, announcement_id)


def get_interests_by_announcement(db: Session, announcement_id: int, user: CurrentUser) -> List[CourseInterestView]:
    db_announcement = announcement_crud.get_announcement(db, announcement_id)
    if not db_announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    require(can_view_course_interests, user, db_announcement, detail="Not authorized to view course interests")
    return course_interest_crud.get_interests_by_announcement(db, announcement_id)


def get_interest_count(db: Session, announcement_id: int) -> int:
    return course_interest_crud.get_interest_count(db, announcement_id)


def get_user_interest(db: Session, announcement_id: int, user_id: int) -> Optional[CourseInterestView]:
    return course_interest_crud.get_user_interest(db, announcement_id, user_id)


def get_interest_summary(db: Session, announcement_id: int) -> Dict[str, int]:
    return course_interest_crud.get_interest_summary(db, announcement_id)

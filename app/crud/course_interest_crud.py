# app/crud/course_interest_crud.py
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.announcement_model import CourseInterest, InterestLevel
from app.models.user_model import User
from app.schemas.announcement_schema import CourseInterestView


def find_interest(db: Session, announcement_id: int, user_id: int) -> Optional[CourseInterest]:
    return db.query(CourseInterest).filter(
        CourseInterest.announcement_id == announcement_id,
        CourseInterest.user_id == user_id,
    ).first()


def _overwrite(db_interest: CourseInterest, interest_level: InterestLevel, message: Optional[str]) -> None:
    db_interest.interest_level = interest_level
    db_interest.message = message
    db_interest.created_at = datetime.now()


def upsert_interest(
    db: Session, announcement_id: int, user_id: int, interest_level: InterestLevel, message: Optional[str]
) -> CourseInterest:
    """
    Insert the user's interest, or overwrite level and message when one exists.
    """
    db_interest = find_interest(db, announcement_id, user_id)
    if db_interest:
        _overwrite(db_interest, interest_level, message)
        db.commit()
    else:
        db_interest = CourseInterest(
            announcement_id=announcement_id,
            user_id=user_id,
            interest_level=interest_level,
            message=message,
        )
        db.add(db_interest)
        try:
            db.commit()
        except IntegrityError:
            # concurrent first submission for the same pair
            db.rollback()
            db_interest = find_interest(db, announcement_id, user_id)
            if db_interest is None:
                raise
            _overwrite(db_interest, interest_level, message)
            db.commit()
    db.refresh(db_interest)
    return db_interest


def remove_interest(db: Session, announcement_id: int, user_id: int) -> bool:
    count = db.query(CourseInterest).filter(
        CourseInterest.announcement_id == announcement_id,
        CourseInterest.user_id == user_id,
    ).delete(synchronize_session=False)
    db.commit()
    return count > 0


def get_interests_by_announcement(db: Session, announcement_id: int) -> List[CourseInterestView]:
    rows = (
        db.query(
            CourseInterest.id,
            CourseInterest.announcement_id,
            CourseInterest.user_id,
            CourseInterest.interest_level,
            CourseInterest.message,
            CourseInterest.created_at,
            User.first_name,
            User.last_name,
            User.email,
            User.role,
        )
        .join(User, CourseInterest.user_id == User.id)
        .filter(CourseInterest.announcement_id == announcement_id)
        .order_by(CourseInterest.created_at.desc(), CourseInterest.id.desc())
        .all()
    )
    return [CourseInterestView.model_validate(dict(row._mapping)) for row in rows]


def get_interest_count(db: Session, announcement_id: int) -> int:
    return db.query(func.count(func.distinct(CourseInterest.user_id))).filter(
        CourseInterest.announcement_id == announcement_id
    ).scalar() or 0


def get_user_interest(db: Session, announcement_id: int, user_id: int) -> Optional[CourseInterestView]:
    db_interest = find_interest(db, announcement_id, user_id)
    if not db_interest:
        return None
    return CourseInterestView(
        id=db_interest.id,
        announcement_id=db_interest.announcement_id,
        user_id=db_interest.user_id,
        interest_level=db_interest.interest_level,
        message=db_interest.message,
        created_at=db_interest.created_at,
    )


def get_interest_summary(db: Session, announcement_id: int) -> Dict[str, int]:
    """Number of interests per level; every level is present."""
    rows = (
        db.query(CourseInterest.interest_level, func.count(CourseInterest.id))
        .filter(CourseInterest.announcement_id == announcement_id)
        .group_by(CourseInterest.interest_level)
        .all()
    )
    summary = {level.value: 0 for level in InterestLevel}
    for level, count in rows:
        summary[level.value] = count
    return summary

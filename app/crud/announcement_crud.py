# app/crud/announcement_crud.py
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, func, or_, select, true
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.announcement_model import Announcement, AnnouncementView, CourseInterest, TargetAudience
from app.models.user_model import User, UserRole
from app.schemas.announcement_schema import AnnouncementView as AnnouncementRead


def visible_to(user_id: int, role: UserRole):
    """
    Audience filter: `all` for everyone, `members` for members, `managers`
    for managers and admins. Admins see everything, senders see their own.
    """
    if role == UserRole.admin:
        return true()
    audiences = [TargetAudience.all]
    if role == UserRole.member:
        audiences.append(TargetAudience.members)
    elif role == UserRole.manager:
        audiences.append(TargetAudience.managers)
    return or_(Announcement.target_audience.in_(audiences), Announcement.sender_id == user_id)


def get_announcement_for_user_query(user_id: int):
    """
    Announcements joined with sender names and annotated with the caller's
    view and interest plus the total number of interested users.
    """
    viewed = (
        select(func.count(AnnouncementView.id))
        .where(AnnouncementView.announcement_id == Announcement.id, AnnouncementView.user_id == user_id)
        .correlate(Announcement)
        .scalar_subquery()
    )
    total_interested = (
        select(func.count(func.distinct(CourseInterest.user_id)))
        .where(CourseInterest.announcement_id == Announcement.id)
        .correlate(Announcement)
        .scalar_subquery()
    )
    mine = CourseInterest.__table__.alias("mine")

    return (
        select(
            Announcement.id,
            Announcement.sender_id,
            Announcement.title,
            Announcement.content,
            Announcement.announcement_type,
            Announcement.course_name,
            Announcement.course_description,
            Announcement.course_start_date,
            Announcement.target_audience,
            Announcement.is_active,
            Announcement.created_at,
            Announcement.updated_at,
            User.first_name.label("sender_first_name"),
            User.last_name.label("sender_last_name"),
            User.email.label("sender_email"),
            (viewed > 0).label("is_viewed"),
            mine.c.interest_level.label("interest_level"),
            mine.c.message.label("interest_message"),
            total_interested.label("total_interested"),
        )
        .select_from(Announcement)
        .join(User, Announcement.sender_id == User.id)
        .outerjoin(mine, and_(mine.c.announcement_id == Announcement.id, mine.c.user_id == user_id))
    )


def _to_view(row) -> AnnouncementRead:
    return AnnouncementRead.model_validate(dict(row._mapping))


def get_announcement(db: Session, announcement_id: int) -> Optional[Announcement]:
    return db.query(Announcement).filter(
        Announcement.id == announcement_id,
        Announcement.is_active == True,  # noqa: E712
    ).first()


def get_announcement_view(db: Session, announcement_id: int, user_id: int, role: UserRole) -> Optional[AnnouncementRead]:
    query = get_announcement_for_user_query(user_id).where(
        Announcement.id == announcement_id,
        Announcement.is_active == True,  # noqa: E712
        visible_to(user_id, role),
    )
    row = db.execute(query).first()
    return _to_view(row) if row else None


def get_announcements_for_user(db: Session, user_id: int, role: UserRole) -> List[AnnouncementRead]:
    query = (
        get_announcement_for_user_query(user_id)
        .where(Announcement.is_active == True, visible_to(user_id, role))  # noqa: E712
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
    )
    return [_to_view(row) for row in db.execute(query).all()]


def get_announcements_by_sender(db: Session, sender_id: int) -> List[AnnouncementRead]:
    """Own active announcements with interest and view counts."""
    view_count = (
        select(func.count(AnnouncementView.id))
        .where(AnnouncementView.announcement_id == Announcement.id)
        .correlate(Announcement)
        .scalar_subquery()
    )
    query = (
        get_announcement_for_user_query(sender_id)
        .add_columns(view_count.label("view_count"))
        .where(Announcement.sender_id == sender_id, Announcement.is_active == True)  # noqa: E712
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
    )
    return [_to_view(row) for row in db.execute(query).all()]


def create_announcement(db: Session, data: Dict[str, Any], sender_id: int) -> Announcement:
    db_announcement = Announcement(**data, sender_id=sender_id)
    db.add(db_announcement)
    db.commit()
    db.refresh(db_announcement)
    return db_announcement


def get_own_announcement(db: Session, announcement_id: int, sender_id: int) -> Optional[Announcement]:
    return db.query(Announcement).filter(
        Announcement.id == announcement_id,
        Announcement.sender_id == sender_id,
        Announcement.is_active == True,  # noqa: E712
    ).first()


def update_announcement(db: Session, db_announcement: Announcement, update_data: Dict[str, Any]) -> Announcement:
    for key, value in update_data.items():
        setattr(db_announcement, key, value)
    db.add(db_announcement)
    db.commit()
    db.refresh(db_announcement)
    return db_announcement


def soft_delete_announcement(db: Session, db_announcement: Announcement) -> None:
    db_announcement.is_active = False
    db.commit()


def mark_viewed(db: Session, announcement_id: int, user_id: int) -> bool:
    """
    Record that the user has seen the announcement. Returns False when a view
    already existed; the unique (announcement_id, user_id) key keeps one row.
    """
    exists = db.query(AnnouncementView.id).filter(
        AnnouncementView.announcement_id == announcement_id,
        AnnouncementView.user_id == user_id,
    ).first()
    if exists:
        return False
    db.add(AnnouncementView(announcement_id=announcement_id, user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        # concurrent insert of the same view
        db.rollback()
        return False
    return True

# app/services/announcement_service.py
import logging
from typing import List

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.api.auth.policies import (
    can_create_announcement, can_view_sender_announcements, require,
)
from app.crud import announcement_crud
from app.schemas.announcement_schema import AnnouncementCreate, AnnouncementUpdate, AnnouncementView
from app.schemas.auth_schema import CurrentUser

logger = logging.getLogger(__name__)

NOT_FOUND_OR_NOT_AUTHORIZED = "Announcement not found or not authorized"


def create_announcement(db: Session, sender: CurrentUser, announcement_in: AnnouncementCreate) -> AnnouncementView:
    require(can_create_announcement, sender, detail="Only managers and admins can create announcements")
    db_announcement = announcement_crud.create_announcement(db, announcement_in.model_dump(), sender_id=sender.id)
    logger.info(f"Announcement {db_announcement.id} created by user {sender.id}")
    return announcement_crud.get_announcement_view(db, db_announcement.id, sender.id, sender.role)


def list_for_user(db: Session, user: CurrentUser) -> List[AnnouncementView]:
    return announcement_crud.get_announcements_for_user(db, user.id, user.role)


def get_announcement(db: Session, announcement_id: int, user: CurrentUser) -> AnnouncementView:
    announcement = announcement_crud.get_announcement_view(db, announcement_id, user.id, user.role)
    if not announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return announcement


def list_by_sender(db: Session, sender_id: int, user: CurrentUser) -> List[AnnouncementView]:
    require(can_view_sender_announcements, user, sender_id, detail="Not authorized to view these announcements")
    return announcement_crud.get_announcements_by_sender(db, sender_id)


def update_announcement(
    db: Session, announcement_id: int, announcement_in: AnnouncementUpdate, user: CurrentUser
) -> AnnouncementView:
    """Only the sender may edit; omitted fields keep their values."""
    db_announcement = announcement_crud.get_own_announcement(db, announcement_id, user.id)
    if not db_announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_OR_NOT_AUTHORIZED)
    announcement_crud.update_announcement(db, db_announcement, announcement_in.model_dump(exclude_unset=True))
    return announcement_crud.get_announcement_view(db, announcement_id, user.id, user.role)


def delete_announcement(db: Session, announcement_id: int, user: CurrentUser) -> None:
    db_announcement = announcement_crud.get_own_announcement(db, announcement_id, user.id)
    if not db_announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_OR_NOT_AUTHORIZED)
    announcement_crud.soft_delete_announcement(db, db_announcement)


def mark_viewed(db: Session, announcement_id: int, user: CurrentUser) -> None:
    get_announcement(db, announcement_id, user)
    announcement_crud.mark_viewed(db, announcement_id, user.id)

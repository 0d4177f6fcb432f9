# app/api/v1/endpoints/announcement_route.py
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.api.auth.auth import authenticate
from app.realtime import notifier
from app.schemas.announcement_schema import (
    AnnouncementCreate, AnnouncementListResponse, AnnouncementResponse, AnnouncementUpdate,
    InterestListResponse, InterestRequest, InterestResponse,
)
from app.schemas.auth_schema import CurrentUser
from app.services import announcement_service, course_interest_service
from app.services.excel_services.export_interests import export_interests

router = APIRouter()


def schedule_interest_update(background_tasks: BackgroundTasks, announcement_id: int, total_interested: int):
    background_tasks.add_task(
        notifier.broadcast,
        "course_interest_updated",
        {"announcement_id": announcement_id, "total_interested": total_interested},
    )


@router.get("", response_model=AnnouncementListResponse, summary="Announcements for the current user")
def list_announcements(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    """
    Active announcements addressed to the caller's role, newest first, with
    the caller's view and interest.
    """
    return AnnouncementListResponse(announcements=announcement_service.list_for_user(db, current_user))


@router.get("/my-announcements", response_model=AnnouncementListResponse, summary="Own announcements")
def my_announcements(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    return AnnouncementListResponse(
        announcements=announcement_service.list_by_sender(db, current_user.id, current_user)
    )


@router.get("/sender/{sender_id}", response_model=AnnouncementListResponse, summary="Announcements of a sender")
def announcements_by_sender(
    sender_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    """
    Access: the sender themselves or an **admin**
    """
    return AnnouncementListResponse(announcements=announcement_service.list_by_sender(db, sender_id, current_user))


@router.get("/{announcement_id}", response_model=AnnouncementResponse, summary="Get an announcement")
def get_announcement(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    return AnnouncementResponse(announcement=announcement_service.get_announcement(db, announcement_id, current_user))


@router.post(
    "",
    response_model=AnnouncementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an announcement",
)
def create_announcement(
    announcement_in: AnnouncementCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Access: **manager**, **admin**. Connected clients receive `new_announcement`
    with `for_role` set to the target audience.
    """
    announcement = announcement_service.create_announcement(db, current_user, announcement_in)
    payload = announcement.model_dump(mode="json")
    payload["for_role"] = announcement.target_audience.value
    background_tasks.add_task(notifier.broadcast, "new_announcement", payload)
    return AnnouncementResponse(announcement=announcement)


@router.put("/{announcement_id}", response_model=AnnouncementResponse, summary="Update an announcement")
def update_announcement(
    announcement_id: int,
    announcement_in: AnnouncementUpdate,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Access: the sender. Omitted fields keep their values.
    """
    announcement = announcement_service.update_announcement(db, announcement_id, announcement_in, current_user)
    return AnnouncementResponse(announcement=announcement)


@router.delete("/{announcement_id}", summary="Delete an announcement")
def delete_announcement(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    announcement_service.delete_announcement(db, announcement_id, current_user)
    return {"success": True, "message": "Announcement deleted successfully"}


@router.put("/{announcement_id}/view", summary="Mark an announcement as viewed")
def mark_viewed(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    announcement_service.mark_viewed(db, announcement_id, current_user)
    return {"success": True, "message": "Announcement marked as viewed"}


@router.post("/{announcement_id}/interest", response_model=InterestResponse, summary="Express interest in a course")
def add_interest(
    announcement_id: int,
    request: InterestRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    total = course_interest_service.add_interest(
        db, announcement_id, current_user, request.interest_level, request.message
    )
    schedule_interest_update(background_tasks, announcement_id, total)
    return InterestResponse(message="Interest expressed successfully", total_interested=total)


@router.delete("/{announcement_id}/interest", response_model=InterestResponse, summary="Withdraw interest")
def remove_interest(
    announcement_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    total = course_interest_service.remove_interest(db, announcement_id, current_user)
    schedule_interest_update(background_tasks, announcement_id, total)
    return InterestResponse(message="Interest removed successfully", total_interested=total)


@router.get("/{announcement_id}/interests", response_model=InterestListResponse, summary="Interests in a course")
def list_interests(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    """
    Access: **admin**, or the **manager** who sent the announcement
    """
    interests = course_interest_service.get_interests_by_announcement(db, announcement_id, current_user)
    summary = course_interest_service.get_interest_summary(db, announcement_id)
    return InterestListResponse(interests=interests, summary=summary)


@router.get("/{announcement_id}/interests/export", summary="Export interests to Excel")
def export_interests_route(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    return export_interests(db, announcement_id, current_user)

# app/api/v1/endpoints/course_interest_route.py
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.api.auth.auth import authenticate
from app.api.v1.endpoints.announcement_route import schedule_interest_update
from app.schemas.announcement_schema import (
    CourseInterestCreate, InterestCountResponse, InterestListResponse, InterestResponse, UserInterestResponse,
)
from app.schemas.auth_schema import CurrentUser
from app.services import course_interest_service

router = APIRouter()


@router.post("", response_model=InterestResponse, summary="Add or update interest in a course")
def add_interest(
    request: CourseInterestCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    total = course_interest_service.add_interest(
        db, request.announcement_id, current_user, request.interest_level, request.message
    )
    schedule_interest_update(background_tasks, request.announcement_id, total)
    return InterestResponse(message="Interest expressed successfully", total_interested=total)


@router.get("/announcement/{announcement_id}", response_model=InterestListResponse, summary="Interests for an announcement")
def interests_for_announcement(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    interests = course_interest_service.get_interests_by_announcement(db, announcement_id, current_user)
    return InterestListResponse(
        interests=interests,
        summary=course_interest_service.get_interest_summary(db, announcement_id),
    )


@router.get("/count/{announcement_id}", response_model=InterestCountResponse, summary="Number of interested users")
def interest_count(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    return InterestCountResponse(count=course_interest_service.get_interest_count(db, announcement_id))


@router.get("/user/{announcement_id}", response_model=UserInterestResponse, summary="Own interest in a course")
def user_interest(
    announcement_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)
):
    return UserInterestResponse(
        interest=course_interest_service.get_user_interest(db, announcement_id, current_user.id)
    )


@router.delete("/{announcement_id}", response_model=InterestResponse, summary="Withdraw interest")
def remove_interest(
    announcement_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    total = course_interest_service.remove_interest(db, announcement_id, current_user)
    schedule_interest_update(background_tasks, announcement_id, total)
    return InterestResponse(message="Interest removed successfully", total_interested=total)

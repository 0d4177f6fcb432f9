# app/api/v1/api.py
from fastapi import APIRouter

from app.api.v1.endpoints.auth_route import router as auth_router
from app.api.v1.endpoints.task_route import router as task_router
from app.api.v1.endpoints.chat_route import router as chat_router
from app.api.v1.endpoints.chat_group_route import router as chat_group_router
from app.api.v1.endpoints.notification_route import router as notification_router
from app.api.v1.endpoints.announcement_route import router as announcement_router
from app.api.v1.endpoints.course_interest_route import router as course_interest_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Auth"])
api_router.include_router(task_router, prefix="/tasks", tags=["Tasks"])
api_router.include_router(chat_router, prefix="/chat", tags=["Chat"])
api_router.include_router(chat_group_router, prefix="/chat-groups", tags=["Chat Groups"])
api_router.include_router(notification_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(announcement_router, prefix="/announcements", tags=["Announcements"])
api_router.include_router(course_interest_router, prefix="/course-interests", tags=["Course Interests"])

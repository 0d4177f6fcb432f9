# app/api/v1/endpoints/notification_route.py
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.api.auth.auth import authenticate
from app.realtime import notifier
from app.schemas.auth_schema import CurrentUser
from app.schemas.notification_schema import NotificationListResponse
from app.services import notification_service, task_service

router = APIRouter()


@router.get("", response_model=NotificationListResponse, summary="Notifications of the current user")
def get_notifications(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    """Newest first, with the number of unread ones."""
    notifications = notification_service.list_notifications(db, current_user.id)
    unread_count = notification_service.get_unread_count(db, current_user.id)
    return NotificationListResponse(notifications=notifications, unread_count=unread_count)


@router.get("/unread", response_model=NotificationListResponse, summary="Unread notifications")
def get_unread_notifications(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    notifications = notification_service.list_notifications(db, current_user.id, is_read=False)
    return NotificationListResponse(notifications=notifications, unread_count=len(notifications))


@router.put("/mark-all-read", summary="Mark every notification as read")
def mark_all_read(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    count = notification_service.mark_all_as_read(db, current_user.id)
    return {"success": True, "message": f"{count} notifications marked as read", "count": count}


@router.put("/{notification_id}/read", summary="Mark a notification as read")
def mark_read(notification_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    notification_service.mark_as_read(db, notification_id, current_user.id)
    return {"success": True, "message": "Notification marked as read"}


@router.put("/task/{task_id}/viewed", summary="Mark a task as viewed by its assignee")
def mark_task_viewed(
    task_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Access: the task assignee. The creator is notified when they opted in.
    """
    notified, notification = task_service.mark_viewed(db, task_id, current_user)
    background_tasks.add_task(notifier.push_notification, notification)
    message = "Task marked as viewed and creator has been notified" if notified else "Task marked as viewed"
    return {"success": True, "message": message}

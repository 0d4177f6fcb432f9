# app/services/task_service.py
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.api.auth.policies import (
    can_create_task, can_delete_task, can_edit_task_fields, can_update_task, can_view_task, require,
)
from app.crud import task_crud, user_crud
from app.models.notification_model import NotificationType
from app.schemas.auth_schema import CurrentUser
from app.schemas.notification_schema import NotificationView
from app.schemas.task_schema import TaskCreate, TaskUpdate, TaskView
from app.services import file_service, notification_service

logger = logging.getLogger(__name__)


def _task_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


def _verify_assignee(db: Session, assignee_id: Optional[int]) -> None:
    if assignee_id is None:
        return
    if not user_crud.get_active_user(db, assignee_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Assignee not found: user with ID {assignee_id} does not exist",
        )


def create_task(
    db: Session,
    data: TaskCreate,
    creator: CurrentUser,
    attachment: Optional[Tuple[str, str, int]] = None,
) -> Tuple[TaskView, Optional[NotificationView]]:
    """
    Insert a task and, when it is assigned to someone else, notify the assignee.

    `attachment` is (stored filename, original name, size). The stored file
    is removed when the task cannot be created. Returns the joined task and
    the notification that was raised, if any.
    """
    require(can_create_task, creator, detail="Only managers and admins can create tasks")
    try:
        _verify_assignee(db, data.assignee_id)
        values = data.model_dump()
        if attachment:
            values["attachment_path"], values["attachment_name"], values["attachment_size"] = attachment
        db_task = task_crud.create_task(db, values, created_by=creator.id)
    except Exception:
        db.rollback()
        if attachment:
            file_service.remove_upload(attachment[0])
        raise

    notification = None
    if db_task.assignee_id and db_task.assignee_id != creator.id:
        notification = notification_service.try_send_notification(
            db,
            NotificationType.task_assigned,
            recipient_id=db_task.assignee_id,
            sender_id=creator.id,
            task_id=db_task.id,
            message=f'You have been assigned a new task: "{db_task.title}"',
        )
    return task_crud.get_task_view(db, db_task.id), notification


def get_task(db: Session, task_id: int, user: CurrentUser) -> TaskView:
    task = task_crud.get_task_view(db, task_id)
    if not task:
        raise _task_not_found()
    require(can_view_task, user, task)
    return task


def list_tasks(db: Session, user: CurrentUser) -> List[TaskView]:
    return task_crud.get_tasks_for_user(db, user.id, user.role)


def update_task(
    db: Session, task_id: int, task_in: TaskUpdate, user: CurrentUser
) -> Tuple[TaskView, Optional[NotificationView]]:
    """
    Merge the provided fields into the task. Members may only change the
    status of tasks assigned to them.
    """
    db_task = task_crud.get_task(db, task_id)
    if not db_task:
        raise _task_not_found()
    require(can_update_task, user, db_task, detail="You can only update tasks assigned to you")

    update_data = task_in.model_dump(exclude_unset=True)
    require(can_edit_task_fields, user, update_data.keys(), detail="Members can only update the task status")

    previous_assignee = db_task.assignee_id
    if "assignee_id" in update_data and update_data["assignee_id"] != previous_assignee:
        _verify_assignee(db, update_data["assignee_id"])

    db_task = task_crud.update_task(db, db_task, update_data)

    notification = None
    if db_task.assignee_id and db_task.assignee_id != previous_assignee and db_task.assignee_id != user.id:
        notification = notification_service.try_send_notification(
            db,
            NotificationType.task_assigned,
            recipient_id=db_task.assignee_id,
            sender_id=user.id,
            task_id=db_task.id,
            message=f'You have been assigned a new task: "{db_task.title}"',
        )
    elif "status" in update_data and db_task.created_by != user.id:
        notification = notification_service.try_send_notification(
            db,
            NotificationType.task_updated,
            recipient_id=db_task.created_by,
            sender_id=user.id,
            task_id=db_task.id,
            message=f'{user.full_name} changed the status of "{db_task.title}" to {db_task.status.value}',
        )
    return task_crud.get_task_view(db, db_task.id), notification


def delete_task(db: Session, task_id: int, user: CurrentUser) -> None:
    db_task = task_crud.get_task(db, task_id)
    if not db_task:
        raise _task_not_found()
    require(can_delete_task, user, db_task, detail="Only the task creator or an admin can delete this task")
    attachment = db_task.attachment_path
    task_crud.delete_task(db, db_task)
    file_service.remove_upload(attachment)


def mark_viewed(db: Session, task_id: int, user: CurrentUser) -> Tuple[bool, Optional[NotificationView]]:
    """
    Record that the assignee opened the task. When the creator opted in, a
    task_viewed notification is sent to them. Returns (notified, notification).
    """
    db_task = task_crud.get_task(db, task_id)
    if not db_task:
        raise _task_not_found()
    if db_task.assignee_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not assigned to this task")

    task_crud.update_task(db, db_task, {"viewed_by_assignee": True, "viewed_at": datetime.now()})

    if not db_task.notify_on_view:
        return False, None
    notification = notification_service.try_send_notification(
        db,
        NotificationType.task_viewed,
        recipient_id=db_task.created_by,
        sender_id=user.id,
        task_id=db_task.id,
        message=f'{user.first_name} {user.last_name} has viewed the task "{db_task.title}"',
    )
    return True, notification

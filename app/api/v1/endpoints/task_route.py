# app/api/v1/endpoints/task_route.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.api import deps
from app.api.auth.auth import authenticate, require_manager_or_admin
from app.api.auth.policies import can_create_task, require
from app.models.task_model import TaskPriority, TaskStatus
from app.realtime import notifier
from app.schemas.auth_schema import CurrentUser, UserListResponse, UserPublic
from app.schemas.task_schema import TaskCreate, TaskListResponse, TaskResponse, TaskUpdate
from app.services import file_service, task_service
from app.crud import user_crud

router = APIRouter()


def _blank(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip() == "":
        return None
    return value


@router.get("", response_model=TaskListResponse, summary="Tasks visible to the current user")
def list_tasks(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    """
    Admins see all tasks, managers the ones they created or were assigned,
    members the ones assigned to them. Newest first.
    """
    tasks = task_service.list_tasks(db, current_user)
    return TaskListResponse(tasks=tasks, count=len(tasks))


@router.get(
    "/users/list",
    response_model=UserListResponse,
    summary="Active users available for assignment",
    dependencies=[Depends(require_manager_or_admin)],
)
def list_assignable_users(db: Session = Depends(deps.get_db)):
    """
    Access: **manager**, **admin**
    """
    users = [UserPublic.model_validate(user) for user in user_crud.get_active_users(db)]
    return UserListResponse(users=users)


@router.get("/attachments/{filename}", summary="Download a task attachment")
def download_attachment(filename: str, current_user: CurrentUser = Depends(authenticate)):
    path = file_service.resolve_upload(filename)
    return FileResponse(path, filename=filename)


@router.get("/{task_id}", response_model=TaskResponse, summary="Get a task")
def get_task(task_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    return TaskResponse(task=task_service.get_task(db, task_id, current_user))


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
def create_task(
    background_tasks: BackgroundTasks,
    title: str = Form(...),
    description: str = Form(""),
    due_date: Optional[str] = Form(None),
    priority: TaskPriority = Form(TaskPriority.medium),
    status_value: TaskStatus = Form(TaskStatus.todo, alias="status"),
    assignee_id: Optional[str] = Form(None),
    notify_on_view: bool = Form(True),
    attachment: Optional[UploadFile] = File(None),
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Multipart form with an optional `attachment` file.

    Access: **manager**, **admin**
    """
    require(can_create_task, current_user, detail="Only managers and admins can create tasks")
    try:
        task_in = TaskCreate(
            title=title.strip(),
            description=description.strip(),
            due_date=_blank(due_date),
            priority=priority,
            status=status_value,
            assignee_id=_blank(assignee_id),
            notify_on_view=notify_on_view,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))

    stored = None
    if attachment is not None and attachment.filename:
        stored = file_service.save_upload(attachment)

    task, notification = task_service.create_task(db, task_in, current_user, attachment=stored)
    background_tasks.add_task(notifier.push_notification, notification)
    return TaskResponse(message="Task created successfully", task=task)


@router.put("/{task_id}", response_model=TaskResponse, summary="Update a task")
def update_task(
    task_id: int,
    task_in: TaskUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Only the provided fields change. Members may only update the status of
    tasks assigned to them.
    """
    task, notification = task_service.update_task(db, task_id, task_in, current_user)
    background_tasks.add_task(notifier.push_notification, notification)
    return TaskResponse(message="Task updated successfully", task=task)


@router.delete("/{task_id}", summary="Delete a task")
def delete_task(task_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    """
    Access: the task creator or an **admin**
    """
    task_service.delete_task(db, task_id, current_user)
    return {"success": True, "message": "Task deleted successfully"}

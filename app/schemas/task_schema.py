# app/schemas/task_schema.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.models.task_model import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """
    Validated task payload. The route builds it from multipart form fields.
    """
    title: str = Field(..., min_length=1, max_length=255, example="Prepare quarterly report")
    description: str = Field("", max_length=5000)
    due_date: Optional[datetime] = Field(None, example="2026-11-01T17:00:00")
    priority: TaskPriority = Field(TaskPriority.medium, example=TaskPriority.high)
    status: TaskStatus = Field(TaskStatus.todo)
    assignee_id: Optional[int] = Field(None, ge=1, example=2)
    notify_on_view: bool = True


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    due_date: Optional[datetime] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee_id: Optional[int] = Field(None, ge=1)

    @field_validator("title", "description", "status", "priority")
    @classmethod
    def not_null(cls, value):
        # omitted fields are left alone, only an explicit null is rejected
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class TaskView(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: TaskStatus
    priority: TaskPriority
    assignee_id: Optional[int] = None
    created_by: int
    attachment_path: Optional[str] = None
    attachment_name: Optional[str] = None
    attachment_size: Optional[int] = None
    notify_on_view: bool
    viewed_by_assignee: bool
    viewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assignee_first_name: Optional[str] = None
    assignee_last_name: Optional[str] = None
    assignee_email: Optional[str] = None
    creator_first_name: Optional[str] = None
    creator_last_name: Optional[str] = None

    class Config:
        from_attributes = True


class TaskListResponse(BaseModel):
    success: bool = True
    tasks: List[TaskView]
    count: int


class TaskResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    task: TaskView

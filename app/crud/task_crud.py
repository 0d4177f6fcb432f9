# app/crud/task_crud.py
from typing import Any, Dict, List, Optional
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.task_model import Task
from app.models.user_model import User, UserRole
from app.schemas.task_schema import TaskView


def get_task_with_names_query():
    """
    Select over tasks joined with the assignee and creator names.
    """
    assignee = User.__table__.alias("assignee")
    creator = User.__table__.alias("creator")

    return (
        select(
            Task.id,
            Task.title,
            Task.description,
            Task.due_date,
            Task.status,
            Task.priority,
            Task.assignee_id,
            Task.created_by,
            Task.attachment_path,
            Task.attachment_name,
            Task.attachment_size,
            Task.notify_on_view,
            Task.viewed_by_assignee,
            Task.viewed_at,
            Task.created_at,
            Task.updated_at,
            assignee.c.first_name.label("assignee_first_name"),
            assignee.c.last_name.label("assignee_last_name"),
            assignee.c.email.label("assignee_email"),
            creator.c.first_name.label("creator_first_name"),
            creator.c.last_name.label("creator_last_name"),
        )
        .select_from(Task)
        .outerjoin(assignee, Task.assignee_id == assignee.c.id)
        .join(creator, Task.created_by == creator.c.id)
    )


def get_task(db: Session, task_id: int) -> Optional[Task]:
    return db.get(Task, task_id)


def get_task_view(db: Session, task_id: int) -> Optional[TaskView]:
    row = db.execute(get_task_with_names_query().where(Task.id == task_id)).first()
    if row:
        return TaskView.model_validate(dict(row._mapping))
    return None


def get_tasks_for_user(db: Session, user_id: int, role: UserRole) -> List[TaskView]:
    """
    Admins see every task, managers the tasks they created or were assigned,
    members only the tasks assigned to them.
    """
    query = get_task_with_names_query()
    if role == UserRole.manager:
        query = query.where(or_(Task.created_by == user_id, Task.assignee_id == user_id))
    elif role != UserRole.admin:
        query = query.where(Task.assignee_id == user_id)
    query = query.order_by(Task.created_at.desc(), Task.id.desc())
    return [TaskView.model_validate(dict(row._mapping)) for row in db.execute(query).all()]


def create_task(db: Session, data: Dict[str, Any], created_by: int) -> Task:
    db_task = Task(**data, created_by=created_by)
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    return db_task


def update_task(db: Session, db_task: Task, update_data: Dict[str, Any]) -> Task:
    """Apply only the provided fields; omitted fields keep their values."""
    for key, value in update_data.items():
        setattr(db_task, key, value)
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    return db_task


def delete_task(db: Session, db_task: Task) -> None:
    db.delete(db_task)
    db.commit()

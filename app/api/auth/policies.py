# app/api/auth/policies.py
"""
Capability checks, one predicate per action.

Routes and services ask `require(can_x, user, ...)` instead of comparing role
names, so the role matrix lives here only.
"""
from typing import Callable

from fastapi import HTTPException, status

from app.models.announcement_model import TargetAudience
from app.models.user_model import UserRole

STAFF_ROLES = (UserRole.manager, UserRole.admin)


def can_create_task(user) -> bool:
    return user.role in STAFF_ROLES


def can_view_task(user, task) -> bool:
    return user.role == UserRole.admin or user.id in (task.created_by, task.assignee_id)


def can_update_task(user, task) -> bool:
    if user.role in STAFF_ROLES:
        return True
    return task.assignee_id == user.id


def can_edit_task_fields(user, fields) -> bool:
    """Members may only move the status of their tasks."""
    if user.role in STAFF_ROLES:
        return True
    return set(fields) <= {"status"}


def can_delete_task(user, task) -> bool:
    return user.role == UserRole.admin or task.created_by == user.id


def can_create_announcement(user) -> bool:
    return user.role in STAFF_ROLES


def can_see_announcement(user, announcement) -> bool:
    if user.role == UserRole.admin or announcement.sender_id == user.id:
        return True
    audience = announcement.target_audience
    if audience == TargetAudience.all:
        return True
    if audience == TargetAudience.members:
        return user.role == UserRole.member
    return user.role == UserRole.manager


def can_view_course_interests(user, announcement) -> bool:
    """Admins see every announcement's interests, managers only their own."""
    if user.role == UserRole.admin:
        return True
    return user.role == UserRole.manager and announcement.sender_id == user.id


def can_view_sender_announcements(user, sender_id: int) -> bool:
    return user.role == UserRole.admin or user.id == sender_id


def can_create_chat_group(user) -> bool:
    return user.role in STAFF_ROLES


def require(policy: Callable[..., bool], user, *args, detail: str = "Access denied") -> None:
    if not policy(user, *args):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

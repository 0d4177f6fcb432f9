# app/api/v1/endpoints/chat_group_route.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.api import deps
from app.api.auth.auth import authenticate
from app.realtime import notifier
from app.schemas.auth_schema import CurrentUser
from app.schemas.chat_group_schema import (
    GroupCreate, GroupListResponse, GroupMembersResponse, GroupMessageCreate, GroupMessagePage,
    GroupMessageResponse, GroupResponse, MembersRequest,
)
from app.services import chat_group_service

router = APIRouter()


@router.get("", response_model=GroupListResponse, summary="Groups of the current user")
def list_groups(db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    return GroupListResponse(groups=chat_group_service.get_user_groups(db, current_user.id))


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED, summary="Create a chat group")
def create_group(
    group_in: GroupCreate,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Access: **manager**, **admin**. The creator manages the group and is not
    listed as a member.
    """
    group = chat_group_service.create_group(db, current_user, group_in)
    return GroupResponse(message="Group created successfully", group=group)


@router.get("/{group_id}/members", response_model=GroupMembersResponse, summary="Members of a group")
def get_members(group_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    return GroupMembersResponse(members=chat_group_service.get_group_members(db, group_id, current_user.id))


@router.post("/{group_id}/members", response_model=GroupResponse, summary="Add members")
def add_members(
    group_id: int,
    request: MembersRequest,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Access: the group manager. Existing memberships are ignored.
    """
    group = chat_group_service.add_members(db, group_id, current_user.id, request.members)
    return GroupResponse(message="Members added successfully", group=group)


@router.delete("/{group_id}/members", response_model=GroupResponse, summary="Remove members")
def remove_members(
    group_id: int,
    request: MembersRequest,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    group = chat_group_service.remove_members(db, group_id, current_user.id, request.members)
    return GroupResponse(message="Members removed successfully", group=group)


@router.get("/{group_id}/messages", response_model=GroupMessagePage, summary="Group messages")
def get_messages(
    group_id: int,
    limit: int = Query(50, ge=1, le=100),
    before_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    messages, next_cursor = chat_group_service.get_group_messages(db, group_id, current_user.id, limit, before_id)
    return GroupMessagePage(messages=messages, next_cursor=next_cursor)


@router.post(
    "/{group_id}/send",
    response_model=GroupMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a group message",
)
@router.post(
    "/{group_id}/messages",
    response_model=GroupMessageResponse,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
def send_message(
    group_id: int,
    message_in: GroupMessageCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Access: members and the manager of an active group.
    """
    message = chat_group_service.send_group_message(db, group_id, current_user.id, message_in)
    background_tasks.add_task(notifier.emit_to_group, group_id, "new_group_message", message)
    return GroupMessageResponse(message=message)


@router.post("/{group_id}/close", response_model=GroupResponse, summary="Close a group")
def close_group(group_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    group = chat_group_service.close_group(db, group_id, current_user.id)
    return GroupResponse(message="Group closed successfully", group=group)


@router.post("/{group_id}/reopen", response_model=GroupResponse, summary="Reopen a group")
def reopen_group(group_id: int, db: Session = Depends(deps.get_db), current_user: CurrentUser = Depends(authenticate)):
    group = chat_group_service.reopen_group(db, group_id, current_user.id)
    return GroupResponse(message="Group reopened successfully", group=group)

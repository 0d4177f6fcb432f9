# app/services/chat_group_service.py
import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.api.auth.policies import can_create_chat_group, require
from app.crud import chat_group_crud, user_crud
from app.models.chat_group_model import ChatGroup
from app.models.message_model import MessageType
from app.schemas.auth_schema import CurrentUser
from app.schemas.chat_group_schema import (
    GroupCreate, GroupMemberView, GroupMessageCreate, GroupMessageView, GroupView,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _group_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")


def _get_managed_group(db: Session, group_id: int, user_id: int) -> ChatGroup:
    db_group = chat_group_crud.get_group(db, group_id)
    if not db_group:
        raise _group_not_found()
    if db_group.manager_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the group manager can manage this group",
        )
    return db_group


def _dedupe_members(db: Session, member_ids: List[int], exclude_id: int) -> List[int]:
    """Unique ids in request order without the manager; all must be active users."""
    unique_ids = []
    for member_id in member_ids:
        if member_id != exclude_id and member_id not in unique_ids:
            unique_ids.append(member_id)
    existing = set(user_crud.get_existing_user_ids(db, unique_ids))
    missing = [member_id for member_id in unique_ids if member_id not in existing]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Users not found: {', '.join(str(m) for m in missing)}",
        )
    return unique_ids


def is_group_member(db: Session, group_id: int, user_id: int) -> bool:
    return chat_group_crud.is_group_member(db, group_id, user_id)


def is_group_manager(db: Session, group_id: int, user_id: int) -> bool:
    return chat_group_crud.is_group_manager(db, group_id, user_id)


def can_access_group(db: Session, group_id: int, user_id: int) -> bool:
    """Member or manager of an active group."""
    db_group = chat_group_crud.get_group(db, group_id)
    if not db_group or not db_group.is_active:
        return False
    return db_group.manager_id == user_id or chat_group_crud.is_group_member(db, group_id, user_id)


def create_group(db: Session, manager: CurrentUser, group_in: GroupCreate) -> GroupView:
    require(can_create_chat_group, manager, detail="Only managers and admins can create chat groups")
    member_ids = _dedupe_members(db, group_in.members, exclude_id=manager.id)
    db_group = chat_group_crud.create_group(db, manager.id, group_in.name, group_in.description, member_ids)
    logger.info(f"Chat group {db_group.id} created by user {manager.id} with {len(member_ids)} members")
    return chat_group_crud.build_group_view(db, db_group, manager.id)


def get_user_groups(db: Session, user_id: int) -> List[GroupView]:
    return chat_group_crud.get_user_groups(db, user_id)


def add_members(db: Session, group_id: int, user_id: int, member_ids: List[int]) -> GroupView:
    db_group = _get_managed_group(db, group_id, user_id)
    chat_group_crud.add_members(db, group_id, _dedupe_members(db, member_ids, exclude_id=db_group.manager_id))
    return chat_group_crud.build_group_view(db, db_group, user_id)


def remove_members(db: Session, group_id: int, user_id: int, member_ids: List[int]) -> GroupView:
    db_group = _get_managed_group(db, group_id, user_id)
    chat_group_crud.remove_members(db, group_id, member_ids)
    return chat_group_crud.build_group_view(db, db_group, user_id)


def send_group_message(db: Session, group_id: int, sender_id: int, message_in: GroupMessageCreate) -> GroupMessageView:
    if not can_access_group(db, group_id, sender_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this group")

    text = (message_in.message_text or "").strip()
    if not text and not message_in.attachment_path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message text is required")

    message_type = message_in.message_type
    if message_in.attachment_path:
        message_type = MessageType.file
        if not text:
            text = message_in.attachment_name or "Attachment"

    db_message = chat_group_crud.create_group_message(
        db, group_id, sender_id, text, message_type, message_in.attachment_path, message_in.attachment_name
    )
    return chat_group_crud.get_group_message_view(db, db_message.id)


def get_group_messages(
    db: Session, group_id: int, user_id: int, limit: int = 50, before_id: Optional[int] = None
) -> Tuple[List[GroupMessageView], Optional[int]]:
    if not can_access_group(db, group_id, user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this group")
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return chat_group_crud.get_group_messages(db, group_id, limit, before_id)


def get_group_members(db: Session, group_id: int, user_id: int) -> List[GroupMemberView]:
    if not can_access_group(db, group_id, user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this group")
    return chat_group_crud.get_group_members(db, group_id)


def close_group(db: Session, group_id: int, user_id: int) -> GroupView:
    db_group = _get_managed_group(db, group_id, user_id)
    db_group = chat_group_crud.set_group_active(db, db_group, False)
    return chat_group_crud.build_group_view(db, db_group, user_id)


def reopen_group(db: Session, group_id: int, user_id: int) -> GroupView:
    db_group = _get_managed_group(db, group_id, user_id)
    db_group = chat_group_crud.set_group_active(db, db_group, True)
    return chat_group_crud.build_group_view(db, db_group, user_id)

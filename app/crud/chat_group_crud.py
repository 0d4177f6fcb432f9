# app/crud/chat_group_crud.py
from typing import List, Optional, Tuple
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.crud.pagination import fetch_keyset_page
from app.models.chat_group_model import ChatGroup, ChatGroupMember, GroupMessage
from app.models.message_model import MessageType
from app.models.user_model import User
from app.schemas.chat_group_schema import GroupMemberView, GroupMessageView, GroupView


def get_group(db: Session, group_id: int) -> Optional[ChatGroup]:
    return db.get(ChatGroup, group_id)


def create_group(db: Session, manager_id: int, name: str, description: str, member_ids: List[int]) -> ChatGroup:
    db_group = ChatGroup(manager_id=manager_id, name=name, description=description or "")
    db.add(db_group)
    db.flush()
    for member_id in member_ids:
        db.add(ChatGroupMember(group_id=db_group.id, user_id=member_id))
    db.commit()
    db.refresh(db_group)
    return db_group


def get_member_ids(db: Session, group_id: int) -> List[int]:
    rows = db.query(ChatGroupMember.user_id).filter(ChatGroupMember.group_id == group_id).all()
    return [row.user_id for row in rows]


def add_members(db: Session, group_id: int, user_ids: List[int]) -> int:
    """Insert memberships that do not exist yet; returns how many were added."""
    existing = set(get_member_ids(db, group_id))
    added = 0
    for user_id in user_ids:
        if user_id in existing:
            continue
        db.add(ChatGroupMember(group_id=group_id, user_id=user_id))
        existing.add(user_id)
        added += 1
    db.commit()
    return added


def remove_members(db: Session, group_id: int, user_ids: List[int]) -> int:
    if not user_ids:
        return 0
    count = db.query(ChatGroupMember).filter(
        ChatGroupMember.group_id == group_id,
        ChatGroupMember.user_id.in_(user_ids),
    ).delete(synchronize_session=False)
    db.commit()
    return count


def is_group_member(db: Session, group_id: int, user_id: int) -> bool:
    return db.query(ChatGroupMember).filter(
        ChatGroupMember.group_id == group_id,
        ChatGroupMember.user_id == user_id,
    ).first() is not None


def is_group_manager(db: Session, group_id: int, user_id: int) -> bool:
    return db.query(ChatGroup).filter(
        ChatGroup.id == group_id,
        ChatGroup.manager_id == user_id,
        ChatGroup.is_active == True,  # noqa: E712
    ).first() is not None


def set_group_active(db: Session, db_group: ChatGroup, is_active: bool) -> ChatGroup:
    db_group.is_active = is_active
    db.commit()
    db.refresh(db_group)
    return db_group


def build_group_view(db: Session, db_group: ChatGroup, user_id: int) -> GroupView:
    """
    Annotate a group with membership flags, member names and its last message.
    """
    members = (
        db.query(User.first_name, User.last_name)
        .join(ChatGroupMember, ChatGroupMember.user_id == User.id)
        .filter(ChatGroupMember.group_id == db_group.id)
        .order_by(User.first_name, User.last_name)
        .all()
    )
    last = (
        db.query(GroupMessage.message_text, GroupMessage.created_at, GroupMessage.sender_id,
                 User.first_name, User.last_name)
        .join(User, User.id == GroupMessage.sender_id)
        .filter(GroupMessage.group_id == db_group.id)
        .order_by(GroupMessage.created_at.desc(), GroupMessage.id.desc())
        .first()
    )
    return GroupView(
        id=db_group.id,
        manager_id=db_group.manager_id,
        name=db_group.name,
        description=db_group.description,
        is_active=db_group.is_active,
        created_at=db_group.created_at,
        is_member=is_group_member(db, db_group.id, user_id),
        is_manager=db_group.manager_id == user_id,
        member_count=len(members),
        member_names=", ".join(f"{m.first_name} {m.last_name}" for m in members) or None,
        last_message=last.message_text if last else None,
        last_message_time=last.created_at if last else None,
        last_sender_id=last.sender_id if last else None,
        last_sender_name=f"{last.first_name} {last.last_name}" if last else None,
    )


def get_user_groups(db: Session, user_id: int) -> List[GroupView]:
    """Active groups the user manages or belongs to, most recent activity first."""
    member_of = select(ChatGroupMember.group_id).where(ChatGroupMember.user_id == user_id)
    groups = (
        db.query(ChatGroup)
        .filter(
            ChatGroup.is_active == True,  # noqa: E712
            or_(ChatGroup.manager_id == user_id, ChatGroup.id.in_(member_of)),
        )
        .all()
    )
    views = [build_group_view(db, group, user_id) for group in groups]
    views.sort(key=lambda g: (g.last_message_time or g.created_at, g.id), reverse=True)
    return views


def get_group_message_with_sender_query():
    return (
        select(
            GroupMessage.id,
            GroupMessage.group_id,
            GroupMessage.sender_id,
            GroupMessage.message_text,
            GroupMessage.message_type,
            GroupMessage.attachment_path,
            GroupMessage.attachment_name,
            GroupMessage.created_at,
            User.first_name.label("sender_first_name"),
            User.last_name.label("sender_last_name"),
            (User.first_name + " " + User.last_name).label("sender_name"),
            User.email.label("sender_email"),
            User.role.label("sender_role"),
        )
        .select_from(GroupMessage)
        .join(User, GroupMessage.sender_id == User.id)
    )


def create_group_message(
    db: Session,
    group_id: int,
    sender_id: int,
    message_text: str,
    message_type: MessageType = MessageType.text,
    attachment_path: Optional[str] = None,
    attachment_name: Optional[str] = None,
) -> GroupMessage:
    db_message = GroupMessage(
        group_id=group_id,
        sender_id=sender_id,
        message_text=message_text,
        message_type=message_type,
        attachment_path=attachment_path,
        attachment_name=attachment_name,
    )
    db.add(db_message)
    db.commit()
    db.refresh(db_message)
    return db_message


def get_group_message_view(db: Session, message_id: int) -> Optional[GroupMessageView]:
    row = db.execute(get_group_message_with_sender_query().where(GroupMessage.id == message_id)).first()
    if row:
        return GroupMessageView.model_validate(dict(row._mapping))
    return None


def get_group_messages(
    db: Session, group_id: int, limit: int = 50, before_id: Optional[int] = None
) -> Tuple[List[GroupMessageView], Optional[int]]:
    query = get_group_message_with_sender_query().where(GroupMessage.group_id == group_id)
    rows, next_cursor = fetch_keyset_page(db, query, GroupMessage, limit, before_id)
    return [GroupMessageView.model_validate(dict(row._mapping)) for row in rows], next_cursor


def get_group_members(db: Session, group_id: int) -> List[GroupMemberView]:
    rows = (
        db.query(
            User.id.label("user_id"),
            User.first_name,
            User.last_name,
            User.email,
            User.role,
            ChatGroupMember.joined_at,
        )
        .join(ChatGroupMember, ChatGroupMember.user_id == User.id)
        .filter(ChatGroupMember.group_id == group_id)
        .order_by(User.first_name, User.last_name)
        .all()
    )
    return [GroupMemberView.model_validate(dict(row._mapping)) for row in rows]

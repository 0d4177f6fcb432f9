# app/crud/user_crud.py
from typing import List, Optional
from sqlalchemy.orm import Session

from app.models.user_model import User, UserRole, hash_password
from app.schemas.auth_schema import ProfileUpdate, RegisterRequest


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_active_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def get_users(db: Session) -> List[User]:
    """All users, newest first (admin listing)."""
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def get_active_users(db: Session, exclude_user_id: Optional[int] = None) -> List[User]:
    query = db.query(User).filter(User.is_active == True)  # noqa: E712
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.order_by(User.first_name, User.last_name).all()


def get_existing_user_ids(db: Session, user_ids: List[int]) -> List[int]:
    if not user_ids:
        return []
    rows = db.query(User.id).filter(User.id.in_(user_ids), User.is_active == True).all()  # noqa: E712
    return [row.id for row in rows]


def create_user(db: Session, user: RegisterRequest) -> User:
    """
    Insert a user with a bcrypt-hashed password.
    """
    db_user = User(
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email.lower(),
        password=hash_password(user.password),
        role=user.role or UserRole.member,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_profile(db: Session, db_user: User, profile: ProfileUpdate) -> User:
    update_data = profile.model_dump(exclude_unset=True)
    if "email" in update_data:
        update_data["email"] = update_data["email"].lower()
    for key, value in update_data.items():
        setattr(db_user, key, value)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

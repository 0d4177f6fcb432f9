# app/crud/password_reset_crud.py
from datetime import datetime
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.token_model import PasswordResetToken
from app.models.user_model import User


def delete_tokens_for_user(db: Session, user_id: int) -> int:
    return db.query(PasswordResetToken).filter(
        PasswordResetToken.user_id == user_id
    ).delete(synchronize_session=False)


def create_token(db: Session, user: User, token_hash: str, expires_at: datetime) -> PasswordResetToken:
    """Replace any previous token of the user with a new one."""
    delete_tokens_for_user(db, user.id)
    db_token = PasswordResetToken(
        user_id=user.id,
        email=user.email,
        token=token_hash,
        expires_at=expires_at,
    )
    db.add(db_token)
    db.commit()
    db.refresh(db_token)
    return db_token


def get_valid_token(db: Session, token_hash: str, for_update: bool = False) -> Optional[PasswordResetToken]:
    """
    Unused, unexpired token row by hash. With for_update the row is locked
    until the surrounding transaction ends.
    """
    query = db.query(PasswordResetToken).filter(
        PasswordResetToken.token == token_hash,
        PasswordResetToken.used == False,  # noqa: E712
        PasswordResetToken.expires_at > datetime.now(),
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def purge_stale_tokens(db: Session) -> int:
    count = db.query(PasswordResetToken).filter(
        or_(PasswordResetToken.used == True, PasswordResetToken.expires_at <= datetime.now())  # noqa: E712
    ).delete(synchronize_session=False)
    db.commit()
    return count

# app/services/password_reset_service.py
import hashlib
import logging
import secrets
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.config import PASSWORD_RESET_EXPIRE_MINUTES
from app.crud import password_reset_crud, user_crud
from app.models.user_model import hash_password
from app.schemas.auth_schema import ResetTokenInfo
from app.services import email_service

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."
INVALID_TOKEN_MESSAGE = "Invalid or expired reset token"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def request_password_reset(db: Session, email: str) -> str:
    """
    Issue a reset token for an active user and email the link.

    The answer is the same whether or not the account exists. Email delivery
    failures are logged, the token stays valid.
    """
    user = user_crud.get_user_by_email(db, email)
    if not user or not user.is_active:
        logger.info("Password reset requested for unknown or inactive email")
        return FORGOT_PASSWORD_MESSAGE

    token = secrets.token_hex(32)
    expires_at = datetime.now() + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
    password_reset_crud.create_token(db, user, hash_token(token), expires_at)

    try:
        email_service.send_password_reset_email(user.email, token, user.first_name)
    except Exception as e:
        logger.error(f"Failed to send password reset email to user {user.id}: {e}", exc_info=True)
    return FORGOT_PASSWORD_MESSAGE


def verify_reset_token(db: Session, token: str) -> ResetTokenInfo:
    db_token = password_reset_crud.get_valid_token(db, hash_token(token))
    if not db_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"valid": False, "error": INVALID_TOKEN_MESSAGE},
        )
    user = db_token.user
    return ResetTokenInfo(
        user_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        expires_at=db_token.expires_at,
    )


def reset_password(db: Session, token: str, new_password: str) -> str:
    """
    Consume a reset token and set the new password in one transaction.

    The token row is locked while it is checked, so a token can change the
    password at most once. Returns the user's email.
    """
    try:
        db_token = password_reset_crud.get_valid_token(db, hash_token(token), for_update=True)
        if not db_token:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TOKEN_MESSAGE)

        user = user_crud.get_user(db, db_token.user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User not found")

        user.password = hash_password(new_password)
        db_token.used = True
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Password reset completed for user {user.id}")
    return user.email


def purge_stale_tokens(db: Session) -> int:
    return password_reset_crud.purge_stale_tokens(db)

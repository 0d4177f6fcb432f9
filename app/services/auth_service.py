# app/services/auth_service.py
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.api.auth.auth import create_access_token
from app.crud import user_crud
from app.schemas.auth_schema import (
    AuthResponse, CurrentUser, LoginRequest, ProfileUpdate, RegisterRequest, UserPublic,
)


def register_user(db: Session, request: RegisterRequest) -> AuthResponse:
    if user_crud.get_user_by_email(db, request.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists",
        )
    db_user = user_crud.create_user(db, request)
    return AuthResponse(
        message="User registered successfully",
        token=create_access_token(db_user.id),
        user=UserPublic.model_validate(db_user),
    )


def login_user(db: Session, request: LoginRequest) -> AuthResponse:
    """
    Unknown email, inactive account and wrong password all answer the same 400.
    """
    db_user = user_crud.get_user_by_email(db, request.email)
    if not db_user or not db_user.is_active or not db_user.verify_password(request.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")
    return AuthResponse(
        message="Login successful",
        token=create_access_token(db_user.id),
        user=UserPublic.model_validate(db_user),
    )


def update_profile(db: Session, current_user: CurrentUser, profile: ProfileUpdate) -> CurrentUser:
    existing = user_crud.get_user_by_email(db, profile.email)
    if existing and existing.id != current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already taken")
    db_user = user_crud.get_user(db, current_user.id)
    db_user = user_crud.update_profile(db, db_user, profile)
    return CurrentUser.model_validate(db_user)

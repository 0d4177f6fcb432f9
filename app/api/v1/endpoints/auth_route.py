# app/api/v1/endpoints/auth_route.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api import deps
from app.api.auth.auth import authenticate, require_admin
from app.crud import user_crud
from app.schemas.auth_schema import (
    AdminUserView, AuthResponse, CurrentUser, ForgotPasswordRequest, LoginRequest, MessageResponse,
    ProfileUpdate, RegisterRequest, ResetPasswordRequest, ResetTokenInfo,
)
from app.services import auth_service, password_reset_service

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register(request: RegisterRequest, db: Session = Depends(deps.get_db)):
    """
    Create an account and return a token for it. 409 when the email is taken.
    """
    return auth_service.register_user(db, request)


@router.post("/login", response_model=AuthResponse, summary="Log in with email and password")
def login(request: LoginRequest, db: Session = Depends(deps.get_db)):
    return auth_service.login_user(db, request)


@router.get("/me", summary="Current user")
def read_me(current_user: CurrentUser = Depends(authenticate)):
    return {"user": current_user}


@router.put("/profile", summary="Update own profile")
def update_profile(
    profile: ProfileUpdate,
    db: Session = Depends(deps.get_db),
    current_user: CurrentUser = Depends(authenticate),
):
    """
    Update names and email. 400 when the email belongs to someone else.
    """
    return {"user": auth_service.update_profile(db, current_user, profile)}


@router.get("/admin/users", summary="List every user", dependencies=[Depends(require_admin)])
def list_all_users(db: Session = Depends(deps.get_db)):
    """
    Access: **admin**
    """
    users = [AdminUserView.model_validate(user) for user in user_crud.get_users(db)]
    return {"success": True, "users": users}


@router.post("/forgot-password", response_model=MessageResponse, summary="Request a password reset link")
def forgot_password(request: ForgotPasswordRequest, db: Session = Depends(deps.get_db)):
    """
    Always answers with the same message so accounts cannot be enumerated.
    """
    message = password_reset_service.request_password_reset(db, request.email)
    return MessageResponse(message=message)


@router.get("/reset-password/{token}/verify", response_model=ResetTokenInfo, summary="Check a reset token")
def verify_reset_token(token: str, db: Session = Depends(deps.get_db)):
    return password_reset_service.verify_reset_token(db, token)


@router.post("/reset-password/{token}", summary="Set a new password with a reset token")
def reset_password(token: str, request: ResetPasswordRequest, db: Session = Depends(deps.get_db)):
    email = password_reset_service.reset_password(db, token, request.password)
    return {"success": True, "message": "Password reset successful", "email": email}

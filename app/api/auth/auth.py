#app/api/auth/auth.py
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt # type: ignore
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.config import ACCESS_TOKEN_EXPIRE_DAYS, JWT_ALGORITHM, JWT_SECRET
from app.crud import user_crud
from app.models.user_model import UserRole
from app.schemas.auth_schema import CurrentUser, TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _credentials_exception(detail: str = "Invalid token.") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"id": user_id, "exp": expire}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> TokenData:
    """
    Check signature and expiry and extract the user id. Raises 401.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise _credentials_exception()
    user_id = payload.get("id")
    if user_id is None:
        raise _credentials_exception()
    return TokenData(user_id=user_id)


def load_current_user(db: Session, token: str) -> CurrentUser:
    token_data = verify_token(token)
    user = user_crud.get_active_user(db, token_data.user_id)
    if not user:
        raise _credentials_exception("Invalid token. User not found.")
    return CurrentUser.model_validate(user)


def authenticate(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> CurrentUser:
    if not token:
        raise _credentials_exception("Access denied. No token provided.")
    return load_current_user(db, token)


def optional_auth(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Optional[CurrentUser]:
    """Like authenticate, but yields None instead of failing."""
    if not token:
        return None
    try:
        return load_current_user(db, token)
    except HTTPException:
        return None


def authorize(required_roles: List[UserRole]):
    """
    Dependency factory checking the caller's role against `required_roles`.
    """
    def role_checker(current_user: CurrentUser = Depends(authenticate)) -> CurrentUser:
        if current_user.role not in required_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "Access denied. Insufficient permissions.",
                    "code": "INSUFFICIENT_PERMISSIONS",
                    "required_roles": [role.value for role in required_roles],
                    "user_role": current_user.role.value,
                },
            )
        return current_user
    return role_checker


require_admin = authorize([UserRole.admin])
require_manager_or_admin = authorize([UserRole.manager, UserRole.admin])


def validate_resource_ownership(user_id: int, current_user: CurrentUser = Depends(authenticate)) -> CurrentUser:
    """
    For routes carrying a `user_id` path parameter: only that user or an admin passes.
    """
    if current_user.role != UserRole.admin and current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Access denied. You can only access your own resources.",
                "code": "RESOURCE_ACCESS_DENIED",
            },
        )
    return current_user

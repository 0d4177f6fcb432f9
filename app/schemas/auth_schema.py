# app/schemas/auth_schema.py
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime

from app.models.user_model import UserRole


class TokenData(BaseModel):
    user_id: Optional[int] = None


class CurrentUser(BaseModel):
    """
    Authenticated user attached to a request. The password hash is never part of it.
    """
    id: int = Field(..., example=1)
    first_name: str = Field(..., example="Jane")
    last_name: str = Field(..., example="Doe")
    email: EmailStr = Field(..., example="jane.doe@example.com")
    role: UserRole = Field(..., example=UserRole.member)
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class UserPublic(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    role: UserRole

    class Config:
        from_attributes = True


class AdminUserView(UserPublic):
    is_active: bool
    created_at: Optional[datetime] = None


class RegisterRequest(BaseModel):
    first_name: str = Field(..., example="Jane")
    last_name: str = Field(..., example="Doe")
    email: EmailStr = Field(..., example="jane.doe@example.com")
    password: str = Field(..., example="secret123")
    role: UserRole = Field(UserRole.member, example=UserRole.member)

    @field_validator("first_name", "last_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return value


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., example="jane.doe@example.com")
    password: str = Field(..., example="secret123")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class AuthResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    token: str
    user: UserPublic


class ProfileUpdate(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr

    @field_validator("first_name", "last_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class ResetPasswordRequest(BaseModel):
    password: str
    confirmPassword: str

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirmPassword:
            raise ValueError("Password confirmation does not match password")
        return self


class ResetTokenInfo(BaseModel):
    valid: bool = True
    user_id: int
    first_name: str
    last_name: str
    email: EmailStr
    expires_at: datetime


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserListResponse(BaseModel):
    success: bool = True
    users: List[UserPublic]

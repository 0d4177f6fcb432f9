# app/models/user_model.py
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, func
from passlib.context import CryptContext

from app.config import BCRYPT_ROUNDS
from app.models.base_model import Base

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


class UserRole(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    member = "member"


class User(Base):
    """
    Model for the users table.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    role = Column(Enum(UserRole, name="user_role_enum"), nullable=False, default=UserRole.member)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    def verify_password(self, plain_password: str) -> bool:
        return pwd_context.verify(plain_password.encode("utf-8")[:72], self.password)

    def set_password(self, plain_password: str):
        self.password = hash_password(plain_password)


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password.encode("utf-8")[:72])

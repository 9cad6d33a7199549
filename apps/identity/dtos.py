"""DTOs for Identity app."""
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID
from typing import Optional

from ninja import Schema

from .models import UserRole


@dataclass(frozen=True)
class UserDTO:
    id: UUID
    name: str
    email: str
    role: str
    date_joined: datetime


@dataclass(frozen=True)
class UserSummaryDTO:
    """The slice of a user embedded in task payloads."""
    id: UUID
    name: str
    email: str


class RegisterIn(Schema):
    name: str = ""
    email: str = ""
    password: str = ""
    role: str = UserRole.USER


class LoginIn(Schema):
    email: str = ""
    password: str = ""


class UserUpdate(Schema):
    name: str = ""
    email: str = ""
    role: Optional[str] = None


class UserOut(Schema):
    id: UUID
    name: str
    email: str
    role: str
    date_joined: datetime


class AuthOut(Schema):
    token: str
    user: UserOut


class MessageOut(Schema):
    message: str

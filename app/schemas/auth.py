from typing import Optional
from uuid import UUID

from app.schemas.common import CamelModel, UtcDatetime


class LoginIn(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterIn(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class UserOut(CamelModel):
    id: UUID
    email: str
    name: str
    role: str
    created_at: Optional[UtcDatetime] = None


class AuthOut(CamelModel):
    message: str
    user: UserOut
    token: str


class MeOut(CamelModel):
    user: UserOut

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, StringConstraints

from meditrack.models.user import RoleName
from meditrack.schemas.common import CamelModel

UsernameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
DisplayNameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
PasswordStr = Annotated[str, StringConstraints(min_length=6, max_length=72)]


class RegisterRequest(CamelModel):
    username: UsernameStr
    name: DisplayNameStr
    password: PasswordStr


class UserCreate(RegisterRequest):
    role: RoleName = RoleName.PHARMACIST


class UserResponse(CamelModel):
    id: UUID
    username: str
    name: str
    role: RoleName
    created_at: datetime


class TokenResponse(BaseModel):
    """
    OAuth2-compatible token payload (snake_case on purpose, so Swagger UI and
    other OAuth2 clients can read `access_token`).
    """

    success: bool = True
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

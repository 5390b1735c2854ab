"""
Auth and own-profile schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,32}$"


class SignupRequest(BaseModel):
    """A new group member. Usernames are stored lowercased."""

    username: str = Field(..., pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str | None = Field(default=None, max_length=60)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdateRequest(BaseModel):
    """Fields a member may change on their own profile. Omitted fields stay as they are."""

    display_name: str | None = Field(default=None, min_length=1, max_length=60)
    avatar_url: str | None = Field(default=None, max_length=500)


class MeResponse(BaseModel):
    """The signed-in member, including the private email address."""

    id: UUID
    username: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

"""Authentication schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# Request schemas
class RegisterRequest(BaseModel):
    """Local account registration request."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class SigninRequest(BaseModel):
    """Password sign-in request."""

    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshRequest(BaseModel):
    """Refresh token request. Accepts ``refreshToken`` or ``refresh_token``."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str | None = Field(default=None, alias="refreshToken")


# Response schemas
class TokensResponse(BaseModel):
    """Session token pair."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., serialization_alias="accessToken")
    refresh_token: str = Field(..., serialization_alias="refreshToken")
    token_type: Literal["bearer"] = Field(default="bearer", serialization_alias="tokenType")


class SigninResponse(TokensResponse):
    id_user: str = Field(..., serialization_alias="idUser")


class RegisterResponse(BaseModel):
    success: bool = True


class ClaimsResponse(BaseModel):
    """Decoded access-token claims of the caller."""

    subject_id: str
    display_name: str | None = None
    role: str
    expires_at: datetime

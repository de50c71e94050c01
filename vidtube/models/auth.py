"""Auth request and response models with validation."""

from typing import Optional

from pydantic import Field, field_validator

from vidtube.models.base import CamelModel
from vidtube.models.user import User


class LoginRequest(CamelModel):
    """Login credentials.

    Either ``username`` or ``email`` identifies the account; the handler
    rejects requests that carry neither.
    """

    username: Optional[str] = None
    email: Optional[str] = None
    password: str = Field(..., min_length=1)

    @field_validator("username", "email")
    @classmethod
    def strip_identifier(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank identifiers as absent."""
        if v is None:
            return v
        stripped = v.strip()
        return stripped or None


class TokenPair(CamelModel):
    """Freshly minted access and refresh tokens."""

    access_token: str
    refresh_token: str


class LoginResponse(CamelModel):
    """Successful login payload: the user plus both tokens."""

    user: User
    access_token: str
    refresh_token: str


class RefreshRequest(CamelModel):
    """Refresh token supplied in the body when no cookie is present."""

    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    """Old and new password for the authenticated user."""

    old_password: str
    new_password: str = Field(..., min_length=1)

    @field_validator("new_password")
    @classmethod
    def password_not_empty(cls, v: str) -> str:
        """Ensure password is not empty or whitespace only."""
        if not v.strip():
            raise ValueError("Password cannot be empty or whitespace only")
        return v


class UpdateAccountRequest(CamelModel):
    """Account details update; both fields are required by the service."""

    fullname: Optional[str] = None
    email: Optional[str] = None

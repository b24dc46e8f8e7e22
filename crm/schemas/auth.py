"""
Pydantic schemas for the authentication endpoints.

Request models are the input-validation boundary: FastAPI rejects malformed
bodies with 422 before the session manager runs, so the service layer never
sees an invalid email, a weak password, or an empty name.

JSON uses camelCase keys (firstName, accessToken, ...); Python code uses
snake_case. Both spellings are accepted on input.
"""

import re
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from crm.models.user import UserRole


PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARACTERS = "!@#$%^&*"
_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"\d"), "one number"),
    (re.compile(r"[!@#$%^&*]"), f"one special character ({PASSWORD_SPECIAL_CHARACTERS})"),
)


def validate_password_strength(password: str) -> str:
    """
    Raises:
        ValueError: Listing every missing character class.
    """
    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(password)]
    if missing:
        raise ValueError("Password must contain at least " + ", ".join(missing))
    return password


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RegisterRequest(CamelModel):
    """Request body for POST /auth/register."""
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return validate_password_strength(value)

    @field_validator("first_name", "last_name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class LoginRequest(CamelModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()


class RefreshTokenRequest(CamelModel):
    """Request body for POST /auth/refresh."""
    refresh_token: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class UserSummary(CamelModel):
    """User block embedded in the login response."""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole


class UserProfile(UserSummary):
    """Public profile returned by registration (never the password hash)."""
    created_at: datetime


class LoginResponse(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"
    user: UserSummary


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str


class MessageResponse(CamelModel):
    message: str

"""
Pydantic schemas for user profile and administration endpoints.

None of these include password_hash, refresh_token_hash, failed_attempts or
locked_until; credential state never leaves the service.
"""

from datetime import datetime

from crm.models.user import UserRole
from crm.schemas.auth import CamelModel, UserProfile


class UserResponse(UserProfile):
    """Full public representation of a User."""
    is_active: bool
    last_login_at: datetime | None = None
    updated_at: datetime


class UpdateRoleRequest(CamelModel):
    """Request body for PATCH /users/{user_id}/role."""
    role: UserRole


class UpdateStatusRequest(CamelModel):
    """Request body for PATCH /users/{user_id}/status."""
    is_active: bool

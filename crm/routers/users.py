"""
User administration router.

Endpoints:
  PATCH /users/{user_id}/role   — Change a user's role (SUPER_ADMIN)
  PATCH /users/{user_id}/status — Activate or deactivate (ADMIN, SUPER_ADMIN)
"""

import uuid

from fastapi import APIRouter, Depends

from crm.dependencies import get_user_store, require_roles
from crm.models.user import User, UserRole
from crm.schemas.user import UpdateRoleRequest, UpdateStatusRequest, UserResponse
from crm.services import user_service
from crm.services.user_store import UserStore

router = APIRouter()


@router.patch(
    "/{user_id}/role",
    response_model=UserResponse,
    summary="[Super admin] Change a user's role",
)
async def update_user_role(
    user_id: uuid.UUID,
    request: UpdateRoleRequest,
    admin: User = Depends(require_roles(UserRole.SUPER_ADMIN)),
    store: UserStore = Depends(get_user_store),
):
    """The new role is carried by tokens issued from the next login or refresh."""
    return await user_service.update_role(store, user_id, request.role)


@router.patch(
    "/{user_id}/status",
    response_model=UserResponse,
    summary="[Admin] Activate or deactivate a user",
)
async def update_user_status(
    user_id: uuid.UUID,
    request: UpdateStatusRequest,
    admin: User = Depends(require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)),
    store: UserStore = Depends(get_user_store),
):
    """
    Deactivation takes effect immediately: the user's outstanding access
    tokens are rejected and their refresh token is revoked.
    """
    return await user_service.set_active(store, user_id, request.is_active)

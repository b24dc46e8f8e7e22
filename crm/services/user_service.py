"""
User administration — role changes and account activation.

Deactivating an account also clears its refresh-token hash, so existing
refresh tokens stop working immediately. Access tokens already issued stay
syntactically valid until they expire, but every authenticated request
re-checks is_active and rejects them.
"""

import logging
import uuid

from crm.exceptions import UserNotFoundError
from crm.models.user import User, UserRole
from crm.services.user_store import UserStore

logger = logging.getLogger(__name__)


async def update_role(store: UserStore, user_id: uuid.UUID, role: UserRole) -> User:
    """
    Raises:
        UserNotFoundError: If no user has this id.
    """
    user = await store.update(user_id, role=role)
    if user is None:
        raise UserNotFoundError(user_id)
    logger.info("Role of user %s set to %s", user_id, role.value)
    return user


async def set_active(store: UserStore, user_id: uuid.UUID, is_active: bool) -> User:
    """
    Raises:
        UserNotFoundError: If no user has this id.
    """
    fields: dict = {"is_active": is_active}
    if not is_active:
        fields["refresh_token_hash"] = None
    user = await store.update(user_id, **fields)
    if user is None:
        raise UserNotFoundError(user_id)
    logger.info("User %s %s", user_id, "activated" if is_active else "deactivated")
    return user

"""
FastAPI dependencies: service wiring, authentication and role guards.

The session manager and its collaborators are built here and injected into
route handlers, never resolved from globals inside the services:

  get_credential_hasher ─┐
  get_token_issuer ──────┤
  get_lockout_policy ────┼─> get_session_manager ─> get_current_user ─> require_roles(...)
  get_clock ─────────────┤
  get_user_store(db) ────┘

The hasher and token issuer are process-wide singletons (lru_cache); tests
swap them through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from crm.clock import Clock
from crm.config import settings
from crm.database import get_db
from crm.exceptions import AuthenticationError, InsufficientRoleError
from crm.models.user import User, UserRole
from crm.security import CredentialHasher, InvalidTokenError, TokenIssuer
from crm.services.auth_service import SessionManager
from crm.services.lockout import LockoutPolicy
from crm.services.user_store import SQLAlchemyUserStore, UserStore


# Reads "Authorization: Bearer <token>"; tokenUrl drives Swagger's Authorize button
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@lru_cache
def get_credential_hasher() -> CredentialHasher:
    return CredentialHasher.from_settings(settings)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


def get_lockout_policy() -> LockoutPolicy:
    return LockoutPolicy.from_settings(settings)


def get_clock() -> Clock:
    return Clock()


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    return SQLAlchemyUserStore(db)


def get_session_manager(
    store: UserStore = Depends(get_user_store),
    hasher: CredentialHasher = Depends(get_credential_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
    lockout: LockoutPolicy = Depends(get_lockout_policy),
    clock: Clock = Depends(get_clock),
) -> SessionManager:
    return SessionManager(
        store=store,
        hasher=hasher,
        issuer=issuer,
        lockout=lockout,
        clock=clock,
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
    manager: SessionManager = Depends(get_session_manager),
) -> User:
    """
    Validate the bearer access token and return the corresponding User.

    The account is re-read on every request, so a deactivated user is
    rejected even while their access token is still unexpired.

    Raises:
        AuthenticationError: If the token is invalid or expired.
        InactiveUserError: If the user no longer exists or is inactive.
    """
    try:
        claims = issuer.verify_access_token(token)
    except InvalidTokenError:
        raise AuthenticationError("Could not validate credentials")

    return await manager.get_current_user(claims.user_id)


def require_roles(*roles: UserRole):
    """
    Build a dependency that only admits users holding one of `roles`.

    Usage:
        @router.patch("/{user_id}/role")
        async def update_role(admin: User = Depends(require_roles(UserRole.SUPER_ADMIN))):
            ...
    """
    allowed = frozenset(roles)

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise InsufficientRoleError()
        return user

    return dependency

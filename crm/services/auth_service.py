"""
Session manager — register, login, refresh, logout and profile lookup.

This module holds the authentication state machine, separated from HTTP
concerns. Collaborators are passed in (user store, hasher, token issuer,
lockout policy, clock) so the whole flow can be tested without a web server
or a database.

Per-user session lifecycle:
    NoSession -> Authenticated -> (rotated) Authenticated -> LoggedOut

Login flow:
  1. Look up user by email (unknown email -> generic invalid credentials)
  2. Lockout pre-check (active lock -> error with remaining minutes)
  3. Verify password; on failure increment the counter in the store, lock
     once it reaches the threshold, and fail
  4. Reset lockout state, issue a token pair, store the refresh-token hash

Refresh flow:
  1. Verify the token's signature and expiry with the refresh secret
  2. Load the user; it must still hold a refresh-token hash
  3. The presented token must match that hash (catches rotated-out tokens)
  4. Issue a new pair and overwrite the stored hash (rotation)

Concurrency note:
  Two logins or refreshes racing for the same user are last-write-wins on
  refresh_token_hash. The loser's refresh token stops working on its next
  use. No lock is taken for this.

  Failed logins never race: the counter is incremented atomically by the
  store, and the lock threshold is applied to the value it returns.
"""

import logging
import uuid
from dataclasses import dataclass

from crm.clock import Clock
from crm.exceptions import (
    DuplicateEmailError,
    InactiveUserError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
)
from crm.models.user import User, UserRole
from crm.security import CredentialHasher, InvalidTokenError, TokenIssuer, TokenPair
from crm.services.lockout import LockoutPolicy, LockoutState
from crm.services.user_store import UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    tokens: TokenPair
    expires_in: int
    user: User


class SessionManager:
    """Orchestrates the credential operations over a UserStore."""

    def __init__(
        self,
        store: UserStore,
        hasher: CredentialHasher,
        issuer: TokenIssuer,
        lockout: LockoutPolicy | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._hasher = hasher
        self._issuer = issuer
        self._lockout = lockout or LockoutPolicy()
        self._clock = clock or Clock()

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        """
        Create a new credential record.

        Raises:
            DuplicateEmailError: If the email is already registered.
        """
        email = email.lower()
        if await self._store.find_by_email(email) is not None:
            raise DuplicateEmailError(email)

        password_hash = await self._hasher.hash_async(password)
        user = await self._store.create(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=True,
            failed_attempts=0,
            locked_until=None,
            refresh_token_hash=None,
        )
        logger.info("New user registered: %s", user.email)
        return user

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate with email and password and start a session.

        Raises:
            InvalidCredentialsError: Unknown email, wrong password, or
                inactive account. All three look identical to the caller.
            AccountLockedError: While the account is locked.
        """
        user = await self._store.find_by_email(email)
        if user is None:
            await self._hasher.verify_dummy_async(password)
            raise InvalidCredentialsError()

        now = self._clock.now()
        state = LockoutState(
            failed_attempts=user.failed_attempts,
            locked_until=user.locked_until,
            last_login_at=user.last_login_at,
        )
        self._lockout.check(state, now)

        if not await self._hasher.verify_async(password, user.password_hash):
            # Atomic in the store; `state` is stale under concurrent logins
            failed_attempts = await self._store.increment_failed_attempts(user.id)
            locked_until = self._lockout.lock_expiry(failed_attempts, now)
            if locked_until is not None:
                await self._store.update(user.id, locked_until=locked_until)
                logger.warning("Account locked for user: %s", user.id)
            else:
                logger.info(
                    "Failed login for user %s (%d/%d)",
                    user.id, failed_attempts, self._lockout.max_failed_attempts,
                )
            raise InvalidCredentialsError()

        if not user.is_active:
            raise InvalidCredentialsError()

        success = self._lockout.on_success(state, now)
        tokens = self._issuer.issue_pair(user.id, user.email, user.role.value)
        refresh_hash = await self._hasher.hash_async(tokens.refresh_token)
        user = await self._store.update(
            user.id,
            failed_attempts=success.failed_attempts,
            locked_until=success.locked_until,
            last_login_at=success.last_login_at,
            refresh_token_hash=refresh_hash,
        )
        logger.info("User logged in: %s", user.email)
        return LoginResult(
            tokens=tokens,
            expires_in=self._issuer.access_expires_in,
            user=user,
        )

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair, invalidating the old one.

        Raises:
            InvalidRefreshTokenError: For every failure reason.
        """
        try:
            claims = self._issuer.verify_refresh_token(refresh_token)
        except InvalidTokenError:
            logger.warning("Refresh rejected: token failed verification")
            raise InvalidRefreshTokenError()

        user = await self._store.find_by_id(claims.user_id)
        if user is None or user.refresh_token_hash is None or not user.is_active:
            logger.warning("Refresh rejected: no active session for %s", claims.user_id)
            raise InvalidRefreshTokenError()

        if not await self._hasher.verify_async(refresh_token, user.refresh_token_hash):
            logger.warning("Refresh rejected: token does not match stored hash for %s", user.id)
            raise InvalidRefreshTokenError()

        tokens = self._issuer.issue_pair(user.id, user.email, user.role.value)
        refresh_hash = await self._hasher.hash_async(tokens.refresh_token)
        await self._store.update(user.id, refresh_token_hash=refresh_hash)
        logger.info("Refresh token rotated for user: %s", user.id)
        return tokens

    async def logout(self, user_id: uuid.UUID) -> None:
        """Clear the stored refresh-token hash. Idempotent."""
        await self._store.update(user_id, refresh_token_hash=None)
        logger.info("User logged out: %s", user_id)

    async def get_current_user(self, user_id: uuid.UUID) -> User:
        """
        Re-check the account on every call; a valid access token does not
        imply the account is still active.

        Raises:
            InactiveUserError: If the user is gone or deactivated.
        """
        user = await self._store.find_by_id(user_id)
        if user is None or not user.is_active:
            raise InactiveUserError()
        return user


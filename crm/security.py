"""
Security utilities: credential hashing and JWT issuance.

Two concerns are handled here:

1. CREDENTIAL HASHING (Argon2id)
   - Passwords AND refresh tokens are stored only as salted one-way hashes
   - passlib's CryptContext performs hashing and constant-time verification
   - Cost factors come from configuration; the same policy applies to
     passwords and refresh tokens
   - Hashing is deliberately slow and CPU-bound, so the async wrappers run
     it in the thread pool instead of on the event loop. argon2-cffi releases
     the GIL, so concurrent requests hash in parallel.

2. JWT TOKENS
   - Access tokens (short-lived) and refresh tokens (long-lived) carry the
     claims {sub, email, role, type, jti, iat, exp}
   - Each kind is signed with its own secret, so an access token never
     verifies as a refresh token and vice versa
   - The random "jti" claim makes every issued token unique, even two tokens
     issued for the same user within the same second
"""

import threading
import uuid
from dataclasses import dataclass
from datetime import timedelta

from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt
from passlib.context import CryptContext

from crm.clock import Clock
from crm.config import Settings


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Hashed once per CredentialHasher and verified against for unknown emails
_DUMMY_SECRET = "dummy-password-for-timing"


class InvalidTokenError(ValueError):
    """Raised when a token fails signature, expiry, type or claim checks."""


# ---------------------------------------------------------------------------
# 1. Credential Hashing (Argon2id)
# ---------------------------------------------------------------------------

class CredentialHasher:
    """
    Salted one-way hashing for passwords and refresh tokens.

    Args:
        time_cost: Argon2 iterations.
        memory_cost: Argon2 memory in KiB.
        parallelism: Argon2 lanes.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._context = CryptContext(
            schemes=["argon2"],
            deprecated="auto",
            argon2__time_cost=time_cost,
            argon2__memory_cost=memory_cost,
            argon2__parallelism=parallelism,
        )
        self._dummy_hash: str | None = None
        self._dummy_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialHasher":
        return cls(
            time_cost=settings.HASH_TIME_COST,
            memory_cost=settings.HASH_MEMORY_COST,
            parallelism=settings.HASH_PARALLELISM,
        )

    def hash(self, secret: str) -> str:
        """Return an Argon2 hash string with a fresh random salt."""
        return self._context.hash(secret)

    def verify(self, secret: str, hashed: str) -> bool:
        """
        Check a secret against a stored hash in constant time.

        A malformed or unrecognised hash is treated as a mismatch.
        """
        try:
            return self._context.verify(secret, hashed)
        except (ValueError, TypeError):
            return False

    async def hash_async(self, secret: str) -> str:
        return await run_in_threadpool(self.hash, secret)

    async def verify_async(self, secret: str, hashed: str) -> bool:
        return await run_in_threadpool(self.verify, secret, hashed)

    def _get_dummy_hash(self) -> str:
        with self._dummy_lock:
            if self._dummy_hash is None:
                self._dummy_hash = self.hash(_DUMMY_SECRET)
            return self._dummy_hash

    def verify_dummy(self, secret: str) -> bool:
        """
        Spend the same work as a real verification, against a fixed hash.

        Used when no account matches the login email, so the response time
        does not reveal whether the account exists. Always returns False.
        """
        self.verify(secret, self._get_dummy_hash())
        return False

    async def verify_dummy_async(self, secret: str) -> bool:
        return await run_in_threadpool(self.verify_dummy, secret)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    """Decoded identity claims of a verified token."""
    user_id: uuid.UUID
    email: str
    role: str
    token_type: str


class TokenIssuer:
    """
    Creates and verifies signed, time-bounded access and refresh tokens.

    Args:
        access_secret: Key for signing access tokens.
        refresh_secret: Key for signing refresh tokens. Must differ from
            access_secret.
        access_ttl: Lifetime of access tokens.
        refresh_ttl: Lifetime of refresh tokens.
        algorithm: JWS algorithm (HMAC).
        clock: Source of the issue time.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        clock: Clock | None = None,
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("JWT secrets cannot be empty")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh secrets must differ")

        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._algorithm = algorithm
        self._clock = clock or Clock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            access_ttl=settings.access_token_ttl,
            refresh_ttl=settings.refresh_token_ttl,
            algorithm=settings.JWT_ALGORITHM,
        )

    @property
    def access_expires_in(self) -> int:
        """Access token lifetime in seconds (the "expiresIn" response field)."""
        return int(self._access_ttl.total_seconds())

    def issue_pair(self, user_id: uuid.UUID, email: str, role: str) -> TokenPair:
        """Sign a fresh access/refresh pair for the given identity."""
        return TokenPair(
            access_token=self._encode(
                user_id, email, role, ACCESS_TOKEN_TYPE,
                self._access_secret, self._access_ttl,
            ),
            refresh_token=self._encode(
                user_id, email, role, REFRESH_TOKEN_TYPE,
                self._refresh_secret, self._refresh_ttl,
            ),
        )

    def verify_access_token(self, token: str) -> TokenClaims:
        return self._decode(token, self._access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        return self._decode(token, self._refresh_secret, REFRESH_TOKEN_TYPE)

    def _encode(
        self,
        user_id: uuid.UUID,
        email: str,
        role: str,
        token_type: str,
        secret: str,
        ttl: timedelta,
    ) -> str:
        now = self._clock.now()
        claims = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(claims, secret, algorithm=self._algorithm)

    def _decode(self, token: str, secret: str, expected_type: str) -> TokenClaims:
        """
        Verify signature, expiry and token type.

        Raises:
            InvalidTokenError: For every kind of failure, without detail.
        """
        try:
            payload = jwt.decode(token, secret, algorithms=[self._algorithm])
            if payload.get("type") != expected_type:
                raise InvalidTokenError()
            return TokenClaims(
                user_id=uuid.UUID(payload["sub"]),
                email=payload["email"],
                role=payload["role"],
                token_type=payload["type"],
            )
        except (JWTError, KeyError, ValueError, TypeError, AttributeError) as e:
            raise InvalidTokenError() from e

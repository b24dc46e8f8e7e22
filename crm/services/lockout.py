"""
Brute-force lockout policy.

Pure state transitions over a user's failed-attempt counter and lock expiry.
Nothing here touches storage or the network; the session manager loads the
current state, applies a transition, and persists the result.

Rules:
  - Pre-check: while locked_until is in the future, login is refused before
    the password is even evaluated.
  - Failure: increment failed_attempts; once it reaches the maximum, lock
    for the configured duration. The updated counter is persisted whether or
    not the threshold was crossed.
  - Success: counter back to 0, lock cleared, last_login_at stamped.

An expired lock is never cleared by time alone. The stale locked_until stays
on the row until the next successful login; it just no longer blocks.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from crm.clock import as_utc
from crm.config import Settings
from crm.exceptions import AccountLockedError


@dataclass(frozen=True)
class LockoutState:
    """The lockout-relevant slice of a user record."""
    failed_attempts: int = 0
    locked_until: datetime | None = None
    last_login_at: datetime | None = None


class LockoutPolicy:
    """
    Args:
        max_failed_attempts: Consecutive failures that trigger a lock.
        lock_duration: How long a triggered lock lasts.
    """

    MAX_FAILED_ATTEMPTS = 5
    LOCK_DURATION = timedelta(minutes=15)

    def __init__(
        self,
        max_failed_attempts: int = MAX_FAILED_ATTEMPTS,
        lock_duration: timedelta = LOCK_DURATION,
    ):
        self.max_failed_attempts = max_failed_attempts
        self.lock_duration = lock_duration

    @classmethod
    def from_settings(cls, settings: Settings) -> "LockoutPolicy":
        return cls(
            max_failed_attempts=settings.MAX_FAILED_ATTEMPTS,
            lock_duration=settings.lock_duration,
        )

    def remaining_lock_minutes(self, state: LockoutState, now: datetime) -> int | None:
        """Whole minutes left on an active lock (rounded up), or None."""
        if state.locked_until is None:
            return None
        remaining = as_utc(state.locked_until) - now
        if remaining <= timedelta(0):
            return None
        return math.ceil(remaining.total_seconds() / 60)

    def check(self, state: LockoutState, now: datetime) -> None:
        """
        Raises:
            AccountLockedError: If the lock is still active at `now`.
        """
        minutes = self.remaining_lock_minutes(state, now)
        if minutes is not None:
            raise AccountLockedError(minutes)

    def lock_expiry(self, failed_attempts: int, now: datetime) -> datetime | None:
        """When a lock recorded at `now` ends, or None below the threshold."""
        if failed_attempts >= self.max_failed_attempts:
            return now + self.lock_duration
        return None

    def on_failure(self, state: LockoutState, now: datetime) -> LockoutState:
        failed_attempts = state.failed_attempts + 1
        locked_until = self.lock_expiry(failed_attempts, now) or state.locked_until
        return replace(state, failed_attempts=failed_attempts, locked_until=locked_until)

    def on_success(self, state: LockoutState, now: datetime) -> LockoutState:
        return LockoutState(failed_attempts=0, locked_until=None, last_login_at=now)

    def transition(
        self, state: LockoutState, now: datetime, password_correct: bool
    ) -> LockoutState:
        """
        Full login transition: pre-check, then failure or success.

        Raises:
            AccountLockedError: If the lock is active (password not considered).
        """
        self.check(state, now)
        if password_correct:
            return self.on_success(state, now)
        return self.on_failure(state, now)


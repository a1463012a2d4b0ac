"""
Password checks and per-wish lockout for protected wishes.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4

# Lockout grows 1s, 2s, 4s, ... up to this cap.
MAX_LOCKOUT_SECONDS = 60.0
# A failure this long after the previous one starts a fresh streak.
FAILURE_RESET_SECONDS = 5 * 60.0

HASH_SCHEME = "pbkdf2_sha256"
HASH_ITERATIONS = 120_000
_SALT_BYTES = 16


class AccessDeniedError(Exception):
    """Base class for rejected edit/delete attempts on a protected wish."""

    def __init__(self, message: str, wait_seconds: float = 0.0):
        super().__init__(message)
        self.message = message
        self.wait_seconds = wait_seconds


class LockedOutError(AccessDeniedError):
    def __init__(self, wait_seconds: float):
        super().__init__(
            f"Too many attempts. Try again in {max(1, round(wait_seconds))}s",
            wait_seconds,
        )


class WrongPasswordError(AccessDeniedError):
    def __init__(self, lockout_seconds: float):
        super().__init__("Wrong password", lockout_seconds)


def _code_at(value: str, index: int) -> int:
    return ord(value[index]) if index < len(value) else 0


def timing_safe_equal(a: str, b: str) -> bool:
    """
    Compare two strings without stopping at the first mismatch.

    Every position up to the longer length is inspected (missing positions
    read as 0) and a length mismatch is folded into the result.
    """
    mismatch = 1 if len(a) != len(b) else 0
    for i in range(max(len(a), len(b))):
        mismatch |= _code_at(a, i) ^ _code_at(b, i)
    return mismatch == 0


def _derive(password: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations
    ).hex()


def hash_password(password: str) -> str:
    salt = secrets.token_hex(_SALT_BYTES)
    digest = _derive(password, salt, HASH_ITERATIONS)
    return f"{HASH_SCHEME}${HASH_ITERATIONS}${salt}${digest}"


def is_password_hash(value: str) -> bool:
    parts = value.split("$")
    return len(parts) == 4 and parts[0] == HASH_SCHEME and parts[1].isdigit()


def verify_password(stored: str, attempt: str) -> bool:
    """
    Check ``attempt`` against a stored secret.

    An empty stored secret means the wish is unprotected. Stored values that
    are not in hash form are legacy plaintext and are compared directly.
    """
    if not stored:
        return True
    if is_password_hash(stored):
        _, iterations, salt, digest = stored.split("$")
        return timing_safe_equal(digest, _derive(attempt, salt, int(iterations)))
    return timing_safe_equal(stored, attempt)


def validate_password_strength(password: str) -> tuple[bool, str | None]:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return True, None


@dataclass
class LockoutState:
    failures: int = 0
    last_failure_at: float = 0.0
    locked_until: float = 0.0


@dataclass(frozen=True)
class LockoutStatus:
    allowed: bool
    wait_seconds: float = 0.0


class AccessGuard:
    """
    Per-wish exponential backoff on failed password attempts.

    The guard owns its lockout map; pass one instance to whatever performs
    the password checks. ``clock`` returns seconds and is injectable so the
    backoff can be tested without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._states: Dict[str, LockoutState] = {}

    def state_for(self, record_id: str) -> LockoutState | None:
        return self._states.get(record_id)

    def check_lockout(self, record_id: str) -> LockoutStatus:
        state = self._states.get(record_id)
        if state is None:
            return LockoutStatus(allowed=True)

        now = self._clock()
        if state.locked_until > now:
            return LockoutStatus(allowed=False, wait_seconds=state.locked_until - now)

        if now - state.last_failure_at > FAILURE_RESET_SECONDS:
            del self._states[record_id]
        return LockoutStatus(allowed=True)

    def record_failure(self, record_id: str) -> float:
        """Count a failed attempt and return the new lockout in seconds."""
        now = self._clock()
        state = self._states.get(record_id)
        if state is None or now - state.last_failure_at > FAILURE_RESET_SECONDS:
            state = LockoutState()
            self._states[record_id] = state

        state.failures += 1
        state.last_failure_at = now
        lockout = min(2.0 ** (state.failures - 1), MAX_LOCKOUT_SECONDS)
        state.locked_until = now + lockout
        logger.info(
            "Wish %s: failed attempt %d, locked for %.0fs",
            record_id,
            state.failures,
            lockout,
        )
        return lockout

    def record_success(self, record_id: str) -> None:
        self._states.pop(record_id, None)

    def authorize(self, record_id: str, stored: str, attempt: str) -> None:
        """
        Gate an edit/delete on ``record_id``.

        Raises ``LockedOutError`` while the wish is locked, even for a correct
        password, and ``WrongPasswordError`` after recording a failure.
        """
        if not stored:
            return

        status = self.check_lockout(record_id)
        if not status.allowed:
            raise LockedOutError(status.wait_seconds)

        if not verify_password(stored, attempt or ""):
            raise WrongPasswordError(self.record_failure(record_id))

        self.record_success(record_id)

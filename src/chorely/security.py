"""Admin PIN helpers and the session gate guarding admin-only actions."""

from __future__ import annotations

import hashlib
import hmac
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Deque, Optional

from . import config

_PIN_PATTERN = re.compile(r"^\d{4}$")


def is_valid_pin_format(pin: str) -> bool:
    return bool(_PIN_PATTERN.match(pin or ""))


def hash_pin(pin: str) -> str:
    """Return the hex SHA-256 digest stored as the family's admin credential."""

    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


def verify_pin(pin: str, stored_hash: str) -> bool:
    return hmac.compare_digest(hash_pin(pin), stored_hash)


@dataclass(slots=True)
class AdminSession:
    """An unlocked admin session that expires after a period of inactivity."""

    unlocked_at: datetime
    last_activity: datetime = field(init=False)

    def __post_init__(self) -> None:
        self.last_activity = self.unlocked_at

    def is_expired(self, timeout: timedelta, *, at: datetime) -> bool:
        return at - self.last_activity >= timeout


class AdminGate:
    """Track whether the admin is authenticated.

    The gate rate limits PIN attempts and drops the session after
    ``timeout`` without activity, which returns a kiosk to the child view.
    """

    def __init__(
        self,
        *,
        max_attempts: int = config.ADMIN_MAX_ATTEMPTS,
        lockout: timedelta = config.ADMIN_LOCKOUT,
        timeout: timedelta = config.ADMIN_TIMEOUT,
    ) -> None:
        self._max_attempts = max_attempts
        self._lockout_window = lockout
        self._timeout = timeout
        self._attempts: Deque[datetime] = deque()
        self._session: Optional[AdminSession] = None

    # ------------------------------------------------------------------
    # Rate limiting helpers
    # ------------------------------------------------------------------
    def is_locked_out(self, *, at: datetime) -> bool:
        self._prune(at)
        return len(self._attempts) >= self._max_attempts

    def _prune(self, now: datetime) -> None:
        while self._attempts and now - self._attempts[0] > self._lockout_window:
            self._attempts.popleft()

    # ------------------------------------------------------------------
    # Session handling
    # ------------------------------------------------------------------
    def unlock(self, pin: str, stored_hash: str, *, at: datetime) -> bool:
        """Open an admin session when ``pin`` matches, recording failures."""

        if self.is_locked_out(at=at):
            raise PermissionError("Admin PIN is locked due to repeated failed attempts.")
        if not verify_pin(pin, stored_hash):
            self._attempts.append(at)
            return False
        self._attempts.clear()
        self._session = AdminSession(unlocked_at=at)
        return True

    def is_authenticated(self, *, at: datetime) -> bool:
        if self._session is None:
            return False
        if self._session.is_expired(self._timeout, at=at):
            self._session = None
            return False
        return True

    def touch(self, *, at: datetime) -> None:
        if self._session is not None:
            self._session.last_activity = at

    def lock(self) -> None:
        self._session = None


class OpenAdminGate(AdminGate):
    """Gate that always reports an authenticated admin, for trusted embedding."""

    def is_authenticated(self, *, at: datetime) -> bool:
        return True


__all__ = ["AdminGate", "AdminSession", "OpenAdminGate", "hash_pin", "is_valid_pin_format", "verify_pin"]

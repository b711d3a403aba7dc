"""Custom exception hierarchy for the Chorely package."""

from __future__ import annotations

from typing import Sequence


class ChorelyError(Exception):
    """Base class for all Chorely specific errors."""


class RecordNotFoundError(ChorelyError):
    """Raised when a record lookup fails."""


class InvalidTransitionError(ChorelyError):
    """Raised when a workflow step is attempted from a state that does not allow it."""


class InsufficientPointsError(ChorelyError):
    """Raised when an operation would result in a negative point balance."""


class StoreClosedError(ChorelyError):
    """Raised when a purchase is attempted outside the store schedule."""


class AdminRequiredError(ChorelyError, PermissionError):
    """Raised when an admin-only action is attempted without an unlocked admin session."""


class SetupError(ChorelyError):
    """Raised when the family has not been set up, or is set up twice."""


class StorageError(ChorelyError):
    """Raised when the backing record store fails to read or write."""


class InconsistentStateError(StorageError):
    """Raised when a failed commit could not be rolled back cleanly."""


class PartialVerificationError(ChorelyError):
    """Raised when a bulk verification stops part way through."""

    def __init__(self, message: str, *, verified: Sequence[str], remaining: Sequence[str]) -> None:
        super().__init__(message)
        self.verified = tuple(verified)
        self.remaining = tuple(remaining)

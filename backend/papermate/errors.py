from __future__ import annotations

from fastapi import status


class PaperMateError(Exception):
    """Base class for domain errors raised by services."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PaperMateError):
    """Raised when a referenced product, party or order document does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConstraintViolationError(PaperMateError):
    """Raised when a write would break a uniqueness, quantity or status rule."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientStockError(ConstraintViolationError):
    """Raised when an outbound movement would take stock below zero."""


class LedgerImmutableError(ConstraintViolationError):
    """Raised on any attempt to update or delete an inventory ledger row."""


class RaceDuplicateError(ConstraintViolationError):
    """Raised when a concurrent find-or-create cannot be resolved to one row."""


class PartialSeedStateError(ConstraintViolationError):
    """Raised by a strict seed run when a guarded group is only partly seeded."""

"""Exception types raised by the booking lifecycle."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import cycles avoided at runtime
    from .options import Leg


class BookingError(Exception):
    """Base class for all booking lifecycle failures."""


class SelectionIncompleteError(BookingError):
    """Raised when selections are submitted before every required leg is chosen."""

    def __init__(self, missing: Iterable[Leg]) -> None:
        self.missing = tuple(missing)
        labels = ", ".join(leg.label for leg in self.missing)
        super().__init__(f"Please select an option for: {labels}")


class OptionNotInCatalogError(BookingError):
    """Raised when a selected option does not belong to the leg's catalog."""


class MissingTicketFilesError(BookingError):
    """Raised when ticket invoices are submitted without all leg documents."""

    def __init__(self, booking_id: str, missing: Iterable[Leg]) -> None:
        self.booking_id = booking_id
        self.missing = tuple(missing)
        super().__init__(
            "Please upload all 3 files (Onward, Return, and Hotel) before submitting."
        )


class AuthenticationError(BookingError):
    """Raised when the caller must sign in again."""


class BookingApiError(BookingError):
    """Raised when the backend reports a failure."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        envelope: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.envelope = envelope


class InvalidTransitionError(BookingError):
    """Raised when an operation is not legal in the booking's current state."""


class BookingInactiveError(InvalidTransitionError):
    """Raised for any mutation attempted against a deactivated booking."""

    def __init__(self, booking_id: str) -> None:
        self.booking_id = booking_id
        super().__init__(f"Booking '{booking_id}' is inactive")


class OperationInProgressError(BookingError):
    """Raised when a booking already has a mutation in flight."""

    def __init__(self, booking_id: str, operation: str) -> None:
        self.booking_id = booking_id
        self.operation = operation
        super().__init__(
            f"Booking '{booking_id}' is busy with '{operation}'; wait for it to finish"
        )

"""Booking state machine: workflow transitions and the derived UI phase.

The session status held by the backend is the single source of truth. The
phase shown to users is recomputed from it on every load and never stored.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from enum import IntEnum

from .errors import (
    BookingInactiveError,
    InvalidTransitionError,
    OperationInProgressError,
)
from .models import SessionStatus, TravelRequest


class BookingPhase(IntEnum):
    """Three-step projection of the session workflow."""

    SELECTING = 0
    MANAGER_REVIEW = 1
    TICKETING = 2

    @property
    def title(self) -> str:
        return _PHASE_TITLES[self]


_PHASE_TITLES = {
    BookingPhase.SELECTING: "Select Travel Options",
    BookingPhase.MANAGER_REVIEW: "Manager Approval",
    BookingPhase.TICKETING: "Ticket Processing",
}

_PHASE_BY_STATUS: dict[SessionStatus, BookingPhase] = {
    SessionStatus.NEW_REQUEST: BookingPhase.SELECTING,
    SessionStatus.IN_USER_SELECTION: BookingPhase.SELECTING,
    SessionStatus.USER_UPDATE_REQUEST: BookingPhase.SELECTING,
    SessionStatus.USER_REJECTED: BookingPhase.SELECTING,
    SessionStatus.MANAGER_UPDATE_REQUEST: BookingPhase.SELECTING,
    SessionStatus.IN_MANAGER_REVIEW: BookingPhase.MANAGER_REVIEW,
    SessionStatus.MANAGER_REJECTED: BookingPhase.MANAGER_REVIEW,
    SessionStatus.MANAGER_APPROVED: BookingPhase.TICKETING,
    SessionStatus.COMPLETED: BookingPhase.TICKETING,
}

TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.NEW_REQUEST: frozenset(
        {SessionStatus.IN_USER_SELECTION, SessionStatus.IN_MANAGER_REVIEW}
    ),
    SessionStatus.IN_USER_SELECTION: frozenset(
        {SessionStatus.IN_MANAGER_REVIEW, SessionStatus.USER_REJECTED}
    ),
    SessionStatus.USER_UPDATE_REQUEST: frozenset(
        {SessionStatus.IN_USER_SELECTION, SessionStatus.IN_MANAGER_REVIEW}
    ),
    SessionStatus.USER_REJECTED: frozenset(),
    SessionStatus.IN_MANAGER_REVIEW: frozenset(
        {
            SessionStatus.MANAGER_APPROVED,
            SessionStatus.MANAGER_REJECTED,
            SessionStatus.MANAGER_UPDATE_REQUEST,
        }
    ),
    SessionStatus.MANAGER_APPROVED: frozenset({SessionStatus.COMPLETED}),
    # A rejected booking can be revised and resubmitted for review.
    SessionStatus.MANAGER_REJECTED: frozenset({SessionStatus.IN_MANAGER_REVIEW}),
    SessionStatus.MANAGER_UPDATE_REQUEST: frozenset(
        {SessionStatus.IN_USER_SELECTION, SessionStatus.IN_MANAGER_REVIEW}
    ),
    SessionStatus.COMPLETED: frozenset(),
}


def phase_for_status(status: SessionStatus | None) -> BookingPhase:
    """Map a session status to its phase; a missing session starts at selection."""

    if status is None:
        return BookingPhase.SELECTING
    return _PHASE_BY_STATUS[SessionStatus(status)]


def step_states(phase: BookingPhase) -> list[tuple[BookingPhase, str]]:
    """Return ``completed``/``current``/``pending`` for each step of the stepper."""

    states: list[tuple[BookingPhase, str]] = []
    for step in BookingPhase:
        if step < phase:
            states.append((step, "completed"))
        elif step == phase:
            states.append((step, "current"))
        else:
            states.append((step, "pending"))
    return states


def can_transition(current: SessionStatus | None, target: SessionStatus) -> bool:
    source = current if current is not None else SessionStatus.NEW_REQUEST
    return target in TRANSITIONS[source]


def ensure_transition(current: SessionStatus | None, target: SessionStatus) -> None:
    if not can_transition(current, target):
        label = current.value if current is not None else "no session"
        raise InvalidTransitionError(
            f"Cannot move booking from {label} to {target.value}"
        )


def ensure_active(booking: TravelRequest) -> None:
    """Inactive bookings are terminal; reject every further mutation."""

    if not booking.is_active:
        raise BookingInactiveError(booking.id)


def ensure_can_deactivate(booking: TravelRequest, *, administrative: bool = False) -> None:
    """Travelers may abandon a rejected booking; administrators any unfinished one."""

    ensure_active(booking)
    status = booking.session_status
    if status == SessionStatus.COMPLETED:
        raise InvalidTransitionError("Completed bookings cannot be deactivated")
    if not administrative and status != SessionStatus.MANAGER_REJECTED:
        label = status.value if status is not None else "no session"
        raise InvalidTransitionError(
            f"Only rejected bookings can be cancelled by the traveler (status: {label})"
        )


class InFlightTracker:
    """At most one mutation in flight per booking."""

    def __init__(self) -> None:
        self._active: dict[str, str] = {}
        self._lock = threading.Lock()

    def is_busy(self, booking_id: str) -> bool:
        return booking_id in self._active

    @contextmanager
    def track(self, booking_id: str, operation: str) -> Iterator[None]:
        with self._lock:
            current = self._active.get(booking_id)
            if current is not None:
                raise OperationInProgressError(booking_id, current)
            self._active[booking_id] = operation
        try:
            yield
        finally:
            with self._lock:
                self._active.pop(booking_id, None)

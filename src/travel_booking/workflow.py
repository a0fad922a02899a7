"""Booking controller driving one travel request through its lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from .errors import BookingError, InvalidTransitionError
from .lifecycle import (
    BookingPhase,
    InFlightTracker,
    ensure_active,
    ensure_can_deactivate,
    ensure_transition,
    phase_for_status,
)
from .models import SessionStatus, TravelRequest
from .options import Leg, TravelOption
from .review import ManagerDecision, submit_manager_review
from .selection import SelectionManager, SelectionPolicy

if TYPE_CHECKING:  # pragma: no cover - import cycles avoided at runtime
    from .client import BookingApiClient

logger = logging.getLogger(__name__)

DEFAULT_DEACTIVATION_REASON = "User requested deactivation after rejection"


class BookingController:
    """State of one booking as seen by the traveler or reviewing manager.

    The phase is derived from the loaded session status each time it is read.
    The only local override is ``revise()``, which lets a traveler re-enter
    selection after a rejection without touching the backend; it is dropped
    whenever a booking is (re)loaded.

    Every operation records the message of a failure in ``error`` and
    re-raises it. Nothing is retried automatically.
    """

    def __init__(
        self,
        client: BookingApiClient,
        booking_id: str,
        *,
        policy: SelectionPolicy = SelectionPolicy.ALL_LEGS,
        in_flight: InFlightTracker | None = None,
    ) -> None:
        self.client = client
        self.booking_id = booking_id
        self.policy = SelectionPolicy(policy)
        self.in_flight = in_flight or InFlightTracker()
        self.booking: TravelRequest | None = None
        self.selection: SelectionManager | None = None
        self.error: str | None = None
        self._revising = False

    @contextmanager
    def _recording(self, operation: str) -> Iterator[None]:
        self.error = None
        try:
            yield
        except (BookingError, ValidationError, httpx.HTTPError) as exc:
            self.error = str(exc)
            logger.error("%s failed for booking %s: %s", operation, self.booking_id, exc)
            raise

    def _adopt(self, booking: TravelRequest) -> None:
        self.booking = booking
        self.selection = SelectionManager.from_booking(booking, self.policy)
        self._revising = False

    def _require_booking(self) -> TravelRequest:
        if self.booking is None:
            raise InvalidTransitionError(f"Booking '{self.booking_id}' has not been loaded")
        return self.booking

    def _require_phase(self, expected: BookingPhase) -> None:
        current = self.phase
        if current is not expected:
            raise InvalidTransitionError(
                f"'{expected.title}' is not available while the booking is in "
                f"'{current.title}'"
            )

    @property
    def phase(self) -> BookingPhase:
        booking = self._require_booking()
        if self._revising:
            return BookingPhase.SELECTING
        return phase_for_status(booking.session_status)

    @property
    def is_rejected(self) -> bool:
        return (
            self.booking is not None
            and self.booking.session_status == SessionStatus.MANAGER_REJECTED
        )

    @property
    def submitting(self) -> bool:
        return self.in_flight.is_busy(self.booking_id)

    def load(self) -> TravelRequest:
        with self._recording("load"):
            booking = self.client.fetch_booking(self.booking_id)
        self._adopt(booking)
        logger.info(
            "Loaded booking %s in phase %s", booking.id, self.phase.name.lower()
        )
        return booking

    def select(self, leg: Leg, option: TravelOption) -> None:
        booking = self._require_booking()
        with self._recording("select"):
            ensure_active(booking)
            self._require_phase(BookingPhase.SELECTING)
            self.selection.select_option(Leg(leg), option)

    def select_index(self, leg: Leg, index: int) -> TravelOption:
        booking = self._require_booking()
        with self._recording("select"):
            ensure_active(booking)
            self._require_phase(BookingPhase.SELECTING)
            return self.selection.select_index(Leg(leg), index)

    def submit_selections(self) -> TravelRequest:
        """Persist the working selection and move the booking to manager review."""

        booking = self._require_booking()
        with self._recording("submit_selections"):
            ensure_active(booking)
            self._require_phase(BookingPhase.SELECTING)
            ensure_transition(booking.session_status, SessionStatus.IN_MANAGER_REVIEW)
            self.selection.ensure_complete()
            indices = self.selection.to_persisted_indices()
            with self.in_flight.track(booking.id, "submit_selections"):
                updated = self.client.update_selections(booking.id, indices)
                if updated.session is None:
                    updated = self.client.fetch_booking(booking.id)
        self._adopt(updated)
        return updated

    def review(
        self, decision: ManagerDecision, feedback: str | None = None
    ) -> TravelRequest:
        booking = self._require_booking()
        with self._recording("manager_review"):
            with self.in_flight.track(booking.id, "manager_review"):
                updated = submit_manager_review(
                    self.client, booking, ManagerDecision(decision), feedback
                )
        self._adopt(updated)
        return updated

    def revise(self) -> None:
        """Return a rejected booking to selection locally, without a backend call."""

        booking = self._require_booking()
        with self._recording("revise"):
            ensure_active(booking)
            if booking.session_status != SessionStatus.MANAGER_REJECTED:
                raise InvalidTransitionError("Only rejected bookings can be revised")
        self._revising = True

    def deactivate(
        self,
        reason: str = DEFAULT_DEACTIVATION_REASON,
        *,
        administrative: bool = False,
    ) -> TravelRequest:
        """Abandon the booking for good."""

        booking = self._require_booking()
        with self._recording("deactivate"):
            if not reason.strip():
                raise InvalidTransitionError("A deactivation reason is required")
            ensure_can_deactivate(booking, administrative=administrative)
            with self.in_flight.track(booking.id, "deactivate"):
                updated = self.client.deactivate_booking(booking.id, reason)
        self._adopt(updated)
        logger.info("Booking %s is now %s", updated.id, updated.status.value)
        return updated

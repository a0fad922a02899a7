"""Manager approve/reject decisions on bookings awaiting review."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from .lifecycle import ensure_active, ensure_transition
from .models import ManagerReview, SessionStatus, TravelRequest

if TYPE_CHECKING:  # pragma: no cover - import cycles avoided at runtime
    from .client import BookingApiClient

logger = logging.getLogger(__name__)


class ManagerDecision(StrEnum):
    """A manager's verdict on a booking."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def action(self) -> SessionStatus:
        if self is ManagerDecision.APPROVE:
            return SessionStatus.MANAGER_APPROVED
        return SessionStatus.MANAGER_REJECTED


DEFAULT_FEEDBACK = {
    ManagerDecision.APPROVE: "Travel request approved. Proceed with booking.",
    ManagerDecision.REJECT: "Travel request rejected due to budget constraints.",
}


def build_review(
    booking: TravelRequest,
    decision: ManagerDecision,
    feedback: str | None = None,
) -> ManagerReview:
    """Build the review message, checking the booking is awaiting review."""

    ensure_active(booking)
    ensure_transition(booking.session_status, decision.action)
    return ManagerReview(
        session_id=booking.session_id,
        booking_id=booking.id,
        action=decision.action,
        feedback=DEFAULT_FEEDBACK[decision] if feedback is None else feedback,
    )


def submit_manager_review(
    client: BookingApiClient,
    booking: TravelRequest,
    decision: ManagerDecision,
    feedback: str | None = None,
) -> TravelRequest:
    """Send the decision and return the booking carrying its updated session."""

    review = build_review(booking, ManagerDecision(decision), feedback)
    outcome = client.manager_review(review)
    updated = outcome.merged_booking
    logger.info(
        "Booking %s moved to %s", updated.id, updated.session_status.value
    )
    return updated

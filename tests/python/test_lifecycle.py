"""Tests for phase derivation and the session transition table."""

from __future__ import annotations

import pytest

from travel_booking.errors import (
    BookingInactiveError,
    InvalidTransitionError,
    OperationInProgressError,
)
from travel_booking.lifecycle import (
    TRANSITIONS,
    BookingPhase,
    InFlightTracker,
    can_transition,
    ensure_active,
    ensure_can_deactivate,
    ensure_transition,
    phase_for_status,
    step_states,
)
from travel_booking.models import SessionStatus


@pytest.mark.parametrize(
    ("status", "phase"),
    [
        (None, BookingPhase.SELECTING),
        (SessionStatus.NEW_REQUEST, BookingPhase.SELECTING),
        (SessionStatus.IN_USER_SELECTION, BookingPhase.SELECTING),
        (SessionStatus.USER_UPDATE_REQUEST, BookingPhase.SELECTING),
        (SessionStatus.USER_REJECTED, BookingPhase.SELECTING),
        (SessionStatus.MANAGER_UPDATE_REQUEST, BookingPhase.SELECTING),
        (SessionStatus.IN_MANAGER_REVIEW, BookingPhase.MANAGER_REVIEW),
        (SessionStatus.MANAGER_REJECTED, BookingPhase.MANAGER_REVIEW),
        (SessionStatus.MANAGER_APPROVED, BookingPhase.TICKETING),
        (SessionStatus.COMPLETED, BookingPhase.TICKETING),
    ],
)
def test_phase_for_status(status, phase) -> None:
    assert phase_for_status(status) is phase


def test_phase_accepts_raw_status_value() -> None:
    assert phase_for_status("InManagerReview") is BookingPhase.MANAGER_REVIEW


def test_every_status_has_a_transition_entry() -> None:
    assert set(TRANSITIONS) == set(SessionStatus)


def test_phase_titles() -> None:
    assert [phase.title for phase in BookingPhase] == [
        "Select Travel Options",
        "Manager Approval",
        "Ticket Processing",
    ]


def test_step_states_for_review() -> None:
    assert step_states(BookingPhase.MANAGER_REVIEW) == [
        (BookingPhase.SELECTING, "completed"),
        (BookingPhase.MANAGER_REVIEW, "current"),
        (BookingPhase.TICKETING, "pending"),
    ]


class TestTransitions:
    def test_selection_moves_to_review(self) -> None:
        assert can_transition(SessionStatus.IN_USER_SELECTION, SessionStatus.IN_MANAGER_REVIEW)

    def test_missing_session_starts_as_new_request(self) -> None:
        assert can_transition(None, SessionStatus.IN_MANAGER_REVIEW)
        assert not can_transition(None, SessionStatus.MANAGER_APPROVED)

    @pytest.mark.parametrize(
        "target", [SessionStatus.MANAGER_APPROVED, SessionStatus.MANAGER_REJECTED]
    )
    def test_review_decisions(self, target) -> None:
        ensure_transition(SessionStatus.IN_MANAGER_REVIEW, target)

    def test_rejected_booking_can_be_resubmitted(self) -> None:
        assert can_transition(SessionStatus.MANAGER_REJECTED, SessionStatus.IN_MANAGER_REVIEW)

    def test_approval_only_leads_to_completion(self) -> None:
        assert TRANSITIONS[SessionStatus.MANAGER_APPROVED] == {SessionStatus.COMPLETED}

    @pytest.mark.parametrize("status", [SessionStatus.COMPLETED, SessionStatus.USER_REJECTED])
    def test_terminal_statuses_have_no_exits(self, status) -> None:
        for target in SessionStatus:
            assert not can_transition(status, target)

    def test_illegal_transition_message(self) -> None:
        with pytest.raises(
            InvalidTransitionError,
            match="Cannot move booking from InUserSelection to ManagerApproved",
        ):
            ensure_transition(SessionStatus.IN_USER_SELECTION, SessionStatus.MANAGER_APPROVED)


class TestDeactivationRules:
    def test_inactive_booking_rejects_everything(self, booking_factory) -> None:
        booking = booking_factory(status="Inactive", session_status="ManagerRejected")

        with pytest.raises(BookingInactiveError):
            ensure_active(booking)
        with pytest.raises(BookingInactiveError):
            ensure_can_deactivate(booking, administrative=True)

    def test_traveler_may_cancel_rejected_booking(self, booking_factory) -> None:
        ensure_can_deactivate(booking_factory(session_status="ManagerRejected"))

    def test_traveler_may_not_cancel_pending_booking(self, booking_factory) -> None:
        with pytest.raises(InvalidTransitionError, match="Only rejected bookings"):
            ensure_can_deactivate(booking_factory(session_status="InManagerReview"))

    def test_administrator_may_cancel_unfinished_booking(self, booking_factory) -> None:
        ensure_can_deactivate(
            booking_factory(session_status="ManagerApproved"), administrative=True
        )

    def test_completed_booking_cannot_be_cancelled(self, booking_factory) -> None:
        with pytest.raises(InvalidTransitionError, match="Completed"):
            ensure_can_deactivate(
                booking_factory(session_status="Completed"), administrative=True
            )


class TestInFlightTracker:
    def test_second_operation_is_refused_while_busy(self) -> None:
        tracker = InFlightTracker()

        with tracker.track("bk-1", "submit_selections"):
            assert tracker.is_busy("bk-1")
            with pytest.raises(OperationInProgressError, match="submit_selections"):
                with tracker.track("bk-1", "deactivate"):
                    pass
            with tracker.track("bk-2", "deactivate"):
                assert tracker.is_busy("bk-2")

        assert not tracker.is_busy("bk-1")
        assert not tracker.is_busy("bk-2")

    def test_released_after_failure(self) -> None:
        tracker = InFlightTracker()

        with pytest.raises(RuntimeError):
            with tracker.track("bk-1", "manager_review"):
                raise RuntimeError("boom")

        assert not tracker.is_busy("bk-1")

"""Tests for booking and review models."""

from __future__ import annotations

from decimal import Decimal

import pytest
from fake_backend import booking_payload
from pydantic import ValidationError

from travel_booking.models import (
    ApiEnvelope,
    BookingStatus,
    LegAmounts,
    ManagerReview,
    SessionStatus,
    TravelRequest,
)
from travel_booking.options import Leg


def test_booking_catalogs_are_normalized_per_leg() -> None:
    booking = TravelRequest.model_validate(booking_payload())

    assert [option.leg for option in booking.onward_options] == [Leg.ONWARD, Leg.ONWARD]
    assert booking.return_options[0].leg is Leg.RETURN
    assert booking.hotel_options[0].cost_total == Decimal("1200")
    assert booking.status is BookingStatus.ACTIVE
    assert booking.session_status is SessionStatus.IN_USER_SELECTION


def test_selected_option_resolves_persisted_index() -> None:
    booking = TravelRequest.model_validate(booking_payload(selected_onward_index=1))

    assert booking.selected_option(Leg.ONWARD) is booking.onward_options[1]
    assert booking.selected_option(Leg.HOTEL) is None


def test_out_of_range_selection_is_rejected() -> None:
    with pytest.raises(ValidationError):
        TravelRequest.model_validate(booking_payload(selected_hotel_index=3))


def test_booking_without_session_has_no_status() -> None:
    booking = TravelRequest.model_validate(booking_payload(include_session=False))

    assert booking.session is None
    assert booking.session_status is None


@pytest.mark.parametrize("feedback", ["", "x" * 201])
def test_review_feedback_length_is_enforced(feedback: str) -> None:
    with pytest.raises(ValidationError):
        ManagerReview(
            session_id="sess-1",
            booking_id="bk-1",
            action=SessionStatus.MANAGER_APPROVED,
            feedback=feedback,
        )


def test_review_action_must_be_a_decision() -> None:
    with pytest.raises(ValidationError):
        ManagerReview(
            session_id="sess-1",
            booking_id="bk-1",
            action=SessionStatus.COMPLETED,
            feedback="ok",
        )


def test_leg_amounts_form_fields() -> None:
    amounts = LegAmounts(onward=Decimal("300"), hotel=Decimal("900"))

    assert amounts.as_form() == {
        "onward_amount": "300",
        "return_amount": "0",
        "hotel_amount": "900",
    }
    assert amounts.total == Decimal("1200")
    assert amounts.for_leg(Leg.RETURN) == Decimal("0")


def test_envelope_reads_camel_case_fields() -> None:
    envelope = ApiEnvelope.model_validate(
        {
            "value": None,
            "success": False,
            "statusCode": 409,
            "resultMessage": "Failed",
            "errorMessage": "Version conflict",
            "exceptionMessage": None,
        }
    )

    assert envelope.status_code == 409
    assert envelope.error_message == "Version conflict"

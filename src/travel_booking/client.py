"""HTTP client for the travel request backend.

Every backend response is wrapped in an envelope::

    {"value": ..., "success": true, "statusCode": 200,
     "resultMessage": "...", "errorMessage": null, "exceptionMessage": null}

Callers receive the unwrapped ``value`` parsed into a model, or a
:class:`~travel_booking.errors.BookingApiError` carrying ``errorMessage``
(or a per-operation default message) when ``success`` is false.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from .auth import BearerTokenAuth, CredentialProvider
from .config import ClientSettings
from .documents import TicketDocument
from .errors import BookingApiError
from .models import (
    ApiEnvelope,
    LegAmounts,
    ManagerReview,
    ReviewOutcome,
    SelectionUpdate,
    TicketSubmissionResult,
    TravelRequest,
    TravelRequestKpis,
    TravelRequestPage,
)
from .options import Leg

logger = logging.getLogger(__name__)


def _booking_path(booking_id: str, suffix: str = "") -> str:
    return f"/travel-requests/bookings/{quote(booking_id, safe='')}{suffix}"


def _query(**params: object) -> dict[str, str]:
    """Drop empty query parameters the way the web console does."""

    return {key: str(value) for key, value in params.items() if value}


class BookingApiClient:
    """Typed access to the booking lifecycle endpoints."""

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self._http = httpx.Client(
            base_url=self.base_url,
            auth=BearerTokenAuth(credentials),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        credentials: CredentialProvider,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> BookingApiClient:
        return cls(
            settings.api_base_url,
            credentials,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> BookingApiClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        default_error: str,
        **kwargs: Any,
    ) -> Any:
        logger.debug("%s %s", method, path)
        response = self._http.request(method, path, **kwargs)
        return self._unwrap(response, default_error)

    @staticmethod
    def _unwrap(response: httpx.Response, default_error: str) -> Any:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and "success" in payload:
            envelope = ApiEnvelope.model_validate(payload)
            if envelope.success and not response.is_error:
                return envelope.value
            message = envelope.error_message or default_error
            logger.error(
                "%s %s failed (%s): %s",
                response.request.method,
                response.request.url.path,
                response.status_code,
                message,
            )
            raise BookingApiError(
                message,
                status_code=envelope.status_code or response.status_code,
                envelope=payload,
            )

        if response.is_error:
            message = f"{default_error} (HTTP {response.status_code})"
        else:
            message = f"{default_error}: unexpected response format"
        logger.error("%s %s: %s", response.request.method, response.request.url.path, message)
        raise BookingApiError(message, status_code=response.status_code)

    def fetch_booking(self, booking_id: str) -> TravelRequest:
        value = self._request(
            "GET", _booking_path(booking_id), default_error="Failed to fetch booking"
        )
        return TravelRequest.model_validate(value)

    def list_travel_requests(
        self,
        *,
        user_id: str | None = None,
        status: str | None = None,
        search: str | None = None,
        page: int | None = None,
        size: int | None = None,
    ) -> TravelRequestPage:
        value = self._request(
            "GET",
            "/travel-requests",
            params=_query(
                user_id=user_id, status=status, search=search, page=page, size=size
            ),
            default_error="Failed to fetch travel requests",
        )
        return TravelRequestPage.model_validate(value)

    def update_selections(
        self, booking_id: str, selections: SelectionUpdate
    ) -> TravelRequest:
        value = self._request(
            "PUT",
            _booking_path(booking_id, "/selections"),
            json=selections.model_dump(mode="json"),
            default_error="Failed to update booking selections",
        )
        logger.info("Selections submitted for booking %s", booking_id)
        return TravelRequest.model_validate(value)

    def manager_review(self, review: ManagerReview) -> ReviewOutcome:
        value = self._request(
            "POST",
            _booking_path(review.booking_id, "/manager-review"),
            json=review.model_dump(mode="json"),
            default_error="Failed to process manager review",
        )
        logger.info("Manager review %s recorded for booking %s", review.action.value, review.booking_id)
        return ReviewOutcome.model_validate(value)

    def deactivate_booking(self, booking_id: str, reason: str) -> TravelRequest:
        value = self._request(
            "PUT",
            _booking_path(booking_id, "/deactivate"),
            params={"reason": reason},
            default_error="Failed to deactivate booking",
        )
        logger.info("Booking %s deactivated", booking_id)
        return TravelRequest.model_validate(value)

    def list_manager_approved(
        self,
        *,
        user_id: str | None = None,
        page: int | None = None,
        size: int | None = None,
    ) -> TravelRequestPage:
        value = self._request(
            "GET",
            "/travel-requests/ticket-issuer/manager-approved",
            params=_query(user_id=user_id, page=page, size=size),
            default_error="Failed to fetch manager approved bookings",
        )
        return TravelRequestPage.model_validate(value)

    def submit_ticket_invoices(
        self,
        booking_id: str,
        files: Mapping[Leg, TicketDocument],
        amounts: LegAmounts,
    ) -> TicketSubmissionResult:
        uploads = {
            f"{leg.key}_file": files[leg].as_upload() for leg in Leg if leg in files
        }
        value = self._request(
            "POST",
            _booking_path(booking_id, "/submit-tickets"),
            data=amounts.as_form(),
            files=uploads,
            default_error="Failed to submit ticket invoices",
        )
        result = TicketSubmissionResult.model_validate(value)
        logger.info(
            "Submitted %s ticket document(s) for booking %s", result.uploaded_count, booking_id
        )
        return result

    def fetch_kpis(self) -> TravelRequestKpis:
        value = self._request(
            "GET",
            "/travel-requests/kpis",
            default_error="Failed to fetch travel requests KPIs",
        )
        return TravelRequestKpis.model_validate(value)

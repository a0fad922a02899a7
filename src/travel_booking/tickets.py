"""Ticket issuance for manager-approved bookings.

The ticket issuer stages one document per leg. Submission is refused locally
until all three documents are staged; a successful submission clears the
booking's staged documents, a failed one leaves them in place for a retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from .documents import TicketDocument
from .errors import InvalidTransitionError, MissingTicketFilesError
from .lifecycle import InFlightTracker, ensure_active
from .models import (
    LegAmounts,
    SessionStatus,
    TicketSubmissionResult,
    TravelRequest,
    TravelRequestPage,
)
from .options import InvoiceCategory, Leg

if TYPE_CHECKING:  # pragma: no cover - import cycles avoided at runtime
    from .client import BookingApiClient

logger = logging.getLogger(__name__)


def compute_ticket_amounts(booking: TravelRequest) -> LegAmounts:
    """Amounts per leg from the persisted selections; unselected legs are 0."""

    amounts: dict[str, Decimal] = {}
    for leg in Leg:
        option = booking.selected_option(leg)
        amounts[leg.key] = option.amount if option is not None else Decimal("0")
    return LegAmounts(**amounts)


def booking_total(booking: TravelRequest) -> Decimal:
    return compute_ticket_amounts(booking).total


@dataclass(frozen=True)
class PlannedInvoice:
    """Invoice line the backend is expected to create for one leg."""

    leg: Leg
    category: InvoiceCategory
    amount: Decimal


def planned_invoices(booking: TravelRequest) -> list[PlannedInvoice]:
    amounts = compute_ticket_amounts(booking)
    lines: list[PlannedInvoice] = []
    for leg in Leg:
        option = booking.selected_option(leg)
        if option is not None:
            category = option.invoice_category
        elif leg is Leg.HOTEL:
            category = InvoiceCategory.HOTEL
        else:
            category = InvoiceCategory.FLIGHT
        lines.append(PlannedInvoice(leg=leg, category=category, amount=amounts.for_leg(leg)))
    return lines


class TicketStaging:
    """In-memory documents awaiting submission, keyed by booking id."""

    def __init__(self) -> None:
        self._files: dict[str, dict[Leg, TicketDocument]] = {}

    def __contains__(self, booking_id: object) -> bool:
        return booking_id in self._files

    def stage(self, booking_id: str, leg: Leg, document: TicketDocument) -> None:
        self._files.setdefault(booking_id, {})[Leg(leg)] = document

    def unstage(self, booking_id: str, leg: Leg) -> None:
        files = self._files.get(booking_id)
        if files is None:
            return
        files.pop(Leg(leg), None)
        if not files:
            del self._files[booking_id]

    def files_for(self, booking_id: str) -> dict[Leg, TicketDocument]:
        return dict(self._files.get(booking_id, {}))

    def missing_legs(self, booking_id: str) -> list[Leg]:
        files = self._files.get(booking_id, {})
        return [leg for leg in Leg if leg not in files]

    def is_ready(self, booking_id: str) -> bool:
        return not self.missing_legs(booking_id)

    def clear(self, booking_id: str) -> None:
        self._files.pop(booking_id, None)


class ApprovedBookingCache:
    """Pages of manager-approved bookings, dropped after any ticket submission."""

    def __init__(self) -> None:
        self._pages: dict[tuple[str | None, int | None, int | None], TravelRequestPage] = {}

    def get(
        self, key: tuple[str | None, int | None, int | None]
    ) -> TravelRequestPage | None:
        return self._pages.get(key)

    def put(
        self, key: tuple[str | None, int | None, int | None], page: TravelRequestPage
    ) -> None:
        self._pages[key] = page

    def invalidate(self) -> None:
        self._pages.clear()

    def __len__(self) -> int:
        return len(self._pages)


class TicketDesk:
    """Ticket issuer workspace: approved bookings, staged documents, submission."""

    def __init__(
        self,
        client: BookingApiClient,
        *,
        staging: TicketStaging | None = None,
        cache: ApprovedBookingCache | None = None,
        in_flight: InFlightTracker | None = None,
    ) -> None:
        self.client = client
        self.staging = staging or TicketStaging()
        self.cache = cache or ApprovedBookingCache()
        self.in_flight = in_flight or InFlightTracker()

    def list_approved(
        self,
        *,
        user_id: str | None = None,
        page: int | None = 1,
        size: int | None = 10,
        refresh: bool = False,
    ) -> TravelRequestPage:
        key = (user_id, page, size)
        cached = None if refresh else self.cache.get(key)
        if cached is not None:
            return cached
        result = self.client.list_manager_approved(user_id=user_id, page=page, size=size)
        self.cache.put(key, result)
        return result

    def stage(self, booking_id: str, leg: Leg, document: TicketDocument) -> None:
        self.staging.stage(booking_id, leg, document)

    def unstage(self, booking_id: str, leg: Leg) -> None:
        self.staging.unstage(booking_id, leg)

    def submit(self, booking: TravelRequest) -> TicketSubmissionResult:
        """Submit all three staged documents with amounts computed from the booking."""

        ensure_active(booking)
        status = booking.session_status
        if status is not None and status != SessionStatus.MANAGER_APPROVED:
            raise InvalidTransitionError(
                f"Tickets can only be issued for approved bookings (status: {status.value})"
            )
        missing = self.staging.missing_legs(booking.id)
        if missing:
            logger.warning(
                "Ticket submission for booking %s refused; missing %s",
                booking.id,
                ", ".join(leg.label for leg in missing),
            )
            raise MissingTicketFilesError(booking.id, missing)

        with self.in_flight.track(booking.id, "submit_tickets"):
            result = self.client.submit_ticket_invoices(
                booking.id,
                self.staging.files_for(booking.id),
                compute_ticket_amounts(booking),
            )
        self.staging.clear(booking.id)
        self.cache.invalidate()
        return result

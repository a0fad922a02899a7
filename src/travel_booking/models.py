"""Core models for travel requests, review sessions and invoices."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .options import InvoiceCategory, Leg, TravelOption, normalize_catalog


class SessionStatus(str, Enum):
    """Workflow stage of a booking's review session."""

    NEW_REQUEST = "NewRequest"
    IN_USER_SELECTION = "InUserSelection"
    USER_UPDATE_REQUEST = "UserUpdateRequest"
    USER_REJECTED = "UserRejected"
    IN_MANAGER_REVIEW = "InManagerReview"
    MANAGER_APPROVED = "ManagerApproved"
    MANAGER_REJECTED = "ManagerRejected"
    MANAGER_UPDATE_REQUEST = "ManagerUpdateRequest"
    COMPLETED = "Completed"


REVIEW_ACTIONS = frozenset(
    {SessionStatus.MANAGER_APPROVED, SessionStatus.MANAGER_REJECTED}
)


class SessionState(str, Enum):
    """Coarse backend processing status of a session."""

    PROCESSING = "Processing"
    FAILED = "Failed"
    SUCCESS = "Success"


class BookingStatus(str, Enum):
    """Lifecycle status of a booking, independent of the session stage."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"


class User(BaseModel):
    """Traveling employee embedded in booking responses."""

    id: str = Field(..., description="User identifier")
    name: str = Field(..., description="Display name")
    email: str | None = Field(default=None, description="Email address")
    phone: str | None = Field(default=None, description="Phone number")
    department: str | None = Field(default=None, description="Department")
    budget_band_id: str | None = Field(default=None, description="Budget band")
    manager_id: str | None = Field(default=None, description="Reporting manager")
    role: str | None = Field(default=None, description="Role name")
    status: str | None = Field(default=None, description="Account status")

    model_config = ConfigDict(extra="ignore")


class Session(BaseModel):
    """Backend-owned review session paired with a booking."""

    id: str = Field(..., description="Session identifier")
    user_id: str = Field(..., description="Owner of the session")
    state: SessionState = Field(
        default=SessionState.PROCESSING, description="Backend processing status"
    )
    status: SessionStatus = Field(..., description="Workflow stage")
    completed_at: datetime | None = Field(
        default=None, description="When the session finished"
    )
    created_at: datetime | None = Field(default=None)
    updated_at: datetime | None = Field(default=None)
    user: User | None = Field(default=None)

    model_config = ConfigDict(extra="ignore")


class TravelRequest(BaseModel):
    """A booking: itinerary, option catalogs, persisted selections and status."""

    id: str = Field(..., description="Booking identifier")
    session_id: str = Field(..., description="Review session identifier")
    user_id: str = Field(..., description="Traveling employee")
    version: int = Field(default=1, description="Optimistic concurrency token")
    destination: str = Field(..., description="Trip destination")
    departure_date: datetime = Field(..., description="Departure date")
    return_date: datetime = Field(..., description="Return date")
    purpose: str | None = Field(default=None, description="Business purpose")
    onward_options: tuple[TravelOption, ...] = Field(default=())
    return_options: tuple[TravelOption, ...] = Field(default=())
    hotel_options: tuple[TravelOption, ...] = Field(default=())
    selected_onward_index: int | None = Field(default=None)
    selected_return_index: int | None = Field(default=None)
    selected_hotel_index: int | None = Field(default=None)
    status: BookingStatus = Field(default=BookingStatus.ACTIVE)
    inactive_reason: str | None = Field(default=None)
    manager_feedback: str | None = Field(default=None)
    created_at: datetime | None = Field(default=None)
    updated_at: datetime | None = Field(default=None)
    user: User | None = Field(default=None)
    session: Session | None = Field(default=None)

    model_config = ConfigDict(extra="ignore")

    @field_validator("onward_options", "return_options", "hotel_options", mode="before")
    @classmethod
    def _normalize_catalog(cls, value: Any, info: ValidationInfo) -> tuple[TravelOption, ...]:
        leg = Leg(info.field_name.split("_", 1)[0].capitalize())
        return normalize_catalog(value, leg)

    @model_validator(mode="after")
    def _validate_selected_indices(self) -> TravelRequest:
        for leg in Leg:
            index = self.selected_index(leg)
            if index is None:
                continue
            size = len(self.catalog(leg))
            if not 0 <= index < size:
                msg = (
                    f"selected_{leg.key}_index {index} is out of range for "
                    f"{size} {leg.key} option(s)"
                )
                raise ValueError(msg)
        return self

    def catalog(self, leg: Leg) -> tuple[TravelOption, ...]:
        return getattr(self, f"{leg.key}_options")

    def selected_index(self, leg: Leg) -> int | None:
        return getattr(self, f"selected_{leg.key}_index")

    def selected_option(self, leg: Leg) -> TravelOption | None:
        index = self.selected_index(leg)
        if index is None:
            return None
        return self.catalog(leg)[index]

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.ACTIVE

    @property
    def session_status(self) -> SessionStatus | None:
        return self.session.status if self.session is not None else None

    def with_session(self, session: Session) -> TravelRequest:
        """Return a copy carrying ``session`` as its embedded review session."""

        return self.model_copy(update={"session": session})


class TravelRequestPage(BaseModel):
    """One page of bookings from a list endpoint."""

    travel_requests: list[TravelRequest] = Field(default_factory=list)
    total: int | None = Field(default=None)
    limit: int | None = Field(default=None)
    offset: int | None = Field(default=None)

    model_config = ConfigDict(extra="ignore")


class TravelRequestKpis(BaseModel):
    """Headline counters shown on the travel request overview."""

    total_requests: int = 0
    pending_approval: int = 0
    approved_today: int = 0
    completed_bookings: int = 0


NonNegativeIndex = Annotated[int, Field(ge=0)]


class SelectionUpdate(BaseModel):
    """Persisted selection indices, submitted as one atomic document."""

    selected_onward_index: NonNegativeIndex | None = None
    selected_return_index: NonNegativeIndex | None = None
    selected_hotel_index: NonNegativeIndex | None = None

    def index_for(self, leg: Leg) -> int | None:
        return getattr(self, f"selected_{leg.key}_index")


class ManagerReview(BaseModel):
    """One-shot manager decision on a booking."""

    session_id: str = Field(..., description="Session under review")
    booking_id: str = Field(..., description="Booking under review")
    action: SessionStatus = Field(..., description="ManagerApproved or ManagerRejected")
    feedback: str = Field(
        ..., min_length=1, max_length=200, description="Mandatory rationale"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("action")
    @classmethod
    def _validate_action(cls, value: SessionStatus) -> SessionStatus:
        if value not in REVIEW_ACTIONS:
            allowed = ", ".join(sorted(action.value for action in REVIEW_ACTIONS))
            raise ValueError(f"Review action must be one of: {allowed}")
        return value


class ReviewOutcome(BaseModel):
    """Session and booking returned by a manager review."""

    session: Session
    booking: TravelRequest

    @property
    def merged_booking(self) -> TravelRequest:
        """The updated booking carrying the updated session."""

        return self.booking.with_session(self.session)


class Invoice(BaseModel):
    """Invoice record created for one submitted ticket document."""

    id: str = Field(..., description="Invoice identifier")
    user_id: str | None = Field(default=None)
    booking_id: str | None = Field(default=None)
    session_id: str | None = Field(default=None)
    category: InvoiceCategory = Field(..., description="Flight, Hotel or Train")
    amount: Decimal = Field(..., description="Invoiced amount")
    file_path: str | None = Field(default=None)
    created_at: datetime | None = Field(default=None)
    updated_at: datetime | None = Field(default=None)

    model_config = ConfigDict(extra="ignore")


class TicketSubmissionResult(BaseModel):
    """Invoices created by a ticket submission."""

    invoices: list[Invoice] = Field(default_factory=list)
    uploaded_count: int = 0


class ApiEnvelope(BaseModel):
    """Response wrapper used by every backend operation."""

    value: Any = None
    success: bool = False
    status_code: int | None = Field(default=None, alias="statusCode")
    result_message: str | None = Field(default=None, alias="resultMessage")
    error_message: str | None = Field(default=None, alias="errorMessage")
    exception_message: str | None = Field(default=None, alias="exceptionMessage")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


Amount = Annotated[Decimal, Field(ge=0)]


class LegAmounts(BaseModel):
    """Monetary amount invoiced for each leg."""

    onward: Amount = Decimal("0")
    return_: Amount = Field(default=Decimal("0"), alias="return")
    hotel: Amount = Decimal("0")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def for_leg(self, leg: Leg) -> Decimal:
        if leg is Leg.ONWARD:
            return self.onward
        if leg is Leg.RETURN:
            return self.return_
        return self.hotel

    @property
    def total(self) -> Decimal:
        return self.onward + self.return_ + self.hotel

    def as_form(self) -> dict[str, str]:
        """Form fields expected by the ticket submission endpoint."""

        return {f"{leg.key}_amount": str(self.for_leg(leg)) for leg in Leg}

"""Travel Booking - Selection, manager review and ticketing for travel requests."""

from .auth import (
    BearerTokenAuth,
    CredentialProvider,
    RefreshTokenCredentials,
    StaticCredentials,
)
from .client import BookingApiClient
from .config import ClientSettings
from .documents import TicketDocument
from .errors import (
    AuthenticationError,
    BookingApiError,
    BookingError,
    BookingInactiveError,
    InvalidTransitionError,
    MissingTicketFilesError,
    OperationInProgressError,
    OptionNotInCatalogError,
    SelectionIncompleteError,
)
from .lifecycle import BookingPhase, phase_for_status
from .models import (
    BookingStatus,
    Invoice,
    LegAmounts,
    ManagerReview,
    SelectionUpdate,
    Session,
    SessionState,
    SessionStatus,
    TicketSubmissionResult,
    TravelRequest,
    TravelRequestPage,
)
from .options import InvoiceCategory, Leg, TransportMode, TravelOption
from .review import ManagerDecision, submit_manager_review
from .selection import SelectionManager, SelectionPolicy
from .tickets import TicketDesk, TicketStaging, compute_ticket_amounts
from .workflow import BookingController

__all__ = [
    "AuthenticationError",
    "BearerTokenAuth",
    "BookingApiClient",
    "BookingApiError",
    "BookingController",
    "BookingError",
    "BookingInactiveError",
    "BookingPhase",
    "BookingStatus",
    "ClientSettings",
    "CredentialProvider",
    "InvalidTransitionError",
    "Invoice",
    "InvoiceCategory",
    "Leg",
    "LegAmounts",
    "ManagerDecision",
    "ManagerReview",
    "MissingTicketFilesError",
    "OperationInProgressError",
    "OptionNotInCatalogError",
    "RefreshTokenCredentials",
    "SelectionIncompleteError",
    "SelectionManager",
    "SelectionPolicy",
    "SelectionUpdate",
    "Session",
    "SessionState",
    "SessionStatus",
    "StaticCredentials",
    "TicketDesk",
    "TicketDocument",
    "TicketStaging",
    "TicketSubmissionResult",
    "TransportMode",
    "TravelOption",
    "TravelRequest",
    "TravelRequestPage",
    "compute_ticket_amounts",
    "phase_for_status",
    "submit_manager_review",
    "__version__",
]
__version__ = "0.1.0"

"""Option catalog records offered for each leg of a travel request."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PRICE_FIELDS = ("price", "fare", "cost")
NIGHTLY_FIELDS = ("cost_per_night", "price")
TOTAL_FIELDS = ("cost_total",)
CARRIER_FIELDS = ("airline", "train_name", "name")
CODE_FIELDS = ("flight_code", "train_number")
CLASS_FIELDS = ("class", "travel_class")


class Leg(str, Enum):
    """The three components of a trip."""

    ONWARD = "Onward"
    RETURN = "Return"
    HOTEL = "Hotel"

    @property
    def label(self) -> str:
        return self.value

    @property
    def key(self) -> str:
        """Lower-case prefix used by backend field names (``onward_options`` etc.)."""

        return self.value.lower()


class TransportMode(str, Enum):
    """How an option moves the traveler, or ``hotel`` for a stay."""

    FLIGHT = "flight"
    TRAIN = "train"
    HOTEL = "hotel"
    UNKNOWN = "unknown"


class InvoiceCategory(str, Enum):
    """Invoice categories recorded by the backend."""

    FLIGHT = "Flight"
    HOTEL = "Hotel"
    TRAIN = "Train"


def _first_scalar(record: Mapping[str, Any], keys: Iterable[str]) -> str | int | float | None:
    """Return the first present, non-null string or number among ``keys``."""

    for key in keys:
        value = record.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int, float)):
            return value
    return None


def _to_decimal(value: str | int | float | None) -> Decimal | None:
    if value is None:
        return None
    text = value.strip() if isinstance(value, str) else str(value)
    if not text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def _to_text(value: str | int | float | None) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _to_int(value: str | int | float | None) -> int | None:
    parsed = _to_decimal(value)
    return int(parsed) if parsed is not None else None


def _detect_mode(leg: Leg, record: Mapping[str, Any]) -> TransportMode:
    if leg is Leg.HOTEL:
        return TransportMode.HOTEL
    if _first_scalar(record, ("flight_code", "airline")) is not None:
        return TransportMode.FLIGHT
    if _first_scalar(record, ("train_number", "train_name")) is not None:
        return TransportMode.TRAIN
    return TransportMode.UNKNOWN


class TravelOption(BaseModel):
    """A backend-supplied candidate offer, normalized once at ingestion."""

    leg: Leg = Field(..., description="Leg this option belongs to")
    mode: TransportMode = Field(..., description="Flight, train or hotel")
    carrier: str | None = Field(
        default=None, description="Airline, train or hotel name"
    )
    code: str | None = Field(default=None, description="Flight code or train number")
    origin: str | None = Field(default=None, description="Departure location")
    destination: str | None = Field(default=None, description="Arrival location")
    departure: str | None = Field(default=None, description="Departure timestamp")
    arrival: str | None = Field(default=None, description="Arrival timestamp")
    duration_minutes: int | None = Field(default=None, description="Journey time")
    travel_class: str | None = Field(default=None, description="Fare or room class")
    price: Decimal | None = Field(
        default=None, description="Ticket price (price, fare or cost)"
    )
    cost_per_night: Decimal | None = Field(
        default=None, description="Hotel nightly rate"
    )
    cost_total: Decimal | None = Field(
        default=None, description="Hotel cost for the whole stay"
    )
    rating: Decimal | None = Field(default=None, description="Hotel rating")
    notes: str | None = Field(default=None, description="Free-text notes")
    raw: dict[str, Any] = Field(
        default_factory=dict, description="Record exactly as supplied by the backend"
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_record(cls, record: Mapping[str, Any], leg: Leg) -> TravelOption:
        """Collapse the loosely-typed backend record into one normalized shape."""

        is_hotel = leg is Leg.HOTEL
        return cls(
            leg=leg,
            mode=_detect_mode(leg, record),
            carrier=_to_text(_first_scalar(record, CARRIER_FIELDS)),
            code=_to_text(_first_scalar(record, CODE_FIELDS)),
            origin=_to_text(_first_scalar(record, ("origin",))),
            destination=_to_text(_first_scalar(record, ("destination",))),
            departure=_to_text(_first_scalar(record, ("departure",))),
            arrival=_to_text(_first_scalar(record, ("arrival",))),
            duration_minutes=_to_int(_first_scalar(record, ("duration_minutes",))),
            travel_class=_to_text(_first_scalar(record, CLASS_FIELDS)),
            price=_to_decimal(_first_scalar(record, PRICE_FIELDS)),
            cost_per_night=(
                _to_decimal(_first_scalar(record, NIGHTLY_FIELDS)) if is_hotel else None
            ),
            cost_total=(
                _to_decimal(_first_scalar(record, TOTAL_FIELDS)) if is_hotel else None
            ),
            rating=_to_decimal(_first_scalar(record, ("rating",))),
            notes=_to_text(_first_scalar(record, ("notes",))),
            raw=dict(record),
        )

    @property
    def amount(self) -> Decimal:
        """Invoice amount: the ticket price, or the total (not nightly) hotel cost."""

        value = self.cost_total if self.leg is Leg.HOTEL else self.price
        return value if value is not None else Decimal("0")

    @property
    def invoice_category(self) -> InvoiceCategory:
        if self.mode is TransportMode.HOTEL:
            return InvoiceCategory.HOTEL
        if self.mode is TransportMode.TRAIN:
            return InvoiceCategory.TRAIN
        return InvoiceCategory.FLIGHT

    def summary(self) -> str:
        name = self.carrier or self.leg.label
        if self.code:
            name = f"{name} {self.code}"
        return f"{name} ({self.amount})"


def normalize_catalog(
    records: Iterable[TravelOption | Mapping[str, Any]] | None, leg: Leg
) -> tuple[TravelOption, ...]:
    """Normalize a raw option sequence for ``leg`` into an immutable catalog."""

    catalog: list[TravelOption] = []
    for record in records or ():
        if isinstance(record, TravelOption):
            catalog.append(record)
        elif isinstance(record, Mapping):
            catalog.append(TravelOption.from_record(record, leg))
        else:
            raise TypeError(f"{leg.label} option must be a mapping, got {type(record)!r}")
    return tuple(catalog)

"""Test configuration for adding src and test helpers to the import path."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
for extra_path in (ROOT / "src", ROOT / "tests" / "helpers"):
    if str(extra_path) not in sys.path:
        sys.path.insert(0, str(extra_path))

from fake_backend import BASE_URL, FakeBackend, booking_payload  # noqa: E402

from travel_booking import (  # noqa: E402
    BookingApiClient,
    StaticCredentials,
    TicketDocument,
    TravelRequest,
)


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def client(backend: FakeBackend) -> Iterator[BookingApiClient]:
    api = BookingApiClient(
        BASE_URL, StaticCredentials("good-token"), transport=backend.transport()
    )
    yield api
    api.close()


@pytest.fixture()
def booking_factory() -> Callable[..., TravelRequest]:
    def _factory(booking_id: str = "bk-1", **overrides: object) -> TravelRequest:
        return TravelRequest.model_validate(booking_payload(booking_id, **overrides))

    return _factory


@pytest.fixture()
def document_factory() -> Callable[..., TicketDocument]:
    def _factory(filename: str = "ticket.pdf", content: bytes = b"%PDF-1.4 ticket") -> TicketDocument:
        return TicketDocument(
            filename=filename, content=content, content_type="application/pdf"
        )

    return _factory

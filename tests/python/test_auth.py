"""Tests for bearer credentials and the single refresh-and-retry."""

from __future__ import annotations

import httpx
import pytest
from fake_backend import BASE_URL, envelope

from travel_booking.auth import RefreshTokenCredentials, StaticCredentials
from travel_booking.client import BookingApiClient
from travel_booking.errors import AuthenticationError


class SignOutRecorder:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def _refreshing_client(backend, access: str, refresh: str, on_sign_out=None):
    credentials = RefreshTokenCredentials(
        BASE_URL,
        access,
        refresh,
        transport=backend.transport(),
        on_sign_out=on_sign_out,
    )
    client = BookingApiClient(BASE_URL, credentials, transport=backend.transport())
    return client, credentials


def test_bearer_token_is_attached(backend, client) -> None:
    backend.add_booking()

    client.fetch_booking("bk-1")

    assert backend.requests[-1].headers["Authorization"] == "Bearer good-token"


def test_expired_token_is_refreshed_and_request_retried_once(backend) -> None:
    backend.add_booking()
    client, credentials = _refreshing_client(backend, "stale-token", "refresh-1")

    with client:
        booking = client.fetch_booking("bk-1")

    assert booking.id == "bk-1"
    assert [request.method for request in backend.requests] == ["GET", "POST", "GET"]
    assert backend.requests[-1].headers["Authorization"] == "Bearer fresh-token"
    assert credentials.access_token() == "fresh-token"
    credentials.close()


def test_retried_request_is_replayed_unchanged(backend) -> None:
    backend.add_booking()
    client, credentials = _refreshing_client(backend, "stale-token", "refresh-1")

    with client:
        client.deactivate_booking("bk-1", "No longer needed")

    first, retry = backend.calls("PUT", "/deactivate")
    assert first.url == retry.url
    assert backend.bookings["bk-1"]["status"] == "Inactive"
    credentials.close()


def test_failed_refresh_signs_out(backend) -> None:
    backend.add_booking()
    signed_out = SignOutRecorder()
    client, credentials = _refreshing_client(
        backend, "stale-token", "revoked", on_sign_out=signed_out
    )

    with client, pytest.raises(AuthenticationError, match="sign in again"):
        client.fetch_booking("bk-1")

    assert signed_out.calls == 1
    assert credentials.access_token() is None
    assert len(backend.calls("GET", "/bookings/bk-1")) == 1
    credentials.close()


def test_still_unauthorized_after_retry_signs_out_without_looping() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path.endswith("/auth/refresh"):
            return httpx.Response(200, json={"access_token": "also-rejected"})
        return httpx.Response(401, json={"detail": "Not authenticated"})

    transport = httpx.MockTransport(handler)
    signed_out = SignOutRecorder()
    credentials = RefreshTokenCredentials(
        BASE_URL, "stale", "refresh-1", transport=transport, on_sign_out=signed_out
    )

    with BookingApiClient(BASE_URL, credentials, transport=transport) as client:
        with pytest.raises(AuthenticationError):
            client.fetch_kpis()

    assert len(seen) == 3
    assert signed_out.calls == 1
    credentials.close()


def test_static_credentials_cannot_refresh() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") == "Bearer good-token":
            return httpx.Response(200, json=envelope({}))
        return httpx.Response(401)

    signed_out = SignOutRecorder()
    credentials = StaticCredentials("expired", on_sign_out=signed_out)

    with BookingApiClient(
        BASE_URL, credentials, transport=httpx.MockTransport(handler)
    ) as client, pytest.raises(AuthenticationError):
        client.fetch_kpis()

    assert signed_out.calls == 1
    assert credentials.access_token() is None


def test_refresh_without_refresh_token_is_refused(backend) -> None:
    credentials = RefreshTokenCredentials(
        BASE_URL, "stale", None, transport=backend.transport()
    )

    assert credentials.refresh() is False
    assert backend.requests == []
    credentials.close()


@pytest.mark.parametrize(
    "refresh_response",
    [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json=["not", "a", "mapping"]),
        httpx.Response(200, json={"access_token": None}),
    ],
    ids=["html-body", "json-list", "null-token"],
)
def test_malformed_refresh_response_signs_out(refresh_response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth/refresh"):
            return refresh_response
        return httpx.Response(401, json={"detail": "Not authenticated"})

    transport = httpx.MockTransport(handler)
    signed_out = SignOutRecorder()
    credentials = RefreshTokenCredentials(
        BASE_URL, "stale", "refresh-1", transport=transport, on_sign_out=signed_out
    )

    with BookingApiClient(BASE_URL, credentials, transport=transport) as client:
        with pytest.raises(AuthenticationError, match="sign in again"):
            client.fetch_booking("bk-1")

    assert signed_out.calls == 1
    assert credentials.access_token() is None
    credentials.close()

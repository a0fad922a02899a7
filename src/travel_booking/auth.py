"""Bearer credentials and the one-shot refresh-and-retry flow."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator
from typing import Protocol

import httpx

from .errors import AuthenticationError

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    """Source of the caller's bearer credential."""

    def access_token(self) -> str | None: ...

    def refresh(self) -> bool:
        """Obtain a new access token; return False when the caller must sign in again."""
        ...

    def clear(self) -> None: ...


class StaticCredentials:
    """A fixed access token that cannot be refreshed."""

    def __init__(self, token: str | None, on_sign_out: Callable[[], None] | None = None) -> None:
        self._token = token
        self._on_sign_out = on_sign_out

    def access_token(self) -> str | None:
        return self._token

    def refresh(self) -> bool:
        return False

    def clear(self) -> None:
        self._token = None
        if self._on_sign_out is not None:
            self._on_sign_out()


class RefreshTokenCredentials:
    """Access token renewed through ``POST /auth/refresh``."""

    def __init__(
        self,
        base_url: str,
        access_token: str | None,
        refresh_token: str | None,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        on_sign_out: Callable[[], None] | None = None,
    ) -> None:
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._on_sign_out = on_sign_out
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def access_token(self) -> str | None:
        return self._access_token

    def refresh(self) -> bool:
        if not self._refresh_token:
            return False
        try:
            response = self._http.post(
                "/auth/refresh", json={"refresh_token": self._refresh_token}
            )
        except httpx.HTTPError as exc:
            logger.error("Token refresh failed: %s", exc)
            return False
        if response.is_error:
            logger.warning("Token refresh rejected with status %s", response.status_code)
            return False
        try:
            payload = response.json()
        except ValueError:
            logger.warning("Token refresh returned a non-JSON body")
            return False
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token or not isinstance(token, str):
            logger.warning("Token refresh response carried no access token")
            return False
        self._access_token = token
        return True

    def clear(self) -> None:
        self._access_token = None
        self._refresh_token = None
        if self._on_sign_out is not None:
            self._on_sign_out()

    def close(self) -> None:
        self._http.close()


class BearerTokenAuth(httpx.Auth):
    """Attach the bearer token; on 401 refresh once and retry the request once."""

    requires_request_body = True

    def __init__(self, credentials: CredentialProvider, max_retries: int = 1) -> None:
        self.credentials = credentials
        self.max_retries = max_retries

    def _apply(self, request: httpx.Request) -> None:
        token = self.credentials.access_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        else:
            request.headers.pop("Authorization", None)

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self._apply(request)
        response = yield request

        retries = 0
        while response.status_code == httpx.codes.UNAUTHORIZED:
            if retries >= self.max_retries:
                break
            retries += 1
            logger.warning("Received 401 for %s %s; refreshing token", request.method, request.url.path)
            if not self.credentials.refresh():
                self.credentials.clear()
                raise AuthenticationError("Session expired; please sign in again")
            self._apply(request)
            response = yield request

        if response.status_code == httpx.codes.UNAUTHORIZED:
            self.credentials.clear()
            raise AuthenticationError("Session expired; please sign in again")

"""Thin Google Calendar REST client built on httpx."""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from pickupboard.core.constants import (
    CALENDAR_HTTP_TIMEOUT,
    CALENDAR_ID,
    GOOGLE_CALENDAR_API_BASE_URL,
    GOOGLE_OAUTH_TOKEN_URL,
)

logger = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_GONE = 410


class CalendarError(RuntimeError):
    """Base error raised by the calendar helpers."""


class CalendarCredentialError(CalendarError):
    """Raised when a user has no usable stored credential."""


class CalendarTokenRefreshError(CalendarError):
    """Raised when refresh-token exchange fails."""


class CalendarAuthRevokedError(CalendarTokenRefreshError):
    """Raised when Google no longer accepts a user's grant."""


class CalendarRequestError(CalendarError):
    """Raised when a Google Calendar API request fails."""

    def __init__(self, *, status_code: int, message: str) -> None:
        """Initialize the error."""
        self.status_code = status_code
        self.message = message
        super().__init__(
            f"Google Calendar API request failed ({status_code}): {message}"
        )


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error.get("status") or error)
        if isinstance(error, str):
            return str(payload.get("error_description") or error)
    return response.reason_phrase


class GoogleCalendarClient:
    """Calls the Calendar API on behalf of one user per request."""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        http_client: httpx.Client | None = None,
        timeout: float = CALENDAR_HTTP_TIMEOUT,
    ) -> None:
        """Initialize the client with the app's OAuth client credentials."""
        self.client_id = client_id
        self.client_secret = client_secret
        self.http = http_client or httpx.Client(timeout=timeout)

    def refresh_access_token(self, refresh_token: str) -> tuple[str, int | None]:
        """Exchange a refresh token for a new access token.

        Returns the token and its expiry in epoch milliseconds.

        Raises:
            CalendarAuthRevokedError: If Google reports the grant is invalid.
            CalendarTokenRefreshError: On any other failure.
        """
        try:
            response = self.http.post(
                GOOGLE_OAUTH_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise CalendarTokenRefreshError(
                f"Token refresh request failed: {e}"
            ) from e

        if response.status_code < 200 or response.status_code >= 300:
            message = _error_message(response)
            try:
                error_code = response.json().get("error")
            except (ValueError, AttributeError):
                error_code = None
            if error_code == "invalid_grant":
                raise CalendarAuthRevokedError(f"Grant revoked: {message}")
            raise CalendarTokenRefreshError(
                f"Token refresh failed ({response.status_code}): {message}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise CalendarTokenRefreshError("Token endpoint returned invalid JSON") from e

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise CalendarTokenRefreshError("Token response has no access_token")

        expires_in = payload.get("expires_in")
        expiry = None
        if isinstance(expires_in, (int, float)):
            expiry = int((time.time() + expires_in) * 1000)
        return access_token, expiry

    def _request(
        self,
        method: str,
        access_token: str,
        event_id: str | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        path = f"/calendars/{quote(CALENDAR_ID, safe='')}/events"
        if event_id:
            path = f"{path}/{quote(event_id, safe='')}"
        try:
            return self.http.request(
                method,
                f"{GOOGLE_CALENDAR_API_BASE_URL}{path}",
                json=json_body,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise CalendarError(f"Google Calendar request failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 200 or response.status_code >= 300:
            raise CalendarRequestError(
                status_code=response.status_code, message=_error_message(response)
            )

    def insert_event(self, access_token: str, body: dict[str, Any]) -> str:
        """Create an event on the user's primary calendar and return its id."""
        response = self._request("POST", access_token, json_body=body)
        self._raise_for_status(response)
        return str(response.json().get("id") or body.get("id") or "")

    def patch_event(
        self, access_token: str, event_id: str, body: dict[str, Any]
    ) -> str:
        """Update fields of an existing event."""
        response = self._request("PATCH", access_token, event_id, json_body=body)
        self._raise_for_status(response)
        return str(response.json().get("id") or event_id)

    def delete_event(self, access_token: str, event_id: str) -> None:
        """Delete an event. An event that is already gone counts as deleted."""
        response = self._request("DELETE", access_token, event_id)
        if response.status_code in (HTTP_NOT_FOUND, HTTP_GONE):
            logger.debug(f"Calendar event {event_id} already deleted")
            return
        self._raise_for_status(response)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.http.close()

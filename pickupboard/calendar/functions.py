"""Server-side calendar functions invoked for a session's participants.

Each function works through the participants one by one. A participant who
cannot be served (no profile, no credential, revoked grant, API error) gets
``None``/``False`` in the result; the others are unaffected.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Optional, TypeVar

from google.api_core import exceptions as google_exceptions

from pickupboard.core.constants import (
    CALENDAR_HTTP_TIMEOUT,
    GOOGLE_ACCESS_TOKEN,
    GOOGLE_REFRESH_TOKEN,
    GOOGLE_TOKEN_EXPIRY,
)
from pickupboard.errors import AppError
from pickupboard.user.services import UserService
from pickupboard.utils import normalize_name

from .client import (
    HTTP_CONFLICT,
    HTTP_UNAUTHORIZED,
    CalendarAuthRevokedError,
    CalendarCredentialError,
    CalendarError,
    CalendarRequestError,
    CalendarTokenRefreshError,
    GoogleCalendarClient,
)
from .models import CalendarEventData, calendar_event_id, to_google_body

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that only affect the participant being processed.
PARTICIPANT_ERRORS = (CalendarError, AppError, google_exceptions.GoogleAPIError)


class CalendarFunctions:
    """The create/update/delete calendar operations for session participants."""

    def __init__(self, db: Client, client: GoogleCalendarClient) -> None:
        """Initialize with a Firestore client and a Google Calendar client."""
        self.db = db
        self.client = client

    @classmethod
    def from_config(cls, db: Client, config: Mapping) -> CalendarFunctions:
        """Build the functions from the app's OAuth client settings."""
        return cls(
            db,
            GoogleCalendarClient(
                config.get("GOOGLE_CLIENT_ID"),
                config.get("GOOGLE_CLIENT_SECRET"),
                timeout=config.get("CALENDAR_HTTP_TIMEOUT", CALENDAR_HTTP_TIMEOUT),
            ),
        )

    def _access_token(self, name: str, force_refresh: bool = False) -> str:
        """Return a usable access token for ``name``, refreshing if needed.

        Raises:
            CalendarCredentialError: If the user has no profile or tokens.
            CalendarAuthRevokedError: If Google rejected the refresh token.
        """
        profile = UserService.get_profile(self.db, name)
        if profile is None:
            raise CalendarCredentialError(f"User {name} not found")

        access_token = profile.get(GOOGLE_ACCESS_TOKEN)
        refresh_token = profile.get(GOOGLE_REFRESH_TOKEN)
        expiry = profile.get(GOOGLE_TOKEN_EXPIRY)

        if not access_token and not refresh_token:
            raise CalendarCredentialError(f"No tokens available for user {name}")
        if not refresh_token:
            logger.warning(f"No refresh token for user {name}; access token will expire")
            return str(access_token)

        expired = bool(expiry) and time.time() * 1000 >= float(expiry)
        if force_refresh or not access_token or expired:
            try:
                access_token, new_expiry = self.client.refresh_access_token(
                    str(refresh_token)
                )
            except CalendarAuthRevokedError:
                UserService.clear_tokens(self.db, name)
                raise
            except CalendarTokenRefreshError as e:
                logger.error(f"Failed to refresh token for {name}: {e}")
                if not access_token:
                    raise
                # Fall back to the stored token.
                return str(access_token)
            UserService.update_access_token(self.db, name, access_token, new_expiry)

        return str(access_token)

    def _call_as(self, name: str, call: Callable[[str], T]) -> T:
        """Run ``call`` with the user's token, refreshing once on a 401."""
        token = self._access_token(name)
        try:
            return call(token)
        except CalendarRequestError as e:
            if e.status_code != HTTP_UNAUTHORIZED:
                raise

        try:
            return call(self._access_token(name, force_refresh=True))
        except CalendarRequestError as e:
            if e.status_code != HTTP_UNAUTHORIZED:
                raise
            UserService.clear_tokens(self.db, name)
            raise CalendarAuthRevokedError(
                f"Google rejected the credential for {name}"
            ) from e

    def create_for_user(self, name: str, event_data: CalendarEventData) -> str:
        """Create one participant's calendar entry and return its id."""
        body = to_google_body(event_data)
        source_id = event_data.get("eventId")
        if not source_id:
            return self._call_as(name, lambda token: self.client.insert_event(token, body))

        event_id = calendar_event_id(source_id, name)

        def insert_or_revive(token: str) -> str:
            try:
                return self.client.insert_event(token, {**body, "id": event_id})
            except CalendarRequestError as e:
                if e.status_code != HTTP_CONFLICT:
                    raise
            # Already created (possibly cancelled earlier); bring it back up to date.
            return self.client.patch_event(
                token, event_id, {**body, "status": "confirmed"}
            )

        return self._call_as(name, insert_or_revive)

    def create_calendar_events(
        self, event_data: CalendarEventData, participants: Iterable[str]
    ) -> dict[str, Optional[str]]:
        """Create a calendar entry for every participant.

        Returns a map of lowercase name to calendar event id, or None for
        each participant who could not be served.
        """
        results: dict[str, Optional[str]] = {}
        for participant in participants:
            key = normalize_name(participant)
            try:
                results[key] = self.create_for_user(participant, event_data)
            except PARTICIPANT_ERRORS as e:
                logger.error(f"Failed to create calendar event for {participant}: {e}")
                results[key] = None
        return results

    def update_calendar_events(
        self,
        event_data: CalendarEventData,
        calendar_event_ids: Mapping[str, Optional[str]],
    ) -> dict[str, bool]:
        """Refresh every listed participant's calendar entry."""
        body = to_google_body(event_data)
        results: dict[str, bool] = {}
        for participant, event_id in calendar_event_ids.items():
            if not event_id:
                continue
            try:
                self._call_as(
                    participant,
                    lambda token, eid=event_id: self.client.patch_event(token, eid, body),
                )
                results[participant] = True
            except PARTICIPANT_ERRORS as e:
                logger.error(f"Failed to update calendar event for {participant}: {e}")
                results[participant] = False
        return results

    def delete_calendar_events(
        self, calendar_event_ids: Mapping[str, Optional[str]]
    ) -> dict[str, bool]:
        """Delete every listed participant's calendar entry.

        Entries that no longer exist count as deleted.
        """
        results: dict[str, bool] = {}
        for participant, event_id in calendar_event_ids.items():
            if not event_id:
                continue
            try:
                self._call_as(
                    participant,
                    lambda token, eid=event_id: self.client.delete_event(token, eid),
                )
                results[participant] = True
            except PARTICIPANT_ERRORS as e:
                logger.error(f"Failed to delete calendar event for {participant}: {e}")
                results[participant] = False
        return results

    def store_user_tokens(
        self,
        name: str,
        access_token: str,
        refresh_token: Optional[str] = None,
        expiry: Optional[int] = None,
    ) -> None:
        """Save a fresh OAuth credential; re-enables a revoked user."""
        UserService.store_tokens(self.db, name, access_token, refresh_token, expiry)

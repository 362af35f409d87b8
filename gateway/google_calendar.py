"""Google Calendar v3 gateway scoped to one shared calendar."""
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from gateway.errors import CalendarGatewayError, EventNotFound

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ['https://www.googleapis.com/auth/calendar']


class GoogleCalendarGateway:
    """Client for the events collection of a single Google Calendar."""

    BASE_URL = "https://www.googleapis.com/calendar/v3"
    RETRY_STATUS_CODES = {429, 500, 502, 503, 504}
    # A 5xx or dropped connection on insert may still have created the event
    INSERT_RETRY_STATUS_CODES = {429}
    NOT_FOUND_STATUS_CODES = {404, 410}

    def __init__(
        self,
        calendar_id: str,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        max_retries: int = 3,
        base_delay: float = 1
    ):
        """
        Initialize the gateway.

        Args:
            calendar_id: Target calendar ID (process-wide configuration)
            session: Authorized HTTP session (default: unauthenticated session)
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per call for retryable failures (default: 3)
            base_delay: Initial backoff delay in seconds (default: 1)

        Raises:
            ValueError: If max_retries is less than 1
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")

        self.calendar_id = calendar_id
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay

    @classmethod
    def from_service_account_info(
        cls,
        info: Dict[str, Any],
        calendar_id: str,
        **kwargs
    ) -> 'GoogleCalendarGateway':
        """
        Build a gateway authorized with service account credentials.

        Args:
            info: Parsed service account key JSON
            calendar_id: Target calendar ID
            **kwargs: Passed through to the constructor

        Returns:
            GoogleCalendarGateway instance
        """
        credentials = service_account.Credentials.from_service_account_info(
            info, scopes=CALENDAR_SCOPES
        )
        return cls(calendar_id, session=AuthorizedSession(credentials), **kwargs)

    @property
    def events_url(self) -> str:
        return f"{self.BASE_URL}/calendars/{quote(self.calendar_id, safe='')}/events"

    def _event_url(self, event_id: str) -> str:
        return f"{self.events_url}/{quote(event_id, safe='')}"

    def insert(self, event_body: Dict[str, Any]) -> str:
        """
        Create an event.

        Args:
            event_body: Event resource

        Returns:
            Gateway-assigned event ID
        """
        response = self._request(
            'POST', self.events_url,
            idempotent=False,
            params={'sendUpdates': 'none'},
            json=event_body
        )
        event_id = response.json().get('id')
        if not event_id:
            raise CalendarGatewayError("Calendar insert returned no event ID")
        logger.info(f"Created calendar event {event_id}")
        return event_id

    def get(self, event_id: str) -> Dict[str, Any]:
        """
        Fetch an event.

        Raises:
            EventNotFound: If the event does not exist
        """
        response = self._request('GET', self._event_url(event_id), event_id=event_id)
        return response.json()

    def update(self, event_id: str, event_body: Dict[str, Any]) -> None:
        """
        Replace an existing event.

        Raises:
            EventNotFound: If the event does not exist
        """
        self._request(
            'PUT', self._event_url(event_id),
            event_id=event_id,
            params={'sendUpdates': 'none'},
            json=event_body
        )
        logger.info(f"Updated calendar event {event_id}")

    def delete(self, event_id: str) -> None:
        """
        Delete an event.

        Raises:
            EventNotFound: If the event does not exist or is already deleted
        """
        self._request(
            'DELETE', self._event_url(event_id),
            event_id=event_id,
            params={'sendUpdates': 'none'}
        )
        logger.info(f"Deleted calendar event {event_id}")

    def _request(
        self,
        method: str,
        url: str,
        event_id: Optional[str] = None,
        idempotent: bool = True,
        **kwargs
    ) -> requests.Response:
        """
        Send a request with retry logic.

        Retries connection errors, rate limiting and server errors with
        exponential backoff. Non-idempotent requests are only retried on
        rate limiting, which Google rejects before doing any work.

        Raises:
            EventNotFound: On 404/410 for an event-scoped call
            CalendarGatewayError: On any other failure
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as e:
                if not idempotent:
                    logger.error(f"{method} {url} failed and will not be retried: {e}")
                    raise CalendarGatewayError(f"Calendar request failed: {e}") from e
                if last_attempt:
                    logger.error(
                        f"All {self.max_retries} attempts failed for {method} {url}: {e}"
                    )
                    raise CalendarGatewayError(f"Calendar request failed: {e}") from e
                self._backoff(attempt, method, e)
                continue

            if response.status_code in self.NOT_FOUND_STATUS_CODES and event_id:
                raise EventNotFound(event_id, response.status_code)

            retry_codes = self.RETRY_STATUS_CODES if idempotent else self.INSERT_RETRY_STATUS_CODES
            if response.status_code in retry_codes and not last_attempt:
                self._backoff(attempt, method, f"HTTP {response.status_code}")
                continue

            if response.status_code >= 400:
                raise CalendarGatewayError(
                    f"Calendar API {method} failed with HTTP {response.status_code}: "
                    f"{response.text[:500]}",
                    status_code=response.status_code
                )
            return response

    def _backoff(self, attempt: int, method: str, reason) -> None:
        delay = self.base_delay * (2 ** attempt)
        logger.warning(
            f"Calendar {method} failed (attempt {attempt + 1}/{self.max_retries}): "
            f"{reason}. Retrying in {delay} seconds..."
        )
        time.sleep(delay)

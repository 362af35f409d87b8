"""Exceptions raised by calendar gateways."""
from typing import Optional


class CalendarGatewayError(Exception):
    """Calendar API call failed (auth, rate limit, network, server)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EventNotFound(CalendarGatewayError):
    """Referenced event does not exist (404) or was deleted (410)."""

    def __init__(self, event_id: str, status_code: int = 404):
        super().__init__(f"Calendar event not found: {event_id}", status_code)
        self.event_id = event_id

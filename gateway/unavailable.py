"""Calendar gateway used when the real one cannot be configured."""
from typing import Any, Dict

from gateway.errors import CalendarGatewayError


class UnavailableCalendarGateway:
    """
    Gateway whose every call fails with the configuration error.

    Lets status changes commit while calendar sync reports the failure.
    """

    def __init__(self, reason: Exception):
        self.reason = reason

    def _fail(self):
        raise CalendarGatewayError(f"Calendar gateway unavailable: {self.reason}")

    def insert(self, event_body: Dict[str, Any]) -> str:
        self._fail()

    def get(self, event_id: str) -> Dict[str, Any]:
        self._fail()

    def update(self, event_id: str, event_body: Dict[str, Any]) -> None:
        self._fail()

    def delete(self, event_id: str) -> None:
        self._fail()

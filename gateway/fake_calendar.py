"""In-memory calendar gateway for local runs and tests."""
import copy
import itertools
import logging
from typing import Any, Dict, Optional, Set

from gateway.errors import CalendarGatewayError, EventNotFound

logger = logging.getLogger(__name__)


class InMemoryCalendarGateway:
    """Calendar gateway backed by a dict of event ID to event resource."""

    OPERATIONS = ('insert', 'get', 'update', 'delete')

    def __init__(self, calendar_id: str = 'fake-calendar'):
        self.calendar_id = calendar_id
        self.events: Dict[str, Dict[str, Any]] = {}
        self.calls = []
        self._failing: Set[str] = set()
        self._ids = itertools.count(1)

    def fail_on(self, *operations: str) -> None:
        """Make the given operations raise CalendarGatewayError."""
        unknown = set(operations) - set(self.OPERATIONS)
        if unknown:
            raise ValueError(f"Unknown operations: {sorted(unknown)}")
        self._failing.update(operations)

    def clear_failures(self) -> None:
        self._failing.clear()

    def remove_externally(self, event_id: str) -> None:
        """Drop an event without going through delete() (external drift)."""
        self.events.pop(event_id, None)

    def _enter(self, operation: str, event_id: Optional[str] = None) -> None:
        self.calls.append((operation, event_id))
        if operation in self._failing:
            raise CalendarGatewayError(f"Injected {operation} failure", status_code=500)

    def insert(self, event_body: Dict[str, Any]) -> str:
        self._enter('insert')
        event_id = f"fake-event-{next(self._ids)}"
        event = copy.deepcopy(event_body)
        event.update({'id': event_id, 'status': 'confirmed'})
        self.events[event_id] = event
        return event_id

    def get(self, event_id: str) -> Dict[str, Any]:
        self._enter('get', event_id)
        if event_id not in self.events:
            raise EventNotFound(event_id)
        return copy.deepcopy(self.events[event_id])

    def update(self, event_id: str, event_body: Dict[str, Any]) -> None:
        self._enter('update', event_id)
        if event_id not in self.events:
            raise EventNotFound(event_id)
        event = copy.deepcopy(event_body)
        event.update({'id': event_id, 'status': 'confirmed'})
        self.events[event_id] = event

    def delete(self, event_id: str) -> None:
        self._enter('delete', event_id)
        if self.events.pop(event_id, None) is None:
            raise EventNotFound(event_id, status_code=410)
        logger.info(f"Deleted fake calendar event {event_id}")

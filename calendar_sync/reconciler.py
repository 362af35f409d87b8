"""
Calendar sync reconciler for vacation requests.

Decides, for one request, which calendar operation makes the shared calendar
consistent with the request's status, applies it through the gateway and
writes the resulting event reference back to the store.

Calendar sync is best-effort: it always runs after the status change has been
committed, and every failure is returned as a SyncResult instead of raised.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from calendar_sync.dates import is_valid_date
from calendar_sync.event_builder import build_event_body, event_matches
from calendar_sync.models import RequestStatus, SyncAction, SyncResult, VacationRequest
from gateway.errors import EventNotFound
from storage.request_store import ConcurrentModificationError

logger = logging.getLogger(__name__)


class MalformedInputError(ValueError):
    """Request dates cannot be written to the calendar."""


def validate_dates(request: VacationRequest) -> None:
    """
    Check that a request carries a usable inclusive date range.

    Raises:
        MalformedInputError: If a date is missing, malformed, or start > end
    """
    missing = [
        name for name, value in (('start_date', request.start_date), ('end_date', request.end_date))
        if not value
    ]
    if missing:
        raise MalformedInputError(f"Missing required fields: {', '.join(missing)}")

    for name, value in (('start_date', request.start_date), ('end_date', request.end_date)):
        if not is_valid_date(value):
            raise MalformedInputError(f"Invalid {name}: {value!r}")

    if request.start_date > request.end_date:
        raise MalformedInputError(
            f"start_date {request.start_date} is after end_date {request.end_date}"
        )


class CalendarSyncReconciler:
    """
    Keeps one calendar event per approved vacation request.

    Syncs of the same request are serialized by a per-ID lock within this
    instance. Across instances and processes, the conditional write of the
    event reference is what guarantees a single event: the loser of that
    write deletes the event it just created.
    """

    def __init__(self, store, gateway):
        """
        Initialize the reconciler.

        Args:
            store: VacationRequestStore (or compatible) for event references
            gateway: Calendar gateway with insert/get/update/delete
        """
        self.store = store
        self.gateway = gateway
        # request ID -> [lock, holders and waiters]
        self._locks: Dict[str, List] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _single_flight(self, request_id: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.setdefault(request_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[request_id]

    def sync(self, request: VacationRequest) -> SyncResult:
        """
        Make the calendar consistent with the request's status.

        Args:
            request: Request snapshot with canonical status

        Returns:
            SyncResult describing the action taken
        """
        logger.info(
            f"Calendar sync start for {request.id}",
            extra={'request_id': request.id, 'status': request.status.value}
        )
        with self._single_flight(request.id):
            return self._guarded(request, 'sync', self._sync)

    def force_resync(self, request: VacationRequest) -> SyncResult:
        """
        Delete any existing event and create a fresh one.

        Used by operators to repair drift without relying on the existence
        check. Only approved requests can be force-synced.

        Args:
            request: Request snapshot with canonical status

        Returns:
            SyncResult describing the action taken
        """
        if request.status != RequestStatus.APPROVED:
            return SyncResult(
                success=False,
                error=f"Request {request.id} is not approved (status: {request.status.value})"
            )
        logger.info(f"Forced calendar resync for {request.id}", extra={'request_id': request.id})
        with self._single_flight(request.id):
            return self._guarded(request, 'force_resync', self._force_resync)

    def _guarded(self, request: VacationRequest, operation: str, handler) -> SyncResult:
        try:
            result = handler(request)
        except MalformedInputError as e:
            logger.warning(
                f"Rejected calendar {operation} for {request.id}: {e}",
                extra={'request_id': request.id, 'operation': operation}
            )
            return SyncResult(success=False, error=str(e))
        except Exception as e:
            logger.error(
                f"Calendar {operation} failed for {request.id}: {e}",
                extra={
                    'request_id': request.id,
                    'operation': operation,
                    'error_type': type(e).__name__
                },
                exc_info=True
            )
            return SyncResult(success=False, error=str(e))

        logger.info(
            f"Calendar {operation} complete for {request.id}: {result.action.value}",
            extra={
                'request_id': request.id,
                'operation': operation,
                'action': result.action.value,
                'event_id': result.event_id
            }
        )
        return result

    def _stored_event_id(self, request: VacationRequest) -> Optional[str]:
        # The store is authoritative; the caller's snapshot may be stale
        current = self.store.get_request(request.id)
        if current is None:
            return request.calendar_event_id
        return current.calendar_event_id

    def _sync(self, request: VacationRequest) -> SyncResult:
        if request.status == RequestStatus.APPROVED:
            return self._ensure_event(request)
        return self._remove_event(request)

    def _ensure_event(self, request: VacationRequest) -> SyncResult:
        validate_dates(request)
        body = build_event_body(request)
        event_id = self._stored_event_id(request)

        if not event_id:
            return self._create(request, body, expected=None, action=SyncAction.CREATE)

        try:
            event = self.gateway.get(event_id)
        except EventNotFound:
            event = None

        if event is None or event.get('status') == 'cancelled':
            logger.warning(
                f"Stored event {event_id} for {request.id} no longer exists; recreating",
                extra={'request_id': request.id, 'event_id': event_id}
            )
            self.store.clear_event_id(request.id, expected=event_id)
            result = self._create(request, body, expected=None, action=SyncAction.RECREATE)
            result.cleared_stale_event_id = True
            return result

        if event_matches(event, body):
            return SyncResult(success=True, action=SyncAction.NOOP, event_id=event_id)

        self.gateway.update(event_id, body)
        return SyncResult(success=True, action=SyncAction.UPDATE, event_id=event_id)

    def _remove_event(self, request: VacationRequest) -> SyncResult:
        event_id = self._stored_event_id(request)
        if not event_id:
            return SyncResult(success=True, action=SyncAction.NOOP)

        action = SyncAction.DELETE
        try:
            self.gateway.delete(event_id)
        except EventNotFound:
            logger.info(
                f"Event {event_id} for {request.id} already gone; clearing reference",
                extra={'request_id': request.id, 'event_id': event_id}
            )
            action = SyncAction.CLEAR_STALE_ID

        self.store.clear_event_id(request.id, expected=event_id)
        return SyncResult(
            success=True,
            action=action,
            cleared_stale_event_id=action == SyncAction.CLEAR_STALE_ID
        )

    def _force_resync(self, request: VacationRequest) -> SyncResult:
        validate_dates(request)
        body = build_event_body(request)
        event_id = self._stored_event_id(request)

        if not event_id:
            return self._create(request, body, expected=None, action=SyncAction.CREATE)

        try:
            self.gateway.delete(event_id)
        except EventNotFound:
            logger.info(f"Event {event_id} for {request.id} already gone")

        self.store.clear_event_id(request.id, expected=event_id)
        return self._create(request, body, expected=None, action=SyncAction.RECREATE)

    def _create(
        self,
        request: VacationRequest,
        body: dict,
        expected: Optional[str],
        action: SyncAction
    ) -> SyncResult:
        new_event_id = self.gateway.insert(body)
        try:
            self.store.set_event_id(request.id, new_event_id, expected=expected)
        except ConcurrentModificationError:
            # Another sync stored a reference first; keep theirs, drop ours
            logger.warning(
                f"Concurrent sync stored an event for {request.id}; "
                f"deleting duplicate {new_event_id}",
                extra={'request_id': request.id, 'event_id': new_event_id}
            )
            try:
                self.gateway.delete(new_event_id)
            except EventNotFound:
                pass
            winner = self.store.get_request(request.id)
            return SyncResult(
                success=True,
                action=SyncAction.NOOP,
                event_id=winner.calendar_event_id if winner else None
            )

        return SyncResult(success=True, action=action, event_id=new_event_id)

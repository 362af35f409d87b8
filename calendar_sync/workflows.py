"""Status-change, re-sync and batch reconciliation workflows."""
import logging
from datetime import date, timedelta
from typing import Any, Optional

from calendar_sync.dates import DATE_FORMAT, is_all_day_event, normalize_all_day_event
from calendar_sync.models import (
    ReconciliationReport,
    RequestStatus,
    StatusChangeResult,
    SyncAction,
    SyncInspection,
)
from calendar_sync.reconciler import CalendarSyncReconciler
from gateway.errors import EventNotFound
from storage.request_store import RequestNotFoundError, VacationRequestStore

logger = logging.getLogger(__name__)


def change_status(
    store: VacationRequestStore,
    reconciler: CalendarSyncReconciler,
    request_id: str,
    raw_status: Any
) -> StatusChangeResult:
    """
    Commit a status change, then sync the calendar.

    The status commit is the source of truth. A calendar failure is reported
    in the result but never undoes the commit.

    Args:
        store: Vacation request store
        reconciler: Calendar sync reconciler
        request_id: Request ID
        raw_status: Status in any historical spelling

    Returns:
        StatusChangeResult with the nested calendar SyncResult

    Raises:
        RequestNotFoundError: If the request does not exist
    """
    status = RequestStatus.from_raw(raw_status)
    committed = store.update_status(request_id, status)

    sync_result = reconciler.sync(committed)
    if not sync_result.success:
        logger.warning(
            f"Status of {request_id} committed as {status.value} but calendar sync failed: "
            f"{sync_result.error}",
            extra={'request_id': request_id, 'error': sync_result.error}
        )

    return StatusChangeResult(
        success=True,
        request_id=request_id,
        status=status,
        sync=sync_result
    )


def resync_request(
    store: VacationRequestStore,
    reconciler: CalendarSyncReconciler,
    request_id: str,
    force: bool = False
):
    """
    Re-run calendar sync for one request (manual operator action).

    Args:
        store: Vacation request store
        reconciler: Calendar sync reconciler
        request_id: Request ID
        force: Delete and recreate the event regardless of its state

    Returns:
        SyncResult

    Raises:
        RequestNotFoundError: If the request does not exist
    """
    request = store.get_request(request_id)
    if request is None:
        raise RequestNotFoundError(request_id)

    if force:
        return reconciler.force_resync(request)
    return reconciler.sync(request)


def reconcile_all(
    store: VacationRequestStore,
    reconciler: CalendarSyncReconciler,
    days: int = 90,
    dry_run: bool = False,
    today: Optional[date] = None
) -> ReconciliationReport:
    """
    Backfill calendar events for recently approved requests.

    Args:
        store: Vacation request store
        reconciler: Calendar sync reconciler
        days: Only requests starting within the last N days (or later)
        dry_run: Classify requests without touching the calendar
        today: Reference date (default: today)

    Returns:
        ReconciliationReport
    """
    threshold = ((today or date.today()) - timedelta(days=days)).strftime(DATE_FORMAT)
    logger.info(f"Starting reconciliation since {threshold} (dry run: {dry_run})")

    approved = store.list_requests(status=RequestStatus.APPROVED)
    report = ReconciliationReport(dry_run=dry_run)

    for request in approved:
        if not request.start_date or request.start_date < threshold:
            continue
        report.total_approved += 1

        if dry_run:
            if request.calendar_event_id:
                report.already_synced += 1
            else:
                report.newly_synced += 1
            continue

        result = reconciler.sync(request)
        if not result.success:
            report.failed += 1
            report.errors.append({
                'id': request.id,
                'user_name': request.user_name,
                'error': result.error or 'Unknown error'
            })
        elif result.action == SyncAction.CREATE:
            report.newly_synced += 1
        elif result.action == SyncAction.UPDATE:
            report.updated += 1
        elif result.action == SyncAction.RECREATE:
            report.recreated += 1
        elif result.action == SyncAction.NOOP:
            report.already_synced += 1
        else:
            report.skipped += 1

    logger.info(
        f"Reconciliation complete: {report.total_approved} approved, "
        f"{report.newly_synced} created, {report.updated} updated, "
        f"{report.recreated} recreated, {report.failed} failed"
    )
    return report


def inspect_request(store: VacationRequestStore, gateway, request_id: str) -> SyncInspection:
    """
    Report whether a request's calendar event exists and is in sync.

    Gateway failures are reported in calendar_error, never raised.

    Raises:
        RequestNotFoundError: If the request does not exist
    """
    request = store.get_request(request_id)
    if request is None:
        raise RequestNotFoundError(request_id)

    inspection = SyncInspection(
        request_id=request_id,
        status=request.status,
        event_id=request.calendar_event_id
    )
    if not request.calendar_event_id:
        return inspection

    try:
        event = gateway.get(request.calendar_event_id)
    except EventNotFound:
        return inspection
    except Exception as e:
        logger.warning(f"Could not inspect calendar event for {request_id}: {e}")
        inspection.calendar_error = str(e)
        return inspection

    if event.get('status') == 'cancelled':
        return inspection

    start = event.get('start') or {}
    end = event.get('end') or {}
    if is_all_day_event(start):
        dates = normalize_all_day_event(start['date'], end.get('date'))
    else:
        dates = {'startDate': start.get('dateTime'), 'endDate': end.get('dateTime')}

    inspection.event_exists = True
    inspection.event_details = {
        'summary': event.get('summary'),
        'start': dates['startDate'],
        'end': dates['endDate'],
        'status': event.get('status'),
        'html_link': event.get('htmlLink')
    }
    return inspection

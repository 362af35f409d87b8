"""AWS Lambda handler for vacation request calendar sync."""
import json
import logging
import os
import time
from typing import Dict, Any

from calendar_sync.reconciler import CalendarSyncReconciler
from calendar_sync.workflows import change_status, inspect_request, reconcile_all, resync_request
from gateway.fake_calendar import InMemoryCalendarGateway
from gateway.google_calendar import GoogleCalendarGateway
from gateway.unavailable import UnavailableCalendarGateway
from storage.request_store import RequestNotFoundError, VacationRequestStore

# Attributes present on every LogRecord; anything else came from `extra`
_RESERVED_LOG_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including fields passed via extra."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create new handler with JSON formatter
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    # Set log level
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_gateway(calendar_id: str, timeout_seconds: int):
    """
    Build the calendar gateway from environment configuration.

    USE_FAKE_CALENDAR=1 selects the in-memory gateway for local runs.

    Args:
        calendar_id: Target calendar ID
        timeout_seconds: HTTP timeout for calendar calls

    Returns:
        Calendar gateway instance
    """
    if os.environ.get('USE_FAKE_CALENDAR', '0') == '1':
        return InMemoryCalendarGateway(calendar_id)

    key = os.environ.get('GOOGLE_SERVICE_ACCOUNT_KEY', '')
    if not key:
        raise ValueError('GOOGLE_SERVICE_ACCOUNT_KEY is not set')

    return GoogleCalendarGateway.from_service_account_info(
        json.loads(key),
        calendar_id,
        timeout=timeout_seconds
    )


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _error_response(status_code: int, message: str, error: Exception, duration: float) -> Dict[str, Any]:
    return _response(status_code, {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(duration, 2)
    })


STATUS_ACTIONS = {'approve': 'approved', 'deny': 'denied'}
REQUEST_ACTIONS = {'approve', 'deny', 'set_status', 'sync', 'force_sync', 'inspect'}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for calendar sync.

    Supported actions:
        approve / deny / set_status: commit a status change, then sync
        sync / force_sync: manual re-sync of one request
        reconcile: backfill events for approved requests
        inspect: report a request's calendar sync state

    Args:
        event: Payload with 'action' and, for per-request actions, 'id'
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'vacation-requests')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    calendar_id = os.environ.get('GOOGLE_CALENDAR_ID', 'primary')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    reconcile_days = int(os.environ.get('RECONCILE_DAYS', '90'))

    # Initialize logging
    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    action = (event or {}).get('action')
    request_id = (event or {}).get('id')
    logger.info(
        f"Lambda execution started",
        extra={'action': action, 'request_id': request_id, 'table_name': table_name}
    )

    if action not in REQUEST_ACTIONS and action != 'reconcile':
        return _response(400, {'message': f"Unknown action: {action}"})
    if action in REQUEST_ACTIONS and not request_id:
        return _response(400, {'message': f"Action {action} requires an 'id'"})
    if action == 'set_status' and not event.get('status'):
        return _response(400, {'message': "Action set_status requires a 'status'"})

    try:
        # Instantiate components
        store = VacationRequestStore(table_name=table_name)
        try:
            gateway = build_gateway(calendar_id, timeout_seconds)
        except Exception as e:
            # Status changes must still commit; calendar calls report this error
            logger.error(
                f"Calendar gateway unavailable: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            gateway = UnavailableCalendarGateway(e)
        reconciler = CalendarSyncReconciler(store, gateway)

        if action in STATUS_ACTIONS or action == 'set_status':
            raw_status = STATUS_ACTIONS.get(action) or event['status']
            body = change_status(store, reconciler, request_id, raw_status).to_dict()
        elif action in ('sync', 'force_sync'):
            result = resync_request(store, reconciler, request_id, force=action == 'force_sync')
            body = dict(result.to_dict(), id=request_id)
            if not result.success:
                body['duration_seconds'] = round(time.time() - start_time, 2)
                return _response(500, body)
        elif action == 'inspect':
            body = inspect_request(store, gateway, request_id).to_dict()
        else:
            report = reconcile_all(
                store,
                reconciler,
                days=int(event.get('days', reconcile_days)),
                dry_run=bool(event.get('dry_run', False))
            )
            body = report.to_dict()

        duration = time.time() - start_time
        body['duration_seconds'] = round(duration, 2)

        logger.info(
            f"Lambda execution completed successfully",
            extra={'action': action, 'request_id': request_id, 'duration_seconds': round(duration, 2)}
        )
        return _response(200, body)

    except RequestNotFoundError as e:
        logger.warning(f"Vacation request not found: {e.request_id}")
        return _error_response(404, 'Vacation request not found', e, time.time() - start_time)

    except Exception as e:
        # Calculate execution duration
        duration = time.time() - start_time

        # Log error
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return _error_response(500, f"Action {action} failed", e, duration)

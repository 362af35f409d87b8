"""Data models for vacation requests and calendar sync results."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RequestStatus(str, Enum):
    """Canonical vacation request status."""
    PENDING = 'pending'
    APPROVED = 'approved'
    DENIED = 'denied'

    @classmethod
    def from_raw(cls, value: Any) -> 'RequestStatus':
        """
        Canonicalize a stored or submitted status value.

        Historical records use many spellings ("APPROVED", "Approved",
        "rejected", ...). Unknown or empty values are treated as pending.

        Args:
            value: Raw status value

        Returns:
            RequestStatus member
        """
        if isinstance(value, cls):
            return value
        if not value:
            return cls.PENDING

        lowered = str(value).strip().lower()
        if lowered in _APPROVED_SPELLINGS:
            return cls.APPROVED
        if lowered in _DENIED_SPELLINGS:
            return cls.DENIED
        return cls.PENDING


_APPROVED_SPELLINGS = {'approved', 'approve', 'ok', 'accepted', 'validated'}
_DENIED_SPELLINGS = {'denied', 'deny', 'reject', 'rejected', 'declined'}


class SyncAction(str, Enum):
    """Gateway operation chosen by the reconciler."""
    NOOP = 'noop'
    CREATE = 'create'
    UPDATE = 'update'
    RECREATE = 'recreate'
    DELETE = 'delete'
    CLEAR_STALE_ID = 'clear_stale_id'


@dataclass
class VacationRequest:
    """Vacation request snapshot as read from the store."""
    id: str
    status: RequestStatus
    start_date: Optional[str]
    end_date: Optional[str]
    user_name: str = 'Unknown'
    user_email: str = ''
    company: str = 'Unknown'
    type: str = 'VACATION'
    reason: Optional[str] = None
    calendar_event_id: Optional[str] = None
    calendar_synced_at: Optional[str] = None


@dataclass
class SyncResult:
    """Outcome of one calendar sync for one request."""
    success: bool
    action: SyncAction = SyncAction.NOOP
    event_id: Optional[str] = None
    error: Optional[str] = None
    cleared_stale_event_id: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'action': self.action.value,
            'event_id': self.event_id,
            'error': self.error,
            'cleared_stale_event_id': self.cleared_stale_event_id
        }


@dataclass
class StatusChangeResult:
    """Result of committing a status change and syncing the calendar."""
    success: bool
    request_id: str
    status: RequestStatus
    sync: SyncResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'id': self.request_id,
            'status': self.status.value,
            'calendar_sync': self.sync.to_dict()
        }


@dataclass
class ReconciliationReport:
    """Summary of a batch reconciliation run."""
    dry_run: bool = False
    total_approved: int = 0
    already_synced: int = 0
    newly_synced: int = 0
    updated: int = 0
    recreated: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dry_run': self.dry_run,
            'total_approved': self.total_approved,
            'already_synced': self.already_synced,
            'newly_synced': self.newly_synced,
            'updated': self.updated,
            'recreated': self.recreated,
            'failed': self.failed,
            'skipped': self.skipped,
            'errors': self.errors
        }


@dataclass
class SyncInspection:
    """Read-only view of a request's calendar sync state."""
    request_id: str
    status: RequestStatus
    event_id: Optional[str]
    event_exists: bool = False
    event_details: Optional[Dict[str, Any]] = None
    calendar_error: Optional[str] = None

    @property
    def has_event_id(self) -> bool:
        return self.event_id is not None

    @property
    def needs_sync(self) -> bool:
        return self.status == RequestStatus.APPROVED and not self.has_event_id

    @property
    def needs_recreate(self) -> bool:
        return (
            self.status == RequestStatus.APPROVED and
            self.has_event_id and
            not self.event_exists and
            self.calendar_error is None
        )

    @property
    def is_synced(self) -> bool:
        return (
            self.status == RequestStatus.APPROVED and
            self.has_event_id and
            self.event_exists
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.request_id,
            'status': self.status.value,
            'has_event_id': self.has_event_id,
            'event_id': self.event_id,
            'event_exists': self.event_exists,
            'event_details': self.event_details,
            'calendar_error': self.calendar_error,
            'sync_status': {
                'needs_sync': self.needs_sync,
                'needs_recreate': self.needs_recreate,
                'is_synced': self.is_synced
            }
        }

"""Unit tests for data models."""
import pytest

from calendar_sync.models import RequestStatus, SyncAction, SyncInspection, SyncResult


class TestRequestStatus:
    """Test cases for status canonicalization."""

    @pytest.mark.parametrize('raw', ['APPROVED', 'Approved', 'approved', ' approve ', 'validated', 'OK'])
    def test_approved_spellings(self, raw):
        assert RequestStatus.from_raw(raw) == RequestStatus.APPROVED

    @pytest.mark.parametrize('raw', ['DENIED', 'Rejected', 'reject', 'declined'])
    def test_denied_spellings(self, raw):
        assert RequestStatus.from_raw(raw) == RequestStatus.DENIED

    @pytest.mark.parametrize('raw', ['Pending', 'submitted', 'waiting', '', None, 'on hold'])
    def test_pending_and_unknown(self, raw):
        assert RequestStatus.from_raw(raw) == RequestStatus.PENDING

    def test_member_passes_through(self):
        assert RequestStatus.from_raw(RequestStatus.DENIED) is RequestStatus.DENIED


def test_sync_result_to_dict():
    result = SyncResult(success=True, action=SyncAction.CREATE, event_id='evt-1')

    assert result.to_dict() == {
        'success': True,
        'action': 'create',
        'event_id': 'evt-1',
        'error': None,
        'cleared_stale_event_id': False
    }


class TestSyncInspection:
    """Test cases for derived sync status flags."""

    def test_approved_without_event_needs_sync(self):
        inspection = SyncInspection('req-1', RequestStatus.APPROVED, event_id=None)

        assert inspection.needs_sync
        assert not inspection.needs_recreate
        assert not inspection.is_synced

    def test_approved_with_missing_event_needs_recreate(self):
        inspection = SyncInspection('req-1', RequestStatus.APPROVED, event_id='evt-1')

        assert inspection.needs_recreate
        assert not inspection.needs_sync

    def test_gateway_error_is_not_a_recreate_signal(self):
        inspection = SyncInspection(
            'req-1', RequestStatus.APPROVED, event_id='evt-1', calendar_error='HTTP 500'
        )

        assert not inspection.needs_recreate

    def test_synced(self):
        inspection = SyncInspection(
            'req-1', RequestStatus.APPROVED, event_id='evt-1', event_exists=True
        )

        assert inspection.is_synced
        assert inspection.to_dict()['sync_status'] == {
            'needs_sync': False,
            'needs_recreate': False,
            'is_synced': True
        }

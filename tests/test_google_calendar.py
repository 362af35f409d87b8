"""Unit tests for GoogleCalendarGateway."""
import json
from unittest.mock import patch

import pytest
import responses
from requests.exceptions import ConnectionError

from gateway.errors import CalendarGatewayError, EventNotFound
from gateway.google_calendar import CALENDAR_SCOPES, GoogleCalendarGateway

CALENDAR_ID = 'team@group.calendar.google.com'
EVENT_BODY = {
    'summary': 'Pierre Martin - Stars MC',
    'start': {'date': '2025-12-25'},
    'end': {'date': '2025-12-26'}
}


@pytest.fixture
def gateway():
    return GoogleCalendarGateway(CALENDAR_ID, timeout=5, base_delay=0)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch('gateway.google_calendar.time.sleep') as mock_sleep:
        yield mock_sleep


class TestGoogleCalendarGateway:
    """Test cases for GoogleCalendarGateway class."""

    def test_calendar_id_is_url_encoded(self, gateway):
        assert gateway.events_url == (
            'https://www.googleapis.com/calendar/v3/calendars/'
            'team%40group.calendar.google.com/events'
        )

    @responses.activate
    def test_insert_returns_event_id(self, gateway):
        responses.add(responses.POST, gateway.events_url, json={'id': 'evt-1'}, status=200)

        event_id = gateway.insert(EVENT_BODY)

        assert event_id == 'evt-1'
        request = responses.calls[0].request
        assert json.loads(request.body) == EVENT_BODY
        assert 'sendUpdates=none' in request.url

    @responses.activate
    def test_insert_without_id_fails(self, gateway):
        responses.add(responses.POST, gateway.events_url, json={}, status=200)

        with pytest.raises(CalendarGatewayError):
            gateway.insert(EVENT_BODY)

    @responses.activate
    def test_get_returns_event(self, gateway):
        responses.add(
            responses.GET, f"{gateway.events_url}/evt-1",
            json=dict(EVENT_BODY, id='evt-1', status='confirmed'), status=200
        )

        event = gateway.get('evt-1')

        assert event['id'] == 'evt-1'
        assert event['start'] == {'date': '2025-12-25'}

    @responses.activate
    def test_get_missing_event_raises_not_found(self, gateway):
        responses.add(responses.GET, f"{gateway.events_url}/evt-1", json={}, status=404)

        with pytest.raises(EventNotFound) as exc_info:
            gateway.get('evt-1')

        assert exc_info.value.event_id == 'evt-1'
        assert len(responses.calls) == 1

    @responses.activate
    def test_update_sends_put(self, gateway):
        responses.add(responses.PUT, f"{gateway.events_url}/evt-1", json={'id': 'evt-1'}, status=200)

        gateway.update('evt-1', EVENT_BODY)

        assert responses.calls[0].request.method == 'PUT'

    @responses.activate
    def test_update_missing_event_raises_not_found(self, gateway):
        responses.add(responses.PUT, f"{gateway.events_url}/evt-1", status=404)

        with pytest.raises(EventNotFound):
            gateway.update('evt-1', EVENT_BODY)

    @responses.activate
    def test_delete(self, gateway):
        responses.add(responses.DELETE, f"{gateway.events_url}/evt-1", status=204)

        gateway.delete('evt-1')

        assert len(responses.calls) == 1

    @responses.activate
    def test_delete_already_deleted_raises_not_found(self, gateway):
        responses.add(responses.DELETE, f"{gateway.events_url}/evt-1", status=410)

        with pytest.raises(EventNotFound) as exc_info:
            gateway.delete('evt-1')

        assert exc_info.value.status_code == 410

    @responses.activate
    def test_forbidden_is_gateway_error_not_retried(self, gateway):
        responses.add(responses.GET, f"{gateway.events_url}/evt-1", json={'error': 'forbidden'}, status=403)

        with pytest.raises(CalendarGatewayError) as exc_info:
            gateway.get('evt-1')

        assert not isinstance(exc_info.value, EventNotFound)
        assert exc_info.value.status_code == 403
        assert len(responses.calls) == 1

    @responses.activate
    def test_retries_rate_limit_then_succeeds(self, gateway, no_sleep):
        url = f"{gateway.events_url}/evt-1"
        responses.add(responses.GET, url, status=429)
        responses.add(responses.GET, url, status=503)
        responses.add(responses.GET, url, json={'id': 'evt-1'}, status=200)

        assert gateway.get('evt-1')['id'] == 'evt-1'
        assert len(responses.calls) == 3
        assert no_sleep.call_count == 2

    @responses.activate
    def test_server_errors_exhaust_retries(self, gateway):
        for _ in range(3):
            responses.add(responses.DELETE, f"{gateway.events_url}/evt-1", status=500)

        with pytest.raises(CalendarGatewayError) as exc_info:
            gateway.delete('evt-1')

        assert exc_info.value.status_code == 500
        assert len(responses.calls) == 3

    @responses.activate
    def test_connection_errors_exhaust_retries(self, gateway):
        for _ in range(3):
            responses.add(responses.GET, f"{gateway.events_url}/evt-1", body=ConnectionError('down'))

        with pytest.raises(CalendarGatewayError) as exc_info:
            gateway.get('evt-1')

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @responses.activate
    def test_exponential_backoff(self, no_sleep):
        gateway = GoogleCalendarGateway(CALENDAR_ID, base_delay=1)
        for _ in range(3):
            responses.add(responses.PUT, f"{gateway.events_url}/evt-1", status=502)

        with pytest.raises(CalendarGatewayError):
            gateway.update('evt-1', EVENT_BODY)

        assert [c.args[0] for c in no_sleep.call_args_list] == [1, 2]

    @responses.activate
    def test_insert_server_error_is_not_retried(self, gateway, no_sleep):
        responses.add(responses.POST, gateway.events_url, status=503)
        responses.add(responses.POST, gateway.events_url, json={'id': 'evt-2'}, status=200)

        with pytest.raises(CalendarGatewayError) as exc_info:
            gateway.insert(EVENT_BODY)

        assert exc_info.value.status_code == 503
        assert len(responses.calls) == 1
        no_sleep.assert_not_called()

    @responses.activate
    def test_insert_connection_error_is_not_retried(self, gateway):
        responses.add(responses.POST, gateway.events_url, body=ConnectionError('reset'))
        responses.add(responses.POST, gateway.events_url, json={'id': 'evt-2'}, status=200)

        with pytest.raises(CalendarGatewayError):
            gateway.insert(EVENT_BODY)

        assert len(responses.calls) == 1

    @responses.activate
    def test_insert_retries_rate_limit(self, gateway):
        responses.add(responses.POST, gateway.events_url, status=429)
        responses.add(responses.POST, gateway.events_url, json={'id': 'evt-1'}, status=200)

        assert gateway.insert(EVENT_BODY) == 'evt-1'
        assert len(responses.calls) == 2


@pytest.mark.parametrize('max_retries', [0, -1])
def test_max_retries_must_be_positive(max_retries):
    with pytest.raises(ValueError, match='max_retries'):
        GoogleCalendarGateway(CALENDAR_ID, max_retries=max_retries)


@patch('gateway.google_calendar.AuthorizedSession')
@patch('gateway.google_calendar.service_account.Credentials.from_service_account_info')
def test_from_service_account_info(mock_from_info, mock_session_class):
    info = {'client_email': 'sync@project.iam.gserviceaccount.com'}

    gateway = GoogleCalendarGateway.from_service_account_info(info, CALENDAR_ID, timeout=10)

    mock_from_info.assert_called_once_with(info, scopes=CALENDAR_SCOPES)
    mock_session_class.assert_called_once_with(mock_from_info.return_value)
    assert gateway.session is mock_session_class.return_value
    assert gateway.calendar_id == CALENDAR_ID
    assert gateway.timeout == 10

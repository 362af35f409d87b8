"""Shared fixtures for vacation calendar sync tests."""
import os

import boto3
import pytest
from moto import mock_aws

from calendar_sync.models import RequestStatus, VacationRequest
from calendar_sync.reconciler import CalendarSyncReconciler
from gateway.fake_calendar import InMemoryCalendarGateway
from storage.request_store import VacationRequestStore

TABLE_NAME = 'test-vacation-requests'


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
            BillingMode='PAY_PER_REQUEST'
        )
        yield table


@pytest.fixture
def store(dynamodb_table):
    """VacationRequestStore over the mock table."""
    return VacationRequestStore(TABLE_NAME)


@pytest.fixture
def gateway():
    """In-memory calendar gateway."""
    return InMemoryCalendarGateway('team-calendar')


@pytest.fixture
def reconciler(store, gateway):
    return CalendarSyncReconciler(store, gateway)


@pytest.fixture
def make_request():
    """Factory for vacation requests with sensible defaults."""
    def _make(request_id='req-1', status=RequestStatus.PENDING, **overrides):
        fields = {
            'id': request_id,
            'status': status,
            'start_date': '2025-12-24',
            'end_date': '2025-12-26',
            'user_name': 'Pierre Martin',
            'user_email': 'pierre@stars.mc',
            'company': 'STARS_MC',
            'type': 'Paid Vacation',
            'reason': 'Family holidays'
        }
        fields.update(overrides)
        return VacationRequest(**fields)
    return _make


@pytest.fixture
def stored_request(store, make_request):
    """Factory that writes a request to the store and returns it."""
    def _stored(*args, **kwargs):
        request = make_request(*args, **kwargs)
        store.put_request(request)
        return request
    return _stored

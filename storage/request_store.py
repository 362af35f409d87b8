"""DynamoDB store for vacation requests and their calendar event references."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from calendar_sync.models import RequestStatus, VacationRequest

logger = logging.getLogger(__name__)

CANONICAL_EVENT_ID_FIELD = 'calendarEventId'
# Older records stored the same reference under these names
LEGACY_EVENT_ID_FIELDS = ('googleCalendarEventId', 'googleEventId')
EVENT_ID_FIELDS = (CANONICAL_EVENT_ID_FIELD,) + LEGACY_EVENT_ID_FIELDS


class RequestNotFoundError(Exception):
    """No vacation request exists with the given ID."""

    def __init__(self, request_id: str):
        super().__init__(f"Vacation request not found: {request_id}")
        self.request_id = request_id


class ConcurrentModificationError(Exception):
    """Stored calendar event reference changed since it was read."""

    def __init__(self, request_id: str, expected: Optional[str]):
        super().__init__(
            f"Calendar event reference for {request_id} no longer equals {expected!r}"
        )
        self.request_id = request_id
        self.expected = expected


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


class VacationRequestStore:
    """Store for vacation request documents keyed by request ID."""

    def __init__(self, table_name: str, dynamodb=None):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the DynamoDB table
            dynamodb: Optional boto3 DynamoDB resource
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized VacationRequestStore for table: {table_name}")

    def get_request(self, request_id: str) -> Optional[VacationRequest]:
        """
        Read a vacation request by ID.

        Args:
            request_id: Request ID

        Returns:
            VacationRequest or None if not found
        """
        try:
            response = self.table.get_item(Key={'id': request_id}, ConsistentRead=True)
        except ClientError as e:
            logger.error(f"Error reading vacation request {request_id}: {e}")
            raise

        item = response.get('Item')
        if item is None:
            return None
        return self._item_to_request(item)

    def put_request(self, request: VacationRequest) -> None:
        """Create or replace a vacation request document."""
        self.table.put_item(Item=self._request_to_item(request))
        logger.info(f"Stored vacation request {request.id}")

    def update_status(self, request_id: str, status: RequestStatus) -> VacationRequest:
        """
        Commit a status change.

        Args:
            request_id: Request ID
            status: Canonical status

        Returns:
            Updated VacationRequest

        Raises:
            RequestNotFoundError: If the request does not exist
        """
        try:
            response = self.table.update_item(
                Key={'id': request_id},
                UpdateExpression='SET #status = :status, updatedAt = :now',
                ConditionExpression=Attr('id').exists(),
                ExpressionAttributeNames={'#status': 'status'},
                ExpressionAttributeValues={':status': status.value, ':now': _now()},
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise RequestNotFoundError(request_id) from e
            logger.error(f"Error updating status of {request_id}: {e}")
            raise

        logger.info(f"Request {request_id} status set to {status.value}")
        return self._item_to_request(response['Attributes'])

    def set_event_id(
        self,
        request_id: str,
        event_id: str,
        expected: Optional[str] = None
    ) -> None:
        """
        Store the calendar event reference if it still equals expected.

        Writes the canonical field and removes the legacy aliases.

        Args:
            request_id: Request ID
            event_id: New calendar event ID
            expected: Reference read before the write (None means unset)

        Raises:
            ConcurrentModificationError: If the stored reference changed
            RequestNotFoundError: If the request does not exist
        """
        self._write_event_id(request_id, event_id, self._reference_condition(expected), expected)
        logger.info(f"Request {request_id} calendar event set to {event_id}")

    def clear_event_id(self, request_id: str, expected: Optional[str] = None) -> None:
        """
        Remove the calendar event reference under every alias.

        Args:
            request_id: Request ID
            expected: If given, only clear while the reference equals it

        Raises:
            ConcurrentModificationError: If expected was given and changed
            RequestNotFoundError: If the request does not exist
        """
        condition = self._reference_condition(expected) if expected else None
        self._write_event_id(request_id, None, condition, expected)
        logger.info(f"Request {request_id} calendar event reference cleared")

    def list_requests(self, status: Optional[RequestStatus] = None) -> List[VacationRequest]:
        """
        Scan all vacation requests.

        Args:
            status: Optional canonical status filter

        Returns:
            List of VacationRequest objects
        """
        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning vacation requests: {e}")
            raise

        # Status is filtered after canonicalization, not in the scan,
        # since stored spellings vary
        requests = [self._item_to_request(item) for item in items]
        if status is not None:
            requests = [r for r in requests if r.status == status]

        logger.info(f"Retrieved {len(requests)} vacation requests")
        return requests

    def _write_event_id(
        self,
        request_id: str,
        event_id: Optional[str],
        reference_condition,
        expected: Optional[str]
    ) -> None:
        values = {':now': _now()}
        if event_id:
            update = (
                f"SET {CANONICAL_EVENT_ID_FIELD} = :event_id, calendarSyncedAt = :now "
                f"REMOVE {', '.join(LEGACY_EVENT_ID_FIELDS)}"
            )
            values[':event_id'] = event_id
        else:
            update = f"SET calendarSyncedAt = :now REMOVE {', '.join(EVENT_ID_FIELDS)}"

        condition = Attr('id').exists()
        if reference_condition is not None:
            condition = condition & reference_condition

        try:
            self.table.update_item(
                Key={'id': request_id},
                UpdateExpression=update,
                ConditionExpression=condition,
                ExpressionAttributeValues=values
            )
        except ClientError as e:
            if not _is_conditional_failure(e):
                logger.error(f"Error writing calendar event reference for {request_id}: {e}")
                raise
            if self.get_request(request_id) is None:
                raise RequestNotFoundError(request_id) from e
            raise ConcurrentModificationError(request_id, expected) from e

    def _reference_condition(self, expected: Optional[str]):
        """Condition that holds while the stored reference equals expected."""
        if expected is None:
            condition = Attr(EVENT_ID_FIELDS[0]).not_exists()
            for name in EVENT_ID_FIELDS[1:]:
                condition = condition & Attr(name).not_exists()
            return condition

        condition = Attr(EVENT_ID_FIELDS[0]).eq(expected)
        for name in EVENT_ID_FIELDS[1:]:
            condition = condition | Attr(name).eq(expected)
        return condition

    def _item_to_request(self, item: dict) -> VacationRequest:
        """
        Convert a DynamoDB item to a VacationRequest.

        The event reference is read through the aliases in order; the
        raw status is canonicalized here.

        Args:
            item: DynamoDB item dictionary

        Returns:
            VacationRequest object
        """
        event_id = next(
            (item[name] for name in EVENT_ID_FIELDS if item.get(name)),
            None
        )
        return VacationRequest(
            id=item['id'],
            status=RequestStatus.from_raw(item.get('status')),
            start_date=item.get('startDate'),
            end_date=item.get('endDate'),
            user_name=item.get('userName') or 'Unknown',
            user_email=item.get('userEmail') or '',
            company=item.get('company') or 'Unknown',
            type=item.get('type') or 'VACATION',
            reason=item.get('reason'),
            calendar_event_id=event_id,
            calendar_synced_at=item.get('calendarSyncedAt')
        )

    def _request_to_item(self, request: VacationRequest) -> dict:
        """
        Convert a VacationRequest to a DynamoDB item.

        Args:
            request: VacationRequest object

        Returns:
            DynamoDB item dictionary
        """
        item: Dict[str, Any] = {
            'id': request.id,
            'status': request.status.value,
            'userName': request.user_name,
            'userEmail': request.user_email,
            'company': request.company,
            'type': request.type,
            'updatedAt': _now()
        }

        # Add optional fields if present
        if request.start_date:
            item['startDate'] = request.start_date
        if request.end_date:
            item['endDate'] = request.end_date
        if request.reason:
            item['reason'] = request.reason
        if request.calendar_event_id:
            item[CANONICAL_EVENT_ID_FIELD] = request.calendar_event_id
        if request.calendar_synced_at:
            item['calendarSyncedAt'] = request.calendar_synced_at

        return item

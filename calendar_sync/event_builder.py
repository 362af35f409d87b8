"""Build Google Calendar event bodies for vacation requests."""
import logging
from typing import Any, Dict

from calendar_sync.dates import is_all_day_event, normalize_all_day_event, to_exclusive_range
from calendar_sync.models import VacationRequest

logger = logging.getLogger(__name__)

COMPANY_DISPLAY_NAMES = {
    'STARS_MC': 'Stars MC',
    'STARS_YACHTING': 'Stars Yachting',
    'STARS_REAL_ESTATE': 'Stars Real Estate',
    'LE_PNEU': 'Le Pneu',
    'MIDI_PNEU': 'Midi Pneu',
    'STARS_AVIATION': 'Stars Aviation',
}

# Google Calendar color IDs (1-11)
COMPANY_COLOR_IDS = {
    'STARS_MC': '1',
    'STARS_YACHTING': '2',
    'STARS_REAL_ESTATE': '3',
    'LE_PNEU': '4',
    'MIDI_PNEU': '5',
    'STARS_AVIATION': '6',
}
DEFAULT_COLOR_ID = '1'

# Fields compared when deciding whether an existing event needs an update
COMPARED_FIELDS = ('summary', 'description', 'colorId')


def company_display_name(company: str) -> str:
    """Return the display name for a company code, or the code itself."""
    return COMPANY_DISPLAY_NAMES.get(company, company)


def build_event_body(request: VacationRequest) -> Dict[str, Any]:
    """
    Build the calendar event resource for an approved request.

    Args:
        request: Vacation request with inclusive start/end dates

    Returns:
        Event body using the calendar's exclusive end-date convention
    """
    company = company_display_name(request.company)
    start_date, end_date_exclusive = to_exclusive_range(request.start_date, request.end_date)

    description_lines = [
        f"Name: {request.user_name}",
        f"Company: {company}",
        f"Type: {request.type}",
        f"Date Range: {request.start_date} - {request.end_date}",
    ]
    if request.reason:
        description_lines.append(f"Reason: {request.reason}")

    return {
        'summary': f"{request.user_name} - {company}",
        'description': '\n'.join(description_lines),
        'start': {'date': start_date},
        'end': {'date': end_date_exclusive},
        'colorId': COMPANY_COLOR_IDS.get(request.company, DEFAULT_COLOR_ID),
        'transparency': 'transparent',
        'extendedProperties': {
            'private': {'requestId': request.id}
        }
    }


def event_matches(event: Dict[str, Any], body: Dict[str, Any]) -> bool:
    """
    Compare an event read from the calendar with a desired event body.

    Both date ranges are normalized to inclusive dates before comparing.
    Timed events never match, since requests are always all-day.

    Args:
        event: Event resource returned by the gateway
        body: Desired body from build_event_body()

    Returns:
        True if no update is needed
    """
    event_start = event.get('start') or {}
    if not is_all_day_event(event_start):
        logger.info(f"Event {event.get('id')} is not an all-day event")
        return False

    actual = normalize_all_day_event(
        event_start['date'],
        (event.get('end') or {}).get('date')
    )
    desired = normalize_all_day_event(body['start']['date'], body['end']['date'])
    if actual != desired:
        return False

    return all(event.get(name) == body.get(name) for name in COMPARED_FIELDS)

# services/utils.py

from datetime import datetime
from flask import current_app
from pytz import timezone

from services.errors import InvalidInput

DATE_FORMAT = '%Y-%m-%d'
TIME_FORMATS = ('%H:%M', '%H:%M:%S', '%I:%M %p')


def lab_now():
    """Current wall-clock time at the lab, naive, matching how slots are stored."""
    tz = timezone(current_app.config.get('LAB_TIMEZONE', 'UTC'))
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)


def validate_json(data, required_fields):
    """Return the required fields missing from the JSON data."""
    return [field for field in required_fields if data.get(field) in (None, '')]


def parse_date(value, field='date'):
    if not isinstance(value, str) or not value:
        raise InvalidInput(f"'{field}' must be a date in YYYY-MM-DD format")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise InvalidInput(f"'{field}' must be a date in YYYY-MM-DD format")


def parse_time(value, field='time'):
    if not isinstance(value, str) or not value:
        raise InvalidInput(f"'{field}' must be a time like 09:00")
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    raise InvalidInput(f"'{field}' must be a time like 09:00")


def parse_datetime(value, field='timestamp'):
    """Parse an ISO-8601 timestamp; offsets are converted to lab time."""
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"'{field}' must be an ISO-8601 timestamp")
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise InvalidInput(f"'{field}' must be an ISO-8601 timestamp")
    if parsed.tzinfo is not None:
        tz = timezone(current_app.config.get('LAB_TIMEZONE', 'UTC'))
        parsed = parsed.astimezone(tz).replace(tzinfo=None)
    return parsed


def parse_int(value, field):
    if isinstance(value, bool):
        raise InvalidInput(f"'{field}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"'{field}' must be an integer")

# services/booking_policy.py

"""
Booking-window evaluation.

Pure functions over ``(now, settings)``; callers load the settings row and
pass it in. An emergency window, when actually open, overrides the regular
weekly schedule.
"""

from collections import namedtuple

WINDOW_EMERGENCY = 'emergency'
WINDOW_REGULAR = 'regular'
WINDOW_CLOSED = 'closed'

AVAILABLE_MESSAGE = 'Booking is open. Choose an available slot.'
NOT_CONFIGURED_MESSAGE = ('Booking is currently not available. Please check back later '
                          'or contact the administrator.')

PolicyDecision = namedtuple('PolicyDecision', ['allowed', 'message', 'window'])


def weekday_name(moment):
    return moment.strftime('%A').lower()


def _normalize_days(days):
    return {str(d).strip().lower() for d in (days or [])}


def emergency_window_open(now, settings):
    if not settings.is_emergency_booking_open:
        return False
    start = settings.emergency_booking_start
    end = settings.emergency_booking_end
    # Missing bounds mean the window was never really opened
    if start is None or end is None:
        return False
    if not (start <= now <= end):
        return False
    return weekday_name(now) in _normalize_days(settings.emergency_allowed_days)


def regular_window_open(now, settings):
    if not settings.is_regular_booking_enabled:
        return False
    return weekday_name(now) in _normalize_days(settings.regular_allowed_days)


def evaluate(now, settings):
    if settings is None:
        return PolicyDecision(False, NOT_CONFIGURED_MESSAGE, WINDOW_CLOSED)

    if emergency_window_open(now, settings):
        return PolicyDecision(True, settings.emergency_message or AVAILABLE_MESSAGE, WINDOW_EMERGENCY)

    if regular_window_open(now, settings):
        return PolicyDecision(True, AVAILABLE_MESSAGE, WINDOW_REGULAR)

    return PolicyDecision(False, settings.message or NOT_CONFIGURED_MESSAGE, WINDOW_CLOSED)


def is_booking_allowed(now, settings):
    return evaluate(now, settings).allowed


def booking_message(now, settings):
    return evaluate(now, settings).message

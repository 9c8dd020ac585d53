# services/errors.py

"""
Typed failures raised by the booking services and rendered by the app's
error handler as ``{'success': False, 'error': code, 'message': message}``.
"""


class BookingError(Exception):
    status_code = 400
    code = 'booking_error'
    default_message = 'Request could not be completed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'error': self.code, 'message': self.message}


class InvalidInput(BookingError):
    code = 'invalid_input'
    default_message = 'Invalid request'


class Unauthorized(BookingError):
    status_code = 401
    code = 'unauthorized'
    default_message = 'Unauthorized'


class Forbidden(BookingError):
    status_code = 403
    code = 'forbidden'
    default_message = 'You are not allowed to perform this action'


class NotFound(BookingError):
    status_code = 404
    code = 'not_found'
    default_message = 'Not found'


# Policy / timing violations

class BookingWindowClosed(BookingError):
    status_code = 403
    code = 'booking_window_closed'
    default_message = 'Booking is not currently allowed'


class PastSlot(BookingError):
    code = 'past_slot'
    default_message = 'Cannot book past slots'


class CancellationTooLate(BookingError):
    code = 'cancellation_too_late'
    default_message = 'Cancellations must be made at least 1 day in advance'


class TooEarly(BookingError):
    code = 'too_early'
    default_message = 'Cannot submit samples before session ends'


class AlreadySubmitted(BookingError):
    status_code = 409
    code = 'already_submitted'
    default_message = 'Samples already submitted for this session'


# Detected before the write

class SlotUnavailable(BookingError):
    status_code = 409
    code = 'slot_unavailable'
    default_message = 'Slot is not available'


class DuplicateBooking(BookingError):
    status_code = 409
    code = 'duplicate_booking'
    default_message = 'You already have a booking for this slot'


class DuplicateDateBooking(BookingError):
    status_code = 409
    code = 'duplicate_date_booking'
    default_message = 'You already have a booking for this date'


# Detected by the write itself

class SlotConflict(BookingError):
    status_code = 409
    code = 'slot_conflict'
    default_message = 'This slot is no longer available'


class InvalidTransition(BookingError):
    status_code = 409
    code = 'invalid_transition'
    default_message = 'This change is not allowed in the current state'


class SlotBooked(InvalidTransition):
    code = 'slot_booked'
    default_message = 'Booked slots must be released first'

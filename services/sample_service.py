# services/sample_service.py

from flask import current_app
from sqlalchemy import update

from db.extensions import db
from models.booking import Booking, BOOKING_BOOKED
from services.errors import AlreadySubmitted, InvalidInput, InvalidTransition, NotFound, TooEarly


class SampleSubmissionService:

    @staticmethod
    def submit_samples(user, booking_id, count, now, remarks=None):
        """
        Record how many samples were run in a finished session.

        One-shot: the write only lands while samples_count is still empty,
        so a second submission (or two racing ones) gets AlreadySubmitted.
        """
        booking = Booking.query.filter_by(id=booking_id, user_id=user.id).first()
        if booking is None:
            raise NotFound('Booking not found')

        if count is None:
            raise InvalidInput('Sample count is required')
        if isinstance(count, bool) or not isinstance(count, int):
            raise InvalidInput('Sample count must be a whole number')
        if count < 0:
            raise InvalidInput('Sample count cannot be negative')

        if booking.status != BOOKING_BOOKED:
            raise InvalidTransition(f"Samples cannot be submitted for a {booking.status} booking")

        slot = booking.lab_slot
        if now < slot.ends_at:
            raise TooEarly()

        if booking.samples_count is not None:
            raise AlreadySubmitted()

        values = {'samples_count': count, 'checkin_time': now}
        if remarks:
            values['remarks'] = remarks

        result = db.session.execute(
            update(Booking)
            .where(Booking.id == booking.id,
                   Booking.status == BOOKING_BOOKED,
                   Booking.samples_count.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise AlreadySubmitted()

        db.session.commit()
        current_app.logger.info(f"User {user.id} submitted {count} samples for booking {booking_id}")
        return db.session.get(Booking, booking_id)

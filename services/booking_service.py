# services/booking_service.py

from datetime import datetime, time, timedelta
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from db.extensions import db
from models.booking import (
    Booking, BOOKING_BOOKED, BOOKING_CANCELLED, BOOKING_NO_SHOW, BOOKING_STATUSES,
    CANCELLED_BY_ADMIN, CANCELLED_BY_SELF
)
from models.labSlot import SLOT_AVAILABLE
from models.notification import Notification
from services import booking_policy
from services.errors import (
    BookingWindowClosed, DuplicateBooking, DuplicateDateBooking, Forbidden, InvalidInput,
    InvalidTransition, NotFound, PastSlot, SlotConflict, SlotUnavailable, CancellationTooLate
)
from services.slot_repository import SlotRepository

SELF_CANCEL_LEAD_TIME = timedelta(days=1)


class BookingService:

    @staticmethod
    def _active_booking(user_id, **filters):
        return Booking.query.filter_by(user_id=user_id, status=BOOKING_BOOKED, **filters).first()

    @staticmethod
    def _visible_booking(actor, booking_id):
        booking = db.session.get(Booking, booking_id)
        if booking is None or (not actor.is_admin and booking.user_id != actor.id):
            raise NotFound('Booking not found')
        return booking

    @staticmethod
    def reserve_slot(user, slot_id, now, settings):
        """
        Book `slot_id` for `user`.

        Checks run in a fixed order so the caller always gets the first
        reason that applies. The slot claim and the booking row are committed
        together; if either fails nothing is written.
        """
        decision = booking_policy.evaluate(now, settings)
        if not decision.allowed:
            raise BookingWindowClosed(decision.message)

        slot = SlotRepository.get(slot_id)
        if slot is None:
            raise NotFound('Slot not found')

        if slot.status != SLOT_AVAILABLE or slot.booked_by is not None:
            raise SlotUnavailable()

        if slot.date < now.date():
            raise PastSlot()

        if BookingService._active_booking(user.id, lab_slot_id=slot.id):
            raise DuplicateBooking()

        if BookingService._active_booking(user.id, slot_date=slot.date):
            raise DuplicateDateBooking()

        slot_date = slot.date
        try:
            SlotRepository.claim(slot.id, user.id)
            booking = Booking(
                user_id=user.id,
                lab_slot_id=slot.id,
                slot_date=slot_date,
                status=BOOKING_BOOKED,
                created_at=now,
            )
            db.session.add(booking)
            db.session.commit()
        except SlotConflict:
            db.session.rollback()
            raise
        except IntegrityError as e:
            # Another request of the same user won the per-day unique index
            db.session.rollback()
            current_app.logger.warning(f"Booking insert for user {user.id} on {slot_date} rejected: {e}")
            raise DuplicateDateBooking()

        current_app.logger.info(
            f"User {user.id} booked slot {slot_id} ({slot_date}) in {decision.window} window, booking {booking.id}"
        )
        return booking

    @staticmethod
    def cancel_booking(actor, booking_id, now, reason=None):
        booking = BookingService._visible_booking(actor, booking_id)

        if booking.status != BOOKING_BOOKED:
            raise InvalidTransition('Only active bookings can be cancelled')

        if actor.is_admin:
            cancelled_by = CANCELLED_BY_ADMIN
        elif booking.user_id == actor.id:
            cancelled_by = CANCELLED_BY_SELF
            session_day = datetime.combine(booking.slot_date, time.min)
            if session_day - now < SELF_CANCEL_LEAD_TIME:
                raise CancellationTooLate()
        else:
            raise Forbidden()

        user_id = booking.user_id
        slot_id = booking.lab_slot_id
        slot_date = booking.slot_date

        result = db.session.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == BOOKING_BOOKED)
            .values(status=BOOKING_CANCELLED, cancelled_by=cancelled_by, cancel_reason=reason)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise InvalidTransition('Booking was changed by another request')

        SlotRepository.release(slot_id, user_id)

        if cancelled_by == CANCELLED_BY_ADMIN:
            message = f"Your lab session on {slot_date.isoformat()} was cancelled by the administrator."
            if reason:
                message += f" Reason: {reason}"
            db.session.add(Notification(user_id=user_id, title='Booking cancelled', message=message))

        db.session.commit()
        current_app.logger.info(f"Booking {booking_id} cancelled by {cancelled_by} (actor {actor.id})")
        return db.session.get(Booking, booking_id)

    @staticmethod
    def mark_no_show(admin, booking_id):
        """booked -> no-show. The slot keeps its owner as a historical record."""
        if not admin.is_admin:
            raise Forbidden()

        booking = BookingService._visible_booking(admin, booking_id)
        result = db.session.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == BOOKING_BOOKED)
            .values(status=BOOKING_NO_SHOW)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise InvalidTransition('Only active bookings can be marked as no-show')

        db.session.commit()
        current_app.logger.info(f"Booking {booking_id} marked as no-show by admin {admin.id}")
        return db.session.get(Booking, booking_id)

    @staticmethod
    def restore_booking(admin, booking_id, now):
        """Re-activate a cancelled booking if its slot is still free and not in the past."""
        if not admin.is_admin:
            raise Forbidden()

        booking = BookingService._visible_booking(admin, booking_id)
        if booking.status != BOOKING_CANCELLED:
            raise InvalidTransition('Only cancelled bookings can be restored')

        slot = SlotRepository.get_or_404(booking.lab_slot_id)
        if slot.status != SLOT_AVAILABLE or slot.booked_by is not None:
            raise SlotUnavailable('The slot has been taken or closed since this booking was cancelled')

        if slot.date < now.date():
            raise PastSlot('Cannot restore a booking for a past session')

        if BookingService._active_booking(booking.user_id, slot_date=slot.date):
            raise DuplicateDateBooking('The student already has another booking on this date')

        try:
            SlotRepository.claim(slot.id, booking.user_id)
            result = db.session.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.status == BOOKING_CANCELLED)
                .values(status=BOOKING_BOOKED, slot_date=slot.date, cancelled_by=None, cancel_reason=None)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidTransition('Booking was changed by another request')
            db.session.commit()
        except (SlotConflict, InvalidTransition):
            db.session.rollback()
            raise
        except IntegrityError:
            db.session.rollback()
            raise DuplicateDateBooking('The student already has another booking on this date')

        current_app.logger.info(f"Booking {booking_id} restored by admin {admin.id}")
        return db.session.get(Booking, booking_id)

    @staticmethod
    def delete_booking(admin, booking_id):
        if not admin.is_admin:
            raise Forbidden()

        booking = BookingService._visible_booking(admin, booking_id)
        # A no-show still holds its slot
        if booking.status in (BOOKING_BOOKED, BOOKING_NO_SHOW):
            SlotRepository.release(booking.lab_slot_id, booking.user_id)
        db.session.delete(booking)
        db.session.commit()
        current_app.logger.info(f"Booking {booking_id} removed by admin {admin.id}")

    @staticmethod
    def get_booking(actor, booking_id):
        return BookingService._visible_booking(actor, booking_id)

    @staticmethod
    def list_bookings(actor, user_id=None, status=None, slot_date=None):
        if user_id is not None and user_id != actor.id and not actor.is_admin:
            raise Forbidden()
        if status is not None and status not in BOOKING_STATUSES:
            raise InvalidInput(f"Unknown booking status '{status}'")

        query = Booking.query
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        elif not actor.is_admin:
            query = query.filter(Booking.user_id == actor.id)
        if status:
            query = query.filter(Booking.status == status)
        if slot_date:
            query = query.filter(Booking.slot_date == slot_date)

        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()

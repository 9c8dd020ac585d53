# services/slot_repository.py

"""
Lab slot storage and the slot state machine.

    available --claim--> booked --release--> available
    available --close--> closed --reopen--> available
    available/closed --delete--> (gone)

Every transition is a single conditional UPDATE on the row, checked by its
rowcount, so two requests can never both move the same slot. ``claim`` and
``release`` do not commit: they run inside the caller's booking transaction.
The admin operations commit on their own.
"""

from datetime import date, timedelta
from flask import current_app
from sqlalchemy import update, delete

from db.extensions import db
from models.booking import Booking
from models.labSlot import LabSlot, SLOT_AVAILABLE, SLOT_BOOKED, SLOT_CLOSED, SLOT_STATUSES
from services.errors import (
    InvalidInput, InvalidTransition, NotFound, SlotBooked, SlotConflict
)

BOOKABLE_DAYS_AHEAD = 7


class SlotRepository:

    @staticmethod
    def get(slot_id):
        return db.session.get(LabSlot, slot_id)

    @staticmethod
    def get_or_404(slot_id):
        slot = SlotRepository.get(slot_id)
        if slot is None:
            raise NotFound('Slot not found')
        return slot

    @staticmethod
    def list_slots(start_date=None, end_date=None, status=None):
        query = LabSlot.query
        if start_date:
            query = query.filter(LabSlot.date >= start_date)
        if end_date:
            query = query.filter(LabSlot.date <= end_date)
        if status:
            if status not in SLOT_STATUSES:
                raise InvalidInput(f"Unknown slot status '{status}'")
            query = query.filter(LabSlot.status == status)
        return query.order_by(LabSlot.date.asc(), LabSlot.start_time.asc()).all()

    @staticmethod
    def list_bookable(today, days=BOOKABLE_DAYS_AHEAD):
        """Open, unowned slots from today through the next `days` days."""
        return (
            LabSlot.query
            .filter(LabSlot.date >= today,
                    LabSlot.date < today + timedelta(days=days),
                    LabSlot.status == SLOT_AVAILABLE,
                    LabSlot.booked_by.is_(None))
            .order_by(LabSlot.date.asc(), LabSlot.start_time.asc())
            .all()
        )

    @staticmethod
    def create(slot_date, start_time, end_time, remarks=None):
        if not isinstance(slot_date, date):
            raise InvalidInput("'date' is required")
        if start_time >= end_time:
            raise InvalidInput('Slot start time must be before its end time')

        slot = LabSlot(
            date=slot_date,
            start_time=start_time,
            end_time=end_time,
            status=SLOT_AVAILABLE,
            booked_by=None,
            remarks=remarks,
        )
        db.session.add(slot)
        db.session.commit()
        current_app.logger.info(f"Lab slot {slot.id} created for {slot_date} {start_time}-{end_time}")
        return slot

    @staticmethod
    def update_details(slot_id, slot_date=None, start_time=None, end_time=None, remarks=None):
        """Edit a slot that nobody holds. Remarks can be changed at any time."""
        slot = SlotRepository.get_or_404(slot_id)

        if slot_date is not None or start_time is not None or end_time is not None:
            if slot.status == SLOT_BOOKED:
                raise SlotBooked('Cannot reschedule a booked slot')
            new_start = start_time or slot.start_time
            new_end = end_time or slot.end_time
            if new_start >= new_end:
                raise InvalidInput('Slot start time must be before its end time')
            if slot_date is not None and slot_date != slot.date:
                # Booking history follows the slot to its new date
                db.session.execute(
                    update(Booking)
                    .where(Booking.lab_slot_id == slot_id)
                    .values(slot_date=slot_date)
                    .execution_options(synchronize_session=False)
                )
                slot.date = slot_date
            slot.start_time = new_start
            slot.end_time = new_end

        if remarks is not None:
            slot.remarks = remarks

        db.session.commit()
        return slot

    # State transitions

    @staticmethod
    def claim(slot_id, user_id):
        """available -> booked, compare-and-set. Raises SlotConflict when the row moved."""
        result = db.session.execute(
            update(LabSlot)
            .where(LabSlot.id == slot_id,
                   LabSlot.status == SLOT_AVAILABLE,
                   LabSlot.booked_by.is_(None))
            .values(status=SLOT_BOOKED, booked_by=user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current_app.logger.warning(f"Slot {slot_id} claim by user {user_id} lost the race")
            raise SlotConflict()

    @staticmethod
    def release(slot_id, user_id=None):
        """booked -> available. With `user_id`, only releases if that user holds it."""
        conditions = [LabSlot.id == slot_id, LabSlot.status == SLOT_BOOKED]
        if user_id is not None:
            conditions.append(LabSlot.booked_by == user_id)

        result = db.session.execute(
            update(LabSlot)
            .where(*conditions)
            .values(status=SLOT_AVAILABLE, booked_by=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current_app.logger.warning(f"Slot {slot_id} was not held by user {user_id}; nothing to release")
        return result.rowcount == 1

    @staticmethod
    def _move(slot_id, source, target):
        result = db.session.execute(
            update(LabSlot)
            .where(LabSlot.id == slot_id, LabSlot.status == source)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            slot = SlotRepository.get_or_404(slot_id)
            if slot.status == SLOT_BOOKED:
                raise SlotBooked(f"Slot {slot_id} is booked; cancel the booking first")
            raise InvalidTransition(f"Slot {slot_id} is {slot.status}, expected {source}")
        db.session.commit()
        slot = SlotRepository.get(slot_id)
        db.session.refresh(slot)
        current_app.logger.info(f"Lab slot {slot_id}: {source} -> {target}")
        return slot

    @staticmethod
    def close(slot_id):
        return SlotRepository._move(slot_id, SLOT_AVAILABLE, SLOT_CLOSED)

    @staticmethod
    def reopen(slot_id):
        return SlotRepository._move(slot_id, SLOT_CLOSED, SLOT_AVAILABLE)

    @staticmethod
    def delete(slot_id):
        # Related booking history goes with the slot (delete-orphan cascade)
        slot = SlotRepository.get_or_404(slot_id)
        if slot.status == SLOT_BOOKED:
            raise SlotBooked('Cannot delete a booked slot')

        for booking in list(slot.bookings):
            db.session.delete(booking)

        result = db.session.execute(
            delete(LabSlot)
            .where(LabSlot.id == slot_id, LabSlot.status != SLOT_BOOKED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise SlotBooked('Slot was booked while deleting')
        db.session.commit()
        current_app.logger.info(f"Lab slot {slot_id} deleted")

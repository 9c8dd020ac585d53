from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

import pytest

from models.booking import (
    Booking, BOOKING_BOOKED, BOOKING_CANCELLED, BOOKING_NO_SHOW, CANCELLED_BY_ADMIN, CANCELLED_BY_SELF
)
from models.labSlot import LabSlot, SLOT_AVAILABLE, SLOT_BOOKED, SLOT_CLOSED
from models.notification import Notification
from services.booking_service import BookingService
from services.errors import (
    BookingWindowClosed, CancellationTooLate, DuplicateBooking, DuplicateDateBooking, Forbidden,
    InvalidTransition, NotFound, PastSlot, SlotConflict, SlotUnavailable
)
from services.slot_repository import SlotRepository
from tests.conftest import NOW, make_booking, make_slot, make_user, settings_row

TOMORROW = date(2026, 3, 5)


@pytest.fixture
def settings():
    return settings_row()


def _slot(db, slot_id):
    db.session.expire_all()
    return db.session.get(LabSlot, slot_id)


def _active_per_user_and_date(db):
    rows = Booking.query.filter_by(status=BOOKING_BOOKED).all()
    keys = [(b.user_id, b.slot_date) for b in rows]
    return len(keys) == len(set(keys))


def test_reserve_slot_books_the_slot(db, student, settings):
    slot = make_slot(TOMORROW)

    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    assert booking.status == BOOKING_BOOKED
    assert booking.samples_count is None
    assert booking.slot_date == TOMORROW
    slot = _slot(db, slot.id)
    assert slot.status == SLOT_BOOKED
    assert slot.booked_by == student.id


def test_reserve_refused_when_window_closed(db, student):
    slot = make_slot(TOMORROW)
    closed = settings_row(regular_allowed_days=['sunday'], message='Sundays only')

    with pytest.raises(BookingWindowClosed) as exc:
        BookingService.reserve_slot(student, slot.id, NOW, closed)
    assert exc.value.message == 'Sundays only'

    with pytest.raises(BookingWindowClosed):
        BookingService.reserve_slot(student, slot.id, NOW, None)
    assert _slot(db, slot.id).status == SLOT_AVAILABLE


def test_window_is_checked_before_slot_lookup(db, student):
    with pytest.raises(BookingWindowClosed):
        BookingService.reserve_slot(student, 999, NOW, None)


def test_reserve_missing_slot(db, student, settings):
    with pytest.raises(NotFound):
        BookingService.reserve_slot(student, 999, NOW, settings)


def test_reserve_closed_slot(db, student, settings):
    slot = make_slot(TOMORROW, status=SLOT_CLOSED)
    with pytest.raises(SlotUnavailable):
        BookingService.reserve_slot(student, slot.id, NOW, settings)


def test_reserve_past_slot(db, student, settings):
    slot = make_slot(date(2026, 3, 3))
    with pytest.raises(PastSlot):
        BookingService.reserve_slot(student, slot.id, NOW, settings)


def test_reserve_slot_later_today_is_allowed(db, student, settings):
    slot = make_slot(NOW.date(), start=time(14, 0), end=time(17, 0))
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)
    assert booking.slot_date == NOW.date()


def test_second_user_gets_slot_unavailable(db, student, other_student, settings):
    slot = make_slot(TOMORROW)
    BookingService.reserve_slot(student, slot.id, NOW, settings)

    with pytest.raises((SlotUnavailable, SlotConflict)):
        BookingService.reserve_slot(other_student, slot.id, NOW, settings)

    assert _slot(db, slot.id).booked_by == student.id
    assert Booking.query.count() == 1


def test_duplicate_booking_for_same_slot(db, student, settings, monkeypatch):
    slot = make_slot(TOMORROW)
    BookingService.reserve_slot(student, slot.id, NOW, settings)

    # The slot row looks free (stale read) but the user already holds it
    stale = SimpleNamespace(id=slot.id, date=TOMORROW, status=SLOT_AVAILABLE, booked_by=None)
    monkeypatch.setattr(SlotRepository, 'get', staticmethod(lambda slot_id: stale))

    with pytest.raises(DuplicateBooking):
        BookingService.reserve_slot(student, slot.id, NOW, settings)


def test_one_active_booking_per_day(db, student, settings):
    morning = make_slot(TOMORROW, start=time(9, 0), end=time(12, 0))
    afternoon = make_slot(TOMORROW, start=time(13, 0), end=time(16, 0))
    BookingService.reserve_slot(student, morning.id, NOW, settings)

    with pytest.raises(DuplicateDateBooking):
        BookingService.reserve_slot(student, afternoon.id, NOW, settings)

    assert _slot(db, afternoon.id).status == SLOT_AVAILABLE
    assert _active_per_user_and_date(db)


def test_cancelled_booking_does_not_block_the_day(db, student, settings):
    morning = make_slot(TOMORROW, start=time(9, 0), end=time(12, 0))
    afternoon = make_slot(TOMORROW, start=time(13, 0), end=time(16, 0))
    first = BookingService.reserve_slot(student, morning.id, NOW, settings)
    BookingService.cancel_booking(student, first.id, datetime(2026, 3, 3, 9, 0))

    second = BookingService.reserve_slot(student, afternoon.id, NOW, settings)
    assert second.status == BOOKING_BOOKED


def test_lost_race_raises_slot_conflict(db, student, other_student, settings, monkeypatch):
    slot = make_slot(TOMORROW)
    # Student reads the slot as available; the other student commits first
    snapshot = SimpleNamespace(id=slot.id, date=TOMORROW, status=SLOT_AVAILABLE, booked_by=None)
    BookingService.reserve_slot(other_student, slot.id, NOW, settings)
    monkeypatch.setattr(SlotRepository, 'get', staticmethod(lambda slot_id: snapshot))

    with pytest.raises(SlotConflict):
        BookingService.reserve_slot(student, slot.id, NOW, settings)

    slot = _slot(db, slot.id)
    assert slot.status == SLOT_BOOKED
    assert slot.booked_by == other_student.id
    assert Booking.query.filter_by(user_id=student.id).count() == 0


def test_many_competing_students_one_winner(db, settings, monkeypatch):
    slot = make_slot(TOMORROW)
    students = [make_user(f'student{i}@univ.edu') for i in range(5)]
    snapshot = SimpleNamespace(id=slot.id, date=TOMORROW, status=SLOT_AVAILABLE, booked_by=None)
    monkeypatch.setattr(SlotRepository, 'get', staticmethod(lambda slot_id: snapshot))

    winners, losers = [], []
    for s in students:
        try:
            BookingService.reserve_slot(s, slot.id, NOW, settings)
            winners.append(s)
        except SlotConflict:
            losers.append(s)

    assert len(winners) == 1
    assert len(losers) == 4
    monkeypatch.undo()
    slot = _slot(db, slot.id)
    assert slot.booked_by == winners[0].id
    assert Booking.query.count() == 1


def test_failed_booking_insert_rolls_back_slot_claim(db, student, settings, monkeypatch):
    morning = make_slot(TOMORROW, start=time(9, 0), end=time(12, 0))
    afternoon = make_slot(TOMORROW, start=time(13, 0), end=time(16, 0))
    BookingService.reserve_slot(student, morning.id, NOW, settings)

    # Skip the pre-check so the per-day unique index has to catch it
    monkeypatch.setattr(BookingService, '_active_booking', staticmethod(lambda user_id, **filters: None))

    with pytest.raises(DuplicateDateBooking):
        BookingService.reserve_slot(student, afternoon.id, NOW, settings)

    slot = _slot(db, afternoon.id)
    assert slot.status == SLOT_AVAILABLE
    assert slot.booked_by is None


def test_self_cancel_releases_slot(db, student, settings):
    slot = make_slot(date(2026, 3, 6))
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    cancelled = BookingService.cancel_booking(student, booking.id, NOW)

    assert cancelled.status == BOOKING_CANCELLED
    assert cancelled.cancelled_by == CANCELLED_BY_SELF
    slot = _slot(db, slot.id)
    assert slot.status == SLOT_AVAILABLE
    assert slot.booked_by is None


def test_self_cancel_needs_a_full_day(db, student, settings):
    slot = make_slot(TOMORROW)
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    with pytest.raises(CancellationTooLate):
        BookingService.cancel_booking(student, booking.id, NOW)

    db.session.expire_all()
    assert db.session.get(Booking, booking.id).status == BOOKING_BOOKED
    assert _slot(db, slot.id).booked_by == student.id


def test_self_cancel_exactly_one_day_before(db, student, settings):
    slot = make_slot(TOMORROW)
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    cancelled = BookingService.cancel_booking(student, booking.id, datetime(2026, 3, 4, 0, 0))
    assert cancelled.status == BOOKING_CANCELLED


def test_admin_cancel_any_time_and_notifies(db, student, admin, settings):
    slot = make_slot(TOMORROW)
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    cancelled = BookingService.cancel_booking(admin, booking.id, datetime(2026, 3, 5, 8, 59), reason='Lab maintenance')

    assert cancelled.cancelled_by == CANCELLED_BY_ADMIN
    assert _slot(db, slot.id).status == SLOT_AVAILABLE
    notice = Notification.query.filter_by(user_id=student.id).one()
    assert 'Lab maintenance' in notice.message


def test_other_student_cannot_see_or_cancel(db, student, other_student, settings):
    slot = make_slot(date(2026, 3, 6))
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    with pytest.raises(NotFound):
        BookingService.cancel_booking(other_student, booking.id, NOW)


def test_cancel_twice_is_rejected(db, student, settings):
    slot = make_slot(date(2026, 3, 6))
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)
    BookingService.cancel_booking(student, booking.id, NOW)

    with pytest.raises(InvalidTransition):
        BookingService.cancel_booking(student, booking.id, NOW)


def test_no_show_keeps_slot_booked(db, student, admin, settings):
    slot = make_slot(TOMORROW)
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    marked = BookingService.mark_no_show(admin, booking.id)

    assert marked.status == BOOKING_NO_SHOW
    slot = _slot(db, slot.id)
    assert slot.status == SLOT_BOOKED
    assert slot.booked_by == student.id

    with pytest.raises(InvalidTransition):
        BookingService.mark_no_show(admin, booking.id)


def test_no_show_requires_admin(db, student, settings):
    slot = make_slot(TOMORROW)
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)
    with pytest.raises(Forbidden):
        BookingService.mark_no_show(student, booking.id)


def test_restore_cancelled_booking(db, student, admin, settings):
    slot = make_slot(date(2026, 3, 6))
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)
    BookingService.cancel_booking(student, booking.id, NOW)

    restored = BookingService.restore_booking(admin, booking.id, NOW)

    assert restored.status == BOOKING_BOOKED
    assert restored.cancelled_by is None
    assert _slot(db, slot.id).booked_by == student.id


def test_restore_fails_when_slot_was_taken(db, student, other_student, admin, settings):
    slot = make_slot(date(2026, 3, 6))
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)
    BookingService.cancel_booking(student, booking.id, NOW)
    BookingService.reserve_slot(other_student, slot.id, NOW, settings)

    with pytest.raises(SlotUnavailable):
        BookingService.restore_booking(admin, booking.id, NOW)

    db.session.expire_all()
    assert db.session.get(Booking, booking.id).status == BOOKING_CANCELLED
    assert _slot(db, slot.id).booked_by == other_student.id


def test_restore_after_reschedule_respects_one_booking_per_day(db, student, admin, settings):
    first = make_slot(date(2026, 3, 6))
    booking = BookingService.reserve_slot(student, first.id, NOW, settings)
    BookingService.cancel_booking(student, booking.id, NOW)

    SlotRepository.update_details(first.id, slot_date=date(2026, 3, 7))
    db.session.expire_all()
    assert db.session.get(Booking, booking.id).slot_date == date(2026, 3, 7)

    second = make_slot(date(2026, 3, 7), start=time(13, 0), end=time(16, 0))
    BookingService.reserve_slot(student, second.id, NOW, settings)

    with pytest.raises(DuplicateDateBooking):
        BookingService.restore_booking(admin, booking.id, NOW)

    assert _active_per_user_and_date(db)
    assert Booking.query.filter_by(user_id=student.id, status=BOOKING_BOOKED).count() == 1
    assert _slot(db, first.id).status == SLOT_AVAILABLE


def test_restore_refuses_past_session(db, student, admin, settings):
    slot = make_slot(date(2026, 3, 6))
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)
    BookingService.cancel_booking(student, booking.id, NOW)

    with pytest.raises(PastSlot):
        BookingService.restore_booking(admin, booking.id, datetime(2026, 3, 7, 9, 0))

    db.session.expire_all()
    assert db.session.get(Booking, booking.id).status == BOOKING_CANCELLED
    assert _slot(db, slot.id).status == SLOT_AVAILABLE


def test_delete_active_booking_releases_slot(db, student, admin, settings):
    slot = make_slot(TOMORROW)
    booking = BookingService.reserve_slot(student, slot.id, NOW, settings)

    BookingService.delete_booking(admin, booking.id)

    assert Booking.query.count() == 0
    assert _slot(db, slot.id).status == SLOT_AVAILABLE


def test_list_bookings_scoping(db, student, other_student, admin, settings):
    mine = make_booking(student, make_slot(TOMORROW))
    theirs = make_booking(other_student, make_slot(date(2026, 3, 6)))

    assert [b.id for b in BookingService.list_bookings(student)] == [mine.id]
    assert {b.id for b in BookingService.list_bookings(admin)} == {mine.id, theirs.id}
    assert [b.id for b in BookingService.list_bookings(admin, user_id=other_student.id)] == [theirs.id]

    with pytest.raises(Forbidden):
        BookingService.list_bookings(student, user_id=other_student.id)


def test_owner_invariant_holds_across_workflow(db, student, other_student, admin, settings):
    slots = [make_slot(date(2026, 3, 6), start=time(h, 0), end=time(h + 1, 0)) for h in (9, 11, 14)]
    a = BookingService.reserve_slot(student, slots[0].id, NOW, settings)
    BookingService.reserve_slot(other_student, slots[1].id, NOW, settings)
    BookingService.cancel_booking(admin, a.id, NOW + timedelta(hours=1))
    BookingService.reserve_slot(student, slots[2].id, NOW, settings)
    SlotRepository.close(slots[0].id)

    db.session.expire_all()
    for slot in LabSlot.query.all():
        assert (slot.status == SLOT_BOOKED) == (slot.booked_by is not None)
    assert _active_per_user_and_date(db)

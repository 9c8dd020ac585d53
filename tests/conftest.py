from datetime import datetime, time, timedelta

import pytest

from app import create_app
from app.config import TestConfig
from db.extensions import db as _db
from models.booking import Booking, BOOKING_BOOKED
from models.bookingSystemSettings import BookingSystemSettings, WEEKDAYS
from models.labSlot import LabSlot, SLOT_AVAILABLE, SLOT_BOOKED
from models.user import User, ROLE_ADMIN, ROLE_STUDENT
from services.errors import Unauthorized
from services.identity_service import IdentityService

# A Wednesday
NOW = datetime(2026, 3, 4, 10, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app, monkeypatch):
    # Tokens are the user's email; "bad-token" is rejected by the provider
    def fake_userinfo(access_token):
        if access_token == 'bad-token':
            raise Unauthorized()
        return {'email': access_token, 'name': access_token.split('@')[0]}

    monkeypatch.setattr(IdentityService, 'fetch_userinfo', staticmethod(fake_userinfo))
    return app.test_client()


def make_user(email, role=ROLE_STUDENT):
    user = User(email=email, name=email.split('@')[0], role=role)
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture
def student(db):
    return make_user('asha@univ.edu')


@pytest.fixture
def other_student(db):
    return make_user('ben@univ.edu')


@pytest.fixture
def admin(db):
    return make_user('lab.admin@univ.edu', role=ROLE_ADMIN)


def auth(user):
    return {'Authorization': f'Bearer {user.email}'}


def make_slot(slot_date, start=time(9, 0), end=time(12, 0), status=SLOT_AVAILABLE, booked_by=None):
    slot = LabSlot(date=slot_date, start_time=start, end_time=end, status=status, booked_by=booked_by)
    _db.session.add(slot)
    _db.session.commit()
    return slot


def make_booking(user, slot, status=BOOKING_BOOKED, created_at=None, samples_count=None):
    """Insert a booking directly, keeping the slot's owner consistent."""
    user_id = user.id
    slot_id = slot.id
    if status == BOOKING_BOOKED:
        slot.status = SLOT_BOOKED
        slot.booked_by = user_id
    booking = Booking(
        user_id=user_id,
        lab_slot_id=slot_id,
        slot_date=slot.date,
        status=status,
        samples_count=samples_count,
        created_at=created_at or NOW,
    )
    _db.session.add(booking)
    _db.session.commit()
    return booking


def settings_row(**overrides):
    values = dict(
        is_regular_booking_enabled=True,
        regular_allowed_days=list(WEEKDAYS),
        message='Booking is closed this week.',
        is_emergency_booking_open=False,
        emergency_booking_start=None,
        emergency_booking_end=None,
        emergency_allowed_days=[],
        emergency_message=None,
        updated_at=NOW - timedelta(days=1),
    )
    values.update(overrides)
    return BookingSystemSettings(**values)


@pytest.fixture
def open_settings(db):
    """Regular booking open every day of the week."""
    settings = settings_row()
    _db.session.add(settings)
    _db.session.commit()
    return settings

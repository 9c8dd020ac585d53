# models/bookingSystemSettings.py
from datetime import datetime
from db.extensions import db

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

DEFAULT_CLOSED_MESSAGE = 'Booking is currently closed. Contact administrator for assistance.'


class BookingSystemSettings(db.Model):
    """One row per admin save; the row with the latest updated_at is in force."""
    __tablename__ = 'booking_system_settings'

    id = db.Column(db.Integer, primary_key=True)
    is_regular_booking_enabled = db.Column(db.Boolean, nullable=False, default=False)
    regular_allowed_days = db.Column(db.JSON, nullable=False, default=list)
    message = db.Column(db.Text, default=DEFAULT_CLOSED_MESSAGE)
    is_emergency_booking_open = db.Column(db.Boolean, nullable=False, default=False)
    emergency_booking_start = db.Column(db.DateTime, nullable=True)
    emergency_booking_end = db.Column(db.DateTime, nullable=True)
    emergency_allowed_days = db.Column(db.JSON, nullable=False, default=list)
    emergency_message = db.Column(db.Text)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'is_regular_booking_enabled': self.is_regular_booking_enabled,
            'regular_allowed_days': list(self.regular_allowed_days or []),
            'message': self.message,
            'is_emergency_booking_open': self.is_emergency_booking_open,
            'emergency_booking_start': self.emergency_booking_start.isoformat() if self.emergency_booking_start else None,
            'emergency_booking_end': self.emergency_booking_end.isoformat() if self.emergency_booking_end else None,
            'emergency_allowed_days': list(self.emergency_allowed_days or []),
            'emergency_message': self.emergency_message,
            'updated_by': self.updated_by,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data):
        """Rebuild a transient (never added to a session) row from to_dict() output."""
        def _ts(value):
            return datetime.fromisoformat(value) if value else None

        return cls(
            id=data.get('id'),
            is_regular_booking_enabled=bool(data.get('is_regular_booking_enabled')),
            regular_allowed_days=list(data.get('regular_allowed_days') or []),
            message=data.get('message'),
            is_emergency_booking_open=bool(data.get('is_emergency_booking_open')),
            emergency_booking_start=_ts(data.get('emergency_booking_start')),
            emergency_booking_end=_ts(data.get('emergency_booking_end')),
            emergency_allowed_days=list(data.get('emergency_allowed_days') or []),
            emergency_message=data.get('emergency_message'),
            updated_by=data.get('updated_by'),
            updated_at=_ts(data.get('updated_at')),
        )

    def __repr__(self):
        return (f"<BookingSystemSettings id={self.id} regular={self.is_regular_booking_enabled} "
                f"emergency={self.is_emergency_booking_open} updated_at={self.updated_at}>")

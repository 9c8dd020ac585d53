# models/booking.py
from datetime import datetime
from db.extensions import db

BOOKING_BOOKED = 'booked'
BOOKING_CANCELLED = 'cancelled'
BOOKING_NO_SHOW = 'no-show'
BOOKING_STATUSES = (BOOKING_BOOKED, BOOKING_CANCELLED, BOOKING_NO_SHOW)

CANCELLED_BY_SELF = 'self'
CANCELLED_BY_ADMIN = 'admin'


class Booking(db.Model):
    __tablename__ = 'bookings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    lab_slot_id = db.Column(db.Integer, db.ForeignKey('lab_slots.id'), nullable=False, index=True)
    # Copy of lab_slots.date so one active booking per day can be a unique index
    slot_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.Enum(*BOOKING_STATUSES, name='booking_status_enum'),
                       nullable=False, default=BOOKING_BOOKED)
    samples_count = db.Column(db.Integer, nullable=True)
    checkin_time = db.Column(db.DateTime, nullable=True)
    cancelled_by = db.Column(db.Enum(CANCELLED_BY_SELF, CANCELLED_BY_ADMIN, name='cancelled_by_enum'),
                             nullable=True)
    cancel_reason = db.Column(db.Text)
    remarks = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', back_populates='bookings')
    lab_slot = db.relationship('LabSlot', back_populates='bookings')

    __table_args__ = (
        db.Index(
            'uq_bookings_user_date_active', 'user_id', 'slot_date', unique=True,
            postgresql_where=db.text("status = 'booked'"),
            sqlite_where=db.text("status = 'booked'"),
        ),
        db.CheckConstraint('samples_count IS NULL OR samples_count >= 0',
                           name='ck_bookings_samples_non_negative'),
    )

    def to_dict(self, include_slot=True):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'lab_slot_id': self.lab_slot_id,
            'status': self.status,
            'samples_count': self.samples_count,
            'checkin_time': self.checkin_time.isoformat() if self.checkin_time else None,
            'cancelled_by': self.cancelled_by,
            'remarks': self.remarks,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_slot:
            data['lab_slot'] = self.lab_slot.to_dict() if self.lab_slot else None
        return data

    def __repr__(self):
        return f"<Booking id={self.id} user_id={self.user_id} slot={self.lab_slot_id} status={self.status}>"

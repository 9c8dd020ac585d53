# models/labSlot.py
from datetime import datetime
from db.extensions import db

SLOT_AVAILABLE = 'available'
SLOT_BOOKED = 'booked'
SLOT_CLOSED = 'closed'
SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_BOOKED, SLOT_CLOSED)


class LabSlot(db.Model):
    __tablename__ = 'lab_slots'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    status = db.Column(db.Enum(*SLOT_STATUSES, name='lab_slot_status_enum'),
                       nullable=False, default=SLOT_AVAILABLE)
    # Set iff status == 'booked'
    booked_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    remarks = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    bookings = db.relationship('Booking', back_populates='lab_slot', cascade="all, delete-orphan")

    __table_args__ = (
        db.CheckConstraint('start_time < end_time', name='ck_lab_slots_time_order'),
        db.CheckConstraint(
            "(status = 'booked' AND booked_by IS NOT NULL) OR (status != 'booked' AND booked_by IS NULL)",
            name='ck_lab_slots_owner_matches_status'
        ),
    )

    @property
    def ends_at(self):
        return datetime.combine(self.date, self.end_time)

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'start_time': self.start_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M'),
            'status': self.status,
            'booked_by': self.booked_by,
            'remarks': self.remarks,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<LabSlot id={self.id} {self.date} {self.start_time}-{self.end_time} status={self.status}>"

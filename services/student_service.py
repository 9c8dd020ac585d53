# services/student_service.py

from flask import current_app
from sqlalchemy import case, func, update, delete

from db.extensions import db
from models.booking import Booking, BOOKING_BOOKED, BOOKING_CANCELLED, BOOKING_NO_SHOW
from models.labSlot import LabSlot, SLOT_AVAILABLE, SLOT_BOOKED
from models.notification import Notification
from models.user import User, ROLES, ROLE_STUDENT
from services.errors import Forbidden, InvalidInput, NotFound


class StudentService:

    @staticmethod
    def list_students():
        stats = {
            row.user_id: row
            for row in db.session.query(
                Booking.user_id.label('user_id'),
                func.count(Booking.id).label('total'),
                func.sum(case((Booking.status == BOOKING_BOOKED, 1), else_=0)).label('active'),
                func.sum(case((Booking.status == BOOKING_CANCELLED, 1), else_=0)).label('cancelled'),
                func.sum(case((Booking.status == BOOKING_NO_SHOW, 1), else_=0)).label('no_shows'),
                func.coalesce(func.sum(Booking.samples_count), 0).label('samples'),
            ).group_by(Booking.user_id).all()
        }

        students = User.query.filter_by(role=ROLE_STUDENT).order_by(User.created_at.desc()).all()
        result = []
        for student in students:
            row = stats.get(student.id)
            data = student.to_dict()
            data.update({
                'total_bookings': int(row.total) if row else 0,
                'active_bookings': int(row.active or 0) if row else 0,
                'cancelled_bookings': int(row.cancelled or 0) if row else 0,
                'no_shows': int(row.no_shows or 0) if row else 0,
                'total_samples': int(row.samples or 0) if row else 0,
            })
            result.append(data)
        return result

    @staticmethod
    def set_role(admin, user_id, role):
        if not admin.is_admin:
            raise Forbidden()
        if role not in ROLES:
            raise InvalidInput(f"Role must be one of: {', '.join(ROLES)}")
        if admin.id == user_id:
            raise Forbidden('Admins cannot change their own role')

        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound('User not found')

        user.role = role
        db.session.commit()
        current_app.logger.info(f"User {user_id} role set to {role} by admin {admin.id}")
        return user

    @staticmethod
    def remove_student(admin, user_id):
        """Delete a student and their history. Slots they hold go back to available."""
        if not admin.is_admin:
            raise Forbidden()

        student = db.session.get(User, user_id)
        if student is None:
            raise NotFound('Student not found')
        if student.role != ROLE_STUDENT:
            raise InvalidInput('Only students can be removed')

        try:
            released = db.session.execute(
                update(LabSlot)
                .where(LabSlot.booked_by == user_id, LabSlot.status == SLOT_BOOKED)
                .values(status=SLOT_AVAILABLE, booked_by=None)
                .execution_options(synchronize_session=False)
            ).rowcount
            db.session.execute(
                delete(Booking).where(Booking.user_id == user_id).execution_options(synchronize_session=False)
            )
            db.session.execute(
                delete(Notification).where(Notification.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            db.session.execute(
                delete(User).where(User.id == user_id).execution_options(synchronize_session=False)
            )
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error removing student {user_id}: {e}")
            raise

        current_app.logger.info(f"Student {user_id} removed by admin {admin.id}; {released} slot(s) released")
        return released

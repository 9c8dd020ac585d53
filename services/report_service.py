# services/report_service.py

"""Read-only attendance and sample statistics for the admin reports page."""

from datetime import datetime, timedelta
from sqlalchemy import case, func

from db.extensions import db
from models.booking import Booking, BOOKING_BOOKED, BOOKING_CANCELLED, BOOKING_NO_SHOW
from models.labSlot import LabSlot
from models.user import User, ROLE_STUDENT


def _rate(part, whole):
    return round(part / whole * 100, 2) if whole else 0


class ReportService:

    @staticmethod
    def _status_counts(query):
        counts = {BOOKING_BOOKED: 0, BOOKING_CANCELLED: 0, BOOKING_NO_SHOW: 0}
        for status, count in query.group_by(Booking.status).all():
            counts[status] = count
        return counts

    @staticmethod
    def summary(now):
        counts = ReportService._status_counts(
            db.session.query(Booking.status, func.count(Booking.id))
        )
        total = sum(counts.values())

        attended = db.session.query(func.count(Booking.id)).filter(Booking.checkin_time.isnot(None)).scalar()
        total_samples = db.session.query(func.coalesce(func.sum(Booking.samples_count), 0)).scalar()

        return {
            'generated_at': now.isoformat(),
            'total_bookings': total,
            'total_students': User.query.filter_by(role=ROLE_STUDENT).count(),
            'total_slots': LabSlot.query.count(),
            'active_bookings': counts[BOOKING_BOOKED],
            'cancellations': counts[BOOKING_CANCELLED],
            'no_shows': counts[BOOKING_NO_SHOW],
            'attended': attended,
            'total_samples': int(total_samples or 0),
            # Of the sessions that were resolved either way
            'attendance_rate': _rate(attended, attended + counts[BOOKING_NO_SHOW]),
        }

    @staticmethod
    def weekly_attendance(now, weeks=4):
        """Per-week session statistics, oldest week first, the last ending today."""
        if weeks < 1:
            return []

        today = now.date()
        report = []
        for i in range(weeks - 1, -1, -1):
            week_end = today - timedelta(days=7 * i)
            week_start = week_end - timedelta(days=6)

            row = (
                db.session.query(
                    func.count(Booking.id),
                    func.sum(case((Booking.samples_count.isnot(None), 1), else_=0)),
                    func.sum(case((Booking.status == BOOKING_NO_SHOW, 1), else_=0)),
                    func.sum(case((Booking.status == BOOKING_CANCELLED, 1), else_=0)),
                    func.coalesce(func.sum(Booking.samples_count), 0),
                )
                .filter(Booking.slot_date >= week_start, Booking.slot_date <= week_end)
                .one()
            )
            total, completed, no_shows, cancelled, samples = (int(v or 0) for v in row)

            report.append({
                'week_start': week_start.isoformat(),
                'week_end': week_end.isoformat(),
                'total_bookings': total,
                'completed': completed,
                'no_shows': no_shows,
                'cancelled': cancelled,
                'samples': samples,
                'completion_rate': _rate(completed, total),
            })
        return report

    @staticmethod
    def monthly_bookings(now, months=6):
        """Bookings created per calendar month, oldest first, ending with the current month."""
        result = []
        year, month = now.year, now.month
        for _ in range(months):
            result.append((year, month))
            year, month = (year - 1, 12) if month == 1 else (year, month - 1)
        result.reverse()

        report = []
        for year, month in result:
            start = datetime(year, month, 1)
            end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
            count = Booking.query.filter(Booking.created_at >= start, Booking.created_at < end).count()
            report.append({'month': f"{year:04d}-{month:02d}", 'bookings': count})
        return report

    @staticmethod
    def sample_analysis():
        sessions, total_samples = db.session.query(
            func.count(Booking.id),
            func.coalesce(func.sum(Booking.samples_count), 0),
        ).filter(Booking.samples_count.isnot(None)).one()

        sessions = int(sessions or 0)
        total_samples = int(total_samples or 0)
        return {
            'total_samples': total_samples,
            'sessions_with_samples': sessions,
            'average_per_session': round(total_samples / sessions, 2) if sessions else 0,
        }

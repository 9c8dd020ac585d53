# controllers/booking_controller.py

from flask import Blueprint, request, jsonify, g

from controllers.auth import bearer_token, login_required
from services.booking_service import BookingService
from services.errors import InvalidInput
from services.identity_service import IdentityService
from services.sample_service import SampleSubmissionService
from services.settings_service import BookingSettingsService
from services.slot_repository import SlotRepository
from services.utils import lab_now, parse_date, parse_int, validate_json

booking_bp = Blueprint('booking', __name__)


@booking_bp.route('/auth/session', methods=['GET'])
def session_user():
    """Exchange the identity-provider token for the portal user (first login registers a student)."""
    user = IdentityService.login(bearer_token())
    return jsonify({'user': user.to_dict()}), 200


@booking_bp.route('/booking-status', methods=['GET'])
@login_required
def booking_status():
    return jsonify(BookingSettingsService.booking_status(lab_now())), 200


@booking_bp.route('/slots/available', methods=['GET'])
@login_required
def available_slots():
    slots = SlotRepository.list_bookable(lab_now().date())
    return jsonify({'slots': [s.to_dict() for s in slots]}), 200


@booking_bp.route('/bookings', methods=['POST'])
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    if validate_json(data, ['lab_slot_id']):
        raise InvalidInput('Lab slot ID is required')

    slot_id = parse_int(data['lab_slot_id'], 'lab_slot_id')
    booking = BookingService.reserve_slot(
        g.current_user, slot_id, lab_now(), BookingSettingsService.get_settings()
    )
    return jsonify({'booking': booking.to_dict(), 'message': 'Booking successful!'}), 201


@booking_bp.route('/bookings', methods=['GET'])
@login_required
def list_bookings():
    user_id = request.args.get('user_id')
    slot_date = request.args.get('date')
    bookings = BookingService.list_bookings(
        g.current_user,
        user_id=parse_int(user_id, 'user_id') if user_id else None,
        status=request.args.get('status') or None,
        slot_date=parse_date(slot_date) if slot_date else None,
    )
    return jsonify({'bookings': [b.to_dict() for b in bookings]}), 200


@booking_bp.route('/bookings/<int:booking_id>', methods=['GET'])
@login_required
def get_booking(booking_id):
    booking = BookingService.get_booking(g.current_user, booking_id)
    return jsonify({'booking': booking.to_dict()}), 200


@booking_bp.route('/bookings/<int:booking_id>/cancel', methods=['PATCH'])
@login_required
def cancel_booking(booking_id):
    data = request.get_json(silent=True) or {}
    booking = BookingService.cancel_booking(g.current_user, booking_id, lab_now(), data.get('reason'))
    return jsonify({'booking': booking.to_dict(), 'message': 'Booking cancelled successfully'}), 200


@booking_bp.route('/samples/submit', methods=['POST'])
@login_required
def submit_samples():
    data = request.get_json(silent=True) or {}
    if validate_json(data, ['booking_id']):
        raise InvalidInput('Booking ID is required')

    booking = SampleSubmissionService.submit_samples(
        g.current_user,
        parse_int(data['booking_id'], 'booking_id'),
        data.get('samples_count'),
        lab_now(),
        remarks=data.get('remarks'),
    )
    return jsonify({
        'success': True,
        'booking': booking.to_dict(),
        'message': 'Samples submitted successfully!'
    }), 200

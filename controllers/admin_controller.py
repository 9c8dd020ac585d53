# controllers/admin_controller.py

from flask import Blueprint, request, jsonify, g

from controllers.auth import admin_required
from services.booking_service import BookingService
from services.errors import InvalidInput
from services.settings_service import BookingSettingsService
from services.slot_repository import SlotRepository
from services.student_service import StudentService
from services.utils import lab_now, parse_date, parse_time, validate_json

admin_bp = Blueprint('admin', __name__)


# Lab slots

@admin_bp.route('/slots', methods=['GET'])
@admin_required
def list_slots():
    start = request.args.get('from')
    end = request.args.get('to')
    slots = SlotRepository.list_slots(
        start_date=parse_date(start, 'from') if start else None,
        end_date=parse_date(end, 'to') if end else None,
        status=request.args.get('status') or None,
    )
    return jsonify({'slots': [s.to_dict() for s in slots]}), 200


@admin_bp.route('/slots', methods=['POST'])
@admin_required
def create_slot():
    data = request.get_json(silent=True) or {}
    missing = validate_json(data, ['date', 'start_time', 'end_time'])
    if missing:
        raise InvalidInput(f"Missing fields: {', '.join(missing)}")

    slot = SlotRepository.create(
        parse_date(data['date']),
        parse_time(data['start_time'], 'start_time'),
        parse_time(data['end_time'], 'end_time'),
        remarks=data.get('remarks'),
    )
    return jsonify({'slot': slot.to_dict(), 'message': 'Lab slot created successfully'}), 201


@admin_bp.route('/slots/<int:slot_id>', methods=['PUT'])
@admin_required
def update_slot(slot_id):
    data = request.get_json(silent=True) or {}
    slot = SlotRepository.update_details(
        slot_id,
        slot_date=parse_date(data['date']) if data.get('date') else None,
        start_time=parse_time(data['start_time'], 'start_time') if data.get('start_time') else None,
        end_time=parse_time(data['end_time'], 'end_time') if data.get('end_time') else None,
        remarks=data.get('remarks'),
    )
    return jsonify({'slot': slot.to_dict()}), 200


@admin_bp.route('/slots/<int:slot_id>/close', methods=['POST'])
@admin_required
def close_slot(slot_id):
    return jsonify({'slot': SlotRepository.close(slot_id).to_dict()}), 200


@admin_bp.route('/slots/<int:slot_id>/reopen', methods=['POST'])
@admin_required
def reopen_slot(slot_id):
    return jsonify({'slot': SlotRepository.reopen(slot_id).to_dict()}), 200


@admin_bp.route('/slots/<int:slot_id>', methods=['DELETE'])
@admin_required
def delete_slot(slot_id):
    SlotRepository.delete(slot_id)
    return jsonify({'message': 'Lab slot deleted successfully'}), 200


# Bookings (cancel goes through the shared /bookings/<id>/cancel route)

@admin_bp.route('/bookings/<int:booking_id>/no-show', methods=['POST'])
@admin_required
def mark_no_show(booking_id):
    booking = BookingService.mark_no_show(g.current_user, booking_id)
    return jsonify({'booking': booking.to_dict()}), 200


@admin_bp.route('/bookings/<int:booking_id>/restore', methods=['POST'])
@admin_required
def restore_booking(booking_id):
    booking = BookingService.restore_booking(g.current_user, booking_id, lab_now())
    return jsonify({'booking': booking.to_dict(), 'message': 'Booking reopened successfully'}), 200


@admin_bp.route('/bookings/<int:booking_id>', methods=['DELETE'])
@admin_required
def delete_booking(booking_id):
    BookingService.delete_booking(g.current_user, booking_id)
    return jsonify({'message': 'Booking removed successfully'}), 200


# Booking window settings

@admin_bp.route('/booking-settings', methods=['GET'])
@admin_required
def get_settings():
    settings = BookingSettingsService.get_settings()
    return jsonify({'settings': settings.to_dict() if settings else None}), 200


@admin_bp.route('/booking-settings', methods=['PUT'])
@admin_required
def update_settings():
    settings = BookingSettingsService.update_settings(g.current_user, request.get_json(silent=True), lab_now())
    return jsonify({'settings': settings.to_dict(), 'message': 'Booking settings updated successfully!'}), 200


# Students

@admin_bp.route('/students', methods=['GET'])
@admin_required
def list_students():
    return jsonify({'students': StudentService.list_students()}), 200


@admin_bp.route('/students/<int:user_id>/role', methods=['PUT'])
@admin_required
def set_role(user_id):
    data = request.get_json(silent=True) or {}
    user = StudentService.set_role(g.current_user, user_id, data.get('role'))
    return jsonify({'user': user.to_dict()}), 200


@admin_bp.route('/students/<int:user_id>', methods=['DELETE'])
@admin_required
def remove_student(user_id):
    released = StudentService.remove_student(g.current_user, user_id)
    return jsonify({'message': 'Student removed successfully', 'released_slots': released}), 200

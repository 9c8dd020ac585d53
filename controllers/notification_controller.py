# controllers/notification_controller.py

from flask import Blueprint, request, jsonify, g

from controllers.auth import admin_required, login_required
from services.notification_service import NotificationService
from services.utils import parse_int

notification_bp = Blueprint('notification', __name__)


@notification_bp.route('/notifications', methods=['GET'])
@login_required
def list_notifications():
    items = NotificationService.list_for_user(g.current_user)
    return jsonify({'notifications': [n.to_dict() for n in items]}), 200


@notification_bp.route('/notifications', methods=['PATCH'])
@login_required
def mark_read():
    data = request.get_json(silent=True) or {}
    updated = NotificationService.mark_read(g.current_user, data.get('ids', []))
    return jsonify({'success': True, 'updated': updated}), 200


@notification_bp.route('/notifications/send', methods=['POST'])
@admin_required
def send_notification():
    data = request.get_json(silent=True) or {}
    to_user_id = data.get('to_user_id')
    notification = NotificationService.send(
        g.current_user,
        parse_int(to_user_id, 'to_user_id') if to_user_id is not None else None,
        data.get('title'),
        data.get('message'),
    )
    return jsonify({'success': True, 'notification': notification.to_dict()}), 201

# controllers/report_controller.py

from flask import Blueprint, request, jsonify

from controllers.auth import admin_required
from services.errors import InvalidInput
from services.report_service import ReportService
from services.utils import lab_now

report_bp = Blueprint('report', __name__)

MAX_WEEKS = 52
MAX_MONTHS = 24


def _bounded_arg(name, default, maximum):
    value = request.args.get(name, default, type=int)
    if value is None or value < 1 or value > maximum:
        raise InvalidInput(f"'{name}' must be between 1 and {maximum}")
    return value


@report_bp.route('/reports/summary', methods=['GET'])
@admin_required
def summary():
    return jsonify(ReportService.summary(lab_now())), 200


@report_bp.route('/reports/weekly', methods=['GET'])
@admin_required
def weekly():
    weeks = _bounded_arg('weeks', 4, MAX_WEEKS)
    return jsonify({'weekly_attendance': ReportService.weekly_attendance(lab_now(), weeks)}), 200


@report_bp.route('/reports/monthly', methods=['GET'])
@admin_required
def monthly():
    months = _bounded_arg('months', 6, MAX_MONTHS)
    return jsonify({'monthly_bookings': ReportService.monthly_bookings(lab_now(), months)}), 200


@report_bp.route('/reports/samples', methods=['GET'])
@admin_required
def samples():
    return jsonify(ReportService.sample_analysis()), 200

# services/settings_service.py

import json
from flask import current_app
import redis

from db.extensions import db, get_redis
from models.bookingSystemSettings import BookingSystemSettings, WEEKDAYS
from services import booking_policy
from services.errors import Forbidden, InvalidInput
from services.utils import parse_datetime

SETTINGS_CACHE_KEY = 'lab_booking:settings:latest'

BOOL_FIELDS = ('is_regular_booking_enabled', 'is_emergency_booking_open')
DAY_FIELDS = ('regular_allowed_days', 'emergency_allowed_days')
TEXT_FIELDS = ('message', 'emergency_message')
TIMESTAMP_FIELDS = ('emergency_booking_start', 'emergency_booking_end')


class BookingSettingsService:

    @staticmethod
    def _latest_row():
        return (
            BookingSystemSettings.query
            .order_by(BookingSystemSettings.updated_at.desc(), BookingSystemSettings.id.desc())
            .first()
        )

    @staticmethod
    def get_settings():
        """Settings in force, or None if an admin never saved any."""
        client = get_redis()
        if client is not None:
            try:
                cached = client.get(SETTINGS_CACHE_KEY)
                if cached:
                    return BookingSystemSettings.from_dict(json.loads(cached))
            except redis.exceptions.RedisError as e:
                current_app.logger.warning(f"Settings cache read failed, using database: {str(e)}")

        settings = BookingSettingsService._latest_row()

        if settings is not None and client is not None:
            try:
                client.setex(
                    SETTINGS_CACHE_KEY,
                    current_app.config.get('SETTINGS_CACHE_TTL', 60),
                    json.dumps(settings.to_dict())
                )
            except redis.exceptions.RedisError as e:
                current_app.logger.warning(f"Settings cache write failed: {str(e)}")

        return settings

    @staticmethod
    def invalidate_cache():
        client = get_redis()
        if client is None:
            return
        try:
            client.delete(SETTINGS_CACHE_KEY)
        except redis.exceptions.RedisError as e:
            current_app.logger.warning(f"Settings cache invalidation failed: {str(e)}")

    @staticmethod
    def booking_status(now):
        decision = booking_policy.evaluate(now, BookingSettingsService.get_settings())
        return {
            'allowed': decision.allowed,
            'message': decision.message,
            'window': decision.window,
            'checked_at': now.isoformat(),
        }

    @staticmethod
    def _clean_days(value, field):
        if not isinstance(value, (list, tuple)):
            raise InvalidInput(f"'{field}' must be a list of weekday names")
        days = []
        for day in value:
            name = str(day).strip().lower()
            if name not in WEEKDAYS:
                raise InvalidInput(f"'{day}' is not a weekday name")
            if name not in days:
                days.append(name)
        return days

    @staticmethod
    def update_settings(admin, data, now):
        """
        Save a new settings row. Fields not present in `data` carry over
        from the row currently in force.
        """
        if not admin.is_admin:
            raise Forbidden()
        if not isinstance(data, dict):
            raise InvalidInput('Settings payload must be a JSON object')

        current = BookingSettingsService._latest_row()
        values = current.to_dict() if current else {}
        for field in TIMESTAMP_FIELDS:
            values[field] = getattr(current, field) if current else None

        for field in BOOL_FIELDS:
            if field in data:
                if not isinstance(data[field], bool):
                    raise InvalidInput(f"'{field}' must be true or false")
                values[field] = data[field]

        for field in DAY_FIELDS:
            if field in data:
                values[field] = BookingSettingsService._clean_days(data[field], field)

        for field in TEXT_FIELDS:
            if field in data:
                if data[field] is not None and not isinstance(data[field], str):
                    raise InvalidInput(f"'{field}' must be a string")
                values[field] = data[field]

        for field in TIMESTAMP_FIELDS:
            if field in data:
                values[field] = parse_datetime(data[field], field)

        start = values.get('emergency_booking_start')
        end = values.get('emergency_booking_end')
        if start and end and start > end:
            raise InvalidInput('Emergency booking start must not be after its end')

        settings = BookingSystemSettings(
            is_regular_booking_enabled=bool(values.get('is_regular_booking_enabled')),
            regular_allowed_days=values.get('regular_allowed_days') or [],
            message=values.get('message'),
            is_emergency_booking_open=bool(values.get('is_emergency_booking_open')),
            emergency_booking_start=start,
            emergency_booking_end=end,
            emergency_allowed_days=values.get('emergency_allowed_days') or [],
            emergency_message=values.get('emergency_message'),
            updated_by=admin.id,
            updated_at=now,
        )
        db.session.add(settings)
        db.session.commit()
        BookingSettingsService.invalidate_cache()

        if settings.is_emergency_booking_open and (start is None or end is None):
            current_app.logger.warning("Emergency booking marked open without a start/end; it will stay closed")
        current_app.logger.info(f"Booking settings updated by admin {admin.id} (row {settings.id})")
        return settings

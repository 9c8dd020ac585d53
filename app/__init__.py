# app/__init__.py

import logging
import time
from flask import Flask, request, jsonify
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from .config import Config
from db.extensions import db, migrate, init_redis, check_redis_health
from controllers.booking_controller import booking_bp
from controllers.admin_controller import admin_bp
from controllers.report_controller import report_bp
from controllers.notification_controller import notification_bp
from services.errors import BookingError

# Imported for their table definitions
from models.user import User  # noqa: F401
from models.labSlot import LabSlot  # noqa: F401
from models.booking import Booking  # noqa: F401
from models.bookingSystemSettings import BookingSystemSettings  # noqa: F401
from models.notification import Notification  # noqa: F401


def create_app(config_object=Config):
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_object)

    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization'],
         supports_credentials=True,
         expose_headers=['Content-Type', 'Authorization'],
         max_age=3600
    )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    init_redis(app)

    # Register blueprints
    app.register_blueprint(booking_bp, url_prefix='/api')
    app.register_blueprint(notification_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(report_bp, url_prefix='/api/admin')

    # Configure logging
    debug_mode = app.config.get('DEBUG_MODE', False)
    log_level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    app.logger.setLevel(log_level)

    slow_request_ms = app.config.get('SLOW_REQUEST_MS', 500)

    @app.before_request
    def before_request():
        request.start_time = time.time()
        if debug_mode:
            app.logger.debug(f"Started {request.method} {request.path}")

    @app.after_request
    def after_request(response):
        if hasattr(request, 'start_time'):
            elapsed = (time.time() - request.start_time) * 1000

            if elapsed > slow_request_ms:
                app.logger.warning(
                    f"SLOW REQUEST: {request.method} {request.path} "
                    f"took {elapsed:.2f}ms - Status: {response.status_code}"
                )
            elif debug_mode:
                app.logger.info(
                    f"{request.method} {request.path} "
                    f"took {elapsed:.2f}ms - Status: {response.status_code}"
                )

        return response

    @app.errorhandler(BookingError)
    def handle_booking_error(e):
        app.logger.info(f"{request.method} {request.path} refused: {e.code} - {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return {'success': False, 'message': e.description}, e.code

    # Global error handler
    @app.errorhandler(Exception)
    def handle_exception(e):
        app.logger.error(f"Unhandled exception: {str(e)}", exc_info=True)
        return {
            'success': False,
            'message': 'Internal server error. Please try again.'
        }, 500

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring"""
        try:
            db.session.execute(text('SELECT 1'))
        except Exception as e:
            app.logger.error(f"Health check failed: {str(e)}")
            return {
                'status': 'error',
                'message': str(e),
                'timestamp': time.time()
            }, 500

        redis_ok = check_redis_health()
        return {
            'status': 'ok' if redis_ok is not False else 'degraded',
            'database': 'connected',
            'redis': {True: 'connected', False: 'unreachable', None: 'disabled'}[redis_ok],
            'timestamp': time.time()
        }, 200

    return app

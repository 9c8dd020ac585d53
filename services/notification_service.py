# services/notification_service.py

from flask import current_app
from sqlalchemy import update

from db.extensions import db
from models.notification import Notification
from models.user import User
from services.errors import Forbidden, InvalidInput, NotFound

DEFAULT_LIMIT = 20


class NotificationService:
    """In-app notices shown on the dashboard. Nothing is emailed or pushed."""

    @staticmethod
    def send(sender, to_user_id, title, message):
        if not sender.is_admin:
            raise Forbidden()
        if not to_user_id or not title or not message:
            raise InvalidInput('to_user_id, title and message are required')
        if db.session.get(User, to_user_id) is None:
            raise NotFound('User not found')

        notification = Notification(user_id=to_user_id, title=title, message=message, is_read=False)
        db.session.add(notification)
        db.session.commit()
        current_app.logger.info(f"Notification {notification.id} sent to user {to_user_id} by {sender.id}")
        return notification

    @staticmethod
    def list_for_user(user, limit=DEFAULT_LIMIT):
        return (
            Notification.query
            .filter_by(user_id=user.id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark_read(user, ids):
        if not isinstance(ids, list):
            raise InvalidInput("'ids' must be a list")
        if not ids:
            return 0
        result = db.session.execute(
            update(Notification)
            .where(Notification.id.in_(ids), Notification.user_id == user.id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount

# services/identity_service.py

from flask import current_app
from sqlalchemy import func
import requests

from db.extensions import db
from models.user import User, ROLE_STUDENT
from services.errors import NotFound, Unauthorized


class IdentityService:
    """Maps an OAuth access token to a portal user. Roles live in our own users table."""

    @staticmethod
    def fetch_userinfo(access_token):
        try:
            response = requests.get(
                current_app.config['USERINFO_URL'],
                headers={'Authorization': f'Bearer {access_token}'},
                timeout=current_app.config.get('USERINFO_TIMEOUT', 10),
            )
        except requests.RequestException as e:
            current_app.logger.error(f"Userinfo request failed: {str(e)}")
            raise Unauthorized('Could not verify access token')

        if not response.ok:
            current_app.logger.warning(f"Userinfo rejected token: HTTP {response.status_code}")
            raise Unauthorized()
        return response.json()

    @staticmethod
    def _email_for(access_token):
        if not access_token:
            raise Unauthorized()
        info = IdentityService.fetch_userinfo(access_token)
        email = (info.get('email') or '').strip().lower()
        if not email:
            raise Unauthorized('Access token has no email scope')
        return email, info

    @staticmethod
    def _find(email):
        return User.query.filter(func.lower(User.email) == email).first()

    @staticmethod
    def resolve_user(access_token):
        email, _ = IdentityService._email_for(access_token)
        user = IdentityService._find(email)
        if user is None:
            raise NotFound('User not found')
        return user

    @staticmethod
    def login(access_token):
        """Resolve the token, registering first-time users as students."""
        email, info = IdentityService._email_for(access_token)
        user = IdentityService._find(email)
        if user is None:
            user = User(email=email, name=info.get('name'), role=ROLE_STUDENT)
            db.session.add(user)
            db.session.commit()
            current_app.logger.info(f"Registered new student {user.id} ({email})")
        return user

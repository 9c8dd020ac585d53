# controllers/auth.py

from functools import wraps
from flask import g, request

from services.errors import Forbidden
from services.identity_service import IdentityService

TOKEN_COOKIE = 'access_token'


def bearer_token():
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip()
    return request.cookies.get(TOKEN_COOKIE)


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        g.current_user = IdentityService.resolve_user(bearer_token())
        return view(*args, **kwargs)
    return wrapped


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        g.current_user = IdentityService.resolve_user(bearer_token())
        if not g.current_user.is_admin:
            raise Forbidden('Admin access required')
        return view(*args, **kwargs)
    return wrapped

"""
JWT Authentication for Malafati.
Validates teacher Bearer tokens on all /api/ routes except the public
parent-access endpoints.
"""
import datetime

import jwt
from flask import current_app, g, jsonify, request

from .config import JWT_TTL_HOURS


# Routes that don't require authentication
PUBLIC_PREFIXES = [
    '/api/parent/',        # Parent landing page lookups (parents don't have accounts)
]

PUBLIC_EXACT = [
    '/api/status',
    '/api/captcha',
    '/api/verify-student',
]


def get_jwt_secret():
    """Get the token signing secret from the app config."""
    secret = current_app.config.get('JWT_SECRET')
    if not secret:
        raise RuntimeError('JWT_SECRET not configured')
    return secret


def create_token(teacher_id, secret=None, ttl_hours=JWT_TTL_HOURS):
    """Issue a signed token for a teacher id."""
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        'sub': str(teacher_id),
        'iat': now,
        'exp': now + datetime.timedelta(hours=ttl_hours),
    }
    return jwt.encode(payload, secret or get_jwt_secret(), algorithm='HS256')


def validate_token(token):
    """
    Validate a teacher JWT and return the decoded payload.
    Returns None if invalid.
    """
    try:
        return jwt.decode(token, get_jwt_secret(), algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def is_public_route(path):
    """Check if a route is public (no auth required)."""
    if path in PUBLIC_EXACT:
        return True
    for prefix in PUBLIC_PREFIXES:
        if path.startswith(prefix):
            return True
    return False


def owns_teacher(teacher_id):
    """True when the authenticated teacher is ``teacher_id``."""
    return getattr(g, 'teacher_id', None) == teacher_id


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    Call this BEFORE registering blueprints.
    """
    @app.before_request
    def check_auth():
        # Skip non-API routes
        if not request.path.startswith('/api/'):
            return None

        if is_public_route(request.path):
            return None

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Authentication required'}), 401

        token = auth_header[7:]  # Strip 'Bearer '
        payload = validate_token(token)
        if payload is None:
            return jsonify({'error': 'Invalid or expired token'}), 401

        try:
            g.teacher_id = int(payload.get('sub'))
        except (TypeError, ValueError):
            return jsonify({'error': 'Invalid or expired token'}), 401

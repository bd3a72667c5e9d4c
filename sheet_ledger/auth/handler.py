"""
Admin authentication for the Sheet Ledger backend.

There is exactly one account, configured through ADMIN_USERNAME and
ADMIN_PASSWORD. A successful login returns a signed JWT that protects the
write routes.
"""

import hmac
import logging
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify
from flask_jwt_extended import JWTManager, create_access_token

from sheet_ledger.utils.timing import parse_duration

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def check_credentials(username: Any, password: Any) -> bool:
    """
    Check a login attempt against the configured admin account.

    Args:
        username: Submitted username (compared as text)
        password: Submitted password (compared as text)

    Returns:
        bool: True only if both match exactly
    """
    username = _as_text(username)
    password = _as_text(password)

    if username is None or password is None:
        return False

    expected_username = str(current_app.config['ADMIN_USERNAME'])
    expected_password = str(current_app.config['ADMIN_PASSWORD'])

    username_ok = hmac.compare_digest(username.encode('utf-8'), expected_username.encode('utf-8'))
    password_ok = hmac.compare_digest(password.encode('utf-8'), expected_password.encode('utf-8'))
    return username_ok and password_ok


def issue_token(username: str) -> Dict[str, str]:
    """
    Sign a token for the admin account.

    Returns:
        Dict[str, str]: {'token': <jwt>, 'expiresIn': <configured duration string>}
    """
    expires_in = current_app.config['JWT_EXPIRES_IN']
    token = create_access_token(identity=str(username), expires_delta=parse_duration(expires_in))
    logger.info(f"Issued token for {username}, expires in {expires_in}")
    return {'token': token, 'expiresIn': expires_in}


def _unauthorized(message: str):
    return jsonify({'message': message}), 401


def init_jwt(app: Flask) -> JWTManager:
    """
    Attach a JWTManager to the app.

    Missing, malformed, and expired tokens all answer 401.
    """
    app.config.setdefault('JWT_SECRET_KEY', app.config.get('JWT_SECRET'))
    app.config.setdefault('JWT_ACCESS_TOKEN_EXPIRES', parse_duration(app.config.get('JWT_EXPIRES_IN', '365d')))
    app.config.setdefault('JWT_TOKEN_LOCATION', ['headers'])

    jwt = JWTManager(app)

    @jwt.unauthorized_loader
    def missing_token(reason):
        logger.warning(f"Rejected request without token: {reason}")
        return _unauthorized('Missing authorization token')

    @jwt.invalid_token_loader
    def invalid_token(reason):
        logger.warning(f"Rejected invalid token: {reason}")
        return _unauthorized('Invalid authorization token')

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        logger.warning("Rejected expired token")
        return _unauthorized('Authorization token has expired')

    return jwt

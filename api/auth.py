import logging
from functools import wraps
from flask import request, jsonify, current_app
import jwt


def _decode_token(token: str) -> dict:
    """Tries each configured secret so tokens survive key rotation."""
    secret_keys = current_app.config.get('JWT_SECRET_KEYS') or []
    if not secret_keys:
        logging.error("No JWT secret keys configured; rejecting token.")
        raise jwt.InvalidTokenError("No JWT secret keys configured")
    last_error = None
    for key in secret_keys:
        try:
            return jwt.decode(token, key, algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            raise
        except jwt.InvalidTokenError as e:
            last_error = e
    raise last_error


def token_required(f):
    """Injects `user_id` from a bearer token issued by the account backend."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization')
        if not auth_header or not auth_header.startswith('Bearer '): return jsonify({"error_code": "TOKEN_MISSING"}), 401
        token = auth_header.split(' ')[1]
        try:
            data = _decode_token(token); kwargs['user_id'] = data['user_id']
        except (jwt.ExpiredSignatureError, jwt.InvalidTokenError, KeyError): return jsonify({"error_code": "TOKEN_INVALID"}), 401
        return f(*args, **kwargs)
    return decorated

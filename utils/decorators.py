from __future__ import annotations
from functools import wraps
from flask import request
from utils.security import TokenError, decode_token
from models import storage
from models.user import User
from services.exceptions import AuthError

ACCESS_COOKIE = "accessToken"


def token_from_request() -> str | None:
    """Bearer token from the Authorization header, falling back to the accessToken cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(ACCESS_COOKIE) or None


def jwt_required():
    """
    Verify the access token and pass the caller to the view as `current_user`.
    The identity is handed over explicitly; nothing is stashed on flask.g.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = token_from_request()
            if not token:
                raise AuthError("Unauthorized request")
            try:
                decoded = decode_token(token, expected_type="access")
            except TokenError as e:
                raise AuthError(str(e))

            user = storage.get(User, decoded.get("sub"))
            if not user:
                raise AuthError("Invalid Access Token")
            kwargs["current_user"] = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator

"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (separate secrets for access and refresh tokens)
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from flask import current_app

ph = PasswordHasher()

TOKEN_SETTINGS = {
    "access": ("ACCESS_TOKEN_SECRET", "ACCESS_TOKEN_EXPIRES"),
    "refresh": ("REFRESH_TOKEN_SECRET", "REFRESH_TOKEN_EXPIRES"),
}


class TokenError(Exception):
    """Raised when a JWT cannot be decoded, is expired or has the wrong type."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode(claims: Dict[str, Any], token_type: str) -> str:
    secret_key, expires_key = TOKEN_SETTINGS[token_type]
    expires: timedelta = current_app.config[expires_key]
    issued = _now()
    payload = {
        "iss": current_app.config.get("JWT_ISSUER", "channel-accounts-api"),
        "iat": int(issued.timestamp()),
        "exp": int((issued + expires).timestamp()),
        "type": token_type,
        "jti": generate_jti(),
        **claims,
    }
    return jwt.encode(payload, current_app.config[secret_key], algorithm=current_app.config["JWT_ALGORITHM"])


def create_access_token(user) -> str:
    """Short-lived token carrying the user's identity and display fields."""
    return _encode(
        {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "fullName": user.full_name,
        },
        "access",
    )


def create_refresh_token(user) -> str:
    """Long-lived token carrying only the user id; persisted on the user row."""
    return _encode({"sub": str(user.id)}, "refresh")


def decode_token(token: str, expected_type: str = "access") -> Dict[str, Any]:
    """
    Decode and validate a JWT with the secret for expected_type ("access" or "refresh").
    Raises TokenError on invalid signature, expiry, a foreign issuer or a token of the other type.
    """
    if expected_type not in TOKEN_SETTINGS:
        raise ValueError(f"Unknown token type: {expected_type}")
    secret_key, _ = TOKEN_SETTINGS[expected_type]
    try:
        decoded = jwt.decode(
            token,
            current_app.config[secret_key],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            issuer=current_app.config.get("JWT_ISSUER", "channel-accounts-api"),
            options={"require": ["exp", "sub", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"Invalid token: {exc}")

    if decoded.get("type") != expected_type:
        raise TokenError("Wrong token type")
    return decoded

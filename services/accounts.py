"""
Account and session workflows.

- register_user: validate, upload avatar (required) and cover image (best effort), insert
- login_user / logout_user: issue or clear the single stored refresh token
- refresh_access_token: decode -> load user by decoded id -> compare stored token -> rotate
- change_password, update_account_details, update_avatar, update_cover_image

The authenticated caller is always passed in explicitly as `user`.
"""
from __future__ import annotations

import hmac
import logging
from typing import Optional, Tuple

import jwt
from sqlalchemy import or_

from models import storage
from models.schemas.common import norm_identifier
from models.user import User
from services.exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from utils.security import TokenError, create_access_token, create_refresh_token, decode_token

logger = logging.getLogger(__name__)


def _is_blank(value) -> bool:
    return value is None or not str(value).strip()


def generate_access_and_refresh_tokens(user: User) -> Tuple[str, str]:
    """Issue a fresh token pair and persist the refresh token on the user row."""
    try:
        access_token = create_access_token(user)
        refresh_token = create_refresh_token(user)
    except (jwt.PyJWTError, KeyError, TypeError) as exc:
        logger.exception("Token generation failed for user %s", user.id)
        raise ApiError("Something went wrong while generating refresh and access token", 500) from exc

    user.refresh_token = refresh_token
    storage.new(user)
    storage.save()
    return access_token, refresh_token


def register_user(uploader, full_name, email, username, password,
                  avatar_path: Optional[str], cover_image_path: Optional[str] = None) -> User:
    if any(_is_blank(field) for field in (full_name, email, username, password)):
        raise ValidationError("All fields are required")
    if not avatar_path:
        raise ValidationError("Avatar file is required")

    username = norm_identifier(username)
    email = norm_identifier(email)

    session = storage.get_session()
    existing = session.query(User).filter(or_(User.username == username, User.email == email)).first()
    if existing:
        raise ConflictError("User with email or username already exists")

    avatar_url = uploader.upload(avatar_path)
    if not avatar_url:
        raise UploadError("Avatar file is required")
    # cover image is best effort: a failed upload is stored as no image
    cover_image_url = uploader.upload(cover_image_path) if cover_image_path else None

    user = User(
        full_name=full_name.strip(),
        avatar=avatar_url,
        cover_image=cover_image_url or "",
        email=email,
        password=password,
        username=username,
    )
    storage.new(user)
    storage.save()

    created = storage.get(User, user.id)
    if not created:
        raise ApiError("Something went wrong while registering the user", 500)
    logger.info("Registered user %s", created.id)
    return created


def login_user(password, username: Optional[str] = None, email: Optional[str] = None) -> Tuple[User, str, str]:
    if _is_blank(username) and _is_blank(email):
        raise ValidationError("username or email is required")

    filters = []
    if not _is_blank(username):
        filters.append(User.username == norm_identifier(username))
    if not _is_blank(email):
        filters.append(User.email == norm_identifier(email))

    session = storage.get_session()
    user = session.query(User).filter(or_(*filters)).first()
    if not user:
        raise NotFoundError("User does not exist")

    if not user.is_password_correct(password):
        raise AuthError("Invalid user credentials")

    access_token, refresh_token = generate_access_and_refresh_tokens(user)
    logger.info("User %s logged in", user.id)
    return user, access_token, refresh_token


def logout_user(user: User) -> None:
    """Clear the stored refresh token; clearing an absent token is fine."""
    user.refresh_token = None
    user.save()
    logger.info("User %s logged out", user.id)


def refresh_access_token(incoming_refresh_token: Optional[str]) -> Tuple[str, str]:
    if _is_blank(incoming_refresh_token):
        raise AuthError("Unauthorized request")

    try:
        decoded = decode_token(incoming_refresh_token, expected_type="refresh")
    except TokenError as exc:
        raise AuthError(str(exc) or "Invalid refresh token") from exc

    user = storage.get(User, decoded.get("sub"))
    if not user:
        raise AuthError("Invalid refresh token")

    if not hmac.compare_digest(incoming_refresh_token.encode(), (user.refresh_token or "").encode()):
        logger.warning("Rejected stale refresh token for user %s", user.id)
        raise AuthError("Refresh token is expired or used")

    access_token, refresh_token = generate_access_and_refresh_tokens(user)
    logger.info("Rotated refresh token for user %s", user.id)
    return access_token, refresh_token


def change_password(user: User, old_password, new_password) -> None:
    if _is_blank(old_password) or _is_blank(new_password):
        raise ValidationError("oldPassword and newPassword are required")
    if not user.is_password_correct(old_password):
        raise AuthError("Invalid old password")

    user.password = new_password
    user.save()
    logger.info("Password changed for user %s", user.id)


def update_account_details(user: User, full_name, email) -> User:
    if _is_blank(full_name) or _is_blank(email):
        raise ValidationError("All fields are required")

    email = norm_identifier(email)
    session = storage.get_session()
    owner = session.query(User).filter(User.email == email, User.id != user.id).first()
    if owner:
        raise ConflictError("Email is already in use")

    user.full_name = full_name.strip()
    user.email = email
    user.save()
    return user


def _replace_image(uploader, user: User, local_path: Optional[str], attribute: str, label: str) -> User:
    if not local_path:
        raise ValidationError(f"{label} file is missing")
    url = uploader.upload(local_path)
    if not url:
        raise UploadError(f"Error while uploading {label.lower()}")
    setattr(user, attribute, url)
    user.save()
    return user


def update_avatar(uploader, user: User, avatar_path: Optional[str]) -> User:
    return _replace_image(uploader, user, avatar_path, "avatar", "Avatar")


def update_cover_image(uploader, user: User, cover_image_path: Optional[str]) -> User:
    return _replace_image(uploader, user, cover_image_path, "cover_image", "Cover image")

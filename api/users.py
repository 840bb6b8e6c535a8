"""
Users blueprint (mounted at /api/v1/users):
- POST  /register            (multipart: fullName, email, username, password, avatar, coverImage)
- POST  /login
- POST  /logout              (auth)
- POST  /refresh-token
- POST  /change-password     (auth)
- GET   /currentUser         (auth)
- PATCH /update-account      (auth)
- PATCH /avatar              (auth, multipart)
- PATCH /cover-image         (auth, multipart)
- GET   /channel/<username>  (auth)
- GET   /watch-history       (auth)
- POST  /watch-history/<video_id> (auth)

Views only translate HTTP to workflow calls; the workflows live in services/.
"""
from __future__ import annotations

import os
import uuid
from typing import Optional

from flask import Blueprint, current_app, request
from marshmallow import ValidationError as SchemaValidationError
from werkzeug.utils import secure_filename

from api.responses import REFRESH_COOKIE, api_response, clear_auth_cookies, set_auth_cookies
from models.schemas.user import (
    ChangePasswordSchema,
    ChannelProfileSchema,
    RefreshTokenSchema,
    UpdateAccountSchema,
    UserLoginSchema,
    UserOutSchema,
    UserRegisterSchema,
    WatchedVideoSchema,
)
from services import accounts, channels
from services.exceptions import AuthError
from utils.decorators import jwt_required

bp = Blueprint("users", __name__)

user_register_schema = UserRegisterSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
change_password_schema = ChangePasswordSchema()
update_account_schema = UpdateAccountSchema()
refresh_token_schema = RefreshTokenSchema()
channel_profile_schema = ChannelProfileSchema()
watched_videos_schema = WatchedVideoSchema(many=True)


def _payload() -> dict:
    """JSON body if there is one, otherwise form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _uploader():
    return current_app.extensions["media_uploader"]


def _save_upload(field: str) -> Optional[str]:
    """Write an uploaded file to UPLOAD_FOLDER and return its local path."""
    file = request.files.get(field)
    if file is None or not file.filename:
        return None
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    path = os.path.join(folder, f"{uuid.uuid4().hex}-{secure_filename(file.filename)}")
    file.save(path)
    return path


def _discard_uploads(*paths):
    for path in paths:
        if path and os.path.exists(path):
            os.remove(path)


@bp.post("/register")
def register():
    """
    Register a new user with an avatar and optional cover image.
    ---
    tags:
      - Users
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: fullName, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: coverImage, type: file, required: false }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: Username or email already registered
    """
    data = user_register_schema.load(_payload())
    avatar_path = _save_upload("avatar")
    cover_image_path = _save_upload("coverImage")
    try:
        user = accounts.register_user(
            _uploader(),
            full_name=data.get("fullName"),
            email=data.get("email"),
            username=data.get("username"),
            password=data.get("password"),
            avatar_path=avatar_path,
            cover_image_path=cover_image_path,
        )
    finally:
        _discard_uploads(avatar_path, cover_image_path)

    return api_response(user_out_schema.dump(user), "User registered successfully", 201)


@bp.post("/login")
def login():
    """
    Login with username or email; returns tokens and sets them as cookies.
    ---
    tags:
      - Users
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      200:
        description: OK (returns user and tokens)
      401:
        description: Invalid credentials
      404:
        description: User does not exist
    """
    data = user_login_schema.load(_payload())
    user, access_token, refresh_token = accounts.login_user(
        data["password"], username=data.get("username"), email=data.get("email")
    )
    response, status = api_response(
        {
            "user": user_out_schema.dump(user),
            "accessToken": access_token,
            "refreshToken": refresh_token,
        },
        "User logged in successfully",
    )
    return set_auth_cookies(response, access_token, refresh_token), status


@bp.post("/logout")
@jwt_required()
def logout(current_user):
    """
    Logout: clears the stored refresh token and both cookies.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    accounts.logout_user(current_user)
    response, status = api_response({}, "User logged out")
    return clear_auth_cookies(response), status


@bp.post("/refresh-token")
def refresh_token():
    """
    Rotate the refresh token (body `refreshToken`, else the cookie) and issue a new access token.
    ---
    tags:
      - Users
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            refreshToken: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    try:
        data = refresh_token_schema.load(_payload())
    except SchemaValidationError:
        raise AuthError("Invalid refresh token")
    incoming = data.get("refreshToken") or request.cookies.get(REFRESH_COOKIE)
    access_token, new_refresh_token = accounts.refresh_access_token(incoming)
    response, status = api_response(
        {"accessToken": access_token, "refreshToken": new_refresh_token},
        "Access token refreshed",
    )
    return set_auth_cookies(response, access_token, new_refresh_token), status


@bp.post("/change-password")
@jwt_required()
def change_password(current_user):
    """
    Change the caller's password.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            oldPassword: { type: string }
            newPassword: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Invalid old password
    """
    data = change_password_schema.load(_payload())
    accounts.change_password(current_user, data["oldPassword"], data["newPassword"])
    return api_response({}, "Password changed successfully")


@bp.get("/currentUser")
@jwt_required()
def current_user_profile(current_user):
    """
    Current user.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return api_response(user_out_schema.dump(current_user), "Current user fetched successfully")


@bp.patch("/update-account")
@jwt_required()
def update_account(current_user):
    """
    Update full name and email.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            fullName: { type: string }
            email: { type: string }
    responses:
      200:
        description: OK
      409:
        description: Email already in use
    """
    data = update_account_schema.load(_payload())
    user = accounts.update_account_details(current_user, data["fullName"], data["email"])
    return api_response(user_out_schema.dump(user), "Account details updated successfully")


@bp.patch("/avatar")
@jwt_required()
def update_avatar(current_user):
    """
    Replace the avatar.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: avatar, type: file, required: true }
    responses:
      200:
        description: OK
      400:
        description: Missing file or upload failed
    """
    path = _save_upload("avatar")
    try:
        user = accounts.update_avatar(_uploader(), current_user, path)
    finally:
        _discard_uploads(path)
    return api_response(user_out_schema.dump(user), "Avatar updated successfully")


@bp.patch("/cover-image")
@jwt_required()
def update_cover_image(current_user):
    """
    Replace the cover image.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: coverImage, type: file, required: true }
    responses:
      200:
        description: OK
      400:
        description: Missing file or upload failed
    """
    path = _save_upload("coverImage")
    try:
        user = accounts.update_cover_image(_uploader(), current_user, path)
    finally:
        _discard_uploads(path)
    return api_response(user_out_schema.dump(user), "Cover image updated successfully")


@bp.get("/channel/<username>")
@jwt_required()
def channel_profile(username: str, current_user):
    """
    Channel profile with subscriber counts.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: username, type: string, required: true }
    responses:
      200:
        description: OK
      404:
        description: Channel does not exist
    """
    profile = channels.get_channel_profile(username, viewer=current_user)
    return api_response(channel_profile_schema.dump(profile), "User channel fetched successfully")


@bp.get("/watch-history")
@jwt_required()
def watch_history(current_user):
    """
    Watched videos, oldest first, each with its owner.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
    """
    videos = channels.get_watch_history(current_user)
    return api_response(watched_videos_schema.dump(videos), "Watch history fetched successfully")


@bp.post("/watch-history/<video_id>")
@jwt_required()
def add_watch_history(video_id: str, current_user):
    """
    Record that the caller watched a video.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - { in: path, name: video_id, type: string, required: true }
    responses:
      200:
        description: OK
      404:
        description: Video not found
    """
    videos = channels.add_to_watch_history(current_user, video_id)
    return api_response(watched_videos_schema.dump(videos), "Watch history updated")

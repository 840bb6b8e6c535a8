"""Uniform response envelope and auth-cookie helpers."""
from flask import current_app, jsonify

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def api_response(data=None, message: str = "Success", status: int = 200):
    return jsonify(
        {
            "statusCode": status,
            "data": data,
            "message": message,
            "success": status < 400,
        }
    ), status


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config.get("COOKIE_SECURE", True),
        "samesite": current_app.config.get("COOKIE_SAMESITE", "Lax"),
    }


def set_auth_cookies(response, access_token: str, refresh_token: str):
    options = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        **options,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=int(current_app.config["REFRESH_TOKEN_EXPIRES"].total_seconds()),
        **options,
    )
    return response


def clear_auth_cookies(response):
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
    return response

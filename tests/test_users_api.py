"""HTTP tests through the Flask test client."""
import io

from conftest import PASSWORD, bearer, login, register
from models import storage
from models.user import User


def _set_cookies(response):
    return response.headers.getlist("Set-Cookie")


def test_register_login_and_fetch_current_user(client):
    created = register(client, username="Alice")
    assert created.status_code == 201
    body = created.get_json()
    assert body["success"] is True
    assert body["statusCode"] == 201
    assert body["data"]["username"] == "alice"
    assert "password" not in body["data"]
    assert "refreshToken" not in body["data"]

    logged_in = login(client, username="Alice")
    assert logged_in.status_code == 200
    tokens = logged_in.get_json()["data"]
    assert tokens["accessToken"] and tokens["refreshToken"]
    assert tokens["accessToken"] != tokens["refreshToken"]
    cookies = _set_cookies(logged_in)
    assert any(c.startswith("accessToken=") and "HttpOnly" in c for c in cookies)
    assert any(c.startswith("refreshToken=") and "HttpOnly" in c for c in cookies)

    me = client.get("/api/v1/users/currentUser", headers=bearer(tokens["accessToken"]))
    assert me.status_code == 200
    data = me.get_json()["data"]
    assert data["username"] == "alice"
    assert data["email"] == "alice@example.com"
    assert not any("password" in key.lower() for key in data)


def test_access_cookie_authenticates(client):
    register(client)
    login(client)
    # the test client replays the accessToken cookie set by login
    assert client.get("/api/v1/users/currentUser").status_code == 200


def test_register_without_avatar_is_rejected(client, uploader):
    response = register(client, avatar=False, cover=True)
    assert response.status_code == 400
    assert response.get_json()["success"] is False
    assert uploader.calls == []


def test_register_duplicate_is_conflict(client):
    register(client)
    response = register(client, username="ALICE", email="someone@example.com")
    assert response.status_code == 409
    assert response.get_json()["message"] == "User with email or username already exists"


def test_register_rejects_malformed_email(client, uploader):
    response = register(client, email="x@")
    assert response.status_code == 400
    assert "email" in response.get_json()["errors"]
    assert uploader.calls == []


def test_register_losing_insert_race_is_conflict(client, uploader):
    def insert_rival(name):
        # another request takes the username between the duplicate check and the insert
        uploader.on_upload = None
        rival = User(
            username="alice",
            email="rival@example.com",
            full_name="Rival",
            avatar="https://media.test/rival.png",
            cover_image="",
            password=PASSWORD,
        )
        storage.new(rival)
        storage.save()

    uploader.on_upload = insert_rival
    response = register(client)
    assert response.status_code == 409
    assert response.get_json() == {
        "statusCode": 409,
        "data": None,
        "message": "User with email or username already exists",
        "success": False,
        "errors": [],
    }


def test_register_blank_field(client):
    response = register(client, full_name="   ")
    assert response.status_code == 400
    assert response.get_json()["message"] == "All fields are required"


def test_register_with_cover_image(client):
    response = register(client, cover=True)
    assert response.get_json()["data"]["coverImage"].endswith("cover.png")


def test_login_wrong_password(client):
    register(client)
    response = login(client, password="not-the-password")
    assert response.status_code == 401
    assert response.get_json()["data"] is None
    assert not any(c.startswith("accessToken=") for c in _set_cookies(response))


def test_login_unknown_user(client):
    assert login(client, username="nobody").status_code == 404


def test_login_needs_an_identifier(client):
    response = client.post("/api/v1/users/login", json={"password": PASSWORD})
    assert response.status_code == 400


def test_protected_route_requires_token(app):
    response = app.test_client().get("/api/v1/users/currentUser")
    assert response.status_code == 401
    body = response.get_json()
    assert body == {
        "statusCode": 401,
        "data": None,
        "message": "Unauthorized request",
        "success": False,
        "errors": [],
    }


def test_refresh_token_rejects_access_token(client):
    register(client)
    tokens = login(client).get_json()["data"]
    response = client.get("/api/v1/users/currentUser", headers=bearer(tokens["refreshToken"]))
    assert response.status_code == 401


def test_refresh_rotates_and_rejects_reuse(client):
    register(client)
    old = login(client).get_json()["data"]["refreshToken"]

    refreshed = client.post("/api/v1/users/refresh-token", json={"refreshToken": old})
    assert refreshed.status_code == 200
    new = refreshed.get_json()["data"]["refreshToken"]
    assert new != old
    assert any(c.startswith("refreshToken=") for c in _set_cookies(refreshed))

    reused = client.post("/api/v1/users/refresh-token", json={"refreshToken": old})
    assert reused.status_code == 401
    assert reused.get_json()["message"] == "Refresh token is expired or used"


def test_refresh_without_token(app):
    response = app.test_client().post("/api/v1/users/refresh-token")
    assert response.status_code == 401


def test_refresh_from_cookie_only(client):
    register(client)
    old = login(client).get_json()["data"]["refreshToken"]

    # no body: the test client replays the refreshToken cookie set by login
    refreshed = client.post("/api/v1/users/refresh-token")
    assert refreshed.status_code == 200
    assert refreshed.get_json()["data"]["refreshToken"] != old
    cookies = _set_cookies(refreshed)
    assert any(c.startswith("accessToken=") for c in cookies)
    rotated = [c for c in cookies if c.startswith("refreshToken=")]
    assert rotated and not rotated[0].startswith(f"refreshToken={old};")


def test_refresh_with_non_string_token_is_unauthorized(client):
    response = client.post("/api/v1/users/refresh-token", json={"refreshToken": 123})
    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_logout_then_refresh_fails(client):
    register(client)
    tokens = login(client).get_json()["data"]

    response = client.post("/api/v1/users/logout", headers=bearer(tokens["accessToken"]))
    assert response.status_code == 200
    cleared = _set_cookies(response)
    assert any(c.startswith("accessToken=;") for c in cleared)
    assert any(c.startswith("refreshToken=;") for c in cleared)

    again = client.post("/api/v1/users/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert again.status_code == 401


def test_change_password(client):
    register(client)
    token = login(client).get_json()["data"]["accessToken"]

    wrong = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": "nope-nope", "newPassword": "another-pass"},
        headers=bearer(token),
    )
    assert wrong.status_code == 401

    ok = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": PASSWORD, "newPassword": "another-pass"},
        headers=bearer(token),
    )
    assert ok.status_code == 200
    assert login(client).status_code == 401
    assert login(client, password="another-pass").status_code == 200


def test_update_account(client):
    register(client)
    register(client, username="bob", email="bob@example.com")
    token = login(client).get_json()["data"]["accessToken"]

    updated = client.patch(
        "/api/v1/users/update-account",
        json={"fullName": "Alice L.", "email": "alice.l@example.com"},
        headers=bearer(token),
    )
    assert updated.status_code == 200
    assert updated.get_json()["data"]["email"] == "alice.l@example.com"

    taken = client.patch(
        "/api/v1/users/update-account",
        json={"fullName": "Alice", "email": "bob@example.com"},
        headers=bearer(token),
    )
    assert taken.status_code == 409


def test_update_account_validates_email(client):
    register(client)
    token = login(client).get_json()["data"]["accessToken"]
    response = client.patch(
        "/api/v1/users/update-account",
        json={"fullName": "Alice", "email": "not-an-email"},
        headers=bearer(token),
    )
    assert response.status_code == 400
    assert "email" in response.get_json()["errors"]


def test_update_avatar_and_cover_image(client, uploader):
    register(client)
    token = login(client).get_json()["data"]["accessToken"]

    avatar = client.patch(
        "/api/v1/users/avatar",
        data={"avatar": (io.BytesIO(b"new"), "fresh.png")},
        content_type="multipart/form-data",
        headers=bearer(token),
    )
    assert avatar.status_code == 200
    assert avatar.get_json()["data"]["avatar"].endswith("fresh.png")

    cover = client.patch(
        "/api/v1/users/cover-image",
        data={"coverImage": (io.BytesIO(b"new"), "wide.png")},
        content_type="multipart/form-data",
        headers=bearer(token),
    )
    assert cover.get_json()["data"]["coverImage"].endswith("wide.png")

    missing = client.patch("/api/v1/users/avatar", headers=bearer(token))
    assert missing.status_code == 400


def test_channel_profile_and_subscription(client):
    alice_id = register(client).get_json()["data"]["id"]
    register(client, username="bob", email="bob@example.com")
    bob_token = login(client, username="bob").get_json()["data"]["accessToken"]

    toggled = client.post(f"/api/v1/subscriptions/{alice_id}", headers=bearer(bob_token))
    assert toggled.status_code == 200
    assert toggled.get_json()["data"]["subscribed"] is True

    profile = client.get("/api/v1/users/channel/ALICE", headers=bearer(bob_token)).get_json()["data"]
    assert profile["username"] == "alice"
    assert profile["subscribersCount"] == 1
    assert profile["channelsSubscribedToCount"] == 0
    assert profile["isSubscribed"] is True
    assert set(profile) == {
        "fullName", "username", "subscribersCount", "channelsSubscribedToCount",
        "isSubscribed", "avatar", "coverImage", "email",
    }

    missing = client.get("/api/v1/users/channel/nobody", headers=bearer(bob_token))
    assert missing.status_code == 404


def test_watch_history(client, ctx, make_user, make_video):
    owner = make_user("creator", full_name="Creator Person")
    video = make_video(owner, "intro")
    register(client)
    token = login(client).get_json()["data"]["accessToken"]

    assert client.get("/api/v1/users/watch-history", headers=bearer(token)).get_json()["data"] == []

    added = client.post(f"/api/v1/users/watch-history/{video.id}", headers=bearer(token))
    assert added.status_code == 200

    history = client.get("/api/v1/users/watch-history", headers=bearer(token)).get_json()["data"]
    assert [v["title"] for v in history] == ["intro"]
    assert history[0]["owner"] == {
        "fullName": "Creator Person",
        "username": "creator",
        "avatar": "https://media.test/creator.png",
    }


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_health(client):
    assert client.get("/api/v1/health").get_json()["status"] == "ok"

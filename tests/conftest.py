"""Shared fixtures: an app on in-memory SQLite with a fake media uploader."""
import io
import os

import pytest

from api import create_app
from models import storage
from models.user import User
from models.video import Video

PASSWORD = "s3cret-pass"


class FakeUploader:
    """Stands in for S3: records calls, removes the local file, fails on request."""

    def __init__(self):
        self.calls = []
        self.fail_markers = set()
        self.on_upload = None

    def upload(self, local_path):
        if not local_path:
            return None
        name = os.path.basename(local_path)
        self.calls.append(name)
        if self.on_upload:
            self.on_upload(name)
        if os.path.exists(local_path):
            os.remove(local_path)
        if any(marker in name for marker in self.fail_markers):
            return None
        return f"https://media.test/{len(self.calls)}-{name}"


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def app(uploader, tmp_path):
    # every create_app() reloads storage onto a fresh in-memory database
    app = create_app("test", media_uploader=uploader)
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def local_file(tmp_path):
    def _make(name="avatar.png", content=b"\x89PNG fake image"):
        path = tmp_path / name
        path.write_bytes(content)
        return str(path)

    return _make


@pytest.fixture
def make_user():
    def _make(username, email=None, password=PASSWORD, full_name=None):
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            full_name=full_name or username.title(),
            avatar=f"https://media.test/{username}.png",
            cover_image="",
            password=password,
        )
        storage.new(user)
        storage.save()
        return user

    return _make


@pytest.fixture
def make_video():
    def _make(owner, title="A video"):
        video = Video(
            title=title,
            description=f"{title} description",
            video_file=f"https://media.test/{title}.mp4",
            thumbnail=f"https://media.test/{title}.jpg",
            duration=42.5,
            owner_id=owner.id,
        )
        storage.new(video)
        storage.save()
        return video

    return _make


def register(client, username="alice", email="alice@example.com", password=PASSWORD,
             full_name="Alice Liddell", avatar=True, cover=False):
    data = {"fullName": full_name, "email": email, "username": username, "password": password}
    if avatar:
        data["avatar"] = (io.BytesIO(b"avatar bytes"), "avatar.png")
    if cover:
        data["coverImage"] = (io.BytesIO(b"cover bytes"), "cover.png")
    return client.post("/api/v1/users/register", data=data, content_type="multipart/form-data")


def login(client, password=PASSWORD, **identifier):
    identifier = identifier or {"username": "alice"}
    return client.post("/api/v1/users/login", json={"password": password, **identifier})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}

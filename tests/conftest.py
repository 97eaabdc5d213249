import io

import pytest
from PIL import Image
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import Client

from social.models import FriendEdge, User
from social.tokens import issue_token

PASSWORD = "correct-horse-42"


@pytest.fixture(autouse=True)
def fast_password_hasher(settings):
    """MD5 keeps user creation cheap in tests"""
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    """Write uploads to a throwaway directory"""
    settings.MEDIA_ROOT = tmp_path / "media"
    return settings.MEDIA_ROOT


@pytest.fixture
def user_factory(db):
    def create(username, password=PASSWORD, **extra):
        extra.setdefault("email", f"{username}@example.com")
        return User.objects.create_user(username=username, password=password, **extra)
    return create


@pytest.fixture
def alice(user_factory):
    return user_factory("alice", first_name="Alice", last_name="Archer")


@pytest.fixture
def bob(user_factory):
    return user_factory("bob", first_name="Bob", last_name="Baker")


@pytest.fixture
def carol(user_factory):
    return user_factory("carol", first_name="Carol", last_name="Cooper")


@pytest.fixture
def dave(user_factory):
    return user_factory("dave", first_name="Dave", last_name="Dunn")


@pytest.fixture
def befriend(db):
    """Create an accepted friend edge (first user is the requester)"""
    def link(requester, addressee):
        return FriendEdge.objects.create(user_a=requester, user_b=addressee, status=FriendEdge.ACCEPTED)
    return link


@pytest.fixture
def api_client():
    """Django test client, optionally carrying a bearer token for a user"""
    def build(user=None):
        if user is None:
            return Client()
        return Client(HTTP_AUTHORIZATION=f"Bearer {issue_token(user)}")
    return build


@pytest.fixture
def make_image():
    """Small valid image uploads generated with Pillow"""
    def build(name="photo.png", image_format="PNG", content_type="image/png", size=(8, 8)):
        buffer = io.BytesIO()
        Image.new("RGB", size, (200, 40, 40)).save(buffer, format=image_format)
        return SimpleUploadedFile(name, buffer.getvalue(), content_type=content_type)
    return build


@pytest.fixture
def make_video():
    def build(name="clip.mp4", content_type="video/mp4", payload=b"\x00\x00\x00\x18ftypmp42"):
        return SimpleUploadedFile(name, payload, content_type=content_type)
    return build

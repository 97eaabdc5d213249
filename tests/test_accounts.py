from datetime import timedelta

import pytest
from django.core.files.storage import default_storage
from django.utils import timezone

from social import accounts, conversations, feed
from social.errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized
from social.models import Conversation, DirectMessage, FriendEdge, Post, User
from social.tokens import issue_token, read_token

pytestmark = pytest.mark.django_db

PASSWORD = "correct-horse-42"


def registration(**overrides):
    data = {
        "first_name": "Erin",
        "last_name": "Evans",
        "username": "erin",
        "email": "Erin@Example.com",
        "password": "long-enough-1",
    }
    data.update(overrides)
    return data


# ==================== REGISTRATION ====================

def test_register_user():
    user = accounts.register_user(registration())

    assert user.username == "erin"
    assert user.email == "erin@example.com"
    assert user.check_password("long-enough-1")
    assert user.timezone == "UTC"


@pytest.mark.parametrize("field, value, message", [
    ("first_name", "  ", "First name is required."),
    ("email", "", "Email is required."),
    ("username", "ab", "Username must be at least 3 characters."),
    ("username", "bad name", "Username can only contain letters, numbers, and underscores."),
    ("email", "not-an-email", "Please enter a valid email address."),
    ("password", "short", "Password must be at least 8 characters."),
])
def test_register_validation(field, value, message):
    with pytest.raises(BadRequest) as excinfo:
        accounts.register_user(registration(**{field: value}))

    assert excinfo.value.message == message
    assert not User.objects.exists()


def test_register_duplicate_is_conflict(alice):
    with pytest.raises(Conflict):
        accounts.register_user(registration(username="ALICE"))
    with pytest.raises(Conflict):
        accounts.register_user(registration(email="alice@example.com"))


# ==================== LOGIN & LOCKOUT ====================

def test_login_returns_usable_token(alice):
    user, token = accounts.login_user("Alice", PASSWORD)

    assert user == alice
    assert read_token(token)["id"] == alice.pk


def test_login_errors(alice):
    with pytest.raises(BadRequest):
        accounts.login_user("", PASSWORD)
    with pytest.raises(Unauthorized) as excinfo:
        accounts.login_user("nobody", PASSWORD)
    assert excinfo.value.message == "Invalid username."


def test_five_failures_lock_the_account(alice):
    for expected_left in (4, 3, 2, 1):
        with pytest.raises(Unauthorized) as excinfo:
            accounts.login_user("alice", "wrong")
        assert excinfo.value.extra == {"attemptsLeft": expected_left, "locked": False}

    with pytest.raises(Unauthorized) as excinfo:
        accounts.login_user("alice", "wrong")
    assert excinfo.value.extra == {"attemptsLeft": 0, "locked": True}

    # Even the right password is refused while locked
    with pytest.raises(Forbidden) as excinfo:
        accounts.login_user("alice", PASSWORD)
    assert excinfo.value.message == "Account is locked. Try again later."
    assert "unlockTime" in excinfo.value.extra


def test_expired_lock_resets_the_counter(alice):
    alice.failed_attempts = 5
    alice.lock_until = timezone.now() - timedelta(minutes=1)
    alice.save()

    with pytest.raises(Unauthorized) as excinfo:
        accounts.login_user("alice", "wrong")
    assert excinfo.value.extra["attemptsLeft"] == 4

    accounts.login_user("alice", PASSWORD)
    alice.refresh_from_db()
    assert alice.failed_attempts == 0
    assert alice.lock_until is None


def test_successful_login_clears_failures(alice):
    with pytest.raises(Unauthorized):
        accounts.login_user("alice", "wrong")

    accounts.login_user("alice", PASSWORD)

    alice.refresh_from_db()
    assert alice.failed_attempts == 0


def test_inactive_account_cannot_log_in(alice):
    alice.is_active = False
    alice.save()

    with pytest.raises(Forbidden):
        accounts.login_user("alice", PASSWORD)


# ==================== BEARER TOKENS ====================

def test_token_authenticates_requests(alice, api_client):
    response = api_client(alice).get("/api/auth/verify")

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "alice"


def test_missing_and_malformed_tokens(api_client):
    assert api_client().get("/api/auth/verify").json() == {"error": "Unauthorized"}

    response = api_client().get("/api/auth/verify", HTTP_AUTHORIZATION="Bearer not-a-token")
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token."

    response = api_client().get("/api/auth/verify", HTTP_AUTHORIZATION="Basic abc")
    assert response.status_code == 401


def test_expired_token_is_rejected(alice, api_client, settings):
    token = issue_token(alice)
    settings.AUTH_TOKEN_MAX_AGE = -1

    response = api_client().get("/api/auth/verify", HTTP_AUTHORIZATION=f"Bearer {token}")

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token."


def test_token_of_deleted_user_is_rejected(alice, api_client):
    client = api_client(alice)
    alice.delete()

    assert client.get("/api/auth/verify").status_code == 401


# ==================== PROFILE ====================

def test_update_account_partial(alice, bob):
    accounts.update_account(alice, {"first_name": "Ally", "timezone": "Europe/Berlin"})

    alice.refresh_from_db()
    assert alice.first_name == "Ally"
    assert alice.last_name == "Archer"
    assert alice.timezone == "Europe/Berlin"

    with pytest.raises(Conflict):
        accounts.update_account(alice, {"username": "BOB"})
    with pytest.raises(BadRequest):
        accounts.update_account(alice, {"timezone": "Mars/Olympus"})
    with pytest.raises(BadRequest):
        accounts.update_account(alice, {})


def test_update_password(alice):
    accounts.update_account(alice, {"password": "a-new-password"})

    alice.refresh_from_db()
    assert alice.check_password("a-new-password")


def test_update_bio(alice):
    assert accounts.update_bio(alice, "  Hello there ").bio == "Hello there"

    with pytest.raises(BadRequest):
        accounts.update_bio(alice, "")
    with pytest.raises(BadRequest):
        accounts.update_bio(alice, "x" * 201)


def test_profile_picture_replacement_removes_old_file(alice, make_image):
    accounts.update_profile_picture(alice, make_image("one.png"))
    first = alice.profile_picture.name

    accounts.update_profile_picture(alice, make_image("two.png"))
    second = alice.profile_picture.name

    assert first.startswith("uploads/profiles/")
    assert first != second
    assert not default_storage.exists(first)
    assert default_storage.exists(second)


def test_lookup_user_is_case_insensitive(alice):
    assert accounts.lookup_user("ALICE") == alice
    with pytest.raises(NotFound):
        accounts.lookup_user("")


# ==================== DELETION ====================

def test_delete_account_removes_rows_and_files(alice, bob, befriend, make_image):
    befriend(alice, bob)
    accounts.update_profile_picture(alice, make_image())
    post = feed.create_post(alice, "hello", uploads=[make_image()])
    image = conversations.send_media(bob, make_image(), DirectMessage.IMAGE, recipient_username="alice")
    paths = [alice.profile_picture.name, post.attachments.get().file.name, image.content]

    removed = accounts.delete_account(alice, alice.pk, PASSWORD)

    assert removed == 3
    assert not User.objects.filter(username="alice").exists()
    assert not Post.objects.exists()
    assert not FriendEdge.objects.exists()
    assert not Conversation.objects.exists()
    assert not any(default_storage.exists(path) for path in paths)


def test_delete_account_checks_owner_and_password(alice, bob):
    with pytest.raises(Forbidden):
        accounts.delete_account(alice, bob.pk, PASSWORD)
    with pytest.raises(Unauthorized):
        accounts.delete_account(alice, alice.pk, "wrong")

    assert User.objects.filter(pk=alice.pk).exists()

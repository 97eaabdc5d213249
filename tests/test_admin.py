import pytest
from django.urls import reverse

from social import conversations, feed
from social.models import User

pytestmark = pytest.mark.django_db

MODELS = [
    "user", "friendedge", "post", "attachment", "comment", "postlike",
    "conversation", "conversationparticipant", "directmessage",
]


@pytest.fixture
def admin_client_with_data(client, settings, alice, bob, carol, befriend, make_image):
    # Admin templates use {% static %}; skip the collectstatic manifest
    settings.STORAGES = {
        **settings.STORAGES,
        "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
    }
    befriend(alice, bob)
    post = feed.create_post(alice, "hello admin", uploads=[make_image()])
    feed.add_comment(bob, post.pk, "hi")
    feed.toggle_like(bob, post.pk)
    group = conversations.create_group(alice, "Team", ["bob", "carol"])
    conversations.send_message(group, bob, "hey")

    admin = User.objects.create_superuser("root", "root@example.com", "admin-pass-123")
    client.force_login(admin)
    return client


@pytest.mark.parametrize("model", MODELS)
def test_changelist_renders(admin_client_with_data, model):
    response = admin_client_with_data.get(reverse(f"admin:social_{model}_changelist"))
    assert response.status_code == 200


def test_unlock_action(admin_client_with_data, alice):
    alice.failed_attempts = 5
    alice.save()

    response = admin_client_with_data.post(reverse("admin:social_user_changelist"), {
        "action": "unlock_users",
        "_selected_action": [alice.pk],
    })

    assert response.status_code == 302
    alice.refresh_from_db()
    assert alice.failed_attempts == 0

import pytest
from django.core.files.storage import default_storage

from social import conversations, feed
from social.errors import BadRequest, Forbidden, NotFound
from social.models import Conversation, DirectMessage

pytestmark = pytest.mark.django_db


@pytest.fixture
def direct(alice, bob):
    conversation, _ = conversations.resolve_or_create_conversation(alice, bob)
    return conversation


def fill(conversation, sender, count):
    return [conversations.send_message(conversation, sender, f"message {i}") for i in range(count)]


# ==================== SENDING ====================

def test_send_message_bumps_conversation_activity(direct, alice):
    before = Conversation.objects.get(pk=direct.pk).updated_at

    message = conversations.send_message(direct, alice, "  hello  ")

    assert message.content == "hello"
    assert message.message_type == DirectMessage.TEXT
    assert Conversation.objects.get(pk=direct.pk).updated_at >= before


def test_send_message_requires_membership(direct, carol):
    with pytest.raises(Forbidden):
        conversations.send_message(direct, carol, "let me in")
    assert not DirectMessage.objects.exists()


def test_send_message_validates_content(direct, alice):
    with pytest.raises(BadRequest):
        conversations.send_message(direct, alice, "   ")
    with pytest.raises(BadRequest):
        conversations.send_message(direct, alice, "hi", "sticker")
    with pytest.raises(BadRequest):
        conversations.send_message(direct, alice, "uploads/images/missing.png", DirectMessage.IMAGE)


def test_send_to_username_creates_conversation_once(alice, bob):
    first = conversations.send_to_username(alice, "bob", "hi")
    second = conversations.send_to_username(bob, "ALICE", "hey")

    assert first.conversation_id == second.conversation_id
    assert Conversation.objects.count() == 1


def test_send_to_username_fails_before_creating_anything(alice, bob):
    with pytest.raises(BadRequest):
        conversations.send_to_username(alice, "bob", "")
    with pytest.raises(NotFound):
        conversations.send_to_username(alice, "nobody", "hi")
    with pytest.raises(BadRequest):
        conversations.send_to_username(alice, "alice", "talking to myself")

    assert not Conversation.objects.exists()


def test_media_type_cannot_point_at_an_existing_file(alice, bob, carol, make_image):
    """Media content is always the path send_media just stored"""
    post = feed.create_post(bob, "my photo", uploads=[make_image()])
    foreign = post.attachments.get().file.name
    direct, _ = conversations.resolve_or_create_conversation(carol, alice)

    with pytest.raises(BadRequest):
        conversations.send_to_username(carol, "alice", foreign, DirectMessage.IMAGE)
    with pytest.raises(BadRequest):
        conversations.send_message(direct, carol, foreign, DirectMessage.VIDEO)

    assert not DirectMessage.objects.exists()
    assert default_storage.exists(foreign)


def test_send_media_stores_file_and_message(alice, bob, make_image):
    message = conversations.send_media(alice, make_image(), DirectMessage.IMAGE, recipient_username="bob")

    assert message.message_type == DirectMessage.IMAGE
    assert message.content.startswith("uploads/images/")
    assert default_storage.exists(message.content)


def test_send_media_checks_membership_before_storing(alice, bob, carol, make_video):
    group = conversations.create_group(alice, "Team", ["bob", "carol"])
    conversations.leave_group(group.pk, carol)

    with pytest.raises(Forbidden):
        conversations.send_media(carol, make_video(), DirectMessage.VIDEO, conversation_id=group.pk)

    assert not DirectMessage.objects.exists()
    assert not default_storage.exists("uploads/videos")


def test_send_media_rejects_wrong_kind(alice, bob, make_image, make_video):
    with pytest.raises(BadRequest):
        conversations.send_media(alice, make_video(), DirectMessage.IMAGE, recipient_username="bob")
    with pytest.raises(BadRequest):
        conversations.send_media(alice, make_image(), DirectMessage.VIDEO, recipient_username="bob")


# ==================== PAGINATION ====================

def test_first_page_is_latest_messages_ascending(direct, alice):
    sent = fill(direct, alice, 25)

    page = conversations.get_messages(direct, alice)

    assert [m.pk for m in page["messages"]] == [m.pk for m in sent[5:]]
    assert page["has_more"] is True


def test_text_and_image_come_back_in_send_order(direct, alice, bob, make_image):
    hi = conversations.send_message(direct, alice, "hi")
    hello = conversations.send_message(direct, bob, "hello")
    image = conversations.send_media(alice, make_image(), DirectMessage.IMAGE, conversation_id=direct.pk)

    page = conversations.get_messages(direct, bob)

    assert [m.pk for m in page["messages"]] == [hi.pk, hello.pk, image.pk]
    assert [m.message_type for m in page["messages"]] == ["text", "text", "image"]
    assert page["has_more"] is False


def test_before_cursor_walks_back_to_the_start(direct, alice, bob):
    sent = fill(direct, alice, 25)

    first = conversations.get_messages(direct, bob)
    older = conversations.get_messages(direct, bob, before=first["messages"][0].pk)

    assert [m.pk for m in older["messages"]] == [m.pk for m in sent[:5]]
    assert older["has_more"] is False


def test_after_cursor_returns_only_newer_messages(direct, alice, bob):
    sent = fill(direct, alice, 5)
    newer = [conversations.send_message(direct, bob, "new 1"), conversations.send_message(direct, bob, "new 2")]

    page = conversations.get_messages(direct, alice, after=sent[-1].pk)

    assert [m.pk for m in page["messages"]] == [m.pk for m in newer]
    assert conversations.get_messages(direct, alice, after=newer[-1].pk)["messages"] == []


def test_before_and_after_together_are_rejected(direct, alice):
    sent = fill(direct, alice, 3)

    with pytest.raises(BadRequest):
        conversations.get_messages(direct, alice, before=sent[2].pk, after=sent[0].pk)


def test_limit_is_clamped(direct, alice, settings):
    settings.MESSAGE_PAGE_MAX = 3
    fill(direct, alice, 5)

    assert len(conversations.get_messages(direct, alice, limit=500)["messages"]) == 3
    assert len(conversations.get_messages(direct, alice, limit=0)["messages"]) == 1


def test_empty_conversation_page(direct, alice):
    page = conversations.get_messages(direct, alice)
    assert page["messages"] == []
    assert page["has_more"] is False


def test_get_messages_requires_membership(direct, alice, carol):
    fill(direct, alice, 2)
    with pytest.raises(Forbidden):
        conversations.get_messages(direct, carol)


def test_history_with_user_does_not_create_conversation(alice, bob):
    conversation, messages, membership = conversations.conversation_history(alice, "bob")

    assert conversation is None and messages == [] and membership is None
    assert not Conversation.objects.exists()


# ==================== EDIT & DELETE ====================

def test_edit_message(direct, alice, bob):
    message = conversations.send_message(direct, alice, "helo")

    edited = conversations.edit_message(message.pk, alice, "hello")
    assert edited.content == "hello"
    assert edited.edited_at is not None

    with pytest.raises(Forbidden):
        conversations.edit_message(message.pk, bob, "hijack")
    with pytest.raises(BadRequest):
        conversations.edit_message(message.pk, alice, " ")
    with pytest.raises(NotFound):
        conversations.edit_message(999999, alice, "ghost")


def test_media_messages_cannot_be_edited(alice, bob, make_image):
    message = conversations.send_media(alice, make_image(), DirectMessage.IMAGE, recipient_username="bob")

    with pytest.raises(BadRequest):
        conversations.edit_message(message.pk, alice, "caption")


def test_delete_media_message_removes_file(alice, bob, make_image):
    message = conversations.send_media(alice, make_image(), DirectMessage.IMAGE, recipient_username="bob")
    path = message.content

    with pytest.raises(Forbidden):
        conversations.delete_message(message.pk, bob)

    conversations.delete_message(message.pk, alice)

    assert not DirectMessage.objects.filter(pk=message.pk).exists()
    assert not default_storage.exists(path)


def test_delete_conversation_removes_messages_and_media(alice, bob, carol, make_image):
    image = conversations.send_media(alice, make_image(), DirectMessage.IMAGE, recipient_username="bob")
    conversations.send_message(image.conversation, bob, "nice")

    with pytest.raises(Forbidden):
        conversations.delete_conversation(image.conversation_id, carol)

    removed = conversations.delete_conversation(image.conversation_id, bob)

    assert removed == {DirectMessage.IMAGE: 1, DirectMessage.VIDEO: 0}
    assert not Conversation.objects.exists()
    assert not DirectMessage.objects.exists()
    assert not default_storage.exists(image.content)

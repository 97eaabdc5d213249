import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from social import conversations
from social.errors import BadRequest, Forbidden, NotFound
from social.models import Conversation, ConversationParticipant

pytestmark = pytest.mark.django_db


# ==================== RESOLVER ====================

def test_resolver_returns_same_conversation_for_both_orderings(alice, bob):
    """Either user starting the chat lands in the same conversation"""
    first, created = conversations.resolve_or_create_conversation(alice, bob)
    second, created_again = conversations.resolve_or_create_conversation(bob, alice)

    assert created is True
    assert created_again is False
    assert first.pk == second.pk
    assert Conversation.objects.filter(is_group=False).count() == 1


def test_resolver_normalizes_pair_and_adds_both_participants(alice, bob):
    conversation, _ = conversations.resolve_or_create_conversation(bob, alice)

    low, high = sorted([alice, bob], key=lambda u: u.pk)
    assert conversation.user_a_id == low.pk
    assert conversation.user_b_id == high.pk
    members = set(conversation.participants.active().values_list("user_id", flat=True))
    assert members == {alice.pk, bob.pk}


def test_resolver_rejects_self_conversation(alice):
    with pytest.raises(BadRequest) as excinfo:
        conversations.resolve_or_create_conversation(alice, alice)

    assert excinfo.value.message == "Cannot message yourself"
    assert not Conversation.objects.exists()


def test_duplicate_pair_is_refused_by_the_database(alice, bob):
    """The unique pair constraint is what makes concurrent creation converge"""
    conversation, _ = conversations.resolve_or_create_conversation(alice, bob)

    with pytest.raises(IntegrityError), transaction.atomic():
        Conversation.objects.create(user_a=conversation.user_a, user_b=conversation.user_b)


def test_resolver_reactivates_a_participant_who_left(alice, bob):
    conversation, _ = conversations.resolve_or_create_conversation(alice, bob)
    ConversationParticipant.objects.filter(conversation=conversation, user=bob).update(
        left_at=timezone.now()
    )

    again, created = conversations.resolve_or_create_conversation(alice, bob)

    assert again.pk == conversation.pk
    assert created is False
    assert conversations.get_membership(conversation, bob) is not None


# ==================== GROUPS ====================

def test_create_group_adds_creator_and_members(alice, bob, carol):
    group = conversations.create_group(alice, "  Book club ", ["bob", "carol", "alice", "BOB"])

    assert group.is_group
    assert group.name == "Book club"
    assert group.created_by == alice
    assert group.user_a is None and group.user_b is None
    members = set(group.participants.active().values_list("user__username", flat=True))
    assert members == {"alice", "bob", "carol"}


def test_create_group_needs_two_other_members(alice, bob):
    with pytest.raises(BadRequest):
        conversations.create_group(alice, "Pair", ["bob", "alice"])


def test_create_group_requires_name_and_list(alice, bob, carol):
    with pytest.raises(BadRequest):
        conversations.create_group(alice, "", ["bob", "carol"])
    with pytest.raises(BadRequest):
        conversations.create_group(alice, "Name", "bob,carol")


def test_create_group_names_missing_user(alice, bob):
    with pytest.raises(NotFound) as excinfo:
        conversations.create_group(alice, "Team", ["bob", "ghost"])

    assert excinfo.value.message == "User not found: ghost"
    assert not Conversation.objects.exists()


def test_group_management(alice, bob, carol, dave):
    group = conversations.create_group(alice, "Team", ["bob", "carol"])

    added = conversations.add_participants(group.pk, bob, ["dave"])
    assert [u.username for u in added] == ["dave"]

    conversations.remove_participant(group.pk, alice, "dave")
    _, members = conversations.group_participants(group.pk, alice)
    assert [u.username for u in members] == ["alice", "bob", "carol"]

    # Former members come back through add_participants
    added = conversations.add_participants(group.pk, carol, ["dave"])
    assert [u.username for u in added] == ["dave"]

    conversations.leave_group(group.pk, bob)
    with pytest.raises(Forbidden):
        conversations.group_participants(group.pk, bob)

    renamed = conversations.rename_group(group.pk, carol, "New name")
    assert renamed.name == "New name"


def test_group_operations_require_membership(alice, bob, carol, dave):
    group = conversations.create_group(alice, "Team", ["bob", "carol"])

    with pytest.raises(Forbidden):
        conversations.add_participants(group.pk, dave, ["dave"])
    with pytest.raises(Forbidden):
        conversations.rename_group(group.pk, dave, "Hijacked")
    with pytest.raises(NotFound):
        conversations.leave_group(group.pk, dave)


def test_group_operations_reject_direct_conversations(alice, bob, carol):
    direct, _ = conversations.resolve_or_create_conversation(alice, bob)

    with pytest.raises(BadRequest):
        conversations.add_participants(direct.pk, alice, ["carol"])
    with pytest.raises(BadRequest):
        conversations.leave_group(direct.pk, alice)


def test_remove_participant_who_is_not_in_group(alice, bob, carol, dave):
    group = conversations.create_group(alice, "Team", ["bob", "carol"])

    with pytest.raises(NotFound):
        conversations.remove_participant(group.pk, alice, "dave")


# ==================== CONVERSATION LIST ====================

def test_list_conversations_shows_preview_and_unread(alice, bob, carol):
    direct, _ = conversations.resolve_or_create_conversation(alice, bob)
    conversations.send_message(direct, bob, "hi alice")
    group = conversations.create_group(alice, "Team", ["bob", "carol"])
    conversations.send_message(group, carol, "hello team")
    conversations.send_message(group, alice, "hey")

    summaries = conversations.list_conversations(alice)

    assert [s["conversation"].pk for s in summaries] == [group.pk, direct.pk]
    group_summary, direct_summary = summaries
    assert group_summary["last_message"].content == "hey"
    assert group_summary["unread_count"] == 1
    assert direct_summary["other_user"] == bob
    assert direct_summary["unread_count"] == 1


def test_list_conversations_skips_left_groups(alice, bob, carol):
    group = conversations.create_group(alice, "Team", ["bob", "carol"])
    conversations.leave_group(group.pk, bob)

    assert conversations.list_conversations(bob) == []

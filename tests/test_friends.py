import pytest

from social import friends
from social.errors import BadRequest, Conflict, NotFound
from social.models import FriendEdge

pytestmark = pytest.mark.django_db


def test_request_accept_flow(alice, bob):
    friends.send_request(alice, "bob")

    assert friends.friendship_status(alice, bob) == "pending_outgoing"
    assert friends.friendship_status(bob, alice) == "pending_incoming"
    assert list(friends.incoming_requests(bob)) == [alice]
    assert list(friends.outgoing_requests(alice)) == [bob]
    assert not friends.are_friends(alice, bob)

    friends.accept_request(bob, "alice")

    assert friends.are_friends(alice, bob)
    assert friends.are_friends(bob, alice)
    assert friends.friendship_status(bob, alice) == "friends"
    assert list(friends.list_friends(alice)) == [bob]
    assert list(friends.list_friends(bob)) == [alice]
    assert not friends.incoming_requests(bob).exists()


def test_cannot_friend_yourself(alice):
    with pytest.raises(BadRequest):
        friends.send_request(alice, "alice")
    assert friends.friendship_status(alice, alice) == "self"


def test_duplicate_request_in_either_direction(alice, bob):
    friends.send_request(alice, "bob")

    with pytest.raises(Conflict):
        friends.send_request(alice, "bob")
    with pytest.raises(Conflict):
        friends.send_request(bob, "alice")
    assert FriendEdge.objects.count() == 1


def test_requester_cannot_accept_own_request(alice, bob):
    friends.send_request(alice, "bob")

    with pytest.raises(NotFound):
        friends.accept_request(alice, "bob")


def test_decline_and_cancel(alice, bob, carol):
    friends.send_request(alice, "bob")
    friends.send_request(carol, "alice")

    friends.decline_request(bob, "alice")
    friends.decline_request(carol, "alice")

    assert not FriendEdge.objects.exists()
    with pytest.raises(NotFound):
        friends.decline_request(bob, "alice")


def test_decline_does_not_remove_friendship(alice, bob, befriend):
    befriend(alice, bob)

    with pytest.raises(NotFound):
        friends.decline_request(bob, "alice")
    assert friends.are_friends(alice, bob)


def test_remove_friend(alice, bob, befriend):
    befriend(bob, alice)

    friends.remove_friend(alice, "bob")

    assert not friends.are_friends(alice, bob)
    with pytest.raises(NotFound):
        friends.remove_friend(alice, "bob")


def test_unknown_user(alice):
    with pytest.raises(NotFound):
        friends.send_request(alice, "ghost")


def test_search_friends(alice, bob, carol, dave, befriend):
    befriend(alice, bob)
    befriend(carol, alice)

    assert list(friends.search_friends(alice, "O")) == [bob, carol]
    assert list(friends.search_friends(alice, "car")) == [carol]
    # Dave is not a friend
    assert list(friends.search_friends(alice, "dave")) == []

    with pytest.raises(BadRequest):
        friends.search_friends(alice, "  ")

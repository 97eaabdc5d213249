"""
Friend requests and friend lists.

A FriendEdge is pending until the addressee accepts it. Friendship is
symmetric once accepted: either stored direction counts.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.db.models import Q

from .accounts import lookup_user
from .errors import BadRequest, Conflict, NotFound
from .models import FriendEdge

logger = logging.getLogger(__name__)

User = get_user_model()

SEARCH_LIMIT = 10


def are_friends(first, second):
    """True when an accepted edge joins the two users in either direction."""
    if first is None or second is None:
        return False
    return FriendEdge.objects.between(first, second).accepted().exists()


def friends_filter(user, field='pk'):
    """
    Q object matching rows whose `field` is one of the user's friends.

    Both directions are expressed as subqueries, so the filter never
    duplicates rows.
    """
    accepted = FriendEdge.objects.accepted()
    return (
        Q(**{f'{field}__in': accepted.filter(user_a=user).values('user_b')})
        | Q(**{f'{field}__in': accepted.filter(user_b=user).values('user_a')})
    )


def list_friends(user):
    return User.objects.filter(friends_filter(user)).order_by('username')


def incoming_requests(user):
    return User.objects.filter(
        sent_friend_edges__user_b=user,
        sent_friend_edges__status=FriendEdge.PENDING,
    ).order_by('username')


def outgoing_requests(user):
    return User.objects.filter(
        received_friend_edges__user_a=user,
        received_friend_edges__status=FriendEdge.PENDING,
    ).order_by('username')


def friendship_status(viewer, other):
    """One of 'self', 'friends', 'pending_outgoing', 'pending_incoming', 'none'."""
    if viewer.pk == other.pk:
        return 'self'
    edge = FriendEdge.objects.between(viewer, other).first()
    if edge is None:
        return 'none'
    if edge.status == FriendEdge.ACCEPTED:
        return 'friends'
    return 'pending_outgoing' if edge.user_a_id == viewer.pk else 'pending_incoming'


def send_request(user, username):
    target = lookup_user(username)
    if target.pk == user.pk:
        raise BadRequest("You cannot friend yourself")

    if FriendEdge.objects.between(user, target).exists():
        raise Conflict("Friend request already exists")

    try:
        edge = FriendEdge.objects.create(user_a=user, user_b=target)
    except IntegrityError:
        raise Conflict("Friend request already exists")

    logger.info(f"Friend request {user.username} -> {target.username}")
    return edge


def accept_request(user, username):
    requester = lookup_user(username)
    edge = FriendEdge.objects.pending().filter(user_a=requester, user_b=user).first()
    if edge is None:
        raise NotFound("No pending request from this user")

    edge.status = FriendEdge.ACCEPTED
    edge.save(update_fields=['status', 'updated_at'])
    logger.info(f"Friend request accepted: {requester.username} <-> {user.username}")
    return edge


def decline_request(user, username):
    """Decline an incoming request or cancel one the user sent."""
    other = lookup_user(username)
    deleted, _ = FriendEdge.objects.pending().between(user, other).delete()
    if not deleted:
        raise NotFound("No pending request to decline")


def remove_friend(user, username):
    other = lookup_user(username)
    deleted, _ = FriendEdge.objects.accepted().between(user, other).delete()
    if not deleted:
        raise NotFound("Friendship not found")
    logger.info(f"Friendship removed: {user.username} x {other.username}")


def search_friends(user, query):
    """Friends whose username contains `query`."""
    query = (query or '').strip()
    if not query:
        raise BadRequest("Query parameter 'q' is required")
    return list_friends(user).filter(username__icontains=query)[:SEARCH_LIMIT]

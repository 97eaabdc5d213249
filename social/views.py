"""
================================================================================
HEARTH - API VIEWS
================================================================================

@file        views.py
@description JSON endpoints for accounts, friends, chat and the feed

MODULE PURPOSE
================================================================================
Thin function views. Each one parses the request, calls the domain module
that owns the behaviour and serializes the result:

    accounts.py       registration, login, profile, deletion
    friends.py        friend requests and lists
    conversations.py  resolver, messages, read receipts, groups
    feed.py           posts, visibility, comments, likes

Every view is wrapped by social.decorators.api_view, which enforces the
allowed methods and bearer authentication and maps domain errors to
{"error": message} responses.

AUTHENTICATION
================================================================================
    POST /api/users/login  ->  {"token": "...", "user": {...}}
    Authorization: Bearer <token> on every other request

POLLING
================================================================================
Clients poll
    GET /api/conversations/
    GET /api/conversations/<id>/messages?after=<last id>
to pick up new messages and read receipts.

================================================================================
"""

import logging

from django.http import JsonResponse

from . import accounts, conversations, feed, friends
from .decorators import api_view, int_param, read_payload
from .errors import BadRequest
from .models import DirectMessage
from .serializers import (
    comment_payload, conversation_payload, conversation_summary,
    message_payload, post_payload, user_brief, user_detail, user_public,
)
from .tokens import issue_token

logger = logging.getLogger(__name__)


# ============================================================================
# ACCOUNTS
# ============================================================================

@api_view("POST", auth=False)
def register(request):
    user = accounts.register_user(read_payload(request))
    return JsonResponse({"message": "User registered successfully.", "user": user_detail(user)}, status=201)


@api_view("POST", auth=False)
def login_view(request):
    data = read_payload(request)
    user, token = accounts.login_user(data.get("username"), data.get("password"))
    return JsonResponse({"message": "Login successful", "token": token, "user": user_detail(user)})


@api_view("GET")
def verify_token(request):
    return JsonResponse({"valid": True, "user": user_detail(request.user)})


@api_view("GET")
def list_users(request):
    users = accounts.User.objects.filter(is_active=True).order_by("username")
    return JsonResponse({"users": [user_brief(user) for user in users]})


@api_view("GET")
def user_by_username(request, username):
    user = accounts.lookup_user(username)
    return JsonResponse({"user": user_public(user)})


@api_view("GET")
def profile(request, username):
    user = accounts.lookup_user(username)
    posts = feed.posts_by(request.user, user)
    liked_ids = feed.liked_post_ids(request.user, posts)

    return JsonResponse({
        "user": user_public(user),
        "friendship": friends.friendship_status(request.user, user),
        "friend_count": friends.list_friends(user).count(),
        "posts": [post_payload(post, liked_ids) for post in posts],
    })


@api_view("PATCH", "PUT")
def update_account(request):
    user = accounts.update_account(request.user, read_payload(request))
    # A renamed user gets a token carrying the new username
    return JsonResponse({
        "message": "Account updated successfully.",
        "user": user_detail(user),
        "token": issue_token(user),
    })


@api_view("PATCH", "PUT")
def update_bio(request):
    data = read_payload(request)
    user = accounts.update_bio(request.user, data.get("bio"))
    return JsonResponse({"message": "Bio updated successfully", "bio": user.bio})


@api_view("POST")
def update_profile_picture(request):
    upload = request.FILES.get("profilePicture")
    if upload is None:
        raise BadRequest("No file uploaded")

    user = accounts.update_profile_picture(request.user, upload)
    return JsonResponse({
        "message": "Profile picture updated successfully",
        "profile_picture": user_brief(user)["profile_picture"],
    })


@api_view("DELETE")
def delete_account(request, user_id):
    data = read_payload(request)
    accounts.delete_account(request.user, user_id, data.get("password"))
    return JsonResponse({"message": "Account successfully deleted."})


# ============================================================================
# FRIENDS
# ============================================================================

@api_view("GET")
def friend_list(request):
    return JsonResponse({"friends": [user_brief(user) for user in friends.list_friends(request.user)]})


@api_view("GET")
def incoming_requests(request):
    users = friends.incoming_requests(request.user)
    return JsonResponse({"requests": [user_brief(user) for user in users]})


@api_view("GET")
def outgoing_requests(request):
    users = friends.outgoing_requests(request.user)
    return JsonResponse({"requests": [user_brief(user) for user in users]})


@api_view("POST")
def send_friend_request(request, username):
    friends.send_request(request.user, username)
    return JsonResponse({"message": "Friend request sent"}, status=201)


@api_view("POST")
def accept_friend_request(request, username):
    friends.accept_request(request.user, username)
    return JsonResponse({"message": "Friend request accepted"})


@api_view("DELETE")
def decline_friend_request(request, username):
    friends.decline_request(request.user, username)
    return JsonResponse({"message": "Friend request declined"})


@api_view("DELETE")
def remove_friend(request, username):
    friends.remove_friend(request.user, username)
    return JsonResponse({"message": "Friend removed"})


@api_view("GET")
def search_friends(request):
    users = friends.search_friends(request.user, request.GET.get("q"))
    return JsonResponse({"users": [{"value": u.username, "label": u.username} for u in users]})


# ============================================================================
# CONVERSATIONS
# ============================================================================

@api_view("GET")
def conversation_list(request):
    summaries = conversations.list_conversations(request.user)
    return JsonResponse({"conversations": [conversation_summary(s) for s in summaries]})


@api_view("POST")
def start_conversation(request):
    data = read_payload(request)
    username = data.get("username")
    if not isinstance(username, str) or not username.strip():
        raise BadRequest("username is required")

    other = accounts.lookup_user(username)
    conversation, created = conversations.resolve_or_create_conversation(request.user, other)
    return JsonResponse(
        {"conversation": conversation_payload(conversation), "created": created},
        status=201 if created else 200,
    )


@api_view("POST")
def send_message(request):
    data = read_payload(request)
    message = conversations.send_to_username(
        request.user,
        data.get("recipientUsername"),
        data.get("message"),
        data.get("messageType") or DirectMessage.TEXT,
    )
    return JsonResponse({
        "conversationId": message.conversation_id,
        "message": message_payload(message),
    }, status=201)


def _send_media(request, message_type):
    field = "image" if message_type == DirectMessage.IMAGE else "video"
    upload = request.FILES.get(field)
    if upload is None:
        raise BadRequest(f"No {field} file provided")

    message = conversations.send_media(
        request.user,
        upload,
        message_type,
        recipient_username=request.POST.get("recipientUsername"),
        conversation_id=int_param(request.POST.get("conversationId"), "conversationId"),
    )
    return JsonResponse({
        "conversationId": message.conversation_id,
        "message": message_payload(message),
    }, status=201)


@api_view("POST")
def send_image(request):
    return _send_media(request, DirectMessage.IMAGE)


@api_view("POST")
def send_video(request):
    return _send_media(request, DirectMessage.VIDEO)


@api_view("GET")
def messages_with_user(request, username):
    conversation, messages, membership = conversations.conversation_history(request.user, username)
    return JsonResponse({
        "conversationId": conversation.pk if conversation else None,
        "messages": [
            message_payload(message, request.user, conversation, membership)
            for message in messages
        ],
    })


@api_view("GET", "POST")
def conversation_messages(request, conversation_id):
    """
    GET  : page of messages (?before=<id> | ?after=<id>, ?limit=<n>)
    POST : send {message, messageType} into the conversation
    """
    conversation = conversations.get_conversation(conversation_id)

    if request.method == "POST":
        data = read_payload(request)
        message = conversations.send_message(
            conversation,
            request.user,
            data.get("message"),
            data.get("messageType") or DirectMessage.TEXT,
        )
        return JsonResponse({"message": message_payload(message)}, status=201)

    page = conversations.get_messages(
        conversation,
        request.user,
        before=int_param(request.GET.get("before"), "before"),
        after=int_param(request.GET.get("after"), "after"),
        limit=int_param(request.GET.get("limit"), "limit"),
    )
    return JsonResponse({
        "conversationId": conversation.pk,
        "isGroup": conversation.is_group,
        "messages": [
            message_payload(message, request.user, conversation, page["membership"])
            for message in page["messages"]
        ],
        "hasMore": page["has_more"],
    })


@api_view("PUT", "POST")
def mark_conversation_read(request, conversation_id):
    conversation = conversations.get_conversation(conversation_id)
    marked = conversations.mark_conversation_read(conversation, request.user)
    return JsonResponse({"success": True, "conversationId": conversation.pk, "marked": marked})


@api_view("DELETE")
def delete_conversation(request, conversation_id):
    removed = conversations.delete_conversation(conversation_id, request.user)
    return JsonResponse({
        "message": "Conversation deleted",
        "imagesDeleted": removed[DirectMessage.IMAGE],
        "videosDeleted": removed[DirectMessage.VIDEO],
    })


@api_view("PUT", "POST")
def mark_message_read(request, message_id):
    message, changed = conversations.mark_read(message_id, request.user)
    return JsonResponse({
        "success": True,
        "messageId": message.pk,
        "isGroup": message.conversation.is_group,
        "changed": changed,
    })


@api_view("PUT", "DELETE")
def message_detail(request, message_id):
    if request.method == "DELETE":
        conversations.delete_message(message_id, request.user)
        return JsonResponse({"message": "Message deleted", "messageId": message_id})

    data = read_payload(request)
    message = conversations.edit_message(message_id, request.user, data.get("message", data.get("content")))
    return JsonResponse({"message": message_payload(message)})


# ============================================================================
# GROUPS
# ============================================================================

@api_view("POST")
def create_group(request):
    data = read_payload(request)
    conversation = conversations.create_group(
        request.user, data.get("groupName"), data.get("participantUsernames")
    )
    return JsonResponse({"conversation": conversation_payload(conversation)}, status=201)


@api_view("GET")
def group_participants(request, conversation_id):
    conversation, users = conversations.group_participants(conversation_id, request.user)
    return JsonResponse({
        "conversationId": conversation.pk,
        "groupName": conversation.name,
        "createdBy": conversation.created_by_id,
        "participants": [user_brief(user) for user in users],
    })


@api_view("POST")
def add_group_participants(request, conversation_id):
    data = read_payload(request)
    added = conversations.add_participants(conversation_id, request.user, data.get("usernames"))
    return JsonResponse({
        "success": True,
        "message": "Participants added",
        "added": [user_brief(user) for user in added],
    })


@api_view("DELETE")
def remove_group_participant(request, conversation_id, username):
    conversations.remove_participant(conversation_id, request.user, username)
    return JsonResponse({"success": True, "message": "Participant removed"})


@api_view("POST")
def leave_group(request, conversation_id):
    conversations.leave_group(conversation_id, request.user)
    return JsonResponse({"success": True, "message": "Left group"})


@api_view("PATCH", "PUT")
def rename_group(request, conversation_id):
    data = read_payload(request)
    conversation = conversations.rename_group(conversation_id, request.user, data.get("groupName"))
    return JsonResponse({"success": True, "message": "Group name updated", "groupName": conversation.name})


# ============================================================================
# POSTS & FEED
# ============================================================================

@api_view("POST")
def create_post(request):
    data = read_payload(request)
    post = feed.create_post(
        request.user,
        data.get("text"),
        data.get("visibility"),
        request.FILES.getlist("images"),
    )
    return JsonResponse({"message": "Post created successfully", "post": post_payload(post)}, status=201)


@api_view("GET")
def feed_view(request):
    try:
        page = int(request.GET.get("page", 1))
    except ValueError:
        page = 1

    result = feed.list_feed(request.user, page)
    return JsonResponse({
        "posts": [post_payload(post, result["liked_ids"]) for post in result["posts"]],
        "pagination": result["pagination"],
    })


@api_view("GET")
def my_posts(request):
    posts = feed.posts_by(request.user, request.user)
    liked_ids = feed.liked_post_ids(request.user, posts)
    return JsonResponse({"posts": [post_payload(post, liked_ids) for post in posts]})


@api_view("GET", "PATCH", "PUT", "DELETE")
def post_detail(request, post_id):
    if request.method == "DELETE":
        removed = feed.delete_post(request.user, post_id)
        return JsonResponse({"message": "Post deleted successfully", "filesRemoved": removed})

    if request.method in ("PATCH", "PUT"):
        data = read_payload(request)
        post = feed.update_post(request.user, post_id, data.get("text"))
        return JsonResponse({"success": True, "text": post.text})

    post = feed.get_post(request.user, post_id)
    return JsonResponse({"post": post_payload(post, feed.liked_post_ids(request.user, [post]))})


@api_view("PATCH", "PUT")
def post_visibility(request, post_id):
    data = read_payload(request)
    post = feed.set_visibility(request.user, post_id, data.get("visibility"))
    return JsonResponse({"success": True, "visibility": post.visibility})


@api_view("POST")
def add_comment(request, post_id):
    data = read_payload(request)
    comment = feed.add_comment(request.user, post_id, data.get("text"))
    return JsonResponse({"message": "Comment added", "comment": comment_payload(comment)}, status=201)


@api_view("DELETE")
def delete_comment(request, post_id, comment_id):
    feed.delete_comment(request.user, post_id, comment_id)
    return JsonResponse({"message": "Comment deleted successfully"})


@api_view("POST")
def toggle_like(request, post_id):
    result = feed.toggle_like(request.user, post_id)
    return JsonResponse({"success": True, "action": "liked" if result["liked"] else "unliked", **result})
